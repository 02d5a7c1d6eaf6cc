"""
将棋 FastAPI サーバ
"""
