"""
将棋AIサーバ
"""
