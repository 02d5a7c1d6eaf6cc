#!/usr/bin/env python
"""
将棋AI 開発サーバ起動スクリプト
"""

import sys
import os

# プロジェクトルートをパスに追加
project_root = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, project_root)

from src.logging_setup import configure_logging
from src.api.main import app
import uvicorn

if __name__ == "__main__":
    configure_logging()

    port = int(os.getenv("PORT", "8001"))
    print("=" * 60)
    print("将棋AI 開発サーバを起動します")
    print("=" * 60)
    print(f"APIサーバ: http://localhost:{port}")
    print(f"API ドキュメント: http://localhost:{port}/docs")
    if not (os.getenv("YANEURAOU_PATH") or os.getenv("SHOGI_ENGINE_PATH")):
        print("YANEURAOU_PATH が未設定のため、AIはローカル探索のみを使います")
    print("=" * 60)
    print()

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=port,
        reload=False,
        log_level=os.getenv("SHOGI_LOG_LEVEL", "info").lower()
    )
