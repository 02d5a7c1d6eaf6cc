"""
ログ出力の設定
"""

import logging
import os
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """ルートロガーにハンドラを1つだけ設定する（レベルは SHOGI_LOG_LEVEL、既定は INFO）"""
    level_name = (level or os.getenv("SHOGI_LOG_LEVEL") or "INFO").upper()
    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name, logging.INFO))
    if not any(getattr(handler, "_shogi", False) for handler in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._shogi = True
        root.addHandler(handler)
