"""
環境変数から読み込む設定

YANEURAOU_PATH / SHOGI_ENGINE_PATH  USIエンジンの実行ファイル
USI_EVAL_ENABLED                    評価値の問い合わせにエンジンを使うか（true / 1）
USI_HANDSHAKE_TIMEOUT_MS            usiok / readyok の待ち時間
USI_BESTMOVE_GRACE_MS               bestmove を movetime からさらに待つ時間
SHOGI_AI_DEPTH / SHOGI_AI_TIME_MS   ローカル探索の既定の深さと持ち時間
"""

import os
from dataclasses import dataclass
from typing import Optional

from .errors import ConfigurationError


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"true", "1"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} は整数で指定してください", context={"value": value})


@dataclass(frozen=True)
class EngineSettings:
    """外部USIエンジンの設定"""
    engine_path: Optional[str] = None
    eval_enabled: bool = False
    handshake_timeout_ms: int = 8000
    bestmove_grace_ms: int = 8000

    @staticmethod
    def from_env() -> 'EngineSettings':
        path = os.getenv("YANEURAOU_PATH") or os.getenv("SHOGI_ENGINE_PATH") or None
        return EngineSettings(
            engine_path=path,
            eval_enabled=_env_flag("USI_EVAL_ENABLED"),
            handshake_timeout_ms=_env_int("USI_HANDSHAKE_TIMEOUT_MS", 8000),
            bestmove_grace_ms=_env_int("USI_BESTMOVE_GRACE_MS", 8000),
        )

    def validate_engine_path(self) -> str:
        """
        エンジンのパスを検証して返す
        未設定・存在しない・実行権限がない場合は ConfigurationError
        """
        path = self.engine_path
        if not path:
            raise ConfigurationError("YANEURAOU_PATHが未設定です。")
        if not os.path.isfile(path):
            raise ConfigurationError("エンジンの実行ファイルが見つかりません。", context={"path": path})
        if not os.access(path, os.X_OK):
            raise ConfigurationError("エンジンの実行権限がありません。", context={"path": path})
        return path

    def is_engine_available(self) -> bool:
        try:
            self.validate_engine_path()
        except ConfigurationError:
            return False
        return True


@dataclass(frozen=True)
class SearchSettings:
    """ローカル探索の既定値"""
    depth: int = 3
    time_ms: int = 1000

    @staticmethod
    def from_env() -> 'SearchSettings':
        return SearchSettings(
            depth=_env_int("SHOGI_AI_DEPTH", 3),
            time_ms=_env_int("SHOGI_AI_TIME_MS", 1000),
        )
