"""
将棋AIサーバのエラー階層

すべての独自例外は ShogiError を継承する。
詰み・玉の不在などの終局状態は例外ではなく通常の戻り値で表す。

使い方:
    from src.errors import ConfigurationError, EngineBridgeError

    try:
        move = await request_best_move(settings, position, depth, time_ms)
    except (ConfigurationError, EngineBridgeError) as e:
        logger.warning("エンジン失敗: %s", e)
"""

from typing import Any, Dict, Optional

__all__ = [
    "ShogiError",
    "ConfigurationError",
    "InvalidMoveError",
    "EngineBridgeError",
    "EngineSpawnError",
    "EngineTimeoutError",
    "EngineExitedError",
]


class ShogiError(Exception):
    """全エラーの基底クラス

    Attributes:
        code: 機械判読用のエラーコード
        message: 人間向けのエラーメッセージ
        context: デバッグ用の追加情報
    """
    code: str = "SHOGI_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"[{self.code}] {self.message} ({ctx})"
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """JSONレスポンス用の辞書に変換"""
        return {
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


class ConfigurationError(ShogiError):
    """設定エラー（エンジンのパスが未設定・存在しない・実行権限がない）

    この場合エンジンプロセスは起動されない。
    """
    code: str = "CONFIGURATION_ERROR"


class InvalidMoveError(ShogiError):
    """適用できない手（形式不正・非合法・成りが未確定）"""
    code: str = "INVALID_MOVE"


class EngineBridgeError(ShogiError):
    """外部エンジンとの通信失敗の基底クラス

    Attributes:
        detail: 標準エラー出力・起動エラー・終了コードなどの診断情報
    """
    code: str = "ENGINE_BRIDGE_ERROR"

    def __init__(
        self,
        message: str,
        detail: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, context=context)
        self.detail = detail
        if detail:
            self.context["detail"] = detail


class EngineSpawnError(EngineBridgeError):
    """エンジンプロセスを起動できなかった"""
    code: str = "ENGINE_SPAWN_ERROR"


class EngineTimeoutError(EngineBridgeError):
    """期限内に期待した応答行が来なかった"""
    code: str = "ENGINE_TIMEOUT"


class EngineExitedError(EngineBridgeError):
    """応答の途中でエンジンプロセスが終了した"""
    code: str = "ENGINE_EXITED"
