"""
ウェブAPI用 着手選択モジュール
外部USIエンジンを優先し、使えなければローカル探索で手を選ぶ
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from ..ai.search import SearchEngine
from ..ai import usi_bridge
from ..config import EngineSettings, SearchSettings
from ..engine.board import Position
from ..engine.move import Move
from ..engine.rules import Rules
from ..engine.sfen import move_to_usi
from ..errors import ConfigurationError, EngineBridgeError

logger = logging.getLogger(__name__)

SOURCE_ENGINE = "engine"
SOURCE_LOCAL = "local"


@dataclass
class EvaluationResult:
    """
    評価値の問い合わせ結果

    score: 手番側から見たエンジンの評価値（cp）
    disabled: 評価値の問い合わせが設定で無効
    unavailable: エンジンが使えず評価値が得られなかった（ローカル探索では代用しない）
    """
    score: Optional[int] = None
    disabled: bool = False
    unavailable: bool = False
    error: Optional[str] = None

    def to_dict(self) -> dict:
        if self.disabled:
            return {"score": None, "disabled": True}
        if self.unavailable:
            return {"score": None, "unavailable": True, "error": self.error}
        return {"score": self.score}


class ShogiAI:
    """
    将棋AI - 外部USIエンジン + ローカルαβ探索

    Args:
        engine_settings: 外部エンジンの設定（Noneなら環境変数から読む）
        search_engine: ローカル探索（Noneなら既定の評価関数で作る）
        search_settings: ローカル探索の既定の深さと持ち時間
    """

    def __init__(
        self,
        engine_settings: Optional[EngineSettings] = None,
        search_engine: Optional[SearchEngine] = None,
        search_settings: Optional[SearchSettings] = None
    ):
        self.engine_settings = engine_settings or EngineSettings.from_env()
        self.search_engine = search_engine or SearchEngine()
        self.search_settings = search_settings or SearchSettings.from_env()
        self.last_source: Optional[str] = None

    async def choose_move(
        self,
        position: Position,
        depth: Optional[int] = None,
        time_ms: Optional[int] = None
    ) -> Optional[Move]:
        """
        手番側の手を選ぶ

        エンジンが未設定・起動失敗・時間切れ・投了・非合法手を返した場合は
        ローカル探索に切り替える。合法手がなければNone（終局）
        """
        depth = depth or self.search_settings.depth
        time_ms = time_ms or self.search_settings.time_ms

        legal_moves = Rules.get_legal_moves(position)
        if not legal_moves:
            self.last_source = None
            return None

        move = await self._try_engine(position, depth, time_ms)
        if move is not None:
            if move in legal_moves:
                self.last_source = SOURCE_ENGINE
                return move
            logger.warning("エンジンの手 %s は非合法のためローカル探索に切り替えます", move_to_usi(move))

        move = await asyncio.to_thread(self.search_engine.choose_move, position, depth, time_ms)
        self.last_source = SOURCE_LOCAL
        return move

    async def _try_engine(self, position: Position, depth: int, time_ms: int) -> Optional[Move]:
        try:
            return await usi_bridge.request_best_move(self.engine_settings, position, depth, time_ms)
        except ConfigurationError as e:
            logger.info("エンジン未使用: %s", e.message)
        except EngineBridgeError as e:
            logger.warning("エンジンとの通信に失敗しました: %s (%s)", e.message, e.detail)
        return None

    async def evaluate_position(
        self,
        position: Position,
        depth: Optional[int] = None,
        time_ms: Optional[int] = None
    ) -> EvaluationResult:
        """局面の評価値をエンジンに問い合わせる"""
        if not self.engine_settings.eval_enabled:
            return EvaluationResult(disabled=True)

        depth = depth or self.search_settings.depth
        time_ms = time_ms or self.search_settings.time_ms
        try:
            score = await usi_bridge.request_evaluation(self.engine_settings, position, depth, time_ms)
        except ConfigurationError as e:
            return EvaluationResult(unavailable=True, error=e.message)
        except EngineBridgeError as e:
            logger.warning("評価値を取得できませんでした: %s (%s)", e.message, e.detail)
            return EvaluationResult(unavailable=True, error=e.detail or e.message)
        return EvaluationResult(score=score)

    def status(self) -> dict:
        return {
            "engine_configured": bool(self.engine_settings.engine_path),
            "engine_available": self.engine_settings.is_engine_available(),
            "eval_enabled": self.engine_settings.eval_enabled,
            "depth": self.search_settings.depth,
            "time_ms": self.search_settings.time_ms,
            "last_source": self.last_source,
        }


# シングルトンインスタンス（サーバー起動時に1回だけ初期化）
_ai_instance: Optional[ShogiAI] = None


def get_ai() -> ShogiAI:
    """AIインスタンスを取得（遅延初期化）"""
    global _ai_instance
    if _ai_instance is None:
        _ai_instance = ShogiAI()
    return _ai_instance


def reload_ai(engine_settings: Optional[EngineSettings] = None) -> ShogiAI:
    """設定を読み直してAIを作り直す"""
    global _ai_instance
    _ai_instance = ShogiAI(engine_settings=engine_settings)
    return _ai_instance
