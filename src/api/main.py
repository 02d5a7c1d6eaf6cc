"""
将棋 FastAPI サーバ
ゲームの状態管理・外部USIエンジン・AI着手のエンドポイントを提供
"""

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from typing import Literal, Optional, List, Dict
import logging
import uuid

from ..engine import Board, Hands, Move, Player, Position, Rules
from ..engine.initial_setup import load_initial_position
from ..engine.sfen import move_to_usi, parse_sfen, to_sfen
from ..ai import usi_bridge
from ..config import EngineSettings
from ..errors import ConfigurationError, EngineBridgeError, InvalidMoveError
from .ai_player import get_ai, reload_ai

logger = logging.getLogger(__name__)

app = FastAPI(
    title="将棋 API",
    description="将棋の対局・AI着手・USIエンジン連携のバックエンドAPI",
    version="1.0.0"
)

# CORS設定（フロントエンドからのアクセスを許可）
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ゲームの状態を保持する辞書
games: Dict[str, 'GameState'] = {}

ENGINE_FAILURE_MESSAGE = "エンジンの応答に失敗しました。"


class GameState:
    """ゲームの状態を管理するクラス"""

    def __init__(self, game_id: str, position: Optional[Position] = None):
        self.game_id = game_id
        self.position = position or load_initial_position()
        self.move_history: List[Move] = []
        self.game_over = False
        self.winner: Optional[Player] = None

    @property
    def current_player(self) -> Player:
        return self.position.turn

    def apply(self, move: Move) -> None:
        """合法手か確認して適用し、終局を判定する"""
        if move not in Rules.get_legal_moves(self.position):
            raise InvalidMoveError("無効な手です", context={"move": str(move)})
        self.position = self.position.apply_move(move)
        self.move_history.append(move)
        is_over, winner = Rules.is_game_over(self.position)
        if is_over:
            self.game_over = True
            self.winner = winner

    def to_dict(self) -> dict:
        """ゲーム状態を辞書形式に変換"""
        return {
            "game_id": self.game_id,
            "board": self.position.board.to_dict(),
            "hands": self.position.hands.to_dict(),
            "turn": self.current_player.value,
            "sfen": to_sfen(self.position),
            "move_count": len(self.move_history),
            "moves": [move_to_usi(move) for move in self.move_history],
            "in_check": Rules.is_check(self.position.board, self.current_player),
            "game_over": self.game_over,
            "winner": self.winner.value if self.winner else None,
        }


# Pydanticモデル（リクエスト/レスポンス用）

class SquareModel(BaseModel):
    r: int = Field(ge=0, le=8)
    c: int = Field(ge=0, le=8)


class MoveRequest(BaseModel):
    """{"from": {"r", "c"}, "to": {"r", "c"}, "drop": "P", "promotion": "none" | "must"}"""
    model_config = ConfigDict(populate_by_name=True)

    from_square: Optional[SquareModel] = Field(default=None, alias="from")
    to: SquareModel
    drop: Optional[str] = None
    promotion: Literal["none", "must"] = "none"

    def to_move(self) -> Move:
        try:
            return Move.from_dict(self.model_dump(by_alias=True))
        except (KeyError, ValueError) as e:
            raise InvalidMoveError(f"無効なパラメータ: {e}")


class PositionRequest(BaseModel):
    """UIから送られる局面（盤面・持ち駒・手番）"""
    board: List[List[Optional[dict]]]
    hands: Dict[str, Dict[str, int]] = Field(default_factory=dict)
    turn: Literal["b", "w"] = "b"

    def to_position(self) -> Position:
        try:
            return Position(Board.from_dict(self.board), Hands.from_dict(self.hands), Player(self.turn))
        except (KeyError, ValueError) as e:
            raise InvalidMoveError(f"局面が不正です: {e}")


class EngineRequest(PositionRequest):
    model_config = ConfigDict(populate_by_name=True)

    depth: int = 5
    time_ms: int = Field(default=1000, alias="timeMs")
    mode: Literal["bestmove", "evaluate"] = "bestmove"


class AiRequest(PositionRequest):
    """depth / timeMs を省略するとローカル探索の既定値を使う"""
    model_config = ConfigDict(populate_by_name=True)

    depth: Optional[int] = Field(default=None, ge=1)
    time_ms: Optional[int] = Field(default=None, alias="timeMs", ge=1)
    mode: Literal["bestmove", "evaluate"] = "bestmove"


class NewGameRequest(BaseModel):
    sfen: Optional[str] = None


class NewGameResponse(BaseModel):
    game_id: str
    message: str
    game_state: dict


class MoveResponse(BaseModel):
    success: bool
    message: str
    game_state: dict
    legal_moves: Optional[List[dict]] = None


class PredictRequest(BaseModel):
    depth: Optional[int] = None
    time_ms: Optional[int] = None


class PredictResponse(BaseModel):
    move: Optional[dict]
    usi: Optional[str] = None
    source: Optional[str] = None
    game_state: dict


def _get_game(game_id: str) -> 'GameState':
    if game_id not in games:
        raise HTTPException(status_code=404, detail="ゲームが見つかりません")
    return games[game_id]


def _bad_request(error: Exception) -> HTTPException:
    message = getattr(error, "message", str(error))
    return HTTPException(status_code=400, detail=message)


# エンドポイント

@app.get("/api")
async def root():
    """APIルート"""
    return {
        "message": "将棋 API へようこそ",
        "version": "1.0.0",
        "endpoints": [
            "/api/usi",
            "/api/ai",
            "/new_game",
            "/apply_move/{game_id}",
            "/predict/{game_id}",
            "/get_legal_moves/{game_id}",
            "/get_game/{game_id}",
            "/resign/{game_id}",
            "/delete_game/{game_id}",
            "/ai/status",
            "/ai/evaluate/{game_id}",
        ]
    }


@app.post("/api/usi")
async def usi_engine(request: EngineRequest):
    """
    外部USIエンジンに直接問い合わせる

    mode=bestmove: {"move": 手 | null}
    mode=evaluate: {"score": 評価値}、無効なら {"score": null, "disabled": true}
    設定エラーは400、エンジンとの通信失敗は500
    """
    settings = EngineSettings.from_env()
    try:
        settings.validate_engine_path()
    except ConfigurationError as e:
        return JSONResponse(status_code=400, content={"error": e.message})

    try:
        position = request.to_position()
    except InvalidMoveError as e:
        raise _bad_request(e)

    depth = max(1, request.depth)
    time_ms = max(200, request.time_ms)
    try:
        if request.mode == "evaluate":
            if not settings.eval_enabled:
                return {"score": None, "disabled": True}
            score = await usi_bridge.request_evaluation(settings, position, depth, time_ms)
            return {"score": score}
        move = await usi_bridge.request_best_move(settings, position, depth, time_ms)
    except EngineBridgeError as e:
        logger.warning("USIエンジンへの問い合わせに失敗しました: %s", e)
        if e.detail is None:
            return JSONResponse(status_code=500, content={"error": e.message})
        return JSONResponse(
            status_code=500,
            content={"error": ENGINE_FAILURE_MESSAGE, "detail": e.detail},
        )
    return {"move": move.to_dict() if move else None}


@app.post("/api/ai")
async def ai_request(request: AiRequest):
    """
    エンジン優先・ローカル探索フォールバックで手を選ぶ（評価はエンジンのみ）

    mode=bestmove: {"move": 手 | null, "source": "engine" | "local" | null}
    mode=evaluate: {"score": n} / {"score": null, "disabled": true} / {"score": null, "unavailable": true}
    """
    try:
        position = request.to_position()
    except InvalidMoveError as e:
        raise _bad_request(e)

    ai = get_ai()
    if request.mode == "evaluate":
        result = await ai.evaluate_position(position, request.depth, request.time_ms)
        return result.to_dict()

    move = await ai.choose_move(position, request.depth, request.time_ms)
    return {
        "move": move.to_dict() if move else None,
        "source": ai.last_source,
    }


@app.post("/new_game", response_model=NewGameResponse)
async def new_game(request: Optional[NewGameRequest] = None):
    """
    新しいゲームを開始する
    sfen を指定しなければ平手の初期局面から始まる
    """
    position = None
    if request is not None and request.sfen:
        try:
            position = parse_sfen(request.sfen)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=f"SFENが不正です: {e}")

    game_id = str(uuid.uuid4())
    game_state = GameState(game_id, position)
    games[game_id] = game_state

    return NewGameResponse(
        game_id=game_id,
        message="新しいゲームを開始しました",
        game_state=game_state.to_dict()
    )


@app.get("/get_game/{game_id}")
async def get_game(game_id: str):
    """ゲームの状態を取得"""
    return _get_game(game_id).to_dict()


@app.post("/apply_move/{game_id}", response_model=MoveResponse)
async def apply_move(game_id: str, move_request: MoveRequest):
    """
    手を適用する
    """
    game_state = _get_game(game_id)

    if game_state.game_over:
        raise HTTPException(status_code=400, detail="ゲームは既に終了しています")

    try:
        move = move_request.to_move()
        game_state.apply(move)
    except InvalidMoveError as e:
        logger.info("無効な手: %s (手番: %s)", e, game_state.current_player.name)
        return MoveResponse(
            success=False,
            message=e.message,
            game_state=game_state.to_dict()
        )

    if game_state.game_over:
        return MoveResponse(
            success=True,
            message=f"詰みです。{game_state.winner.name}の勝利です",
            game_state=game_state.to_dict(),
            legal_moves=None
        )

    legal_moves = Rules.get_legal_moves(game_state.position)
    return MoveResponse(
        success=True,
        message="手を適用しました",
        game_state=game_state.to_dict(),
        legal_moves=[m.to_dict() for m in legal_moves]
    )


@app.get("/get_legal_moves/{game_id}")
async def get_legal_moves(game_id: str):
    """現在のプレイヤーの合法手を取得"""
    game_state = _get_game(game_id)

    if game_state.game_over:
        return {"legal_moves": [], "message": "ゲームは終了しています"}

    legal_moves = Rules.get_legal_moves(game_state.position)

    return {
        "legal_moves": [move.to_dict() for move in legal_moves],
        "count": len(legal_moves),
        "current_player": game_state.current_player.value
    }


@app.post("/predict/{game_id}", response_model=PredictResponse)
async def predict(game_id: str, request: Optional[PredictRequest] = None):
    """
    AIが次の手を選ぶ（盤面には適用しない）
    外部エンジンが使えなければローカル探索
    """
    game_state = _get_game(game_id)

    if game_state.game_over:
        raise HTTPException(status_code=400, detail="ゲームは終了しています")

    request = request or PredictRequest()
    ai = get_ai()
    move = await ai.choose_move(game_state.position, request.depth, request.time_ms)
    if move is None:
        raise HTTPException(status_code=400, detail="合法手がありません")

    logger.info("AI選択: %s (%s)", move_to_usi(move), ai.last_source)
    return PredictResponse(
        move=move.to_dict(),
        usi=move_to_usi(move),
        source=ai.last_source,
        game_state=game_state.to_dict()
    )


@app.post("/resign/{game_id}")
async def resign(game_id: str):
    """
    投了する
    現在のプレイヤーが投了し、相手の勝利となる
    """
    game_state = _get_game(game_id)

    if game_state.game_over:
        raise HTTPException(status_code=400, detail="ゲームは既に終了しています")

    game_state.game_over = True
    game_state.winner = game_state.current_player.opponent

    return {
        "message": f"{game_state.current_player.name}が投了しました",
        "winner": game_state.winner.value,
        "game_state": game_state.to_dict()
    }


@app.delete("/delete_game/{game_id}")
async def delete_game(game_id: str):
    """ゲームを削除"""
    _get_game(game_id)
    del games[game_id]
    return {"message": "ゲームを削除しました"}


# AI管理エンドポイント

@app.get("/ai/status")
async def get_ai_status():
    """AIの状態を取得"""
    return get_ai().status()


@app.post("/ai/reload")
async def reload_ai_settings():
    """環境変数を読み直してAIを作り直す"""
    try:
        ai = reload_ai()
    except ConfigurationError as e:
        raise _bad_request(e)
    return {
        "success": True,
        "message": "AIの設定を再読み込みしました",
        "status": ai.status(),
    }


@app.get("/ai/evaluate/{game_id}")
async def evaluate_position(game_id: str):
    """現在の局面をエンジンで評価（手番側から見た値）"""
    game_state = _get_game(game_id)
    result = await get_ai().evaluate_position(game_state.position)
    response = result.to_dict()
    response["current_player"] = game_state.current_player.value
    return response


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
