"""
局面の静的評価関数

評価値は後手（WHITE）有利が正、先手（BLACK）有利が負。
重みはすべて EvalWeights にまとめ、評価関数の中に数値を直接書かない。
既定値は経験的に決めたもので、調整可能な設定として扱う。
"""

from dataclasses import dataclass, field
from typing import Dict, Sequence, Tuple

from ..engine.board import Board, Hands, BOARD_SIZE
from ..engine.movegen import MoveGenerator
from ..engine.piece import HAND_ORDER, PieceType, Player
from ..engine.rules import Rules

SquareTable = Tuple[Tuple[float, ...], ...]


def _square_table(rank_values: Sequence[float], center: float = 0.0) -> SquareTable:
    """
    段ごとの値と中央寄りのボーナスから9x9の位置評価表を作る
    表は先手から見た向き（0行目が敵陣）
    """
    return tuple(
        tuple(
            rank_values[row] + center * (4 - abs(col - 4)) / 4
            for col in range(BOARD_SIZE)
        )
        for row in range(BOARD_SIZE)
    )


DEFAULT_PIECE_VALUES: Dict[PieceType, float] = {
    PieceType.PAWN: 1.0,
    PieceType.LANCE: 3.0,
    PieceType.KNIGHT: 3.0,
    PieceType.SILVER: 5.0,
    PieceType.GOLD: 6.0,
    PieceType.BISHOP: 8.0,
    PieceType.ROOK: 10.0,
    PieceType.KING: 0.0,
}

DEFAULT_PROMOTED_BONUS: Dict[PieceType, float] = {
    PieceType.PAWN: 5.0,
    PieceType.LANCE: 3.0,
    PieceType.KNIGHT: 3.0,
    PieceType.SILVER: 1.0,
    PieceType.GOLD: 0.0,
    PieceType.BISHOP: 2.0,
    PieceType.ROOK: 2.0,
    PieceType.KING: 0.0,
}

DEFAULT_PIECE_SQUARE: Dict[PieceType, SquareTable] = {
    PieceType.PAWN: _square_table([0, 3, 3, 2, 1, 0.5, 0, 0, 0]),
    PieceType.LANCE: _square_table([0, 2, 2, 1, 0.5, 0, 0, 0, 0]),
    PieceType.KNIGHT: _square_table([0, 0, 3, 2, 1, 0.5, 0, -0.5, -1]),
    PieceType.SILVER: _square_table([1, 2, 2, 1.5, 1, 0.5, 0, 0, 0], center=1),
    PieceType.GOLD: _square_table([0, 1, 1, 1, 1, 1, 1, 0.5, 0], center=1),
    PieceType.BISHOP: _square_table([0] * BOARD_SIZE, center=1),
    PieceType.ROOK: _square_table([2, 2, 1, 0, 0, 0, 0, 0, 0]),
    PieceType.KING: _square_table([-3, -3, -3, -2, -2, -1, 0, 1, 1], center=-1),
}


@dataclass(frozen=True)
class EvalWeights:
    """評価関数・探索で使う重みの一覧"""
    piece_values: Dict[PieceType, float] = field(default_factory=lambda: dict(DEFAULT_PIECE_VALUES))
    promoted_bonus: Dict[PieceType, float] = field(default_factory=lambda: dict(DEFAULT_PROMOTED_BONUS))
    piece_square: Dict[PieceType, SquareTable] = field(default_factory=lambda: dict(DEFAULT_PIECE_SQUARE))
    square_scale: float = 0.1        # 位置評価表の倍率
    hand_factor: float = 0.9         # 持ち駒の駒価値の倍率
    mobility: float = 0.05           # 疑似合法手1手あたり
    check_penalty: float = 0.8       # 王手されている側の減点
    endgame_check_bonus: float = 0.5  # 終盤で王手をかける手へのボーナス
    endgame_material: float = 24.0   # 玉以外の駒価値の合計がこれ以下なら終盤
    mate_score: float = 10000.0      # 詰みの評価値


DEFAULT_WEIGHTS = EvalWeights()


class Evaluator:
    """静的評価関数"""

    def __init__(self, weights: EvalWeights = DEFAULT_WEIGHTS):
        self.weights = weights

    def piece_value(self, piece_type: PieceType) -> float:
        return self.weights.piece_values[piece_type]

    def evaluate(self, board: Board, hands: Hands) -> float:
        """
        局面を評価（後手有利が正）

        - 盤上の駒: 駒価値 + 成りボーナス + 位置評価 × 0.1
        - 持ち駒: 駒価値 × 0.9
        - 機動力: (後手の疑似合法手数 - 先手の疑似合法手数) × 0.05
        - 王手: 王手されている側に -0.8
        """
        weights = self.weights
        score = 0.0

        for (row, col), piece in board.pieces():
            table = weights.piece_square[piece.piece_type]
            if piece.owner == Player.WHITE:
                table_value = table[BOARD_SIZE - 1 - row][BOARD_SIZE - 1 - col]
            else:
                table_value = table[row][col]
            piece_score = weights.piece_values[piece.piece_type] + table_value * weights.square_scale
            if piece.promoted:
                piece_score += weights.promoted_bonus[piece.piece_type]
            score += piece_score if piece.owner == Player.WHITE else -piece_score

        for piece_type in HAND_ORDER:
            value = weights.piece_values[piece_type] * weights.hand_factor
            score += hands.count(Player.WHITE, piece_type) * value
            score -= hands.count(Player.BLACK, piece_type) * value

        mobility = (
            MoveGenerator.count_pseudo_moves(board, Player.WHITE)
            - MoveGenerator.count_pseudo_moves(board, Player.BLACK)
        )
        score += mobility * weights.mobility

        if Rules.is_check(board, Player.WHITE):
            score -= weights.check_penalty
        if Rules.is_check(board, Player.BLACK):
            score += weights.check_penalty
        return score

    def sum_material(self, board: Board, hands: Hands) -> float:
        """玉以外の盤上の駒と両者の持ち駒の駒価値の合計（成りボーナスは含めない）"""
        total = 0.0
        for _, piece in board.pieces():
            if piece.piece_type != PieceType.KING:
                total += self.weights.piece_values[piece.piece_type]
        for piece_type in HAND_ORDER:
            count = hands.count(Player.BLACK, piece_type) + hands.count(Player.WHITE, piece_type)
            total += count * self.weights.piece_values[piece_type]
        return total

    def is_endgame(self, board: Board, hands: Hands) -> bool:
        return self.sum_material(board, hands) <= self.weights.endgame_material
