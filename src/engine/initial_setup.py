"""
初期局面の設定とユーティリティ
"""

from typing import Dict, List, Tuple
from .board import Board, Hands, Position, BOARD_SIZE
from .piece import Piece, Player, PieceType

# 1段目（9段目）の並び: 香桂銀金玉金銀桂香
BACK_RANK: List[PieceType] = [
    PieceType.LANCE,
    PieceType.KNIGHT,
    PieceType.SILVER,
    PieceType.GOLD,
    PieceType.KING,
    PieceType.GOLD,
    PieceType.SILVER,
    PieceType.KNIGHT,
    PieceType.LANCE,
]


def load_initial_board() -> Board:
    """
    平手の初期盤面を作成する
    後手（白）は0-2行、先手（黒）は6-8行
    """
    pieces: Dict[Tuple[int, int], Piece] = {}

    for col in range(BOARD_SIZE):
        pieces[(0, col)] = Piece(BACK_RANK[col], Player.WHITE)
        pieces[(2, col)] = Piece(PieceType.PAWN, Player.WHITE)
        pieces[(6, col)] = Piece(PieceType.PAWN, Player.BLACK)
        pieces[(8, col)] = Piece(BACK_RANK[col], Player.BLACK)

    # 飛車と角（後手は8筋に飛車・2筋に角、先手は8筋に角・2筋に飛車）
    pieces[(1, 1)] = Piece(PieceType.ROOK, Player.WHITE)
    pieces[(1, 7)] = Piece(PieceType.BISHOP, Player.WHITE)
    pieces[(7, 1)] = Piece(PieceType.BISHOP, Player.BLACK)
    pieces[(7, 7)] = Piece(PieceType.ROOK, Player.BLACK)

    return Board.from_pieces(pieces)


def get_initial_hands() -> Hands:
    """初期局面の持ち駒（両者とも空）"""
    return Hands.empty()


def load_initial_position() -> Position:
    """初期局面（先手番）を返す"""
    return Position(load_initial_board(), get_initial_hands(), Player.BLACK)
