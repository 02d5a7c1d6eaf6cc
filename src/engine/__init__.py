"""
将棋のゲームエンジン - パッケージ初期化
"""

from .piece import Piece, Player, PieceType, HAND_ORDER, PIECE_NAMES
from .board import Board, Hands, Position, BOARD_SIZE
from .move import Move, MoveType, Promotion
from .movegen import MoveGenerator
from .rules import Rules

__all__ = [
    'Piece',
    'Player',
    'PieceType',
    'HAND_ORDER',
    'PIECE_NAMES',
    'Board',
    'Hands',
    'Position',
    'BOARD_SIZE',
    'Move',
    'MoveType',
    'Promotion',
    'MoveGenerator',
    'Rules',
]
