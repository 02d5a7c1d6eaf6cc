"""
将棋の駒の種類と動きを定義するモジュール
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Dict


class Player(Enum):
    """プレイヤーの定義"""
    BLACK = 'b'  # 先手（下側、0行目に向かって進む）
    WHITE = 'w'  # 後手（上側、8行目に向かって進む）

    @property
    def opponent(self) -> 'Player':
        """相手プレイヤーを返す"""
        return Player.WHITE if self == Player.BLACK else Player.BLACK

    @property
    def forward(self) -> int:
        """前方向の行の増分（先手は-1、後手は+1）"""
        return -1 if self == Player.BLACK else 1


class PieceType(Enum):
    """駒の種類（値はSFENの駒文字）"""
    PAWN = 'P'    # 歩
    LANCE = 'L'   # 香
    KNIGHT = 'N'  # 桂
    SILVER = 'S'  # 銀
    GOLD = 'G'    # 金
    BISHOP = 'B'  # 角
    ROOK = 'R'    # 飛
    KING = 'K'    # 玉


# 持ち駒の並び順（SFENの優先順位と同じ）
HAND_ORDER: List[PieceType] = [
    PieceType.ROOK,
    PieceType.BISHOP,
    PieceType.GOLD,
    PieceType.SILVER,
    PieceType.KNIGHT,
    PieceType.LANCE,
    PieceType.PAWN,
]

# 駒の表示名（漢字）
PIECE_NAMES = {
    PieceType.PAWN: "歩",
    PieceType.LANCE: "香",
    PieceType.KNIGHT: "桂",
    PieceType.SILVER: "銀",
    PieceType.GOLD: "金",
    PieceType.BISHOP: "角",
    PieceType.ROOK: "飛",
    PieceType.KING: "玉",
}

# 成駒の表示名
PROMOTED_NAMES = {
    PieceType.PAWN: "と",
    PieceType.LANCE: "杏",
    PieceType.KNIGHT: "圭",
    PieceType.SILVER: "全",
    PieceType.BISHOP: "馬",
    PieceType.ROOK: "龍",
}

# 金と同じ動き（前・斜め前・横・後ろ）
_GOLD_STEPS = [[1, -1], [1, 0], [1, 1], [0, -1], [0, 1], [-1, 0]]
_KING_STEPS = [[-1, -1], [-1, 0], [-1, 1], [0, -1], [0, 1], [1, -1], [1, 0], [1, 1]]
_DIAGONALS = [[1, 1], [1, -1], [-1, 1], [-1, -1]]
_ORTHOGONALS = [[1, 0], [-1, 0], [0, 1], [0, -1]]

# 駒の動きパターン定義
# [row, col]で表現: 正の値は前方向（手番側から見て敵陣方向）
# 'steps': 1回だけ移動するオフセット（桂馬のように途中の駒は無視）
# 'slides': 駒にぶつかるまで進む方向
PIECE_MOVE_PATTERNS: Dict[PieceType, Dict[str, dict]] = {
    PieceType.KING: {
        'base': {'steps': _KING_STEPS, 'slides': []},
    },
    PieceType.GOLD: {
        'base': {'steps': _GOLD_STEPS, 'slides': []},
    },
    PieceType.SILVER: {
        'base': {'steps': [[1, -1], [1, 0], [1, 1], [-1, -1], [-1, 1]], 'slides': []},
        'promoted': {'steps': _GOLD_STEPS, 'slides': []},
    },
    PieceType.KNIGHT: {
        'base': {'steps': [[2, -1], [2, 1]], 'slides': []},
        'promoted': {'steps': _GOLD_STEPS, 'slides': []},
    },
    PieceType.LANCE: {
        'base': {'steps': [], 'slides': [[1, 0]]},
        'promoted': {'steps': _GOLD_STEPS, 'slides': []},
    },
    PieceType.PAWN: {
        'base': {'steps': [[1, 0]], 'slides': []},
        'promoted': {'steps': _GOLD_STEPS, 'slides': []},
    },
    PieceType.BISHOP: {
        'base': {'steps': [], 'slides': _DIAGONALS},
        'promoted': {'steps': _ORTHOGONALS, 'slides': _DIAGONALS},  # 馬
    },
    PieceType.ROOK: {
        'base': {'steps': [], 'slides': _ORTHOGONALS},
        'promoted': {'steps': _DIAGONALS, 'slides': _ORTHOGONALS},  # 龍
    },
}


@dataclass(frozen=True)
class Piece:
    """将棋の駒を表すクラス（不変）"""
    piece_type: PieceType
    owner: Player
    promoted: bool = False

    def __str__(self):
        """駒の文字列表現（例: 'b歩', 'w龍'）"""
        name = PROMOTED_NAMES[self.piece_type] if self.promoted else PIECE_NAMES[self.piece_type]
        return f"{self.owner.value}{name}"

    def get_move_pattern(self) -> dict:
        """
        この駒の移動パターンを返す（成りの有無に応じて変化）
        返り値: {'steps': list, 'slides': list}
        """
        patterns = PIECE_MOVE_PATTERNS[self.piece_type]
        if self.promoted and 'promoted' in patterns:
            return patterns['promoted']
        return patterns['base']

    def can_promote(self) -> bool:
        """成ることができる駒か（玉・金・成駒は不可）"""
        return (
            self.piece_type != PieceType.KING
            and self.piece_type != PieceType.GOLD
            and not self.promoted
        )

    def promote(self) -> 'Piece':
        """成った駒を返す"""
        return Piece(self.piece_type, self.owner, True)

    def demote(self) -> PieceType:
        """取られたときに持ち駒になる元の駒種を返す"""
        return self.piece_type

    def to_dict(self) -> dict:
        """駒を辞書形式に変換（API用）"""
        return {
            "type": self.piece_type.value,
            "owner": self.owner.value,
            "promoted": self.promoted,
        }

    @staticmethod
    def from_dict(data: dict) -> 'Piece':
        """辞書形式から駒を復元（API用）"""
        return Piece(
            PieceType(data["type"]),
            Player(data["owner"]),
            bool(data.get("promoted", False)),
        )
