"""
将棋の手（Move）を表現するモジュール
"""

from dataclasses import dataclass, replace
from enum import Enum, auto
from typing import Tuple, Optional
from .piece import PieceType

Square = Tuple[int, int]


class MoveType(Enum):
    """手の種類"""
    NORMAL = auto()  # 盤上の駒の移動（駒を取る手を含む）
    DROP = auto()    # 持ち駒を打つ


class Promotion(Enum):
    """成りの指定"""
    NONE = 'none'          # 成らない（または成れない）
    OPTIONAL = 'optional'  # 成りを選択できる（合法手判定前の生成手にのみ現れる）
    MUST = 'must'          # 成る


@dataclass(frozen=True)
class Move:
    """将棋の一手を表すクラス（不変）"""
    move_type: MoveType
    to_pos: Square
    from_pos: Optional[Square] = None  # 移動元（打つ手の場合はNone）
    piece_type: Optional[PieceType] = None  # 打つ駒の種類
    promotion: Promotion = Promotion.NONE

    @property
    def is_drop(self) -> bool:
        return self.move_type == MoveType.DROP

    def with_promotion(self, promotion: Promotion) -> 'Move':
        """成りの指定だけを変えた手を返す"""
        return replace(self, promotion=promotion)

    def __str__(self):
        if self.is_drop:
            return f"{self.piece_type.name} * {self.to_pos}"
        suffix = {Promotion.MUST: "+", Promotion.OPTIONAL: "(+)"}.get(self.promotion, "")
        return f"{self.from_pos} -> {self.to_pos}{suffix}"

    def to_dict(self) -> dict:
        """
        手を辞書形式に変換（API用）
        {"from": {"r", "c"}, "to": {"r", "c"}, "drop": "P", "promotion": "none"}
        """
        return {
            "from": {"r": self.from_pos[0], "c": self.from_pos[1]} if self.from_pos else None,
            "to": {"r": self.to_pos[0], "c": self.to_pos[1]},
            "drop": self.piece_type.value if self.is_drop else None,
            "promotion": self.promotion.value,
        }

    @staticmethod
    def from_dict(data: dict) -> 'Move':
        """辞書形式から手を復元（API用）"""
        to_pos = (int(data["to"]["r"]), int(data["to"]["c"]))
        promotion = Promotion(data.get("promotion") or "none")
        if data.get("drop"):
            return Move.create_drop_move(to_pos, PieceType(data["drop"]))
        origin = data.get("from")
        if origin is None:
            raise ValueError("盤上の手には from が必要です")
        from_pos = (int(origin["r"]), int(origin["c"]))
        return Move.create_normal_move(from_pos, to_pos, promotion)

    @staticmethod
    def create_normal_move(
        from_pos: Square,
        to_pos: Square,
        promotion: Promotion = Promotion.NONE
    ) -> 'Move':
        """盤上の駒を動かす手を作成"""
        return Move(
            move_type=MoveType.NORMAL,
            from_pos=from_pos,
            to_pos=to_pos,
            promotion=promotion
        )

    @staticmethod
    def create_drop_move(to_pos: Square, piece_type: PieceType) -> 'Move':
        """持ち駒を打つ手を作成"""
        return Move(
            move_type=MoveType.DROP,
            to_pos=to_pos,
            piece_type=piece_type
        )
