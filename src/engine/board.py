"""
将棋の盤面・持ち駒・局面を管理するモジュール

局面はすべて不変のスナップショットとして扱う。
探索では同じ親局面から多数の分岐を調べるため、手の適用は常に新しい局面を返す。
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from ..errors import InvalidMoveError
from .move import Move, Promotion, Square
from .piece import HAND_ORDER, Piece, PieceType, Player

# 盤面サイズ
BOARD_SIZE = 9

Grid = Tuple[Tuple[Optional[Piece], ...], ...]


def _empty_grid() -> Grid:
    return tuple(tuple(None for _ in range(BOARD_SIZE)) for _ in range(BOARD_SIZE))


class Board:
    """将棋の盤面を表すクラス（不変）"""

    __slots__ = ('_grid', '_hash')

    def __init__(self, grid: Optional[Grid] = None):
        self._grid: Grid = grid if grid is not None else _empty_grid()
        self._hash: Optional[int] = None

    @staticmethod
    def from_pieces(pieces: Dict[Square, Piece]) -> 'Board':
        """{位置: 駒} の辞書から盤面を作成"""
        rows = [[None] * BOARD_SIZE for _ in range(BOARD_SIZE)]
        for (row, col), piece in pieces.items():
            if not Board.is_valid_position((row, col)):
                raise ValueError(f"Invalid position: {(row, col)}")
            rows[row][col] = piece
        return Board(tuple(tuple(row) for row in rows))

    @staticmethod
    def is_valid_position(position: Square) -> bool:
        """位置が盤面内か確認"""
        row, col = position
        return 0 <= row < BOARD_SIZE and 0 <= col < BOARD_SIZE

    def get_piece(self, position: Square) -> Optional[Piece]:
        """指定位置の駒を取得"""
        row, col = position
        return self._grid[row][col]

    def is_occupied(self, position: Square) -> bool:
        """指定位置に駒があるか確認"""
        return self.get_piece(position) is not None

    def pieces(self, player: Optional[Player] = None) -> Iterator[Tuple[Square, Piece]]:
        """盤上の駒を (位置, 駒) で列挙する（playerを指定するとその駒のみ）"""
        for row in range(BOARD_SIZE):
            for col in range(BOARD_SIZE):
                piece = self._grid[row][col]
                if piece is not None and (player is None or piece.owner == player):
                    yield (row, col), piece

    def find_king(self, player: Player) -> Optional[Square]:
        """指定プレイヤーの玉の位置を取得（盤上にない場合はNone）"""
        for pos, piece in self.pieces(player):
            if piece.piece_type == PieceType.KING:
                return pos
        return None

    def has_unpromoted_pawn_in_file(self, player: Player, col: int) -> bool:
        """指定の筋に自分の成っていない歩があるか（二歩判定用）"""
        for row in range(BOARD_SIZE):
            piece = self._grid[row][col]
            if (piece is not None and piece.owner == player
                    and piece.piece_type == PieceType.PAWN and not piece.promoted):
                return True
        return False

    def with_changes(self, changes: Dict[Square, Optional[Piece]]) -> 'Board':
        """指定マスだけを書き換えた新しい盤面を返す"""
        rows = [list(row) for row in self._grid]
        for (row, col), piece in changes.items():
            rows[row][col] = piece
        return Board(tuple(tuple(row) for row in rows))

    @staticmethod
    def in_promotion_zone(player: Player, row: int) -> bool:
        """
        指定行が指定プレイヤーの敵陣（成れる段）か確認
        先手の敵陣: 0-2行（上3段）
        後手の敵陣: 6-8行（下3段）
        """
        if player == Player.BLACK:
            return row <= 2
        return row >= 6

    def __eq__(self, other):
        if not isinstance(other, Board):
            return NotImplemented
        return self._grid == other._grid

    def __hash__(self):
        if self._hash is None:
            self._hash = hash(self._grid)
        return self._hash

    def __repr__(self):
        return f"Board({len(list(self.pieces()))} pieces)"

    def __str__(self):
        """盤面の文字列表現を返す"""
        cell_width = 4
        separator_length = BOARD_SIZE * (cell_width + 1) + 1

        result = []

        # 筋の番号（右から1〜9）
        header = "   "
        for col in range(BOARD_SIZE):
            header += f"{BOARD_SIZE - col:^{cell_width}}|"
        result.append(header)
        result.append("  " + "-" * separator_length)

        for row in range(BOARD_SIZE):
            row_str = f"{'abcdefghi'[row]} |"
            for col in range(BOARD_SIZE):
                piece = self._grid[row][col]
                if piece is None:
                    row_str += " " * cell_width + "|"
                else:
                    row_str += f"{str(piece):^{cell_width - 1}}|"
            result.append(row_str)
            result.append("  " + "-" * separator_length)

        return "\n".join(result)

    def to_dict(self) -> List[List[Optional[dict]]]:
        """盤面を辞書形式に変換（API用）"""
        return [
            [piece.to_dict() if piece else None for piece in row]
            for row in self._grid
        ]

    @staticmethod
    def from_dict(data: List[List[Optional[dict]]]) -> 'Board':
        """辞書形式から盤面を復元（API用）"""
        if len(data) != BOARD_SIZE or any(len(row) != BOARD_SIZE for row in data):
            raise ValueError("盤面は9x9である必要があります")
        return Board(tuple(
            tuple(Piece.from_dict(cell) if cell else None for cell in row)
            for row in data
        ))


@dataclass(frozen=True)
class Hands:
    """両プレイヤーの持ち駒（不変）。カウントはHAND_ORDERの順に並ぶ"""
    black: Tuple[int, ...] = (0,) * len(HAND_ORDER)
    white: Tuple[int, ...] = (0,) * len(HAND_ORDER)

    @staticmethod
    def empty() -> 'Hands':
        return Hands()

    @staticmethod
    def from_counts(
        black: Optional[Dict[PieceType, int]] = None,
        white: Optional[Dict[PieceType, int]] = None
    ) -> 'Hands':
        """{駒種: 枚数} の辞書から持ち駒を作成"""
        def _pack(counts):
            counts = counts or {}
            for piece_type, count in counts.items():
                if piece_type == PieceType.KING and count:
                    raise ValueError("玉は持ち駒にできません")
                if count < 0:
                    raise ValueError(f"持ち駒の枚数が負です: {piece_type.name}")
            return tuple(counts.get(piece_type, 0) for piece_type in HAND_ORDER)
        return Hands(_pack(black), _pack(white))

    def _counts(self, player: Player) -> Tuple[int, ...]:
        return self.black if player == Player.BLACK else self.white

    def count(self, player: Player, piece_type: PieceType) -> int:
        """指定駒種の持ち駒の枚数"""
        if piece_type == PieceType.KING:
            return 0
        return self._counts(player)[HAND_ORDER.index(piece_type)]

    def items(self, player: Player) -> List[Tuple[PieceType, int]]:
        """(駒種, 枚数) をHAND_ORDER順で返す"""
        return list(zip(HAND_ORDER, self._counts(player)))

    def add(self, player: Player, piece_type: PieceType, delta: int = 1) -> 'Hands':
        """枚数を増減した新しい持ち駒を返す"""
        index = HAND_ORDER.index(piece_type)
        counts = list(self._counts(player))
        counts[index] += delta
        if counts[index] < 0:
            raise InvalidMoveError(
                f"持ち駒がありません: {piece_type.name}",
                context={"player": player.name},
            )
        if player == Player.BLACK:
            return Hands(tuple(counts), self.white)
        return Hands(self.black, tuple(counts))

    def is_empty(self) -> bool:
        return not any(self.black) and not any(self.white)

    def to_dict(self) -> Dict[str, Dict[str, int]]:
        """持ち駒を辞書形式に変換（API用）"""
        return {
            player.value: {piece_type.value: count for piece_type, count in self.items(player)}
            for player in (Player.BLACK, Player.WHITE)
        }

    @staticmethod
    def from_dict(data: Dict[str, Dict[str, int]]) -> 'Hands':
        """辞書形式から持ち駒を復元（API用）。玉の枚数（0）は無視する"""
        def _unpack(counts):
            return {
                PieceType(letter): int(count)
                for letter, count in (counts or {}).items()
                if letter != PieceType.KING.value
            }
        return Hands.from_counts(
            _unpack(data.get(Player.BLACK.value)),
            _unpack(data.get(Player.WHITE.value)),
        )


@dataclass(frozen=True)
class Position:
    """局面 = 盤面 + 持ち駒 + 手番（不変）"""
    board: Board
    hands: Hands = field(default_factory=Hands)
    turn: Player = Player.BLACK

    def with_turn(self, turn: Player) -> 'Position':
        return Position(self.board, self.hands, turn)

    def apply_move(self, move: Move) -> 'Position':
        """
        手番側が手を指した後の新しい局面を返す

        - 打つ手: 持ち駒を1枚減らし、成っていない駒を置く
        - 盤上の手: 取った駒は成りを戻して持ち駒に加える（玉は加えない）
          移動した駒は promotion が MUST のときだけ成る
        """
        mover = self.turn
        if move.promotion == Promotion.OPTIONAL:
            raise InvalidMoveError("成り・不成が確定していない手は適用できません",
                                   context={"move": str(move)})

        if move.is_drop:
            hands = self.hands.add(mover, move.piece_type, -1)
            board = self.board.with_changes({move.to_pos: Piece(move.piece_type, mover)})
            return Position(board, hands, mover.opponent)

        piece = self.board.get_piece(move.from_pos)
        if piece is None:
            raise InvalidMoveError("移動元に駒がありません", context={"move": str(move)})

        hands = self.hands
        target = self.board.get_piece(move.to_pos)
        if target is not None:
            captured_type = target.demote()
            # 正しいルールでは玉は取られないが、念のため持ち駒には加えない
            if captured_type != PieceType.KING:
                hands = hands.add(mover, captured_type, 1)

        moved = piece.promote() if move.promotion == Promotion.MUST else piece
        board = self.board.with_changes({move.from_pos: None, move.to_pos: moved})
        return Position(board, hands, mover.opponent)

    def to_dict(self) -> dict:
        """局面を辞書形式に変換（API用）"""
        return {
            "board": self.board.to_dict(),
            "hands": self.hands.to_dict(),
            "turn": self.turn.value,
        }

    @staticmethod
    def from_dict(data: dict) -> 'Position':
        """辞書形式から局面を復元（API用）"""
        return Position(
            Board.from_dict(data["board"]),
            Hands.from_dict(data.get("hands") or {}),
            Player(data.get("turn", Player.BLACK.value)),
        )
