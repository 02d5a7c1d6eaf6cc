"""
将棋の指し手生成（王手放置を考慮しない疑似合法手）
"""

from typing import List, Optional
from .board import Board, Hands, BOARD_SIZE
from .move import Move, Promotion, Square
from .piece import Piece, Player, PieceType, HAND_ORDER


def last_rank(player: Player) -> int:
    """指定プレイヤーにとっての最奥の段"""
    return 0 if player == Player.BLACK else BOARD_SIZE - 1


def distance_to_last_rank(player: Player, row: int) -> int:
    """最奥の段までの距離（最奥の段なら0）"""
    return abs(row - last_rank(player))


def must_promote(piece: Piece, to_row: int) -> bool:
    """
    行き所のない駒になるため成りが強制されるか
    - 歩・香: 最奥の段
    - 桂: 最奥の2段
    """
    if piece.promoted:
        return False
    distance = distance_to_last_rank(piece.owner, to_row)
    if piece.piece_type in (PieceType.PAWN, PieceType.LANCE):
        return distance == 0
    if piece.piece_type == PieceType.KNIGHT:
        return distance <= 1
    return False


def get_move_promotion(piece: Piece, from_row: int, to_row: int) -> Promotion:
    """移動元・移動先の段から成りの指定を決める"""
    if not piece.can_promote():
        return Promotion.NONE
    eligible = (
        Board.in_promotion_zone(piece.owner, from_row)
        or Board.in_promotion_zone(piece.owner, to_row)
    )
    if not eligible:
        return Promotion.NONE
    return Promotion.MUST if must_promote(piece, to_row) else Promotion.OPTIONAL


def can_drop_at(board: Board, player: Player, piece_type: PieceType, pos: Square) -> bool:
    """
    指定位置に駒を打てるか確認

    将棋のルール:
    - 空マスにしか打てない
    - 二歩の禁止（同じ筋に自分の成っていない歩がある）
    - 歩・香は最奥の段に打てない
    - 桂は最奥の2段に打てない
    """
    if piece_type == PieceType.KING:
        return False
    if board.is_occupied(pos):
        return False
    row, col = pos
    distance = distance_to_last_rank(player, row)
    if piece_type == PieceType.PAWN:
        if board.has_unpromoted_pawn_in_file(player, col):
            return False
        if distance == 0:
            return False
    if piece_type == PieceType.LANCE and distance == 0:
        return False
    if piece_type == PieceType.KNIGHT and distance <= 1:
        return False
    return True


class MoveGenerator:
    """疑似合法手（自玉の安全を考慮しない手）の生成"""

    @staticmethod
    def get_destinations(board: Board, from_pos: Square, piece: Optional[Piece] = None) -> List[Square]:
        """駒が移動できる位置のリストを取得"""
        if piece is None:
            piece = board.get_piece(from_pos)
            if piece is None:
                return []

        row, col = from_pos
        pattern = piece.get_move_pattern()
        # 駒の動きパターンでは正の値=前方向と定義
        # 先手（下側）は上（負の方向）、後手（上側）は下（正の方向）に進む
        direction_multiplier = piece.owner.forward
        destinations = []

        for dr, dc in pattern['slides']:
            step_dr = dr * direction_multiplier
            r, c = row + step_dr, col + dc
            while 0 <= r < BOARD_SIZE and 0 <= c < BOARD_SIZE:
                target = board.get_piece((r, c))
                if target is not None:
                    # 相手の駒なら取れる、自分の駒なら手前で止まる
                    if target.owner != piece.owner:
                        destinations.append((r, c))
                    break
                destinations.append((r, c))
                r, c = r + step_dr, c + dc

        for dr, dc in pattern['steps']:
            r, c = row + dr * direction_multiplier, col + dc
            if not (0 <= r < BOARD_SIZE and 0 <= c < BOARD_SIZE):
                continue
            target = board.get_piece((r, c))
            if target is not None and target.owner == piece.owner:
                continue
            destinations.append((r, c))

        return destinations

    @staticmethod
    def pseudo_moves(board: Board, from_pos: Square) -> List[Move]:
        """指定位置の駒の疑似合法手（成りの指定付き）を取得"""
        piece = board.get_piece(from_pos)
        if piece is None:
            return []
        return [
            Move.create_normal_move(
                from_pos, to_pos, get_move_promotion(piece, from_pos[0], to_pos[0])
            )
            for to_pos in MoveGenerator.get_destinations(board, from_pos, piece)
        ]

    @staticmethod
    def pseudo_drops(board: Board, hands: Hands, player: Player) -> List[Move]:
        """持ち駒を打つ疑似合法手を取得"""
        drops = []
        for piece_type in HAND_ORDER:
            if hands.count(player, piece_type) <= 0:
                continue
            for row in range(BOARD_SIZE):
                for col in range(BOARD_SIZE):
                    if can_drop_at(board, player, piece_type, (row, col)):
                        drops.append(Move.create_drop_move((row, col), piece_type))
        return drops

    @staticmethod
    def count_pseudo_moves(board: Board, player: Player) -> int:
        """指定プレイヤーの盤上の駒の疑似合法手の総数（機動力の評価用）"""
        return sum(
            len(MoveGenerator.get_destinations(board, pos, piece))
            for pos, piece in board.pieces(player)
        )
