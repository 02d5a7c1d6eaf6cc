"""
将棋のルール判定を行うモジュール
"""

from typing import List, Optional, Tuple
from ..errors import InvalidMoveError
from .board import Board, Position
from .move import Move, Promotion, Square
from .movegen import MoveGenerator
from .piece import Player

# 成りを選べる手を展開するときの順序
_PROMOTION_CHOICES = (Promotion.MUST, Promotion.NONE)


class Rules:
    """将棋のルールを管理するクラス"""

    @staticmethod
    def is_square_attacked(board: Board, target: Square, attacker: Player) -> bool:
        """指定マスが attacker の駒の利きにあるか確認"""
        for pos, piece in board.pieces(attacker):
            if target in MoveGenerator.get_destinations(board, pos, piece):
                return True
        return False

    @staticmethod
    def is_check(board: Board, player: Player) -> bool:
        """
        指定プレイヤーの玉が王手されているか確認
        玉が盤上にない場合も王手とみなす
        """
        king_pos = board.find_king(player)
        if king_pos is None:
            return True
        return Rules.is_square_attacked(board, king_pos, player.opponent)

    @staticmethod
    def _leaves_king_safe(position: Position, move: Move) -> bool:
        next_position = position.apply_move(move)
        return not Rules.is_check(next_position.board, position.turn)

    @staticmethod
    def legal_promotion_options(position: Position, move: Move) -> List[Promotion]:
        """
        成りを選べる手について、自玉が安全になる成り・不成をそれぞれ独立に判定する
        両方・片方・どちらもなし のいずれもあり得る
        """
        return [
            promotion for promotion in _PROMOTION_CHOICES
            if Rules._leaves_king_safe(position, move.with_promotion(promotion))
        ]

    @staticmethod
    def is_move_legal(position: Position, move: Move) -> bool:
        """
        成り・不成が確定した手を指した後、自玉が王手されていないか確認
        成りを選べる手は legal_promotion_options で判定すること
        """
        if move.promotion == Promotion.OPTIONAL:
            raise InvalidMoveError(
                "成り・不成が確定していない手は legal_promotion_options で判定してください",
                context={"move": str(move)},
            )
        return Rules._leaves_king_safe(position, move)

    @staticmethod
    def _resolve(position: Position, moves: List[Move]) -> List[Move]:
        """疑似合法手を合法手に絞り込み、成りを選べる手は確定した手に展開する"""
        legal_moves = []
        for move in moves:
            if move.promotion == Promotion.OPTIONAL:
                for promotion in Rules.legal_promotion_options(position, move):
                    legal_moves.append(move.with_promotion(promotion))
            elif Rules._leaves_king_safe(position, move):
                legal_moves.append(move)
        return legal_moves

    @staticmethod
    def get_legal_moves_for_square(position: Position, from_pos: Square) -> List[Move]:
        """指定位置の手番側の駒の合法手を取得"""
        piece = position.board.get_piece(from_pos)
        if piece is None or piece.owner != position.turn:
            return []
        return Rules._resolve(position, MoveGenerator.pseudo_moves(position.board, from_pos))

    @staticmethod
    def get_legal_drops(position: Position) -> List[Move]:
        """手番側の持ち駒を打つ合法手を取得"""
        drops = MoveGenerator.pseudo_drops(position.board, position.hands, position.turn)
        return Rules._resolve(position, drops)

    @staticmethod
    def get_legal_moves(position: Position, player: Optional[Player] = None) -> List[Move]:
        """
        指定プレイヤーの合法手をすべて取得（省略時は手番側）
        返る手はすべて成り・不成が確定している
        """
        if player is not None and player != position.turn:
            position = position.with_turn(player)

        legal_moves = []
        for pos, _ in position.board.pieces(position.turn):
            legal_moves.extend(Rules.get_legal_moves_for_square(position, pos))
        legal_moves.extend(Rules.get_legal_drops(position))
        return legal_moves

    @staticmethod
    def is_checkmate(position: Position, player: Optional[Player] = None) -> bool:
        """指定プレイヤー（省略時は手番側）が詰んでいるか確認"""
        player = player or position.turn
        if not Rules.is_check(position.board, player):
            return False
        return not Rules.get_legal_moves(position, player)

    @staticmethod
    def is_game_over(position: Position) -> Tuple[bool, Optional[Player]]:
        """
        ゲームが終了したか確認
        返り値: (終了フラグ, 勝者)
        """
        # 玉が盤上にない = 相手の勝ち（正しい進行では起こらない）
        for player in (Player.BLACK, Player.WHITE):
            if position.board.find_king(player) is None:
                return True, player.opponent

        if Rules.is_checkmate(position):
            return True, position.turn.opponent

        return False, None
