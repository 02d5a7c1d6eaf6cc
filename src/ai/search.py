"""
αβ探索による着手選択

- minimax: 深さ0で静的評価、合法手がなければ詰み（王手あり）か0（王手なし）
- 手の並べ替え: 王手になる手を先に、次に取る駒の価値が高い順
- SearchEngine.choose_move: 時間制限付きの反復深化。
  期限切れで中断した深さの結果は捨て、最後に完了した深さの結果を使う
"""

import logging
import math
import random
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from ..engine.board import Position
from ..engine.move import Move
from ..engine.piece import Player
from ..engine.rules import Rules
from .evaluator import Evaluator

logger = logging.getLogger(__name__)


def gives_check(position: Position, move: Move) -> bool:
    """手を指した後、相手の玉に王手がかかるか"""
    next_position = position.apply_move(move)
    return Rules.is_check(next_position.board, position.turn.opponent)


def order_moves(position: Position, moves: List[Move], evaluator: Evaluator) -> List[Move]:
    """王手になる手を先に、同じなら取る駒の価値が高い順に並べる（安定ソート）"""
    def sort_key(move: Move):
        captured = None if move.is_drop else position.board.get_piece(move.to_pos)
        capture_value = evaluator.piece_value(captured.piece_type) if captured else 0.0
        return (0 if gives_check(position, move) else 1, -capture_value)

    return sorted(moves, key=sort_key)


def minimax(
    position: Position,
    depth: int,
    alpha: float,
    beta: float,
    maximizing: bool,
    evaluator: Evaluator,
    prune: bool = True
) -> float:
    """
    αβ法によるミニマックス探索
    maximizing=True は後手番（評価値を最大化する側）
    prune=False にすると枝刈りをしない全幅探索になる
    """
    if depth == 0:
        return evaluator.evaluate(position.board, position.hands)

    player = Player.WHITE if maximizing else Player.BLACK
    if position.turn != player:
        position = position.with_turn(player)

    moves = Rules.get_legal_moves(position)
    if not moves:
        if Rules.is_check(position.board, player):
            # 詰み: 王手をかけている側の勝ち
            mate = evaluator.weights.mate_score
            return -mate if player == Player.WHITE else mate
        return 0.0

    if maximizing:
        value = -math.inf
        for move in order_moves(position, moves, evaluator):
            score = minimax(position.apply_move(move), depth - 1, alpha, beta, False, evaluator, prune)
            value = max(value, score)
            alpha = max(alpha, value)
            if prune and beta <= alpha:
                break
        return value

    value = math.inf
    for move in order_moves(position, moves, evaluator):
        score = minimax(position.apply_move(move), depth - 1, alpha, beta, True, evaluator, prune)
        value = min(value, score)
        beta = min(beta, value)
        if prune and beta <= alpha:
            break
    return value


@dataclass
class SearchResult:
    """探索結果"""
    move: Optional[Move]
    score: Optional[float] = None  # 手番側から見た評価値
    depth: int = 0                 # 完了した深さ
    elapsed_ms: float = 0.0


class SearchEngine:
    """
    反復深化αβ探索で手を選ぶローカルAI

    Args:
        evaluator: 静的評価関数
        rng: 同点の手から選ぶための乱数（テストではシードを固定する）
        clock: 経過時間の計測に使う関数（秒）
    """

    def __init__(
        self,
        evaluator: Optional[Evaluator] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.evaluator = evaluator or Evaluator()
        self.rng = rng or random.Random()
        self.clock = clock

    def choose_move(self, position: Position, max_depth: int = 3, time_ms: int = 1000) -> Optional[Move]:
        """手番側の手を選ぶ。合法手がなければNone（終局）"""
        return self.search(position, max_depth, time_ms).move

    def search(self, position: Position, max_depth: int = 3, time_ms: int = 1000) -> SearchResult:
        start = self.clock()
        deadline = start + time_ms / 1000.0
        mover = position.turn

        root_moves = Rules.get_legal_moves(position)
        if not root_moves:
            return SearchResult(move=None)

        endgame = self.evaluator.is_endgame(position.board, position.hands)
        ordered = order_moves(position, root_moves, self.evaluator)
        checking = {move for move in ordered if gives_check(position, move)} if endgame else set()

        result = SearchResult(move=None)
        for depth in range(1, max(1, max_depth) + 1):
            if self.clock() > deadline:
                break

            best_score = -math.inf
            best_moves: List[Move] = []
            completed = True
            for move in ordered:
                if self.clock() > deadline:
                    completed = False
                    break
                score = minimax(
                    position.apply_move(move), depth - 1, -math.inf, math.inf,
                    mover.opponent == Player.WHITE, self.evaluator
                )
                # 手番側から見た評価値に揃える
                if mover == Player.BLACK:
                    score = -score
                if move in checking:
                    score += self.evaluator.weights.endgame_check_bonus
                if score > best_score:
                    best_score = score
                    best_moves = [move]
                elif score == best_score:
                    best_moves.append(move)

            if not completed:
                logger.debug("深さ%dは時間切れで中断", depth)
                break

            result = SearchResult(
                move=self.rng.choice(best_moves),
                score=best_score,
                depth=depth,
            )
            logger.debug("深さ%d完了: score=%.2f 候補%d手", depth, best_score, len(best_moves))

        if result.move is None:
            # 1手も読み切れなかった場合は並べ替え後の先頭の手
            result = SearchResult(move=ordered[0])
        result.elapsed_ms = (self.clock() - start) * 1000.0
        return result
