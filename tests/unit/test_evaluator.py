"""
単体テスト: 静的評価関数
"""

import pytest
from dataclasses import replace

from src.ai import DEFAULT_WEIGHTS, EvalWeights, Evaluator
from src.engine import Hands, Piece, PieceType, Player


@pytest.fixture
def evaluator():
    return Evaluator()


class TestEvaluator:
    """評価関数のテストクラス"""

    def test_initial_position_is_balanced(self, evaluator, initial_position):
        """初期局面は点対称なので評価値が0になることを確認"""
        score = evaluator.evaluate(initial_position.board, initial_position.hands)
        assert score == pytest.approx(0.0)

    def test_extra_white_material_is_positive(self, evaluator, make_position):
        """後手の駒得は正の評価値になることを確認"""
        position = make_position({
            (0, 4): Piece(PieceType.KING, Player.WHITE),
            (8, 4): Piece(PieceType.KING, Player.BLACK),
            (4, 0): Piece(PieceType.ROOK, Player.WHITE),
        })
        assert evaluator.evaluate(position.board, position.hands) > 0

    def test_extra_black_material_is_negative(self, evaluator, make_position):
        """先手の持ち駒は負の評価値になることを確認"""
        position = make_position({
            (0, 4): Piece(PieceType.KING, Player.WHITE),
            (8, 4): Piece(PieceType.KING, Player.BLACK),
        }, black={PieceType.GOLD: 1})
        assert evaluator.evaluate(position.board, position.hands) < 0

    def test_hand_piece_weight(self, make_position):
        """持ち駒は駒価値 × hand_factor で数えることを確認"""
        weights = replace(DEFAULT_WEIGHTS, mobility=0.0, square_scale=0.0, check_penalty=0.0)
        evaluator = Evaluator(weights)
        position = make_position({}, white={PieceType.SILVER: 2})

        expected = 2 * weights.piece_values[PieceType.SILVER] * weights.hand_factor
        assert evaluator.evaluate(position.board, position.hands) == pytest.approx(expected)

    def test_promotion_bonus(self, make_position):
        """成駒には成りボーナスが加わることを確認"""
        weights = replace(DEFAULT_WEIGHTS, mobility=0.0, square_scale=0.0, check_penalty=0.0)
        evaluator = Evaluator(weights)
        plain = make_position({(4, 4): Piece(PieceType.PAWN, Player.WHITE)})
        promoted = make_position({(4, 4): Piece(PieceType.PAWN, Player.WHITE, promoted=True)})

        difference = (
            evaluator.evaluate(promoted.board, promoted.hands)
            - evaluator.evaluate(plain.board, plain.hands)
        )
        assert difference == pytest.approx(weights.promoted_bonus[PieceType.PAWN])

    def test_mobility_term(self, make_position):
        """機動力は (後手の疑似合法手数 - 先手の疑似合法手数) × mobility で数えることを確認"""
        weights = replace(DEFAULT_WEIGHTS, square_scale=0.0, check_penalty=0.0)
        evaluator = Evaluator(weights)
        position = make_position({
            (0, 0): Piece(PieceType.KING, Player.WHITE),
            (4, 4): Piece(PieceType.ROOK, Player.WHITE),
            (8, 8): Piece(PieceType.KING, Player.BLACK),
        })

        # 後手: 玉3手 + 飛車16手、先手: 玉3手
        expected = weights.piece_values[PieceType.ROOK] + (19 - 3) * weights.mobility
        assert evaluator.evaluate(position.board, position.hands) == pytest.approx(expected)

    def test_check_penalty(self, make_position):
        """王手されている側が減点されることを確認"""
        weights = replace(DEFAULT_WEIGHTS, mobility=0.0, square_scale=0.0)
        evaluator = Evaluator(weights)
        checked = make_position({
            (0, 4): Piece(PieceType.KING, Player.WHITE),
            (8, 0): Piece(PieceType.KING, Player.BLACK),
            (1, 4): Piece(PieceType.GOLD, Player.BLACK),
        })
        safe = make_position({
            (0, 4): Piece(PieceType.KING, Player.WHITE),
            (8, 0): Piece(PieceType.KING, Player.BLACK),
            (3, 4): Piece(PieceType.GOLD, Player.BLACK),
        })

        difference = (
            evaluator.evaluate(checked.board, checked.hands)
            - evaluator.evaluate(safe.board, safe.hands)
        )
        assert difference == pytest.approx(-weights.check_penalty)

    def test_mirrored_position_negates_score(self, evaluator, make_position):
        """盤面を点対称に入れ替えると評価値の符号が反転することを確認"""
        position = make_position({
            (0, 4): Piece(PieceType.KING, Player.WHITE),
            (8, 4): Piece(PieceType.KING, Player.BLACK),
            (5, 2): Piece(PieceType.SILVER, Player.BLACK),
            (2, 7): Piece(PieceType.KNIGHT, Player.WHITE),
        }, black={PieceType.PAWN: 1})
        mirrored = make_position({
            (8, 4): Piece(PieceType.KING, Player.BLACK),
            (0, 4): Piece(PieceType.KING, Player.WHITE),
            (3, 6): Piece(PieceType.SILVER, Player.WHITE),
            (6, 1): Piece(PieceType.KNIGHT, Player.BLACK),
        }, white={PieceType.PAWN: 1})

        score = evaluator.evaluate(position.board, position.hands)
        assert evaluator.evaluate(mirrored.board, mirrored.hands) == pytest.approx(-score)

    def test_sum_material_and_endgame(self, evaluator, initial_position, make_position):
        """玉以外の駒価値の合計で終盤を判定することを確認"""
        assert not evaluator.is_endgame(initial_position.board, initial_position.hands)

        position = make_position({
            (0, 4): Piece(PieceType.KING, Player.WHITE),
            (8, 4): Piece(PieceType.KING, Player.BLACK),
            (4, 4): Piece(PieceType.GOLD, Player.BLACK, promoted=False),
        }, white={PieceType.ROOK: 1})
        assert evaluator.sum_material(position.board, position.hands) == pytest.approx(16.0)
        assert evaluator.is_endgame(position.board, position.hands)

    def test_weights_are_configurable(self):
        """重みを差し替えた評価関数を作れることを確認"""
        weights = EvalWeights(mate_score=500.0)
        assert Evaluator(weights).weights.mate_score == 500.0
        assert DEFAULT_WEIGHTS.mate_score == 10000.0
