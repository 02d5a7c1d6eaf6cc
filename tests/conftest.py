"""
pytest共通設定とフィクスチャ
"""

import pytest
import random
import sys
from pathlib import Path

# プロジェクトルートをパスに追加
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# 平手から 7g7f 3c3d 8h2b+ 4a5b B*4b 5a4a 2b3a で後手が詰む
MATE_SEQUENCE = ["7g7f", "3c3d", "8h2b+", "4a5b", "B*4b", "5a4a", "2b3a"]


@pytest.fixture
def mate_sequence():
    """平手から後手玉が詰む手順（USI形式）"""
    return list(MATE_SEQUENCE)


@pytest.fixture
def empty_board():
    """空の盤面を提供するフィクスチャ"""
    from src.engine import Board
    return Board()


@pytest.fixture
def initial_board():
    """平手の初期盤面を提供するフィクスチャ"""
    from src.engine.initial_setup import load_initial_board
    return load_initial_board()


@pytest.fixture
def initial_position():
    """平手の初期局面（先手番）を提供するフィクスチャ"""
    from src.engine.initial_setup import load_initial_position
    return load_initial_position()


@pytest.fixture
def make_position():
    """
    駒の配置から局面を作るフィクスチャ
    使い方: make_position({(8, 4): Piece(KING, BLACK)}, turn=Player.BLACK, black={PieceType.PAWN: 1})
    """
    from src.engine import Board, Hands, Player, Position

    def _make(pieces, turn=Player.BLACK, black=None, white=None):
        return Position(
            Board.from_pieces(pieces),
            Hands.from_counts(black or {}, white or {}),
            turn,
        )
    return _make


@pytest.fixture
def play_usi():
    """USI形式の手順を順に適用した局面を返すフィクスチャ"""
    from src.engine.sfen import parse_usi_move

    def _play(position, tokens):
        for token in tokens:
            move = parse_usi_move(token)
            assert move is not None, f"手を解釈できません: {token}"
            position = position.apply_move(move)
        return position
    return _play


@pytest.fixture
def seeded_rng():
    """シードを固定した乱数"""
    return random.Random(20240601)


@pytest.fixture
def black_player():
    """先手プレイヤーを提供するフィクスチャ"""
    from src.engine import Player
    return Player.BLACK


@pytest.fixture
def white_player():
    """後手プレイヤーを提供するフィクスチャ"""
    from src.engine import Player
    return Player.WHITE


@pytest.fixture
def fake_engine(tmp_path):
    """
    偽USIエンジンを起動する実行ファイルを作るフィクスチャ
    使い方: path = fake_engine("--bestmove", "resign")
    """
    import shlex

    script = Path(__file__).parent / "fixtures" / "fake_usi_engine.py"
    counter = [0]

    def _make(*args):
        counter[0] += 1
        wrapper = tmp_path / f"engine{counter[0]}.sh"
        quoted = " ".join(shlex.quote(str(arg)) for arg in args)
        wrapper.write_text(
            f'#!/bin/sh\nexec {shlex.quote(sys.executable)} {shlex.quote(str(script))} {quoted}\n'
        )
        wrapper.chmod(0o755)
        return str(wrapper)
    return _make


@pytest.fixture
def engine_settings():
    """偽エンジン用の短い待ち時間の設定を作るフィクスチャ"""
    from src.config import EngineSettings

    def _settings(path, eval_enabled=False):
        return EngineSettings(
            engine_path=path,
            eval_enabled=eval_enabled,
            handshake_timeout_ms=5000,
            bestmove_grace_ms=5000,
        )
    return _settings
