"""
統合テスト: HTTP API
FastAPI の TestClient で対局・AI・USIエンジンのエンドポイントを確認
"""

import random

import pytest
from fastapi.testclient import TestClient

from src.ai import SearchEngine
from src.api import ai_player
from src.api.main import app, games
from src.api.ai_player import ShogiAI
from src.config import EngineSettings, SearchSettings
from src.engine.initial_setup import load_initial_position
from src.engine.sfen import to_sfen

INITIAL_SFEN = to_sfen(load_initial_position())


def square(r, c):
    return {"r": r, "c": c}


def board_move(from_pos, to_pos, promotion="none"):
    return {"from": square(*from_pos), "to": square(*to_pos), "drop": None, "promotion": promotion}


def usi_to_request(token):
    from src.engine.sfen import parse_usi_move
    return parse_usi_move(token).to_dict()


@pytest.fixture
def local_ai(monkeypatch):
    """エンジンなし・深さ1のAIに差し替える"""
    ai = ShogiAI(
        engine_settings=EngineSettings(),
        search_engine=SearchEngine(rng=random.Random(17)),
        search_settings=SearchSettings(depth=1, time_ms=5000),
    )
    monkeypatch.setattr(ai_player, "_ai_instance", ai)
    return ai


@pytest.fixture
def client(local_ai, monkeypatch):
    monkeypatch.delenv("YANEURAOU_PATH", raising=False)
    monkeypatch.delenv("SHOGI_ENGINE_PATH", raising=False)
    monkeypatch.delenv("USI_EVAL_ENABLED", raising=False)
    games.clear()
    return TestClient(app)


@pytest.fixture
def game_id(client):
    return client.post("/new_game").json()["game_id"]


class TestGameEndpoints:
    """対局のエンドポイントのテストクラス"""

    def test_root(self, client):
        assert "/api/usi" in client.get("/api").json()["endpoints"]

    def test_new_game(self, client):
        """新しい対局が平手の初期局面で始まることを確認"""
        response = client.post("/new_game")

        assert response.status_code == 200
        state = response.json()["game_state"]
        assert state["sfen"] == INITIAL_SFEN
        assert state["turn"] == "b"
        assert state["board"][0][4] == {"type": "K", "owner": "w", "promoted": False}
        assert state["hands"]["b"]["P"] == 0

    def test_new_game_from_sfen(self, client):
        sfen = "4k4/9/4G4/9/9/9/9/9/4K4 b P 1"
        state = client.post("/new_game", json={"sfen": sfen}).json()["game_state"]

        assert state["sfen"] == sfen

    def test_new_game_bad_sfen(self, client):
        assert client.post("/new_game", json={"sfen": "9/9 b"}).status_code == 400

    def test_unknown_game(self, client):
        assert client.get("/get_game/unknown").status_code == 404
        assert client.post("/apply_move/unknown", json=board_move((6, 2), (5, 2))).status_code == 404

    def test_legal_moves(self, client, game_id):
        data = client.get(f"/get_legal_moves/{game_id}").json()

        assert data["count"] == 30
        assert data["current_player"] == "b"

    def test_apply_move(self, client, game_id):
        """合法手を適用すると手番が交代することを確認"""
        data = client.post(f"/apply_move/{game_id}", json=board_move((6, 2), (5, 2))).json()

        assert data["success"] is True
        assert data["game_state"]["turn"] == "w"
        assert data["game_state"]["moves"] == ["7g7f"]
        assert len(data["legal_moves"]) == 30

    def test_illegal_move_is_rejected(self, client, game_id):
        """非合法手は適用されないことを確認"""
        data = client.post(f"/apply_move/{game_id}", json=board_move((6, 2), (4, 2))).json()

        assert data["success"] is False
        assert data["game_state"]["move_count"] == 0

    def test_drop_without_hand_is_rejected(self, client, game_id):
        move = {"from": None, "to": square(4, 4), "drop": "P", "promotion": "none"}
        data = client.post(f"/apply_move/{game_id}", json=move).json()

        assert data["success"] is False

    def test_out_of_board_square(self, client, game_id):
        assert client.post(f"/apply_move/{game_id}", json=board_move((6, 2), (9, 2))).status_code == 422

    def test_mate_ends_game(self, client, game_id, mate_sequence):
        """詰みの手順で対局が終わり、先手の勝ちになることを確認"""
        for token in mate_sequence:
            data = client.post(f"/apply_move/{game_id}", json=usi_to_request(token)).json()
            assert data["success"] is True, f"{token} が適用できません: {data['message']}"

        state = data["game_state"]
        assert state["game_over"] is True
        assert state["winner"] == "b"
        assert state["in_check"] is True
        assert client.post(f"/apply_move/{game_id}", json=board_move((0, 5), (1, 5))).status_code == 400
        assert client.get(f"/get_legal_moves/{game_id}").json()["legal_moves"] == []

    def test_resign(self, client, game_id):
        data = client.post(f"/resign/{game_id}").json()

        assert data["winner"] == "w"
        assert data["game_state"]["game_over"] is True
        assert client.post(f"/resign/{game_id}").status_code == 400

    def test_delete_game(self, client, game_id):
        assert client.delete(f"/delete_game/{game_id}").status_code == 200
        assert client.get(f"/get_game/{game_id}").status_code == 404


class TestAiEndpoints:
    """AIのエンドポイントのテストクラス"""

    def test_predict_uses_local_search(self, client, game_id):
        """エンジンなしならローカル探索の手を返すことを確認"""
        data = client.post(f"/predict/{game_id}").json()

        assert data["source"] == "local"
        assert data["move"]["to"] is not None
        legal = client.get(f"/get_legal_moves/{game_id}").json()["legal_moves"]
        assert data["move"] in legal

    def test_evaluate_disabled(self, client, game_id):
        data = client.get(f"/ai/evaluate/{game_id}").json()

        assert data["disabled"] is True
        assert data["score"] is None

    def test_status(self, client):
        data = client.get("/ai/status").json()

        assert data["engine_configured"] is False
        assert data["eval_enabled"] is False

    def test_api_ai_select(self, client):
        payload = dict(load_initial_position().to_dict(), mode="bestmove")
        data = client.post("/api/ai", json=payload).json()

        assert data["source"] == "local"
        assert data["move"] is not None

    def test_api_ai_evaluate_unavailable(self, client, local_ai, monkeypatch):
        """評価が有効でもエンジンがなければ unavailable を返すことを確認"""
        monkeypatch.setattr(local_ai, "engine_settings", EngineSettings(eval_enabled=True))
        payload = dict(load_initial_position().to_dict(), mode="evaluate")
        data = client.post("/api/ai", json=payload).json()

        assert data["unavailable"] is True
        assert data["score"] is None

    def test_api_ai_bad_position(self, client):
        payload = {"board": [[None] * 9] * 9, "hands": {"b": {"X": 1}}, "turn": "b"}
        assert client.post("/api/ai", json=payload).status_code == 400


class TestUsiEndpoint:
    """外部USIエンジンのエンドポイントのテストクラス"""

    def payload(self, **extra):
        data = load_initial_position().to_dict()
        data.update(extra)
        return data

    def test_unset_path(self, client):
        response = client.post("/api/usi", json=self.payload())

        assert response.status_code == 400
        assert response.json() == {"error": "YANEURAOU_PATHが未設定です。"}

    def test_bestmove(self, client, fake_engine, monkeypatch):
        monkeypatch.setenv("YANEURAOU_PATH", fake_engine("--bestmove", "2g2f"))
        response = client.post("/api/usi", json=self.payload(depth=3, timeMs=500))

        assert response.status_code == 200
        assert response.json()["move"] == board_move((6, 7), (5, 7))

    def test_resign_is_null_move(self, client, fake_engine, monkeypatch):
        monkeypatch.setenv("YANEURAOU_PATH", fake_engine("--bestmove", "resign"))
        assert client.post("/api/usi", json=self.payload()).json() == {"move": None}

    def test_evaluate_disabled(self, client, fake_engine, monkeypatch):
        monkeypatch.setenv("YANEURAOU_PATH", fake_engine())
        response = client.post("/api/usi", json=self.payload(mode="evaluate"))

        assert response.json() == {"score": None, "disabled": True}

    def test_evaluate(self, client, fake_engine, monkeypatch):
        monkeypatch.setenv("YANEURAOU_PATH", fake_engine("--info", "info depth 3 score cp 57"))
        monkeypatch.setenv("USI_EVAL_ENABLED", "true")
        response = client.post("/api/usi", json=self.payload(mode="evaluate", depth=1, timeMs=200))

        assert response.json() == {"score": 57}

    def test_engine_failure(self, client, fake_engine, monkeypatch):
        """エンジンが落ちたら500と診断情報を返すことを確認"""
        monkeypatch.setenv("YANEURAOU_PATH", fake_engine("--exit-on", "usi", "--stderr", "segfault"))
        response = client.post("/api/usi", json=self.payload())

        assert response.status_code == 500
        assert response.json() == {"error": "エンジンの応答に失敗しました。", "detail": "segfault"}

    def test_missing_score(self, client, fake_engine, monkeypatch):
        monkeypatch.setenv("YANEURAOU_PATH", fake_engine())
        monkeypatch.setenv("USI_EVAL_ENABLED", "1")
        response = client.post("/api/usi", json=self.payload(mode="evaluate"))

        assert response.status_code == 500
        assert response.json() == {"error": "評価値を取得できませんでした。"}
