from __future__ import annotations

import time

import pytest
from fastapi.testclient import TestClient

from src.engine.board import STARTPOS_FEN
from src.protocol.http.app import create_app
from src.protocol.http.session import InMemorySessionStore


def _client() -> TestClient:
    return TestClient(create_app())


def _new_game(client: TestClient, **body: str) -> str:
    r = client.post("/api/games", json=body or None)
    assert r.status_code == 200
    return r.json()["game_id"]


def test_create_game_and_get_state() -> None:
    client = _client()
    r = client.post("/api/games")
    assert r.status_code == 200
    body = r.json()
    game_id = body["game_id"]
    assert body["fen"] == STARTPOS_FEN
    assert body["difficulty"] == "none"

    state = client.get(f"/api/games/{game_id}/state").json()
    assert state["game_id"] == game_id
    assert state["side_to_move"] == "w"
    assert len(state["legal_moves"]) == 20
    assert state["winner"] is None
    assert state["move_history"] == []


def test_create_with_difficulty() -> None:
    client = _client()
    r = client.post("/api/games", json={"difficulty": "hard"})
    assert r.json()["difficulty"] == "hard"
    r_bad = client.post("/api/games", json={"difficulty": "grandmaster"})
    assert r_bad.status_code == 422


def test_get_state_unknown_id_404() -> None:
    client = _client()
    r = client.get("/api/games/does-not-exist/state")
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "not_found"


def test_set_position_validation_and_success() -> None:
    client = _client()
    game_id = _new_game(client)
    r_bad = client.post(f"/api/games/{game_id}/position", json={"fen": ""})
    assert r_bad.status_code == 400
    assert r_bad.json()["error"]["code"] == "bad_request"

    fen = "7k/5Q2/6K1/8/8/8/8/8 b - - 0 1"
    r_ok = client.post(f"/api/games/{game_id}/position", json={"fen": fen})
    assert r_ok.status_code == 200
    state = r_ok.json()
    assert state["fen"] == fen
    assert state["stalemate"] is True
    assert state["legal_moves"] == []


def test_move_updates_state() -> None:
    client = _client()
    game_id = _new_game(client)
    r = client.post(f"/api/games/{game_id}/move", json={"move": "e2e4"})
    assert r.status_code == 200
    state = r.json()
    assert state["side_to_move"] == "b"
    assert state["last_move"] == "e2e4"
    assert state["move_history"] == ["e2e4"]


def test_malformed_move_is_bad_request() -> None:
    client = _client()
    game_id = _new_game(client)
    r = client.post(f"/api/games/{game_id}/move", json={"move": "zz"})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "bad_request"


def test_checkmate_reported_in_state() -> None:
    client = _client()
    game_id = _new_game(client)
    for mv in ("f2f3", "e7e5", "g2g4", "d8h4"):
        assert client.post(f"/api/games/{game_id}/move", json={"move": mv}).status_code == 200
    state = client.get(f"/api/games/{game_id}/state").json()
    assert state["checkmate"] is True
    assert state["winner"] == "b"
    assert state["white_in_check"] is True


def test_tap_flow() -> None:
    client = _client()
    game_id = _new_game(client)
    state = client.post(f"/api/games/{game_id}/tap", json={"row": 6, "col": 4}).json()
    assert state["selected"] == "e2"
    assert sorted(state["valid_moves"]) == ["e3", "e4"]
    state = client.post(f"/api/games/{game_id}/tap", json={"row": 4, "col": 4}).json()
    assert state["selected"] is None
    assert state["last_move"] == "e2e4"


def test_ai_move_endpoint() -> None:
    client = _client()
    game_id = _new_game(client, difficulty="medium")
    r_early = client.post(f"/api/games/{game_id}/ai-move")
    assert r_early.status_code == 409
    assert r_early.json()["error"]["code"] == "conflict"

    client.post(f"/api/games/{game_id}/move", json={"move": "e2e4"})
    # Black belongs to the AI now
    r_human = client.post(f"/api/games/{game_id}/move", json={"move": "e7e5"})
    assert r_human.status_code == 409
    r = client.post(f"/api/games/{game_id}/ai-move")
    assert r.status_code == 200
    assert r.json()["side_to_move"] == "w"
    assert len(r.json()["move_history"]) == 2


def test_move_schedules_the_ai_reply() -> None:
    client = _client()
    game_id = _new_game(client, difficulty="easy")
    state = client.post(f"/api/games/{game_id}/move", json={"move": "e2e4"}).json()
    assert state["ai_thinking"] is True
    deadline = time.monotonic() + 5.0
    while state["side_to_move"] == "b" and time.monotonic() < deadline:
        time.sleep(0.05)
        state = client.get(f"/api/games/{game_id}/state").json()
    assert state["side_to_move"] == "w"
    assert state["ai_thinking"] is False
    assert len(state["move_history"]) == 2


def test_search_endpoint_shape() -> None:
    client = _client()
    game_id = _new_game(client)
    client.post(f"/api/games/{game_id}/move", json={"move": "e2e4"})
    r = client.post(f"/api/games/{game_id}/search", json={"depth": 2})
    assert r.status_code == 200
    data = r.json()
    assert {"best_move", "score", "nodes", "depth", "time_ms"} <= data.keys()
    assert data["depth"] == 2
    assert data["best_move"] is not None
    assert client.post(f"/api/games/{game_id}/search", json={"depth": 9}).status_code == 422


def test_undo_and_reset() -> None:
    client = _client()
    game_id = _new_game(client)
    assert client.post(f"/api/games/{game_id}/undo").status_code == 400
    client.post(f"/api/games/{game_id}/move", json={"move": "d2d4"})
    client.post(f"/api/games/{game_id}/move", json={"move": "d7d5"})
    state = client.post(f"/api/games/{game_id}/undo").json()
    assert state["move_history"] == ["d2d4"]
    state = client.post(f"/api/games/{game_id}/reset").json()
    assert state["fen"] == STARTPOS_FEN


def test_delete_game() -> None:
    client = _client()
    game_id = _new_game(client)
    assert client.delete(f"/api/games/{game_id}").status_code == 200
    assert client.get(f"/api/games/{game_id}/state").status_code == 404
    assert client.delete(f"/api/games/{game_id}").status_code == 404


def test_perft_endpoint() -> None:
    client = _client()
    r = client.post("/api/perft", json={"depth": 2})
    assert r.json() == {"nodes": 400, "depth": 2}
    r_bad = client.post("/api/perft", json={"fen": "nonsense", "depth": 1})
    assert r_bad.status_code == 400


def test_session_store() -> None:
    store: InMemorySessionStore[list] = InMemorySessionStore(list)
    gid = store.create()
    assert store.get(gid) == []
    store.set(gid, [1])
    assert store.get(gid) == [1]
    assert len(store) == 1
    assert store.pop(gid) == [1]
    assert store.get(gid) is None
    with pytest.raises(KeyError):
        store.set(gid, [2])
