from __future__ import annotations

from fastapi.testclient import TestClient

from chessai.config import Settings
from chessai.protocol.http.app import create_app


START_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"
MATE_IN_ONE = "6k1/5ppp/8/8/8/8/8/R5K1 w - - 0 1"


def _client() -> TestClient:
    return TestClient(create_app(Settings(search_depth=2, search_time_ms=60_000)))


def _new_game(client: TestClient, fen: str | None = None) -> str:
    r = client.post("/api/games")
    assert r.status_code == 200
    game_id = r.json()["game_id"]
    if fen is not None:
        r = client.post(f"/api/games/{game_id}/position", json={"fen": fen})
        assert r.status_code == 200
    return game_id


def test_healthz_ok() -> None:
    client = _client()
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}
    assert "x-request-id" in r.headers


def test_request_id_is_echoed() -> None:
    client = _client()
    r = client.get("/healthz", headers={"x-request-id": "abc123"})
    assert r.headers["x-request-id"] == "abc123"


def test_create_game_and_get_state() -> None:
    client = _client()
    r = client.post("/api/games")
    assert r.status_code == 200
    body = r.json()
    game_id = body["game_id"]
    assert game_id and body["fen"] == START_FEN

    state = client.get(f"/api/games/{game_id}/state").json()
    assert state["game_id"] == game_id
    assert state["fen"] == START_FEN
    assert state["side_to_move"] == "white"
    assert state["move_number"] == 1
    assert state["board"][7] == ["R", "N", "B", "Q", "K", "B", "N", "R"]
    assert state["status"] == "White to move"
    assert state["game_over"] is False
    assert state["winner"] is None
    assert state["last_move"] is None
    assert state["move_history"] == []


def test_unknown_game_is_404() -> None:
    client = _client()
    r = client.get("/api/games/does-not-exist/state")
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "not_found"


def test_destinations() -> None:
    client = _client()
    game_id = _new_game(client)
    body = client.get(f"/api/games/{game_id}/destinations/e2").json()
    assert body["selectable"] is True
    assert {d["square"] for d in body["destinations"]} == {"e3", "e4"}
    assert {d["kind"] for d in body["destinations"]} == {"normal"}

    body = client.get(f"/api/games/{game_id}/destinations/e7").json()
    assert body["selectable"] is False
    assert body["destinations"] == []

    r = client.get(f"/api/games/{game_id}/destinations/z9")
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "bad_request"

    client.post(f"/api/games/{game_id}/move", json={"move": "e2e4"})
    body = client.get(f"/api/games/{game_id}/destinations/e7").json()
    assert body["selectable"] is True
    assert {d["square"] for d in body["destinations"]} == {"e6", "e5"}
    assert client.get(f"/api/games/{game_id}/destinations/d2").json()["destinations"] == []


def test_move_updates_state() -> None:
    client = _client()
    game_id = _new_game(client)
    r = client.post(f"/api/games/{game_id}/move", json={"move": "e2e4"})
    assert r.status_code == 200
    state = r.json()
    assert state["fen"] == "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq e3 0 1"
    assert state["side_to_move"] == "black"
    assert state["last_move"] == "e2e4"
    assert state["move_history"] == ["e2e4"]


def test_illegal_and_malformed_moves() -> None:
    client = _client()
    game_id = _new_game(client)
    r = client.post(f"/api/games/{game_id}/move", json={"move": "e2e5"})
    assert r.status_code == 400
    err = r.json()["error"]
    assert err["code"] == "illegal_move"
    assert err["type"] == "client_error"
    assert err["request_id"]

    r = client.post(f"/api/games/{game_id}/move", json={"move": "hello"})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "bad_request"

    # the position is untouched
    assert client.get(f"/api/games/{game_id}/state").json()["fen"] == START_FEN


def test_search_suggests_mate_without_playing_it() -> None:
    client = _client()
    game_id = _new_game(client, MATE_IN_ONE)
    r = client.post(f"/api/games/{game_id}/search", json={"depth": 2})
    assert r.status_code == 200
    body = r.json()
    assert body["best_move"] == "a1a8"
    assert body["depth"] == 2
    assert body["nodes"] > 0
    assert body["timed_out"] is False
    assert client.get(f"/api/games/{game_id}/state").json()["fen"] == MATE_IN_ONE


def test_ai_move_then_game_over() -> None:
    client = _client()
    game_id = _new_game(client, MATE_IN_ONE)
    r = client.post(f"/api/games/{game_id}/ai-move", json={"depth": 2})
    assert r.status_code == 200
    state = r.json()
    assert state["last_move"] == "a1a8"
    assert state["checkmate"] is True
    assert state["game_over"] is True
    assert state["winner"] == "white"
    assert state["status"] == "Checkmate! White wins!"

    r = client.post(f"/api/games/{game_id}/move", json={"move": "g8h8"})
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "game_over"


def test_reset() -> None:
    client = _client()
    game_id = _new_game(client)
    client.post(f"/api/games/{game_id}/move", json={"move": "d2d4"})
    r = client.post(f"/api/games/{game_id}/reset")
    assert r.status_code == 200
    assert r.json()["fen"] == START_FEN
    assert r.json()["move_history"] == []


def test_set_position_validation() -> None:
    client = _client()
    game_id = _new_game(client)
    r = client.post(f"/api/games/{game_id}/position", json={"fen": ""})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "bad_request"
    assert r.json()["error"]["message"].startswith("invalid FEN")

    r = client.post(f"/api/games/{game_id}/position", json={"fen": "8/8/8/8/8/8/8/8 w - - 0 1"})
    assert r.status_code == 400


def test_perft_endpoint() -> None:
    client = _client()
    r = client.post("/api/perft", json={"depth": 2})
    assert r.status_code == 200
    assert r.json() == {"depth": 2, "nodes": 400}


def test_validation_errors_use_envelope() -> None:
    client = _client()
    game_id = _new_game(client)
    r = client.post(f"/api/games/{game_id}/search", json={"depth": 0})
    assert r.status_code == 422
    err = r.json()["error"]
    assert err["code"] == "unprocessable_entity"
    assert any(fe["field"].endswith("depth") for fe in err["field_errors"])
