from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi.testclient import TestClient

from chesscore.config import Settings
from chesscore.protocol.http.app import create_app


def make_client() -> TestClient:
    return TestClient(create_app(Settings(search_depth=1, analysis_depth=1)))


def new_game(client: TestClient, fen: Optional[str] = None) -> str:
    body: Dict[str, Any] = {"fen": fen} if fen else {}
    r = client.post("/api/games", json=body)
    assert r.status_code == 200
    return r.json()["game_id"]


def test_health() -> None:
    r = make_client().get("/healthz")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_create_game_without_body() -> None:
    client = make_client()
    r = client.post("/api/games")
    assert r.status_code == 200
    assert r.json()["fen"].startswith("rnbqkbnr/pppppppp/")


def test_state_of_new_game() -> None:
    client = make_client()
    gid = new_game(client)
    state = client.get(f"/api/games/{gid}/state").json()
    assert state["game_id"] == gid
    assert state["side_to_move"] == "w"
    assert len(state["legal_moves"]) == 20
    assert state["in_check"] is False
    assert state["last_move"] is None
    assert state["move_history"] == []


def test_move_and_undo() -> None:
    client = make_client()
    gid = new_game(client)
    r = client.post(f"/api/games/{gid}/move", json={"move": "e2e4"})
    assert r.status_code == 200
    state = r.json()
    assert state["side_to_move"] == "b"
    assert state["last_move"] == "e2e4"
    assert " e3 " in state["fen"]

    r = client.post(f"/api/games/{gid}/undo")
    assert r.status_code == 200
    assert r.json()["move_history"] == []

    r = client.post(f"/api/games/{gid}/undo")
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "bad_request"


def test_illegal_move_rejected() -> None:
    client = make_client()
    gid = new_game(client)
    r = client.post(f"/api/games/{gid}/move", json={"move": "e2e5"})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "illegal_move"

    r = client.post(f"/api/games/{gid}/move", json={"move": "zz"})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "bad_request"


def test_captures_and_checkmate_in_state() -> None:
    client = make_client()
    gid = new_game(client)
    for mv in ("e2e4", "d7d5", "e4d5", "d8d5"):
        client.post(f"/api/games/{gid}/move", json={"move": mv})
    state = client.get(f"/api/games/{gid}/state").json()
    assert state["captured_by_white"] == ["p"]
    assert state["captured_by_black"] == ["p"]

    r = client.post(
        f"/api/games/{gid}/position",
        json={"fen": "rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3"},
    )
    assert r.status_code == 200
    state = r.json()
    assert state["checkmate"] is True
    assert state["legal_moves"] == []


def test_invalid_fen_rejected() -> None:
    client = make_client()
    gid = new_game(client)
    r = client.post(f"/api/games/{gid}/position", json={"fen": "8/8/8 w - -"})
    assert r.status_code == 400
    err = r.json()["error"]
    assert err["code"] == "invalid_fen"
    assert err["type"] == "client_error"

    r = client.post("/api/games", json={"fen": "not a fen"})
    assert r.status_code == 400


def test_unknown_game_is_404() -> None:
    client = make_client()
    r = client.get("/api/games/nope/state")
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "not_found"
    assert client.delete("/api/games/nope").status_code == 404


def test_delete_game() -> None:
    client = make_client()
    gid = new_game(client)
    assert client.delete(f"/api/games/{gid}").json() == {"deleted": True}
    assert client.get(f"/api/games/{gid}/state").status_code == 404


def test_search_finds_mate() -> None:
    client = make_client()
    gid = new_game(client, "6k1/5ppp/8/8/8/8/5PPP/3R2K1 w - - 0 1")
    r = client.post(f"/api/games/{gid}/search", json={"depth": 2})
    assert r.status_code == 200
    body = r.json()
    assert body["best_move"] == "d1d8"
    assert body["score"] == {"mate": 1}
    assert body["depth"] == 2
    assert body["nodes"] > 0


def test_search_uses_configured_depth_by_default() -> None:
    client = make_client()
    gid = new_game(client)
    body = client.post(f"/api/games/{gid}/search", json={}).json()
    assert body["depth"] == 1
    assert "cp" in body["score"]


def test_search_depth_validation() -> None:
    client = make_client()
    gid = new_game(client)
    r = client.post(f"/api/games/{gid}/search", json={"depth": 0})
    assert r.status_code == 422
    err = r.json()["error"]
    assert err["code"] == "unprocessable_entity"
    assert any(fe["field"].endswith("depth") for fe in err["field_errors"])


def test_analyze_root_ranks_moves() -> None:
    client = make_client()
    gid = new_game(client, "4k3/8/8/3q4/8/8/8/3RK3 w - - 0 1")
    body = client.post(f"/api/games/{gid}/analyze-root", json={"depth": 1}).json()
    assert body["moves"][0]["move"] == "d1d5"
    scores = [m["score"] for m in body["moves"]]
    assert scores == sorted(scores, reverse=True)


def test_analysis_endpoint() -> None:
    client = make_client()
    gid = new_game(client)
    for mv in ("e2e4", "e7e5"):
        client.post(f"/api/games/{gid}/move", json={"move": mv})
    body = client.post(f"/api/games/{gid}/analysis", json={"depth": 1, "top_k": 4}).json()
    assert body["analyzed"] == 2
    assert body["total"] == 2
    assert body["truncated"] is False
    assert [row["side"] for row in body["rows"]] == ["w", "b"]
    assert set(body["accuracy"]) == {"w", "b"}


def test_perft_endpoint() -> None:
    client = make_client()
    r = client.post("/api/perft", json={"depth": 2})
    assert r.json() == {"nodes": 400}
    r = client.post("/api/perft", json={"depth": 5})
    assert r.status_code == 422
    r = client.post("/api/perft", json={"fen": "8/8 w", "depth": 1})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "invalid_fen"


def test_request_id_header_is_echoed() -> None:
    client = make_client()
    r = client.get("/healthz", headers={"x-request-id": "abc-123"})
    assert r.headers["x-request-id"] == "abc-123"
    assert make_client().get("/healthz").headers.get("x-request-id")
