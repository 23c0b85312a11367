"""API route tests."""

import pytest
from fastapi.testclient import TestClient

from api.main import app, sessions

PLAYERS = ["alice", "bob", "carol"]


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def _create_room(client, **settings) -> str:
    body = {"user_id": "alice", "username": "Alice", **settings}
    r = client.post("/rooms", json=body)
    assert r.status_code == 200
    return r.json()["code"]


def _ready_room(client, **settings) -> str:
    code = _create_room(client, **settings)
    for user in PLAYERS[1:]:
        assert client.post(f"/rooms/{code}/join", json={"user_id": user, "username": user.title()}).status_code == 200
        assert client.post(f"/rooms/{code}/ready", json={"user_id": user}).status_code == 200
    return code


def _state(client, code: str, viewer: str | None = None) -> dict:
    params = {"viewer_id": viewer} if viewer else {}
    r = client.get(f"/rooms/{code}", params=params)
    assert r.status_code == 200
    return r.json()


def _give_all_clues(client, code: str) -> None:
    while True:
        state = _state(client, code)
        if state["phase"] != "clue":
            return
        user = state["current_turn_user_id"]
        r = client.post(f"/rooms/{code}/clues", json={"user_id": user, "text": f"clue by {user}"})
        assert r.status_code == 200


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_words(client):
    r = client.get("/words")
    assert r.status_code == 200
    data = r.json()
    assert len(data) >= 1
    assert all(c["name"] and c["words"] for c in data)


def test_create_room(client):
    code = _create_room(client, points_to_win=3)
    assert code in client.get("/rooms").json()
    state = _state(client, code, "alice")
    assert state["code"] == code
    assert state["phase"] == "waiting"
    assert state["host_id"] == "alice"
    assert state["points_to_win"] == 3
    assert [p["name"] for p in state["participants"]] == ["Alice"]
    assert state["secret_word"] is None
    # Lower-case codes resolve too
    assert _state(client, code.lower())["code"] == code


def test_create_room_starts_server_session(client):
    code = _create_room(client)
    room_id = _state(client, code)["room_id"]
    assert room_id in sessions
    assert sessions[room_id].active


def test_create_room_validation(client):
    r = client.post("/rooms", json={"user_id": "alice", "min_players": 2})
    assert r.status_code == 422
    r = client.post("/rooms", json={"user_id": "alice", "min_players": 5, "max_players": 4})
    assert r.status_code == 422
    r = client.post("/rooms", json={"user_id": "alice", "min_players": 3, "impostor_count": 3})
    assert r.status_code == 422


def test_get_room_404(client):
    assert client.get("/rooms/NOPE99").status_code == 404
    assert client.post("/rooms/NOPE99/join", json={"user_id": "bob"}).status_code == 404


def test_bots_add_and_remove(client):
    code = _create_room(client)
    r = client.post(f"/rooms/{code}/bots", json={"user_id": "alice"})
    assert r.status_code == 200
    bots = [p for p in r.json()["participants"] if p["is_bot"]]
    assert len(bots) == 1
    assert bots[0]["is_ready"] is True

    assert client.post(f"/rooms/{code}/bots", json={"user_id": "mallory"}).status_code == 403
    r = client.delete(f"/rooms/{code}/bots", params={"user_id": "alice"})
    assert r.status_code == 200
    assert not any(p["is_bot"] for p in r.json()["participants"])
    assert client.delete(f"/rooms/{code}/bots", params={"user_id": "alice"}).status_code == 400


def test_kick_and_transfer_host(client):
    code = _ready_room(client)
    state = _state(client, code)
    carol = next(p for p in state["participants"] if p["user_id"] == "carol")
    r = client.post(f"/rooms/{code}/kick", json={"user_id": "bob", "participant_id": carol["id"]})
    assert r.status_code == 403
    r = client.post(f"/rooms/{code}/kick", json={"user_id": "alice", "participant_id": carol["id"]})
    assert r.status_code == 200
    assert "carol" not in [p["user_id"] for p in r.json()["participants"]]
    r = client.post(f"/rooms/{code}/transfer-host", json={"user_id": "alice", "new_host_user_id": "bob"})
    assert r.status_code == 200
    assert r.json()["host_id"] == "bob"


def test_leave_last_human_closes_room(client):
    code = _create_room(client)
    room_id = _state(client, code)["room_id"]
    r = client.post(f"/rooms/{code}/leave", json={"user_id": "alice"})
    assert r.status_code == 200
    assert r.json() == {"left": True, "room_closed": True}
    assert client.get(f"/rooms/{code}").status_code == 404
    assert room_id not in sessions


def test_start_requires_host_and_players(client):
    code = _create_room(client)
    assert client.post(f"/rooms/{code}/start", json={"user_id": "alice"}).status_code == 400
    code = _ready_room(client)
    assert client.post(f"/rooms/{code}/start", json={"user_id": "bob"}).status_code == 403
    r = client.post(f"/rooms/{code}/start", json={"user_id": "alice"})
    assert r.status_code == 200
    assert r.json()["phase"] == "clue"
    assert r.json()["current_round"] == 1
    assert client.post(f"/rooms/{code}/join", json={"user_id": "dave"}).status_code == 400


def test_roles_and_word_hidden_until_results(client):
    code = _ready_room(client)
    client.post(f"/rooms/{code}/start", json={"user_id": "alice"})
    views = {user: _state(client, code, user) for user in PLAYERS}
    impostors = [u for u, v in views.items() if v["is_impostor"]]
    assert len(impostors) == 1
    impostor = impostors[0]
    assert views[impostor]["secret_word"] is None
    crew_words = {views[u]["secret_word"] for u in PLAYERS if u != impostor}
    assert len(crew_words) == 1 and None not in crew_words
    for user, view in views.items():
        flags = {p["user_id"]: p["is_impostor"] for p in view["participants"]}
        assert all(flag is None for uid, flag in flags.items() if uid != user)
        assert flags[user] is not None
    assert _state(client, code)["secret_word"] is None


def test_clue_out_of_turn_rejected(client):
    code = _ready_room(client)
    client.post(f"/rooms/{code}/start", json={"user_id": "alice"})
    state = _state(client, code)
    waiting = [s["user_id"] for s in state["turn_order"] if not s["is_current_turn"]]
    r = client.post(f"/rooms/{code}/clues", json={"user_id": waiting[0], "text": "early"})
    assert r.status_code == 400
    current = state["current_turn_user_id"]
    r = client.post(f"/rooms/{code}/clues", json={"user_id": current, "text": "   "})
    assert r.status_code == 400


def test_full_game_to_finish(client):
    code = _ready_room(client, points_to_win=1)
    client.post(f"/rooms/{code}/start", json={"user_id": "alice"})
    impostor = next(u for u in PLAYERS if _state(client, code, u)["is_impostor"])
    crew = [u for u in PLAYERS if u != impostor]

    _give_all_clues(client, code)
    state = _state(client, code)
    assert state["phase"] == "voting"
    assert len(state["clues"]) == 3

    for user in crew:
        r = client.post(f"/rooms/{code}/votes", json={"user_id": user, "target_id": impostor})
        assert r.status_code == 200
    r = client.post(f"/rooms/{code}/votes", json={"user_id": impostor, "target_id": crew[0]})
    assert r.status_code == 200
    assert r.json()["phase"] == "results"
    assert client.post(f"/rooms/{code}/votes", json={"user_id": impostor, "target_id": crew[1]}).status_code == 400

    assert client.post(f"/rooms/{code}/results", json={"user_id": "bob"}).status_code == 403
    r = client.post(f"/rooms/{code}/results", json={"user_id": "alice"})
    assert r.status_code == 200
    data = r.json()
    assert data["result"]["outcome"] == "caught"
    assert data["result"]["impostor_caught"] is True
    assert data["result"]["caught_impostor_id"] == impostor
    assert sorted(pc["user_id"] for pc in data["result"]["point_changes"]) == sorted(crew)
    # Roles are public on the results screen
    assert all(p["is_impostor"] is not None for p in data["participants"])

    r = client.post(f"/rooms/{code}/next-round", json={"user_id": "alice"})
    assert r.status_code == 200
    data = r.json()
    assert data["phase"] == "finished"
    assert data["status"] == "finished"
    assert data["winner_name"] in ("Alice", "Bob", "Carol")
    winner = next(p for p in data["participants"] if p["id"] == data["winner_id"])
    assert winner["user_id"] in crew
    assert winner["points"] == 1
