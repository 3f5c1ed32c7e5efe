import pytest
from fastapi.testclient import TestClient

from adola.core.game_logic import GameLogicService
from adola.core.rng import SeededRNG
from adola.core.sessions import SessionRegistry
from adola.core.tables import default_tables
from adola.main import create_app
from adola.routers import api

from conftest import ALWAYS_LOSE, ALWAYS_WIN


def use_engine(monkeypatch, config=None, seed=3):
    registry = SessionRegistry(
        lambda: GameLogicService(rng=SeededRNG(seed), tables=default_tables(), config=config)
    )
    monkeypatch.setattr(api, "registry", registry)
    return registry


@pytest.fixture
def client():
    with TestClient(create_app()) as c:
        yield c


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_can_play(client):
    assert client.post("/api/can-play", json={"stake": 10, "balance": 100}).json() == {
        "can_play": True,
        "message": "",
    }
    body = client.post("/api/can-play", json={"stake": 0, "balance": 100}).json()
    assert body["can_play"] is False
    assert body["message"] == "Please enter a valid bet amount"


def test_negative_balance_is_a_request_error(client):
    response = client.post("/api/can-play", json={"stake": 10, "balance": -1})
    assert response.status_code == 422


def test_validate_stake(client):
    body = client.post("/api/validate", json={"stake": 4, "game_type": "slots"}).json()
    assert body["valid"] is False
    assert body["violation"] == "BelowMinimumBet"

    body = client.post("/api/validate", json={"stake": 50, "game_type": "slots"}).json()
    assert body == {"valid": True, "min_bet": 5.0, "max_bet": 100.0, "violation": None, "message": ""}


def test_play_win(client, monkeypatch):
    use_engine(monkeypatch, ALWAYS_WIN)
    body = client.post("/api/play", json={"stake": 10, "balance": 100, "game_type": "dice"}).json()
    assert body["success"] is True
    assert body["won"] is True
    assert body["multiplier"] in [1.8, 2.0, 2.5, 3.0, 4.0]
    assert body["payout"] == int(10 * body["multiplier"])
    assert body["resulting_balance"] == 100 - 10 + body["payout"]


def test_play_loss(client, monkeypatch):
    use_engine(monkeypatch, ALWAYS_LOSE)
    body = client.post("/api/play", json={"stake": 10, "balance": 100, "game_type": "dice"}).json()
    assert body["won"] is False
    assert body["payout"] == 0
    assert body["resulting_balance"] == 90


def test_play_insufficient_balance_returns_tagged_failure(client, monkeypatch):
    use_engine(monkeypatch)
    body = client.post("/api/play", json={"stake": 50, "balance": 20, "game_type": "dice"}).json()
    assert body["success"] is False
    assert body["reason"] == "InsufficientBalance"
    assert body["resulting_balance"] == 20


def test_play_outside_bounds_is_rejected(client):
    response = client.post("/api/play", json={"stake": 4, "balance": 100, "game_type": "slots"})
    assert response.status_code == 400
    assert response.json()["detail"]["violation"] == "BelowMinimumBet"


def test_play_zero_stake_returns_tagged_invalid_stake(client, monkeypatch):
    use_engine(monkeypatch)
    response = client.post("/api/play", json={"stake": 0, "balance": 100, "game_type": "slots"})
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["reason"] == "InvalidStake"
    assert body["message"] == "Please enter a valid bet amount"


@pytest.mark.parametrize("path, payload", [
    ("/api/play", '{"stake": NaN, "balance": 100, "game_type": "dice"}'),
    ("/api/play", '{"stake": 10, "balance": Infinity, "game_type": "dice"}'),
    ("/api/can-play", '{"stake": NaN, "balance": 100}'),
    ("/api/validate", '{"stake": NaN, "game_type": "dice"}'),
])
def test_non_finite_amounts_are_request_errors(client, path, payload):
    response = client.post(path, content=payload, headers={"Content-Type": "application/json"})
    assert response.status_code == 422


def test_stats_and_reset_are_per_session(client, monkeypatch):
    use_engine(monkeypatch)
    alice = {api.SESSION_HEADER: "alice"}
    for _ in range(3):
        client.post("/api/play", json={"stake": 1, "balance": 100}, headers=alice)

    assert client.get("/api/stats", headers=alice).json()["total_in_queue"] == 7
    assert client.get("/api/stats", headers={api.SESSION_HEADER: "bob"}).json() == {
        "wins_remaining": 2,
        "losses_remaining": 8,
        "total_in_queue": 10,
    }

    assert client.post("/api/reset", headers=alice).json() == {"success": True}
    assert client.get("/api/stats", headers=alice).json()["total_in_queue"] == 10


def test_tables(client):
    body = client.get("/api/tables").json()
    assert body["multipliers"]["dice"] == [1.8, 2.0, 2.5, 3.0, 4.0]
    assert body["bet_bounds"]["default"] == {"min": 1.0, "max": 1000.0}


def test_crash_flow(client, monkeypatch):
    use_engine(monkeypatch, ALWAYS_WIN)
    headers = {api.SESSION_HEADER: "pilot"}

    snap = client.get("/api/crash/aviator", headers=headers).json()
    assert snap["state"] == "waiting"

    bet = client.post("/api/crash/aviator/bet", json={"stake": 10, "balance": 100}, headers=headers)
    assert bet.status_code == 200
    assert bet.json()["balance"] == 90

    again = client.post("/api/crash/aviator/bet", json={"stake": 10, "balance": 100}, headers=headers)
    assert again.status_code == 409

    snap = client.post("/api/crash/aviator/start", headers=headers).json()
    assert snap["state"] == "rolling"
    assert "explosion_point" not in snap

    # Winning explosion points start at 2x, so an immediate cash out succeeds
    cashout = client.post("/api/crash/aviator/cashout", headers=headers).json()
    assert cashout["success"] is True
    assert cashout["payout"] == int(10 * cashout["multiplier"])

    # Round is still rolling, so it cannot be reset yet
    assert client.post("/api/crash/aviator/reset", headers=headers).status_code == 409


def test_crash_bet_rejected_by_bounds(client, monkeypatch):
    use_engine(monkeypatch)
    response = client.post(
        "/api/crash/aviator/bet", json={"stake": 501, "balance": 1000},
        headers={api.SESSION_HEADER: "big"},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Maximum bet for aviator is 500 coins"


def test_unknown_crash_game(client):
    response = client.get("/api/crash/pinball")
    assert response.status_code == 404
    assert response.headers["content-type"] == "application/json"
    assert "pinball" in response.json()["detail"]


def test_mines_flow(client, monkeypatch):
    use_engine(monkeypatch, ALWAYS_WIN)
    headers = {api.SESSION_HEADER: "sweeper"}

    start = client.post("/api/mines/start", json={"stake": 100, "balance": 500, "mines": 10}, headers=headers)
    assert start.status_code == 200
    assert start.json()["balance"] == 400

    # Winning boards keep the centre clear
    snap = client.post("/api/mines/reveal", json={"row": 2, "col": 2}, headers=headers).json()
    assert snap["board"][2][2] == "gem"

    snap = client.post("/api/mines/cashout", headers=headers).json()
    assert snap["outcome"] == "won"
    assert snap["payout"] == 166


def test_mines_errors(client, monkeypatch):
    use_engine(monkeypatch, ALWAYS_WIN)
    headers = {api.SESSION_HEADER: "oops"}

    assert client.post("/api/mines/cashout", headers=headers).status_code == 409
    bad = client.post("/api/mines/start", json={"stake": 10, "balance": 100, "mines": 30}, headers=headers)
    assert bad.status_code == 400

    client.post("/api/mines/start", json={"stake": 10, "balance": 100, "mines": 3}, headers=headers)
    off_board = client.post("/api/mines/reveal", json={"row": 9, "col": 0}, headers=headers)
    assert off_board.status_code == 400
