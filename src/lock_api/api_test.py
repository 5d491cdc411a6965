import random

import pytest
from fastapi.testclient import TestClient

from lock_api.api import app
from ringlock.difficulty import Difficulty
from ringlock.game import Game


@pytest.fixture
def client():
    app.state.game = None
    with TestClient(app) as c:
        yield c
    app.state.game = None


def start(client, difficulty="Novice", seed=7):
    response = client.post("/api/game", json={"difficulty": difficulty, "seed": seed})
    assert response.status_code == 200
    return response.json()


def align(client, state):
    """Rotate through keys until one fits the active ring."""
    for idx, used in enumerate(state["key_used"]):
        if used:
            continue
        state = client.post("/api/game/select", json={"index": idx}).json()
        for _ in range(state["bits"]):
            if state["can_slot"]:
                return state
            state = client.post("/api/game/rotate", json={"direction": "right"}).json()
    raise AssertionError("no key fits the active ring")


class TestLockApi:
    """Test suite for the lock API"""

    def test_difficulties(self, client):
        response = client.get("/api/difficulties")
        assert response.status_code == 200
        labels = [d["label"] for d in response.json()]
        assert labels == ["Novice", "Advanced", "Expert", "Master"]

    def test_game_requires_start(self, client):
        assert client.get("/api/game").status_code == 409
        assert client.post("/api/game/slot").status_code == 409

    def test_unknown_difficulty(self, client):
        response = client.post("/api/game", json={"difficulty": "Legendary"})
        assert response.status_code == 404

    def test_start_game(self, client):
        state = start(client)
        assert state["screen"] == "game"
        assert state["difficulty"] == "Novice"
        assert len(state["rings"]) == 2
        assert all(len(ring) == 8 for ring in state["rings"])
        assert state["key_used"] == [False] * len(state["keys"])
        assert state["rings_remaining"] == 2

    def test_seeded_games_match(self, client):
        assert start(client, seed=3)["keys"] == start(client, seed=3)["keys"]

    def test_rotate(self, client):
        start(client)
        state = client.post("/api/game/rotate", json={"direction": "left"}).json()
        assert state["rotation"] == -1
        state = client.post("/api/game/rotate", json={"direction": "right"}).json()
        assert state["rotation"] == 0

    def test_rotate_bad_direction(self, client):
        start(client)
        response = client.post("/api/game/rotate", json={"direction": "up"})
        assert response.status_code == 422

    def test_select_and_next(self, client):
        start(client)
        state = client.post("/api/game/select", json={"index": 2}).json()
        assert state["selected_key"] == 2
        state = client.post("/api/game/select", json={"index": 99}).json()
        assert state["selected_key"] == 2
        state = client.post("/api/game/next").json()
        assert state["selected_key"] == 3 % len(state["keys"])

    def test_slot_and_undo(self, client):
        state = align(client, start(client))
        before = state["rings"]

        state = client.post("/api/game/slot").json()
        assert state["moves"] == 1
        assert state["history_depth"] == 1
        assert state["score"] >= 110
        assert state["keys_used_count"] == 1

        state = client.post("/api/game/undo").json()
        assert state["rings"] == before
        assert state["moves"] == 2
        assert state["history_depth"] == 0
        assert state["flash_message"] == "Undo"

    def test_slot_not_fitting(self, client):
        state = start(client)
        while state["can_slot"]:
            state = client.post("/api/game/rotate", json={"direction": "right"}).json()
        state = client.post("/api/game/slot").json()
        assert state["moves"] == 0

    def test_tick(self, client):
        start(client)
        state = client.post("/api/game/tick").json()
        assert state["seconds"] >= 0

    def test_moves_after_win_are_ignored(self, client):
        """Undo and slot on the win screen leave the solved game untouched"""
        game = Game(rng=random.Random(5))
        game.start_game(Difficulty(label="Single", bits=8, rings=1, keys_per_ring=1), now=0.0)
        app.state.game = game

        align(client, client.get("/api/game").json())
        won = client.post("/api/game/slot").json()
        assert won["screen"] == "win"
        assert won["rings_remaining"] == 0

        state = client.post("/api/game/undo").json()
        assert state["screen"] == "win"
        assert state["rings"] == won["rings"]
        assert state["moves"] == won["moves"]
        assert state["history_depth"] == 1
        assert state["rings_remaining"] == 0

        state = client.post("/api/game/slot").json()
        assert state["score"] == won["score"]
        assert state["moves"] == won["moves"]
