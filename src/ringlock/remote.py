from dataclasses import fields
from typing import Any, Dict, Optional

import requests

from ringlock.state_snapshot import GameSnapshot

DEFAULT_API_URL = "http://127.0.0.1:8000"

_SEQUENCE_FIELDS = {"rings", "keys"}
_OPTIONAL_KEY_FIELDS = {"current_key", "rotated_key"}


class RemoteGameError(RuntimeError):
    pass


def snapshot_from_state(state: Dict[str, Any]) -> GameSnapshot:
    """Rebuild a snapshot from the JSON game state returned by the API."""
    values = {}
    for f in fields(GameSnapshot):
        value = state[f.name]
        if f.name in _SEQUENCE_FIELDS:
            value = tuple(tuple(cells) for cells in value)
        elif f.name == "key_used":
            value = tuple(value)
        elif f.name in _OPTIONAL_KEY_FIELDS and value is not None:
            value = tuple(value)
        values[f.name] = value
    return GameSnapshot(**values)


class RemoteGame:
    """Drive a game hosted by the lock API over HTTP."""

    def __init__(self, base_url: str = DEFAULT_API_URL, session: Optional[requests.Session] = None, timeout: float = 10):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}/api{path}"
        try:
            if method == "GET":
                response = self.session.get(url, timeout=self.timeout)
            else:
                response = self.session.post(url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise RemoteGameError(f"Request to {url} failed: {e}") from e

        if response.status_code != 200:
            raise RemoteGameError(f"Failed to {method} {url}: {response.status_code} {response.text}")
        return response.json()

    def difficulties(self) -> list:
        return self._request("GET", "/difficulties")

    def start(self, difficulty: str, seed: Optional[int] = None) -> Dict[str, Any]:
        return self._request("POST", "/game", {"difficulty": difficulty, "seed": seed})

    def state(self) -> Dict[str, Any]:
        return self._request("GET", "/game")

    def select(self, index: int) -> Dict[str, Any]:
        return self._request("POST", "/game/select", {"index": index})

    def next_key(self) -> Dict[str, Any]:
        return self._request("POST", "/game/next")

    def rotate(self, direction: str) -> Dict[str, Any]:
        return self._request("POST", "/game/rotate", {"direction": direction})

    def slot(self) -> Dict[str, Any]:
        return self._request("POST", "/game/slot")

    def undo(self) -> Dict[str, Any]:
        return self._request("POST", "/game/undo")

    def tick(self) -> Dict[str, Any]:
        return self._request("POST", "/game/tick")
