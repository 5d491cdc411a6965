from typing import List, Literal, Optional

from pydantic import BaseModel


class DifficultyModel(BaseModel):
    label: str
    bits: int
    rings: int
    keys_per_ring: int


class NewGameRequest(BaseModel):
    difficulty: str
    seed: Optional[int] = None


class SelectKeyRequest(BaseModel):
    index: int


class RotateRequest(BaseModel):
    direction: Literal["left", "right"]


class GameState(BaseModel):
    screen: Literal["splash", "difficulty", "game", "win"]
    difficulty: Optional[str]
    bits: int
    score: int
    moves: int
    seconds: float
    selected_key: int
    rotation: int
    smooth_rotation: float
    active_ring_index: int
    can_slot: bool
    is_invalid: bool
    history_depth: int
    flash_message: str
    flash_timer: int
    rings: List[List[int]]
    keys: List[List[int]]
    key_used: List[bool]
    current_key: Optional[List[int]] = None
    rotated_key: Optional[List[int]] = None
    rings_remaining: int
    keys_used_count: int
