from dataclasses import dataclass, field
from typing import Literal, Optional, Tuple

type Screen = Literal["splash", "difficulty", "game", "win"]


@dataclass(frozen=True, slots=True)
class GameSnapshot:
    """Minimal immutable snapshot of play state, for renderers."""

    screen: Screen
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

    rings: Tuple[Tuple[int, ...], ...] = field(default_factory=tuple)
    keys: Tuple[Tuple[int, ...], ...] = field(default_factory=tuple)
    key_used: Tuple[bool, ...] = field(default_factory=tuple)
    current_key: Optional[Tuple[int, ...]] = None
    rotated_key: Optional[Tuple[int, ...]] = None

    @property
    def rings_remaining(self) -> int:
        return sum(1 for ring in self.rings if not all(v == 1 for v in ring))

    @property
    def keys_used_count(self) -> int:
        return sum(1 for used in self.key_used if used)
