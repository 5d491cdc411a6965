from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True, slots=True)
class Difficulty:
    """Static puzzle size preset."""

    label: str
    bits: int
    rings: int
    keys_per_ring: int


DIFFICULTIES: Tuple[Difficulty, ...] = (
    Difficulty(label="Novice", bits=8, rings=2, keys_per_ring=2),
    Difficulty(label="Advanced", bits=12, rings=2, keys_per_ring=3),
    Difficulty(label="Expert", bits=16, rings=3, keys_per_ring=2),
    Difficulty(label="Master", bits=24, rings=4, keys_per_ring=2),
)

DIFFICULTY_LABELS = [d.label for d in DIFFICULTIES]


def get_difficulty(label: str) -> Difficulty:
    """Look up a preset by label, ignoring case."""
    for difficulty in DIFFICULTIES:
        if difficulty.label.lower() == label.lower():
            return difficulty
    raise KeyError(f"Unknown difficulty: {label}")
