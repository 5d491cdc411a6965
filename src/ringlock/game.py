import logging
import math
import random
import threading
from dataclasses import dataclass
from typing import List, Optional

from ringlock.bits import (
    Bits,
    apply_key,
    key_fits_ring,
    key_overlaps_ring,
    pin_count,
    ring_complete,
    rotate_bits,
)
from ringlock.difficulty import Difficulty
from ringlock.generator import generate_puzzle
from ringlock.state_snapshot import GameSnapshot, Screen

logger = logging.getLogger(__name__)

FLASH_FRAMES = 90
SMOOTHING = 0.3
SMOOTHING_SNAP = 0.01

SLOT_SCORE = 100
PIN_SCORE = 10
TIME_BONUS = 1000
TIME_PENALTY_PER_SECOND = 5


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    """Undo record: the ring as it was before a key went in."""

    ring_index: int
    ring_snapshot: Bits
    key_index: int


@dataclass(frozen=True, slots=True)
class SlotResult:
    """What a successful slot applied, captured under the game lock."""

    ring_index: int
    key_index: int
    rotation: int
    pins: int
    score_added: int
    ring_cleared: bool
    solved: bool


def slot_score(pins: int) -> int:
    return SLOT_SCORE + pins * pins * PIN_SCORE


def time_bonus(seconds: float) -> int:
    return max(TIME_BONUS - math.floor(seconds) * TIME_PENALTY_PER_SECOND, 0)


class Game:
    """
    Play state for one puzzle session and the only legal transitions on it.

    Invalid actions (selecting a used key, slotting a key that does not fit,
    undoing with no history, slotting or undoing after a win) are silent
    no-ops. All mutators hold a single re-entrant lock so a game shared
    between threads stays consistent.
    """

    def __init__(self, rng: Optional[random.Random] = None, flash_frames: int = FLASH_FRAMES):
        self._lock = threading.RLock()
        self._rng = rng or random.Random()
        self._flash_frames = flash_frames

        self.screen: Screen = "splash"
        self.difficulty: Optional[Difficulty] = None
        self.bits = 8
        self.rings: List[Bits] = []
        self.keys: List[Bits] = []
        self.key_used: List[bool] = []
        self.selected_key = 0
        self.rotation = 0
        self.smooth_rotation = 0.0
        self.score = 0
        self.moves = 0
        self.seconds = 0.0
        self.timer_start: Optional[float] = None
        self.history: List[HistoryEntry] = []
        self.flash_message = ""
        self.flash_timer = 0

    # ---- Screen transitions ----
    def show_difficulties(self) -> None:
        with self._lock:
            self.screen = "difficulty"

    def start_game(self, difficulty: Difficulty, now: Optional[float] = None) -> None:
        """Generate a fresh puzzle for the difficulty and reset all play state."""
        with self._lock:
            puzzle = generate_puzzle(difficulty.bits, difficulty.rings, difficulty.keys_per_ring, self._rng)
            self.difficulty = difficulty
            self.bits = puzzle.bits
            self.rings = list(puzzle.rings)
            self.keys = list(puzzle.keys)
            self.key_used = [False] * len(self.keys)
            self.selected_key = 0
            self.rotation = 0
            self.smooth_rotation = 0.0
            self.score = 0
            self.moves = 0
            self.seconds = 0.0
            self.timer_start = now
            self.history = []
            self.flash_message = ""
            self.flash_timer = 0
            self.screen = "game"
            logger.info("Started %s game: %d rings, %d keys", difficulty.label, len(self.rings), len(self.keys))

    def restart(self, now: Optional[float] = None) -> None:
        """Play again with the current difficulty."""
        with self._lock:
            if self.difficulty is None:
                return
            self.start_game(self.difficulty, now)

    # ---- Derived state ----
    @property
    def active_ring_index(self) -> int:
        """Outermost incomplete ring (highest index), or -1 when all are complete."""
        with self._lock:
            for i in range(len(self.rings) - 1, -1, -1):
                if not ring_complete(self.rings[i]):
                    return i
            return -1

    @property
    def active_ring(self) -> Optional[Bits]:
        with self._lock:
            idx = self.active_ring_index
            return self.rings[idx] if idx >= 0 else None

    @property
    def current_key(self) -> Optional[Bits]:
        with self._lock:
            if self.selected_key < 0 or self.selected_key >= len(self.keys):
                return None
            if self.key_used[self.selected_key]:
                return None
            return self.keys[self.selected_key]

    @property
    def rotated_key(self) -> Optional[Bits]:
        with self._lock:
            key = self.current_key
            return rotate_bits(key, self.rotation) if key is not None else None

    @property
    def can_slot(self) -> bool:
        with self._lock:
            key = self.rotated_key
            ring = self.active_ring
            if key is None or ring is None:
                return False
            return key_fits_ring(key, ring)

    @property
    def is_invalid(self) -> bool:
        """The rotated key collides with filled cells of the active ring."""
        with self._lock:
            key = self.rotated_key
            ring = self.active_ring
            if key is None or ring is None:
                return False
            return key_overlaps_ring(key, ring)

    @property
    def history_depth(self) -> int:
        return len(self.history)

    @property
    def rings_remaining(self) -> int:
        with self._lock:
            return sum(1 for ring in self.rings if not ring_complete(ring))

    @property
    def keys_used_count(self) -> int:
        with self._lock:
            return sum(1 for used in self.key_used if used)

    # ---- Player actions ----
    def select_key(self, idx: int) -> None:
        with self._lock:
            if idx < 0 or idx >= len(self.keys) or self.key_used[idx]:
                logger.debug("Ignoring selection of key %d", idx)
                return
            self.selected_key = idx
            self.rotation = 0
            self.smooth_rotation = 0.0

    def next_key(self) -> None:
        """Select the next unused key after the current one, wrapping around."""
        with self._lock:
            count = len(self.keys)
            for step in range(1, count + 1):
                idx = (self.selected_key + step) % count
                if not self.key_used[idx]:
                    self.select_key(idx)
                    return

    def rotate_left(self) -> None:
        with self._lock:
            self.rotation -= 1

    def rotate_right(self) -> None:
        with self._lock:
            self.rotation += 1

    def slot(self) -> Optional[SlotResult]:
        """
        Commit the selected key into the active ring if it fits.

        Returns what was applied, or None when the key was rejected or the
        game is not on the play screen.
        """
        with self._lock:
            if self.screen != "game":
                logger.debug("Slot ignored on %s screen", self.screen)
                return None
            if not self.can_slot:
                logger.debug("Key %d does not fit at rotation %d", self.selected_key, self.rotation)
                return None

            ring_index = self.active_ring_index
            key_index = self.selected_key
            rotation = self.rotation
            ring = self.rings[ring_index]
            rotated = self.rotated_key

            self.history.append(HistoryEntry(ring_index=ring_index, ring_snapshot=ring, key_index=key_index))

            self.rings[ring_index] = apply_key(rotated, ring)
            self.key_used[key_index] = True
            self.moves += 1

            pins = pin_count(rotated)
            score_add = slot_score(pins)
            cleared = ring_complete(self.rings[ring_index])
            if cleared:
                score_add += time_bonus(self.seconds)
                self.flash("Ring cleared!")
                logger.info("Ring %d cleared", ring_index)
            self.score += score_add

            solved = all(ring_complete(r) for r in self.rings)
            if solved:
                self.screen = "win"
                logger.info("Puzzle solved: score %d in %d moves", self.score, self.moves)
            else:
                self.next_key()
                self.rotation = 0
                self.smooth_rotation = 0.0

            return SlotResult(
                ring_index=ring_index,
                key_index=key_index,
                rotation=rotation,
                pins=pins,
                score_added=score_add,
                ring_cleared=cleared,
                solved=solved,
            )

    def undo(self) -> Optional[HistoryEntry]:
        """
        Put the most recently slotted key back and restore its ring exactly.

        Only allowed on the play screen; a solved puzzle stays solved.
        """
        with self._lock:
            if self.screen != "game":
                logger.debug("Undo ignored on %s screen", self.screen)
                return None
            if not self.history:
                return None
            entry = self.history.pop()
            self.rings[entry.ring_index] = entry.ring_snapshot
            self.key_used[entry.key_index] = False
            self.selected_key = entry.key_index
            self.rotation = 0
            self.smooth_rotation = 0.0
            self.moves += 1
            self.flash("Undo")
            return entry

    # ---- Frame driver ----
    def flash(self, message: str) -> None:
        with self._lock:
            self.flash_message = message
            self.flash_timer = self._flash_frames

    def tick(self, now: float) -> None:
        """Advance one frame. `now` is the caller's clock in seconds."""
        with self._lock:
            if self.screen == "game":
                if self.timer_start is None:
                    self.timer_start = now
                self.seconds = max(0.0, now - self.timer_start)

            diff = self.rotation - self.smooth_rotation
            if abs(diff) > SMOOTHING_SNAP:
                self.smooth_rotation += diff * SMOOTHING
            else:
                self.smooth_rotation = float(self.rotation)

            if self.flash_timer > 0:
                self.flash_timer -= 1

    def snapshot(self) -> GameSnapshot:
        with self._lock:
            return GameSnapshot(
                screen=self.screen,
                difficulty=self.difficulty.label if self.difficulty else None,
                bits=self.bits,
                score=self.score,
                moves=self.moves,
                seconds=self.seconds,
                selected_key=self.selected_key,
                rotation=self.rotation,
                smooth_rotation=self.smooth_rotation,
                active_ring_index=self.active_ring_index,
                can_slot=self.can_slot,
                is_invalid=self.is_invalid,
                history_depth=self.history_depth,
                flash_message=self.flash_message if self.flash_timer > 0 else "",
                flash_timer=self.flash_timer,
                rings=tuple(self.rings),
                keys=tuple(self.keys),
                key_used=tuple(self.key_used),
                current_key=self.current_key,
                rotated_key=self.rotated_key,
            )
