import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from ringlock.bits import Bits, apply_key, pin_count, rotate_bits

logger = logging.getLogger(__name__)

MIN_HOLES = 2
MAX_HOLE_RATIO = 0.6


class PuzzleConstructionError(RuntimeError):
    pass


@dataclass(frozen=True, slots=True)
class GeneratedKey:
    """A key as stored for play, plus the hidden offset that aligns it."""

    key: Bits
    offset: int


@dataclass(frozen=True, slots=True)
class Puzzle:
    """Immutable generated puzzle: rings with holes and a shuffled key pool."""

    bits: int
    rings: Tuple[Bits, ...] = field(default_factory=tuple)
    keys: Tuple[Bits, ...] = field(default_factory=tuple)


# Pooled key index -> (ring index, rotation that aligns the key with its holes).
type Solution = Dict[int, Tuple[int, int]]


def max_holes(bits: int) -> int:
    return max(MIN_HOLES, int(bits * MAX_HOLE_RATIO))


def generate_ring(bits: int, rng: Optional[random.Random] = None) -> Bits:
    """
    Build a ring of `bits` cells with between 2 and max(2, floor(bits * 0.6))
    holes (0) at uniformly chosen positions. Every other cell is filled (1).
    """
    if bits < MIN_HOLES:
        raise ValueError(f"A ring needs at least {MIN_HOLES} bits, got {bits}")
    rng = rng or random.Random()

    hole_count = rng.randint(MIN_HOLES, max_holes(bits))
    indices = list(range(bits))
    rng.shuffle(indices)

    ring = [1] * bits
    for i in indices[:hole_count]:
        ring[i] = 0
    return tuple(ring)


def generate_keys_for_ring(
    ring: Sequence[int],
    key_count: int,
    rng: Optional[random.Random] = None,
) -> List[GeneratedKey]:
    """
    Split the holes of a ring between up to `key_count` keys.

    Holes are shuffled and cut into consecutive chunks of
    max(1, holes // key_count); the last chunk takes the remainder and empty
    chunks are dropped. Each chunk is then rotated backwards by a random offset,
    so rotating the stored key forward by that offset lines it up again.
    """
    if key_count < 1:
        raise ValueError(f"key_count must be at least 1, got {key_count}")
    rng = rng or random.Random()

    bits = len(ring)
    holes = [i for i, v in enumerate(ring) if v == 0]
    rng.shuffle(holes)

    patterns: List[List[int]] = []
    per_key = max(1, len(holes) // key_count)
    idx = 0
    for k in range(key_count):
        pattern = [0] * bits
        end = len(holes) if k == key_count - 1 else min(idx + per_key, len(holes))
        for hole in holes[idx:end]:
            pattern[hole] = 1
        if pin_count(pattern) > 0:
            patterns.append(pattern)
        idx = end
        if idx >= len(holes):
            break

    keys = []
    for pattern in patterns:
        offset = rng.randrange(bits)
        keys.append(GeneratedKey(key=rotate_bits(pattern, -offset), offset=offset))
    return keys


def verify_puzzle(puzzle: Puzzle, solution: Solution) -> None:
    """Check the construction invariants of a puzzle against its solution."""
    for ring_index, ring in enumerate(puzzle.rings):
        if len(ring) != puzzle.bits:
            raise PuzzleConstructionError(
                f"Ring {ring_index} has {len(ring)} cells, expected {puzzle.bits}"
            )

    if set(solution) != set(range(len(puzzle.keys))):
        raise PuzzleConstructionError("Solution does not cover every key exactly once")

    filled = list(puzzle.rings)
    for key_index, key in enumerate(puzzle.keys):
        if len(key) != puzzle.bits:
            raise PuzzleConstructionError(
                f"Key {key_index} has {len(key)} cells, expected {puzzle.bits}"
            )
        if pin_count(key) == 0:
            raise PuzzleConstructionError(f"Key {key_index} is all-zero")

        ring_index, offset = solution[key_index]
        aligned = rotate_bits(key, offset)
        ring = filled[ring_index]
        if any(k == 1 and r == 1 for k, r in zip(aligned, ring)):
            raise PuzzleConstructionError(
                f"Key {key_index} overlaps ring {ring_index} at its solution rotation"
            )
        filled[ring_index] = apply_key(aligned, ring)

    for ring_index, ring in enumerate(filled):
        if pin_count(ring) != puzzle.bits:
            raise PuzzleConstructionError(f"Ring {ring_index} is not solvable by its keys")


def generate_puzzle_with_solution(
    bits: int,
    ring_count: int,
    keys_per_ring: int,
    rng: Optional[random.Random] = None,
) -> Tuple[Puzzle, Solution]:
    """Generate a puzzle along with the hidden key-to-ring assignment."""
    if ring_count < 1:
        raise ValueError(f"ring_count must be at least 1, got {ring_count}")
    rng = rng or random.Random()

    rings: List[Bits] = []
    pooled: List[Tuple[GeneratedKey, int]] = []
    for ring_index in range(ring_count):
        ring = generate_ring(bits, rng)
        rings.append(ring)
        for generated in generate_keys_for_ring(ring, keys_per_ring, rng):
            pooled.append((generated, ring_index))

    # Shuffle so list position does not give away which ring a key belongs to.
    rng.shuffle(pooled)

    puzzle = Puzzle(
        bits=bits,
        rings=tuple(rings),
        keys=tuple(generated.key for generated, _ in pooled),
    )
    solution: Solution = {
        key_index: (ring_index, generated.offset)
        for key_index, (generated, ring_index) in enumerate(pooled)
    }
    verify_puzzle(puzzle, solution)

    logger.debug("Generated puzzle: %d bits, %d rings, %d keys", bits, ring_count, len(puzzle.keys))
    return puzzle, solution


def generate_puzzle(
    bits: int,
    ring_count: int,
    keys_per_ring: int,
    rng: Optional[random.Random] = None,
) -> Puzzle:
    """Generate a solvable puzzle."""
    puzzle, _ = generate_puzzle_with_solution(bits, ring_count, keys_per_ring, rng)
    return puzzle
