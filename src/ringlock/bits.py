from typing import List, Sequence, Tuple

type Bits = Tuple[int, ...]


def _check_lengths(key: Sequence[int], ring: Sequence[int]) -> None:
    if len(key) != len(ring):
        raise ValueError(f"Key length {len(key)} != ring length {len(ring)}")


def rotate_bits(seq: Sequence[int], n: int) -> Bits:
    """Rotate a circular bit sequence so that output[i] = seq[(i + n) mod len]."""
    length = len(seq)
    if length == 0:
        return tuple(seq)
    r = ((n % length) + length) % length
    return tuple(seq[(i + r) % length] for i in range(length))


def pin_count(key: Sequence[int]) -> int:
    """Number of set bits in a key."""
    return sum(1 for v in key if v == 1)


def pin_indices(key: Sequence[int]) -> List[int]:
    return [i for i, v in enumerate(key) if v == 1]


def overlap_indices(key: Sequence[int], ring: Sequence[int]) -> List[int]:
    """Positions where a key pin lands on an already filled ring cell."""
    _check_lengths(key, ring)
    return [i for i, (k, r) in enumerate(zip(key, ring)) if k == 1 and r == 1]


def key_overlaps_ring(key: Sequence[int], ring: Sequence[int]) -> bool:
    return len(overlap_indices(key, ring)) > 0


def key_fits_ring(key: Sequence[int], ring: Sequence[int]) -> bool:
    """
    A key fits when every key pin lands on a ring hole.
    An all-zero key never fits, applying it would be a no-op.
    """
    if pin_count(key) == 0:
        return False
    return not key_overlaps_ring(key, ring)


def apply_key(key: Sequence[int], ring: Sequence[int]) -> Bits:
    """OR the key into the ring and return the new ring."""
    _check_lengths(key, ring)
    return tuple(r | k for k, r in zip(key, ring))


def ring_complete(ring: Sequence[int]) -> bool:
    return all(v == 1 for v in ring)
