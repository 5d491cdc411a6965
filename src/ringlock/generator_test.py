import random

import pytest

from ringlock.bits import apply_key, key_fits_ring, pin_count, rotate_bits
from ringlock.generator import (
    Puzzle,
    PuzzleConstructionError,
    generate_keys_for_ring,
    generate_puzzle,
    generate_puzzle_with_solution,
    generate_ring,
    max_holes,
    verify_puzzle,
)


def hole_set(ring):
    return {i for i, v in enumerate(ring) if v == 0}


class TestGenerateRing:
    """Test suite for ring generation"""

    @pytest.mark.parametrize("bits", [4, 5, 8, 12, 16, 24, 32])
    def test_length_and_hole_bounds(self, bits):
        """Rings have `bits` cells and 2..max(2, floor(bits*0.6)) holes"""
        rng = random.Random(bits)
        for _ in range(200):
            ring = generate_ring(bits, rng)
            assert len(ring) == bits
            assert set(ring) <= {0, 1}
            assert 2 <= len(hole_set(ring)) <= max(2, int(bits * 0.6))

    def test_max_holes(self):
        assert max_holes(2) == 2
        assert max_holes(3) == 2
        assert max_holes(8) == 4
        assert max_holes(24) == 14

    def test_hole_counts_cover_range(self):
        """Every allowed hole count eventually shows up"""
        rng = random.Random(7)
        counts = {len(hole_set(generate_ring(10, rng))) for _ in range(500)}
        assert counts == set(range(2, 7))

    def test_seeded_generation_is_deterministic(self):
        assert generate_ring(16, random.Random(42)) == generate_ring(16, random.Random(42))

    def test_positions_shuffled_by_injected_rng(self):
        class CountingRandom(random.Random):
            shuffles = 0

            def shuffle(self, x):
                self.shuffles += 1
                super().shuffle(x)

        rng = CountingRandom(1)
        generate_ring(8, rng)
        assert rng.shuffles == 1
        generate_puzzle(8, 2, 2, rng)
        assert rng.shuffles == 1 + 2 * 2 + 1

    def test_too_few_bits(self):
        with pytest.raises(ValueError):
            generate_ring(1, random.Random(0))


class TestGenerateKeysForRing:
    """Test suite for splitting a ring's holes into keys"""

    @pytest.mark.parametrize("key_count", [1, 2, 3, 5])
    def test_keys_partition_holes(self, key_count):
        """Correctly rotated keys cover every hole exactly once"""
        rng = random.Random(key_count)
        for _ in range(100):
            ring = generate_ring(16, rng)
            keys = generate_keys_for_ring(ring, key_count, rng)
            assert 1 <= len(keys) <= key_count

            covered = set()
            for generated in keys:
                assert len(generated.key) == 16
                assert pin_count(generated.key) > 0
                assert 0 <= generated.offset < 16
                aligned = rotate_bits(generated.key, generated.offset)
                pins = {i for i, v in enumerate(aligned) if v == 1}
                assert not pins & covered
                covered |= pins
            assert covered == hole_set(ring)

    def test_chunk_sizes(self):
        """Chunks are near-equal and the last one takes the remainder"""
        ring = (0, 0, 0, 0, 0, 1, 1, 1, 1, 1)
        keys = generate_keys_for_ring(ring, 2, random.Random(3))
        assert sorted(pin_count(k.key) for k in keys) == [2, 3]
        assert pin_count(keys[-1].key) == 3

    def test_fewer_holes_than_keys(self):
        """Empty chunks are dropped"""
        ring = (1, 0, 1, 1, 0, 1, 1, 1)
        keys = generate_keys_for_ring(ring, 3, random.Random(0))
        assert len(keys) == 2
        assert all(pin_count(k.key) == 1 for k in keys)

    def test_invalid_key_count(self):
        with pytest.raises(ValueError):
            generate_keys_for_ring((0, 0, 1, 1), 0)


class TestScenario:
    """Hand-built 8-bit scenario with a hidden offset of 3"""

    def test_symmetric_pattern(self):
        """Holes at 2 and 6 are half-turn symmetric, so two rotations fit"""
        ring = (1, 1, 0, 1, 1, 1, 0, 1)
        pattern = (0, 0, 1, 0, 0, 0, 1, 0)
        stored = rotate_bits(pattern, -3)

        assert rotate_bits(stored, 3) == pattern
        fitting = [r for r in range(8) if key_fits_ring(rotate_bits(stored, r), ring)]
        assert 3 in fitting
        assert fitting == [3, 7]

    def test_asymmetric_pattern(self):
        """A pattern without rotational symmetry fits at exactly one rotation"""
        ring = (1, 1, 0, 1, 1, 0, 1, 1)
        pattern = (0, 0, 1, 0, 0, 1, 0, 0)
        stored = rotate_bits(pattern, -3)

        fitting = [r for r in range(8) if key_fits_ring(rotate_bits(stored, r), ring)]
        assert fitting == [3]

    def test_single_key_ring_fits_at_offset(self):
        """A generated single-key ring always fits at its hidden offset"""
        rng = random.Random(11)
        for _ in range(50):
            ring = generate_ring(8, rng)
            (generated,) = generate_keys_for_ring(ring, 1, rng)
            assert key_fits_ring(rotate_bits(generated.key, generated.offset), ring)
            assert apply_key(rotate_bits(generated.key, generated.offset), ring) == (1,) * 8


class TestGeneratePuzzle:
    """Test suite for whole puzzles"""

    @pytest.mark.parametrize("bits, rings, keys_per_ring", [(8, 2, 2), (12, 2, 3), (16, 3, 2), (24, 4, 2)])
    def test_puzzle_is_solvable(self, bits, rings, keys_per_ring):
        """Every ring is completed by its keys at their hidden rotations"""
        rng = random.Random(bits * rings)
        for _ in range(25):
            puzzle, solution = generate_puzzle_with_solution(bits, rings, keys_per_ring, rng)
            assert puzzle.bits == bits
            assert len(puzzle.rings) == rings
            assert len(puzzle.keys) == len(solution)
            assert len(puzzle.keys) <= rings * keys_per_ring

            filled = list(puzzle.rings)
            for key_index, key in enumerate(puzzle.keys):
                ring_index, offset = solution[key_index]
                aligned = rotate_bits(key, offset)
                assert key_fits_ring(aligned, filled[ring_index])
                filled[ring_index] = apply_key(aligned, filled[ring_index])
            assert all(ring == (1,) * bits for ring in filled)

    def test_keys_are_shuffled_across_rings(self):
        """Key order does not group keys by ring"""
        rng = random.Random(5)
        orders = set()
        for _ in range(30):
            _, solution = generate_puzzle_with_solution(8, 3, 2, rng)
            orders.add(tuple(solution[i][0] for i in sorted(solution)))
        assert len(orders) > 1

    def test_generate_puzzle_returns_puzzle(self):
        puzzle = generate_puzzle(12, 2, 3, random.Random(1))
        assert isinstance(puzzle, Puzzle)
        assert all(pin_count(key) > 0 for key in puzzle.keys)

    def test_invalid_ring_count(self):
        with pytest.raises(ValueError):
            generate_puzzle(8, 0, 2)


class TestVerifyPuzzle:
    """Test suite for construction invariant checks"""

    def test_rejects_zero_key(self):
        puzzle = Puzzle(bits=4, rings=((0, 1, 1, 1),), keys=((0, 0, 0, 0),))
        with pytest.raises(PuzzleConstructionError, match="all-zero"):
            verify_puzzle(puzzle, {0: (0, 0)})

    def test_rejects_wrong_ring_length(self):
        puzzle = Puzzle(bits=4, rings=((0, 1, 1),), keys=((1, 0, 0, 0),))
        with pytest.raises(PuzzleConstructionError, match="cells"):
            verify_puzzle(puzzle, {0: (0, 0)})

    def test_rejects_unsolvable(self):
        puzzle = Puzzle(bits=4, rings=((0, 0, 1, 1),), keys=((1, 0, 0, 0),))
        with pytest.raises(PuzzleConstructionError, match="not solvable"):
            verify_puzzle(puzzle, {0: (0, 0)})

    def test_rejects_overlap(self):
        puzzle = Puzzle(bits=4, rings=((0, 1, 1, 1),), keys=((0, 1, 0, 0),))
        with pytest.raises(PuzzleConstructionError, match="overlaps"):
            verify_puzzle(puzzle, {0: (0, 0)})

    def test_accepts_valid(self):
        puzzle = Puzzle(bits=4, rings=((0, 1, 0, 1),), keys=((0, 1, 0, 1),))
        verify_puzzle(puzzle, {0: (0, 1)})
