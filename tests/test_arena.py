"""Tests for the growable record arena.

Run with:
    pytest tests/test_arena.py -v
"""

from __future__ import annotations

import numpy as np
import pytest

from arena import DynamicArena

RECORD = np.dtype([("id", np.int64), ("value", np.float32)])


def test_rejects_non_positive_capacity() -> None:
    with pytest.raises(ValueError):
        DynamicArena(RECORD, 0)
    with pytest.raises(ValueError):
        DynamicArena(RECORD, -4)
    with pytest.raises(ValueError):
        DynamicArena(RECORD, 4, growth=0)


def test_count_and_span_track_allocations() -> None:
    arena = DynamicArena(RECORD, 8)
    for i in range(5):
        idx = arena.allocate()
        arena[idx] = (i, i * 0.5)

    assert arena.count == 5
    assert len(arena) == 5
    span = arena.span()
    assert len(span) == 5
    np.testing.assert_array_equal(span["id"], np.arange(5))


def test_growth_preserves_written_slots() -> None:
    arena = DynamicArena(RECORD, 4, growth=4)
    for i in range(4):
        arena[arena.allocate()] = (i, float(i))
    assert arena.capacity == 4

    idx = arena.allocate()   # triggers a grow
    arena[idx] = (99, 99.0)

    assert arena.capacity > 4
    assert arena.capacity % 4 == 0
    np.testing.assert_array_equal(arena.span()["id"], [0, 1, 2, 3, 99])
    np.testing.assert_allclose(arena.span()["value"], [0.0, 1.0, 2.0, 3.0, 99.0])


def test_growth_policy_rounds_to_increment() -> None:
    arena = DynamicArena(RECORD, 10, growth=64)
    for _ in range(11):
        arena.allocate()
    # max(10 + 5, 10 + 64) = 74, rounded up to a multiple of 64
    assert arena.capacity == 128


def test_new_slots_are_zero_initialised() -> None:
    arena = DynamicArena(RECORD, 2, growth=2)
    for _ in range(3):
        arena.allocate()
    assert arena[2]["id"] == 0
    assert arena[2]["value"] == 0.0


def test_many_allocations_keep_every_value() -> None:
    arena = DynamicArena(RECORD, 1, growth=3)
    for i in range(1000):
        arena[arena.allocate()] = (i, i)
    assert arena.count == 1000
    np.testing.assert_array_equal(arena.span()["id"], np.arange(1000))


def test_clear_keeps_storage() -> None:
    arena = DynamicArena(RECORD, 4, growth=4)
    for _ in range(10):
        arena.allocate()
    capacity = arena.capacity

    arena.clear()

    assert arena.count == 0
    assert len(arena.span()) == 0
    assert arena.capacity == capacity


def test_span_is_read_only() -> None:
    arena = DynamicArena(RECORD, 4)
    arena.allocate()
    with pytest.raises(ValueError):
        arena.span()["id"][0] = 5


def test_allocate_many_returns_contiguous_slice() -> None:
    arena = DynamicArena(RECORD, 4, growth=4)
    arena.allocate()
    s = arena.allocate_many(10)
    assert (s.start, s.stop) == (1, 11)
    arena.raw[s]["id"] = np.arange(10) + 1
    np.testing.assert_array_equal(arena.span()["id"], np.arange(11))


def test_resize_refuses_to_drop_records() -> None:
    arena = DynamicArena(RECORD, 8)
    for _ in range(5):
        arena.allocate()
    with pytest.raises(ValueError):
        arena.resize(4)
    arena.resize(32)
    assert arena.capacity == 32
    assert arena.count == 5


def test_reserve_never_shrinks() -> None:
    arena = DynamicArena(RECORD, 16)
    arena.reserve(8)
    assert arena.capacity == 16
    arena.reserve(100)
    assert arena.capacity == 100


def test_unallocated_slot_is_not_addressable() -> None:
    arena = DynamicArena(RECORD, 4)
    arena.allocate()
    with pytest.raises(IndexError):
        arena[1]
