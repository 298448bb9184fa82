"""
arena.py
========
Growable, contiguous record buffers for the galaxy generator.

A ``DynamicArena`` wraps a numpy structured array of fixed-layout records and
hands out slots one at a time (``allocate``) or in bulk (``allocate_many``).
Slots are addressed by *index*: a grow reallocates the backing array, so any
view taken before the grow no longer points at live storage.

``clear()`` only resets the occupied count.  The storage is kept so the next
generation pass reuses it instead of reallocating.

Usage
-----
    from arena import DynamicArena
    arena = DynamicArena(np.dtype([("x", np.float32)]), 16)
    i = arena.allocate()
    arena[i] = (1.5,)
    arena.span()      # read-only view over the occupied slots
"""

from __future__ import annotations

import numpy as np


class DynamicArena:
    """Growable buffer of fixed-layout records.

    Parameters
    ----------
    dtype            : numpy dtype of one record (usually structured)
    initial_capacity : number of slots allocated up front (must be > 0)
    growth           : growth increment; capacities are rounded up to a
                       multiple of this value when the arena grows
    """

    def __init__(self, dtype, initial_capacity: int, growth: int = 64) -> None:
        if initial_capacity <= 0:
            raise ValueError(
                f"initial_capacity must be positive, got {initial_capacity}"
            )
        if growth <= 0:
            raise ValueError(f"growth must be positive, got {growth}")

        self._items = np.zeros(int(initial_capacity), dtype=dtype)
        self._growth = int(growth)
        self._count = 0

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def dtype(self) -> np.dtype:
        return self._items.dtype

    @property
    def capacity(self) -> int:
        return len(self._items)

    @property
    def count(self) -> int:
        return self._count

    def __len__(self) -> int:
        return self._count

    def __getitem__(self, index):
        return self._items[self._check_index(index)]

    def __setitem__(self, index, value) -> None:
        self._items[self._check_index(index)] = value

    def _check_index(self, index: int) -> int:
        index = int(index)
        if index < 0:
            index += self._count
        if not 0 <= index < self._count:
            raise IndexError(f"slot {index} is not allocated (count={self._count})")
        return index

    # ------------------------------------------------------------------
    # Allocation
    # ------------------------------------------------------------------

    def _next_capacity(self, required: int) -> int:
        capacity = self.capacity
        while capacity < required:
            grown = max(capacity + capacity // 2, capacity + self._growth)
            # round up to a multiple of the growth increment
            capacity = -(-grown // self._growth) * self._growth
        return capacity

    def allocate(self) -> int:
        """Reserve one slot and return its index.  Never fails; grows instead."""
        if self._count >= self.capacity:
            self.resize(self._next_capacity(self._count + 1))
        index = self._count
        self._count += 1
        return index

    def allocate_many(self, n: int) -> slice:
        """Reserve *n* consecutive slots and return them as a slice.

        The slice is meant for immediate vectorised writes, e.g.
        ``arena.raw[s]["temp"] = temps``.
        """
        if n < 0:
            raise ValueError(f"cannot allocate {n} slots")
        required = self._count + n
        if required > self.capacity:
            self.resize(self._next_capacity(required))
        start = self._count
        self._count = required
        return slice(start, required)

    def reserve(self, capacity: int) -> None:
        """Grow (never shrink) so that *capacity* slots fit without a realloc."""
        if capacity > self.capacity:
            self.resize(capacity)

    def resize(self, new_capacity: int) -> None:
        """Reallocate to exactly *new_capacity* slots, keeping occupied data."""
        if new_capacity <= 0:
            raise ValueError(f"capacity must be positive, got {new_capacity}")
        if new_capacity < self._count:
            raise ValueError(
                f"cannot shrink below the {self._count} occupied slots "
                f"(requested {new_capacity})"
            )
        items = np.zeros(int(new_capacity), dtype=self._items.dtype)
        items[: self._count] = self._items[: self._count]
        self._items = items

    def clear(self) -> None:
        """Forget every record; storage is kept for the next pass."""
        self._count = 0

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def raw(self) -> np.ndarray:
        """Writable view over the occupied slots.  Invalidated by any grow."""
        return self._items[: self._count]

    def span(self) -> np.ndarray:
        """Read-only view over the occupied slots ``[0, count)``."""
        view = self._items[: self._count]
        view.flags.writeable = False
        return view
