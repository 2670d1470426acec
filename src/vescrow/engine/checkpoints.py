"""Checkpoint traces: append-only, time-ordered logs with historical lookup.

A trace holds ``(key, value)`` checkpoints with strictly increasing keys. Two
pushes at the same key collapse into one entry, so several updates inside the
same timestamp leave a single checkpoint holding the last value.

Values are either ``Point`` objects (weight traces) or delegatee identifiers
(delegation history). Each trace is built with the blank value it returns
when nothing has been recorded yet.
"""

import math
from dataclasses import dataclass
from typing import Any, Generic, Iterator, List, Optional, TypeVar

from .errors import UnorderedCheckpoint

V = TypeVar("V")


@dataclass(frozen=True)
class Point:
    """Linearly decaying weight.

    At elapsed time ``dt`` after the point's timestamp the weight is
    ``max(0, bias - slope * dt) + permanent``. ``permanent`` never decays.
    """
    bias: int = 0
    slope: int = 0
    permanent: int = 0

    def balance_at(self, elapsed: int) -> int:
        """Effective weight ``elapsed`` seconds after this point was recorded."""
        slope = max(self.slope, 0)
        decayed = self.bias - slope * max(elapsed, 0)
        return max(decayed, 0) + self.permanent

    def decayed(self, elapsed: int) -> 'Point':
        """This point moved forward by ``elapsed`` seconds (bias floored at zero)."""
        slope = max(self.slope, 0)
        return Point(
            bias=max(self.bias - slope * max(elapsed, 0), 0),
            slope=self.slope,
            permanent=self.permanent,
        )

    @property
    def is_blank(self) -> bool:
        return self.bias == 0 and self.slope == 0 and self.permanent == 0

    def __add__(self, other: 'Point') -> 'Point':
        return Point(self.bias + other.bias, self.slope + other.slope, self.permanent + other.permanent)

    def __sub__(self, other: 'Point') -> 'Point':
        return Point(self.bias - other.bias, self.slope - other.slope, self.permanent - other.permanent)


BLANK_POINT = Point()


@dataclass(frozen=True)
class Checkpoint(Generic[V]):
    """A value recorded at a timestamp."""
    key: int
    value: V


class Trace(Generic[V]):
    """Append-only, key-ordered sequence of checkpoints."""

    def __init__(self, blank: Any = BLANK_POINT):
        """
        Initialize an empty trace.

        Args:
            blank: Value returned by lookups that find no checkpoint
        """
        self.blank = blank
        self._checkpoints: List[Checkpoint[V]] = []

    def push(self, key: int, value: V) -> V:
        """
        Record ``value`` at ``key``.

        Overwrites the latest checkpoint when it carries the same key,
        appends otherwise.

        Returns:
            The value previously in force (blank for an empty trace)

        Raises:
            UnorderedCheckpoint: If ``key`` is older than the latest checkpoint
        """
        if self._checkpoints:
            last = self._checkpoints[-1]
            if key < last.key:
                raise UnorderedCheckpoint(
                    f"checkpoint key {key} is older than latest key {last.key}"
                )
            if key == last.key:
                self._checkpoints[-1] = Checkpoint(key, value)
            else:
                self._checkpoints.append(Checkpoint(key, value))
            return last.value

        self._checkpoints.append(Checkpoint(key, value))
        return self.blank

    def latest(self) -> V:
        """Most recent value, or the blank value when empty."""
        if not self._checkpoints:
            return self.blank
        return self._checkpoints[-1].value

    def latest_checkpoint(self) -> Optional[Checkpoint[V]]:
        return self._checkpoints[-1] if self._checkpoints else None

    def first_checkpoint(self) -> Optional[Checkpoint[V]]:
        return self._checkpoints[0] if self._checkpoints else None

    def at(self, pos: int) -> Checkpoint[V]:
        return self._checkpoints[pos]

    @property
    def length(self) -> int:
        return len(self._checkpoints)

    def __len__(self) -> int:
        return len(self._checkpoints)

    def __iter__(self) -> Iterator[Checkpoint[V]]:
        return iter(list(self._checkpoints))

    def upper_lookup_checkpoint(self, key: int) -> Optional[Checkpoint[V]]:
        """
        Last checkpoint with a key at or before ``key``.

        Queries usually land near the tail, so the last ~sqrt(n) entries are
        probed first and the binary search is narrowed to whichever side of
        the probe holds the answer.
        """
        n = len(self._checkpoints)
        low, high = 0, n

        if n > 5:
            mid = n - int(math.isqrt(n))
            if key < self._checkpoints[mid].key:
                high = mid
            else:
                low = mid + 1

        pos = self._upper_binary_lookup(key, low, high)
        if pos == 0:
            return None
        return self._checkpoints[pos - 1]

    def upper_lookup_recent(self, key: int) -> V:
        """Value in force at ``key``, or the blank value before the first checkpoint."""
        checkpoint = self.upper_lookup_checkpoint(key)
        return self.blank if checkpoint is None else checkpoint.value

    def _upper_binary_lookup(self, key: int, low: int, high: int) -> int:
        # Index of the first checkpoint with a key strictly greater than `key`.
        while low < high:
            mid = (low + high) // 2
            if self._checkpoints[mid].key > key:
                high = mid
            else:
                low = mid + 1
        return high
