"""Sparse slope schedule: pending slope deltas keyed by rounded timestamp."""

from typing import Dict, Iterator, List, Tuple


class SlopeSchedule:
    """Map from clock-unit timestamp to the slope delta applied at that instant.

    Deltas are added to the aggregate slope when a catch-up walk reaches the
    key, so an expiry is stored as a negative delta. Missing keys read as zero
    and keys that net back to zero are dropped.
    """

    def __init__(self):
        self._deltas: Dict[int, int] = {}

    def get(self, ts: int) -> int:
        return self._deltas.get(ts, 0)

    def adjust(self, ts: int, delta: int) -> int:
        """Add ``delta`` to the entry at ``ts`` and return the new value."""
        if delta == 0:
            return self.get(ts)
        value = self._deltas.get(ts, 0) + delta
        if value == 0:
            self._deltas.pop(ts, None)
        else:
            self._deltas[ts] = value
        return value

    def items(self) -> List[Tuple[int, int]]:
        return sorted(self._deltas.items())

    def __len__(self) -> int:
        return len(self._deltas)

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._deltas))

    def __contains__(self, ts: int) -> bool:
        return ts in self._deltas
