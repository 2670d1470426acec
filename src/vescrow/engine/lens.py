"""Escrow weight lens: tiered multipliers by remaining lock duration."""

from typing import List, Optional

from ..config.schema import DAY, WeightLensSettings
from .escrow import VotingEscrow


class EscrowWeightLens:
    """Read-only view scoring locks by how long they have left to run.

    A lock whose remaining duration reaches a threshold earns that
    threshold's multiplier (thresholds are checked longest first). Permanent
    locks earn the top multiplier. Locks below the shortest threshold,
    expired locks and destroyed locks score zero.
    """

    def __init__(self, escrow: VotingEscrow, settings: Optional[WeightLensSettings] = None):
        self.escrow = escrow
        self.settings = settings or escrow.config.weight_lens
        self.thresholds: List[int] = list(self.settings.duration_days_thresholds)
        self.multipliers: List[int] = list(self.settings.multipliers)
        self.precision = self.settings.multiplier_precision

    def multiplier_for(self, remaining_seconds: int) -> int:
        """Multiplier earned by a lock with ``remaining_seconds`` left."""
        remaining_days = remaining_seconds // DAY
        for threshold, multiplier in zip(self.thresholds, self.multipliers):
            if remaining_days >= threshold:
                return multiplier
        return 0

    def weight_of(self, lock_id: int, ts: Optional[int] = None) -> int:
        """Multiplied amount of a lock as it stood at ``ts`` (now by default)."""
        ts = self.escrow.now() if ts is None else ts
        record = self.escrow.lock_details_at(lock_id, ts)
        if record.amount == 0:
            return 0
        if record.is_permanent:
            multiplier = self.multipliers[0] if self.multipliers else 0
        elif record.end_time <= ts:
            return 0
        else:
            multiplier = self.multiplier_for(record.end_time - ts)
        return record.amount * multiplier // self.precision

    def weights_of(self, owner: str, ts: Optional[int] = None) -> int:
        """Total multiplied amount across every live lock of ``owner``."""
        return sum(self.weight_of(lock_id, ts) for lock_id in self.escrow.locks_of(owner))
