"""Invariant checks that recompute ledger aggregates from first principles."""

from dataclasses import dataclass
from typing import Iterable, List, Optional

import numpy as np

from ..engine.escrow import VotingEscrow
from ..engine.points import escrow_point


@dataclass
class ValidationWarning:
    """A validation warning with severity and message."""
    severity: str  # "warning" or "error"
    category: str  # e.g., "conservation", "delegation", "record"
    message: str
    details: Optional[str] = None


class InvariantChecker:
    """Cross-check the aggregate traces against per-lock balances."""

    def __init__(self, escrow: VotingEscrow, tolerance_per_lock: int = 1):
        """
        Initialize with the ledger under test.

        Args:
            escrow: Ledger to check
            tolerance_per_lock: Allowed rounding drift per lock, in base units
        """
        self.escrow = escrow
        self.tolerance_per_lock = tolerance_per_lock

    def lock_balances(self, ts: int) -> np.ndarray:
        """Balance of every lock ever created at ``ts``."""
        return np.array(
            [self.escrow.balance_of_lock_at(lock_id, ts) for lock_id in self.escrow.lock_ids()],
            dtype=object,
        )

    def delegatee_votes(self, ts: int) -> np.ndarray:
        return np.array(
            [self.escrow.get_past_votes(d, ts) for d in self.escrow.delegatees()],
            dtype=object,
        )

    def check_global_conservation(self, ts: int) -> List[ValidationWarning]:
        """
        Sum of lock balances must equal the total supply at ``ts``.

        Returns:
            List of validation warnings
        """
        warnings = []
        balances = self.lock_balances(ts)
        lock_sum = int(balances.sum()) if balances.size else 0
        supply = self.escrow.get_past_total_supply(ts)
        tolerance = self.tolerance_per_lock * max(len(balances), 1)
        if abs(lock_sum - supply) > tolerance:
            warnings.append(ValidationWarning(
                severity="error",
                category="conservation",
                message=f"Lock balances do not add up to total supply at t={ts}",
                details=f"Sum of locks: {lock_sum}, supply: {supply}, diff: {lock_sum - supply:+d}"
            ))
        return warnings

    def check_delegation_conservation(self, ts: int) -> List[ValidationWarning]:
        """Sum of delegatee votes must equal the total supply at ``ts``."""
        warnings = []
        votes = self.delegatee_votes(ts)
        vote_sum = int(votes.sum()) if votes.size else 0
        supply = self.escrow.get_past_total_supply(ts)
        tolerance = self.tolerance_per_lock * max(len(self.escrow.lock_ids()), 1)
        if abs(vote_sum - supply) > tolerance:
            warnings.append(ValidationWarning(
                severity="error",
                category="delegation",
                message=f"Delegated votes do not add up to total supply at t={ts}",
                details=f"Sum of votes: {vote_sum}, supply: {supply}, diff: {vote_sum - supply:+d}"
            ))
        return warnings

    def check_records(self, ts: Optional[int] = None) -> List[ValidationWarning]:
        """Each lock's own trace must match the record in force at ``ts``, recomputed."""
        ts = self.escrow.now() if ts is None else ts
        warnings = []
        for lock_id in self.escrow.lock_ids():
            record = self.escrow.lock_details_at(lock_id, ts)
            point = escrow_point(
                record.amount, record.end_time, record.is_permanent, ts, self.escrow.max_time
            )
            expected = point.bias + point.permanent
            actual = self.escrow.balance_of_lock_at(lock_id, ts)
            if abs(expected - actual) > self.tolerance_per_lock:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="record",
                    message=f"Lock {lock_id} trace disagrees with its record at t={ts}",
                    details=f"Record gives {expected}, trace gives {actual}"
                ))
            if record.amount < 0:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="bounds",
                    message=f"Lock {lock_id} has a negative amount",
                    details=f"Amount: {record.amount}"
                ))
        return warnings

    def check_all(self, timestamps: Iterable[int]) -> List[ValidationWarning]:
        warnings = []
        for ts in timestamps:
            ts = int(ts)
            warnings.extend(self.check_global_conservation(ts))
            warnings.extend(self.check_delegation_conservation(ts))
            warnings.extend(self.check_records(ts))
        return warnings


def validate_escrow(escrow: VotingEscrow, timestamps: Iterable[int]) -> List[ValidationWarning]:
    """
    Validate a ledger at a set of sample times.

    Args:
        escrow: Ledger to check
        timestamps: Sample times for the conservation checks

    Returns:
        List of all validation warnings
    """
    return InvariantChecker(escrow).check_all(timestamps)
