"""Vote-escrow ledger: lock lifecycle, delegation and historical weight queries.

Key Concepts:
- A lock's weight decays linearly to zero at its rounded expiry, or stays
  flat while the lock is permanent
- Every mutation computes the lock's old and new point at "now" and runs a
  single checkpoint that updates the global trace, the delegatee's trace,
  the lock's own trace and both slope schedules together
- Aggregate traces are caught up lazily; historical queries replay the walk
  in memory and never write
- Conservation: total supply equals the sum of every lock's balance and the
  sum of every delegatee's votes at any instant
"""

import logging
import time
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional, Sequence

from ..config.schema import EscrowConfig
from .checkpoints import BLANK_POINT, Point, Trace
from .collaborators import Authorizer, LockRegistry, OwnerAuthorizer, SignatureVerifier, TokenCustody
from .errors import (
    InsufficientBalance,
    InvalidDelegatee,
    InvalidNonce,
    InvalidSignature,
    InvalidWeights,
    LockDurationNotInFuture,
    LockDurationTooLong,
    LockExpired,
    LockNotExpired,
    LockNotFound,
    NotPermanentLock,
    PermanentLock,
    PermanentLockMismatch,
    SameNFT,
    SignatureExpired,
    ZeroAmount,
)
from .points import escrow_point
from .schedule import SlopeSchedule
from .walker import catch_up, round_to_clock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LockRecord:
    """State of a single lock.

    ``end_time`` is rounded down to the clock unit, and is 0 while the lock
    is permanent. A destroyed lock (claimed, merged away or split away) is
    left as an all-zero record.
    """
    amount: int = 0
    start_time: int = 0
    end_time: int = 0
    is_permanent: bool = False

    def is_expired(self, now: int) -> bool:
        return not self.is_permanent and self.end_time <= now


EMPTY_LOCK = LockRecord()


def _system_clock() -> int:
    return int(time.time())


class VotingEscrow:
    """Time-decaying balance ledger with delegation."""

    def __init__(
        self,
        config: Optional[EscrowConfig] = None,
        clock: Optional[Callable[[], int]] = None,
        registry: Optional[LockRegistry] = None,
        custody: Optional[TokenCustody] = None,
        authorizer: Optional[Authorizer] = None,
        verifier: Optional[SignatureVerifier] = None,
    ):
        """
        Initialize an empty ledger.

        Args:
            config: Escrow configuration (defaults are used when omitted)
            clock: Callable returning the current integer timestamp
            registry: Lock ownership collaborator
            custody: Token custody collaborator
            authorizer: Caller authorization collaborator (owner-only by default)
            verifier: Signature recovery collaborator for delegate_by_sig
        """
        self.config = config or EscrowConfig()
        self.clock = clock or _system_clock
        self.registry = registry or LockRegistry()
        self.custody = custody or TokenCustody()
        self.authorizer = authorizer or OwnerAuthorizer(self.registry)
        self.verifier = verifier

        self.max_time = self.config.clock.max_time
        self.clock_unit = self.config.clock.clock_unit
        self.max_walk_steps = self.config.clock.max_walk_steps

        self._locks: Dict[int, LockRecord] = {}
        self._lock_traces: Dict[int, Trace[Point]] = {}
        self._record_traces: Dict[int, Trace[Optional[LockRecord]]] = {}
        self._delegate_traces: Dict[int, Trace[Optional[str]]] = {}
        self._delegatee_traces: Dict[str, Trace[Point]] = {}
        self._delegatee_schedules: Dict[str, SlopeSchedule] = {}
        self._global_trace: Trace[Point] = Trace()
        self._global_schedule = SlopeSchedule()
        self._nonces: Dict[str, int] = {}

    def now(self) -> int:
        return int(self.clock())

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create_lock(
        self,
        amount: int,
        duration: int,
        owner: str,
        delegatee: Optional[str] = None,
        permanent: bool = False,
        payer: Optional[str] = None,
    ) -> int:
        """
        Lock ``amount`` for ``duration`` seconds (or permanently) on behalf of ``owner``.

        Args:
            amount: Quantity to lock, in base units
            duration: Requested lock length; the expiry is rounded down to the clock unit
            owner: Recipient of the new lock record
            delegatee: Party receiving the lock's weight (defaults to ``owner``)
            permanent: Create a non-decaying lock; ``duration`` is ignored
            payer: Account the tokens are pulled from (defaults to ``owner``)

        Returns:
            New lock id
        """
        now = self.now()
        if amount <= 0:
            raise ZeroAmount("lock amount must be positive")
        if permanent:
            end_time = 0
        else:
            end_time = self._validated_unlock_time(now, duration, floor=now)
        delegatee = owner if delegatee is None else delegatee
        if not delegatee:
            raise InvalidDelegatee("delegatee must be a non-empty identifier")
        payer = owner if payer is None else payer
        self.custody.check_transfer_in(payer, amount)

        self.custody.transfer_in(payer, amount)
        lock_id = self.registry.mint(owner)
        record = LockRecord(amount=amount, start_time=now, end_time=end_time, is_permanent=permanent)
        self._lock_traces[lock_id] = Trace()
        self._record_traces[lock_id] = Trace(blank=None)
        self._delegate_traces[lock_id] = Trace(blank=None)
        self._store(lock_id, EMPTY_LOCK, record, now)
        self._delegate(lock_id, delegatee, now)

        logger.info(
            "created lock %s for %s: amount=%s end=%s permanent=%s delegatee=%s",
            lock_id, owner, amount, end_time, permanent, delegatee,
        )
        return lock_id

    def increase_amount(
        self, lock_id: int, amount: int, caller: Optional[str] = None, payer: Optional[str] = None
    ) -> LockRecord:
        """Top up a lock without moving its expiry."""
        now = self.now()
        record = self._require_lock(lock_id, caller)
        if amount <= 0:
            raise ZeroAmount("top-up amount must be positive")
        if record.is_expired(now):
            raise LockExpired(f"lock {lock_id} expired at {record.end_time}")
        payer = self.registry.owner_of(lock_id) if payer is None else payer
        self.custody.check_transfer_in(payer, amount)

        self.custody.transfer_in(payer, amount)
        updated = replace(record, amount=record.amount + amount)
        self._store(lock_id, record, updated, now)
        logger.info("increased lock %s by %s to %s", lock_id, amount, updated.amount)
        return updated

    def increase_unlock_time(
        self, lock_id: int, duration: int, permanent: bool = False, caller: Optional[str] = None
    ) -> LockRecord:
        """
        Push a lock's expiry forward, or convert it to a permanent lock.

        Args:
            lock_id: Lock to extend
            duration: New lock length counted from now
            permanent: Convert the lock to permanent instead of extending it
            caller: Optional caller to authorize

        Returns:
            Updated lock record
        """
        now = self.now()
        record = self._require_lock(lock_id, caller)
        if record.is_permanent:
            raise PermanentLock(f"lock {lock_id} is permanent")
        if record.is_expired(now):
            raise LockExpired(f"lock {lock_id} expired at {record.end_time}")

        if permanent:
            updated = replace(record, end_time=0, is_permanent=True)
            self._store(lock_id, record, updated, now)
            logger.info("lock %s converted to permanent", lock_id)
            return updated

        end_time = self._validated_unlock_time(now, duration, floor=record.end_time)
        updated = replace(record, end_time=end_time)
        self._store(lock_id, record, updated, now)
        logger.info("extended lock %s from %s to %s", lock_id, record.end_time, end_time)
        return updated

    def lock_permanent(self, lock_id: int, caller: Optional[str] = None) -> LockRecord:
        """Convert an active temporary lock to a permanent one."""
        return self.increase_unlock_time(lock_id, 0, permanent=True, caller=caller)

    def unlock_permanent(self, lock_id: int, caller: Optional[str] = None) -> LockRecord:
        """Turn a permanent lock back into a temporary one expiring a full horizon from now."""
        now = self.now()
        record = self._require_lock(lock_id, caller)
        if not record.is_permanent:
            raise NotPermanentLock(f"lock {lock_id} is not permanent")

        end_time = round_to_clock(now + self.max_time, self.clock_unit)
        updated = replace(record, end_time=end_time, is_permanent=False)
        self._store(lock_id, record, updated, now)
        logger.info("lock %s unlocked from permanent, now expires at %s", lock_id, end_time)
        return updated

    def merge(self, from_id: int, to_id: int, caller: Optional[str] = None) -> LockRecord:
        """
        Fold lock ``from_id`` into ``to_id``.

        The destination ends at the later of the two expiries and the source
        is destroyed. When permanence differs, the configured policy either
        rejects the merge or adopts the destination's permanence.

        Returns:
            Updated destination record
        """
        now = self.now()
        if from_id == to_id:
            raise SameNFT(f"cannot merge lock {from_id} into itself")
        source = self._require_lock(from_id, caller)
        dest = self._require_lock(to_id, caller)
        if source.is_expired(now):
            raise LockExpired(f"lock {from_id} expired at {source.end_time}")
        if dest.is_expired(now):
            raise LockExpired(f"lock {to_id} expired at {dest.end_time}")
        if source.is_permanent != dest.is_permanent:
            if self.config.merge.permanence_policy == "strict":
                raise PermanentLockMismatch(
                    f"lock {from_id} permanent={source.is_permanent}, "
                    f"lock {to_id} permanent={dest.is_permanent}"
                )

        if dest.is_permanent:
            end_time = 0
        else:
            end_time = max(source.end_time, dest.end_time)
        merged = replace(dest, amount=source.amount + dest.amount, end_time=end_time)

        self._destroy(from_id, source, now)
        self._store(to_id, dest, merged, now)
        logger.info("merged lock %s into %s: amount=%s end=%s", from_id, to_id, merged.amount, end_time)
        return merged

    def split(self, lock_id: int, weights: Sequence[int], caller: Optional[str] = None) -> List[int]:
        """
        Divide a lock into ``len(weights)`` siblings sharing its remaining duration.

        The original lock keeps the first share; the last share absorbs the
        rounding remainder so the shares sum to the original amount.

        Returns:
            Lock ids, the original first
        """
        now = self.now()
        record = self._require_lock(lock_id, caller)
        weights = list(weights)
        if len(weights) < 2:
            raise InvalidWeights("split needs at least two weights", details=weights)
        if any(w < 0 for w in weights):
            raise InvalidWeights("split weights must be non-negative", details=weights)
        total = sum(weights)
        if total == 0:
            raise InvalidWeights("split weights sum to zero", details=weights)
        if record.is_expired(now):
            raise LockExpired(f"lock {lock_id} expired at {record.end_time}")

        shares = [record.amount * w // total for w in weights[:-1]]
        shares.append(record.amount - sum(shares))
        if any(share == 0 for share in shares):
            raise ZeroAmount("split would create an empty lock", details=shares)

        owner = self.registry.owner_of(lock_id)
        delegatee = self._delegate_traces[lock_id].latest() or owner

        self._store(lock_id, record, replace(record, amount=shares[0]), now)
        lock_ids = [lock_id]
        for share in shares[1:]:
            sibling_id = self.registry.mint(owner)
            sibling = LockRecord(
                amount=share,
                start_time=now,
                end_time=record.end_time,
                is_permanent=record.is_permanent,
            )
            self._lock_traces[sibling_id] = Trace()
            self._record_traces[sibling_id] = Trace(blank=None)
            self._delegate_traces[sibling_id] = Trace(blank=None)
            self._store(sibling_id, EMPTY_LOCK, sibling, now)
            self._delegate(sibling_id, delegatee, now)
            lock_ids.append(sibling_id)

        logger.info("split lock %s into %s with shares %s", lock_id, lock_ids, shares)
        return lock_ids

    def claim(self, lock_id: int, caller: Optional[str] = None) -> int:
        """
        Withdraw an expired lock.

        Returns:
            Amount released to the lock owner
        """
        now = self.now()
        record = self._require_lock(lock_id, caller)
        if record.is_permanent:
            raise PermanentLock(f"lock {lock_id} is permanent")
        if now < record.end_time:
            raise LockNotExpired(f"lock {lock_id} expires at {record.end_time}")
        if self.custody.escrowed < record.amount:
            raise InsufficientBalance(f"escrow holds {self.custody.escrowed}, needs {record.amount}")

        owner = self.registry.owner_of(lock_id)
        self._destroy(lock_id, record, now)
        self.custody.transfer_out(owner, record.amount)
        logger.info("claimed lock %s: released %s to %s", lock_id, record.amount, owner)
        return record.amount

    # ------------------------------------------------------------------
    # Delegation
    # ------------------------------------------------------------------

    def delegate(self, lock_id: int, delegatee: str, caller: Optional[str] = None) -> None:
        """Redirect a lock's weight to ``delegatee``."""
        now = self.now()
        self._require_lock(lock_id, caller)
        if not delegatee:
            raise InvalidDelegatee("delegatee must be a non-empty identifier")
        self._delegate(lock_id, delegatee, now)

    def delegate_all(self, owner: str, delegatee: str, caller: Optional[str] = None) -> List[int]:
        """Redirect the weight of every live lock owned by ``owner``.

        When ``caller`` is given it must be authorized for every lock before
        any of them moves.
        """
        now = self.now()
        if not delegatee:
            raise InvalidDelegatee("delegatee must be a non-empty identifier")
        lock_ids = self.registry.tokens_of(owner)
        if caller is not None:
            for lock_id in lock_ids:
                self.authorizer.check(caller, lock_id)
        for lock_id in lock_ids:
            self._delegate(lock_id, delegatee, now)
        return lock_ids

    def delegate_by_sig(
        self, lock_id: int, delegatee: str, nonce: int, expiry: int, signature: bytes
    ) -> None:
        """Delegate on the strength of a signed message from the lock owner."""
        now = self.now()
        if self.verifier is None:
            raise InvalidSignature("no signature verifier configured")
        if not delegatee:
            raise InvalidDelegatee("delegatee must be a non-empty identifier")
        if now > expiry:
            raise SignatureExpired(f"signature expired at {expiry}")
        self._require_lock(lock_id)
        signer = self.verifier.recover(lock_id, delegatee, nonce, expiry, signature)
        if not signer:
            raise InvalidSignature("signature could not be recovered")
        if nonce != self._nonces.get(signer, 0):
            raise InvalidNonce(f"expected nonce {self._nonces.get(signer, 0)}, got {nonce}")
        self.authorizer.check(signer, lock_id)

        self._nonces[signer] = nonce + 1
        self._delegate(lock_id, delegatee, now)

    def nonces(self, signer: str) -> int:
        return self._nonces.get(signer, 0)

    def delegates(self, lock_id: int, ts: Optional[int] = None) -> Optional[str]:
        """Delegatee of ``lock_id`` at ``ts`` (now by default)."""
        trace = self._delegate_traces.get(lock_id)
        if trace is None:
            raise LockNotFound(f"lock {lock_id} does not exist")
        return trace.upper_lookup_recent(self.now() if ts is None else ts)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def balance_of_lock_at(self, lock_id: int, ts: int) -> int:
        """Weight of a single lock at ``ts``."""
        trace = self._lock_traces.get(lock_id)
        if trace is None:
            raise LockNotFound(f"lock {lock_id} does not exist")
        checkpoint = trace.upper_lookup_checkpoint(ts)
        if checkpoint is None:
            return 0
        return checkpoint.value.balance_at(ts - checkpoint.key)

    def balance_of_lock(self, lock_id: int) -> int:
        return self.balance_of_lock_at(lock_id, self.now())

    def get_past_votes(self, delegatee: str, ts: int) -> int:
        """Aggregate weight delegated to ``delegatee`` at ``ts``."""
        trace = self._delegatee_traces.get(delegatee)
        if trace is None:
            return 0
        point = self._replay(trace, self._delegatee_schedules[delegatee], ts)
        return point.bias + point.permanent

    def get_votes(self, delegatee: str) -> int:
        return self.get_past_votes(delegatee, self.now())

    def get_past_total_supply(self, ts: int) -> int:
        """Global aggregate weight at ``ts``."""
        point = self._replay(self._global_trace, self._global_schedule, ts)
        return point.bias + point.permanent

    def total_supply(self) -> int:
        return self.get_past_total_supply(self.now())

    def global_checkpoint(self) -> None:
        """Catch the global trace up to now without touching any lock."""
        self._checkpoint(0, EMPTY_LOCK, EMPTY_LOCK, self.now())

    def lock_details(self, lock_id: int) -> LockRecord:
        try:
            return self._locks[lock_id]
        except KeyError:
            raise LockNotFound(f"lock {lock_id} does not exist") from None

    def lock_details_at(self, lock_id: int, ts: int) -> LockRecord:
        """Record of ``lock_id`` as it stood at ``ts``; empty before creation."""
        history = self._record_traces.get(lock_id)
        if history is None:
            raise LockNotFound(f"lock {lock_id} does not exist")
        record = history.upper_lookup_recent(ts)
        return EMPTY_LOCK if record is None else record

    def locks_of(self, owner: str) -> List[int]:
        return self.registry.tokens_of(owner)

    def lock_ids(self) -> List[int]:
        """Every lock id ever created, destroyed ones included."""
        return sorted(self._locks)

    def live_lock_ids(self) -> List[int]:
        return [lock_id for lock_id in sorted(self._locks) if self.registry.exists(lock_id)]

    def delegatees(self) -> List[str]:
        """Every party that has ever held delegated weight."""
        return sorted(self._delegatee_traces)

    def lock_trace(self, lock_id: int) -> Trace[Point]:
        return self._lock_traces[lock_id]

    def global_trace(self) -> Trace[Point]:
        return self._global_trace

    def delegatee_trace(self, delegatee: str) -> Trace[Point]:
        return self._delegatee_traces[delegatee]

    def slope_change_at(self, ts: int) -> int:
        return self._global_schedule.get(ts)

    def delegatee_slope_change_at(self, delegatee: str, ts: int) -> int:
        schedule = self._delegatee_schedules.get(delegatee)
        return 0 if schedule is None else schedule.get(ts)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_lock(self, lock_id: int, caller: Optional[str] = None) -> LockRecord:
        if not self.registry.exists(lock_id) or lock_id not in self._locks:
            raise LockNotFound(f"lock {lock_id} does not exist")
        if caller is not None:
            self.authorizer.check(caller, lock_id)
        return self._locks[lock_id]

    def _validated_unlock_time(self, now: int, duration: int, floor: int) -> int:
        unlock_time = round_to_clock(now + duration, self.clock_unit)
        if unlock_time <= floor:
            raise LockDurationNotInFuture(
                f"unlock time {unlock_time} does not move past {floor}"
            )
        if unlock_time > now + self.max_time:
            raise LockDurationTooLong(
                f"unlock time {unlock_time} exceeds the {self.max_time}s horizon"
            )
        return unlock_time

    def _store(self, lock_id: int, old: LockRecord, new: LockRecord, now: int) -> None:
        self._locks[lock_id] = new
        self._record_traces[lock_id].push(now, new)
        self._checkpoint(lock_id, old, new, now)

    def _destroy(self, lock_id: int, record: LockRecord, now: int) -> None:
        self._store(lock_id, record, EMPTY_LOCK, now)
        self._delegate_traces[lock_id].push(now, None)
        self.registry.burn(lock_id)

    def _replay(self, trace: Trace[Point], schedule: SlopeSchedule, ts: int) -> Point:
        checkpoint = trace.upper_lookup_checkpoint(ts)
        if checkpoint is None:
            return BLANK_POINT
        return catch_up(
            checkpoint.key, checkpoint.value, ts, schedule, self.clock_unit, self.max_walk_steps
        )

    def _checkpoint(self, lock_id: int, old: LockRecord, new: LockRecord, now: int) -> None:
        """
        Apply one lock transition to every trace and schedule it touches.

        Args:
            lock_id: Lock being changed; 0 only catches up the global trace
            old: Record before the change
            new: Record after the change
            now: Timestamp of the calling operation, read once per call
        """
        new_end = 0 if new.is_permanent else round_to_clock(new.end_time, self.clock_unit)
        old_point = escrow_point(old.amount, old.end_time, old.is_permanent, now, self.max_time)
        new_point = escrow_point(new.amount, new_end, new.is_permanent, now, self.max_time)

        if lock_id:
            if old.end_time > now and old_point.slope:
                self._global_schedule.adjust(old.end_time, old_point.slope)
            if new_end > now and new_point.slope:
                self._global_schedule.adjust(new_end, -new_point.slope)
            self._lock_traces[lock_id].push(now, new_point)

            delegatee = self._delegate_traces[lock_id].latest()
            if delegatee is not None:
                self._checkpoint_delegatee(delegatee, old_point, old.end_time, increasing=False, now=now)
                self._checkpoint_delegatee(delegatee, new_point, new_end, increasing=True, now=now)

        last = self._global_trace.latest_checkpoint()
        if last is None:
            current = BLANK_POINT
        else:
            current = catch_up(
                last.key, last.value, now, self._global_schedule,
                self.clock_unit, self.max_walk_steps, on_step=self._global_trace.push,
            )
        current = current + (new_point - old_point)
        current = Point(max(current.bias, 0), max(current.slope, 0), max(current.permanent, 0))
        self._global_trace.push(now, current)
        logger.debug("global checkpoint at %s: %s (lock %s)", now, current, lock_id)

    def _delegate(self, lock_id: int, delegatee: str, now: int) -> None:
        history = self._delegate_traces[lock_id]
        previous = history.latest()
        if previous == delegatee:
            return

        record = self._locks[lock_id]
        # An expired lock contributes nothing: its slope was discharged at expiry.
        point = escrow_point(record.amount, record.end_time, record.is_permanent, now, self.max_time)
        if previous is not None:
            self._checkpoint_delegatee(previous, point, record.end_time, increasing=False, now=now)
        self._checkpoint_delegatee(delegatee, point, record.end_time, increasing=True, now=now)
        history.push(now, delegatee)
        logger.info("lock %s delegated from %s to %s", lock_id, previous, delegatee)

    def _checkpoint_delegatee(
        self, delegatee: str, point: Point, end_time: int, increasing: bool, now: int
    ) -> None:
        """Catch up a delegatee's trace and add or remove one lock's contribution."""
        trace = self._delegatee_traces.setdefault(delegatee, Trace())
        schedule = self._delegatee_schedules.setdefault(delegatee, SlopeSchedule())

        last = trace.latest_checkpoint()
        if last is None:
            current = BLANK_POINT
        else:
            current = catch_up(
                last.key, last.value, now, schedule,
                self.clock_unit, self.max_walk_steps, on_step=trace.push,
            )

        schedules_expiry = end_time > now and point.slope != 0
        if increasing:
            bias = current.bias + point.bias
            slope = current.slope + point.slope
            permanent = current.permanent + point.permanent
            if schedules_expiry:
                schedule.adjust(end_time, -point.slope)
        else:
            bias = max(current.bias - point.bias, 0)
            slope = max(current.slope - point.slope, 0)
            permanent = max(current.permanent - point.permanent, 0)
            if schedules_expiry:
                schedule.adjust(end_time, point.slope)

        if slope == 0:
            bias = 0
        trace.push(now, Point(bias, slope, permanent))
