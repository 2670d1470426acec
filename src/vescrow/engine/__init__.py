"""Escrow engine: checkpoint traces, slope schedules and the lock ledger."""

from .checkpoints import BLANK_POINT, Checkpoint, Point, Trace
from .collaborators import LockRegistry, ManualClock, OwnerAuthorizer, SignatureVerifier, TokenCustody
from .errors import EscrowError
from .escrow import EMPTY_LOCK, LockRecord, VotingEscrow
from .lens import EscrowWeightLens
from .points import escrow_point
from .schedule import SlopeSchedule
from .walker import catch_up, round_to_clock

__all__ = [
    "BLANK_POINT",
    "Checkpoint",
    "EMPTY_LOCK",
    "EscrowError",
    "EscrowWeightLens",
    "LockRecord",
    "LockRegistry",
    "ManualClock",
    "OwnerAuthorizer",
    "Point",
    "SignatureVerifier",
    "SlopeSchedule",
    "TokenCustody",
    "Trace",
    "VotingEscrow",
    "catch_up",
    "escrow_point",
    "round_to_clock",
]
