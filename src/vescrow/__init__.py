"""Time-decaying vote-escrow balance ledger with delegation."""

from .config import EscrowConfig, load_config
from .engine import EscrowWeightLens, LockRecord, ManualClock, Point, TokenCustody, VotingEscrow

__version__ = "0.1.0"

__all__ = [
    "EscrowConfig",
    "EscrowWeightLens",
    "LockRecord",
    "ManualClock",
    "Point",
    "TokenCustody",
    "VotingEscrow",
    "load_config",
]
