"""Typed rejections raised by the escrow ledger.

Every error is a local, synchronous rejection of an invalid call. Preconditions
are checked before any state is touched, so catching one of these means the
ledger is exactly as it was before the call.
"""

from typing import Any, Optional


class EscrowError(ValueError):
    """Base class for all escrow rejections."""

    code = "ESCROW_ERROR"

    def __init__(self, reason: str = "", details: Optional[Any] = None):
        self.reason = reason or self.code
        self.details = details
        super().__init__(self.reason)

    def __str__(self) -> str:
        if self.details is None:
            return f"{self.code}: {self.reason}"
        return f"{self.code}: {self.reason} ({self.details})"


class ZeroAmount(EscrowError):
    code = "ZERO_AMOUNT"


class LockExpired(EscrowError):
    code = "LOCK_EXPIRED"


class LockNotExpired(EscrowError):
    code = "LOCK_NOT_EXPIRED"


class LockDurationNotInFuture(EscrowError):
    code = "LOCK_DURATION_NOT_IN_FUTURE"


class LockDurationTooLong(EscrowError):
    code = "LOCK_DURATION_TOO_LONG"


class PermanentLock(EscrowError):
    code = "PERMANENT_LOCK"


class NotPermanentLock(EscrowError):
    code = "NOT_PERMANENT_LOCK"


class PermanentLockMismatch(EscrowError):
    code = "PERMANENT_LOCK_MISMATCH"


class SameNFT(EscrowError):
    """Merge source and destination are the same lock."""
    code = "SAME_NFT"


class InvalidDelegatee(EscrowError):
    code = "INVALID_DELEGATEE"


class InvalidSignature(EscrowError):
    code = "INVALID_SIGNATURE"


class InvalidNonce(EscrowError):
    code = "INVALID_NONCE"


class SignatureExpired(EscrowError):
    code = "SIGNATURE_EXPIRED"


class InvalidWeights(EscrowError):
    code = "INVALID_WEIGHTS"


class LockNotFound(EscrowError):
    code = "LOCK_NOT_FOUND"


class NotAuthorized(EscrowError):
    code = "NOT_AUTHORIZED"


class InsufficientBalance(EscrowError):
    code = "INSUFFICIENT_BALANCE"


class UnorderedCheckpoint(RuntimeError):
    """A trace was pushed a key older than its latest checkpoint.

    This is a programming error in the caller, never a user input problem.
    """
