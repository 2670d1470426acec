"""Invariant validation for the escrow ledger."""

from .invariants import InvariantChecker, ValidationWarning, validate_escrow

__all__ = [
    "InvariantChecker",
    "ValidationWarning",
    "validate_escrow"
]
