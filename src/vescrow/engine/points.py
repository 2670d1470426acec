"""Escrow point math: the weight a lock record carries at a given instant."""

from .checkpoints import BLANK_POINT, Point


def escrow_point(amount: int, end_time: int, is_permanent: bool, now: int, max_time: int) -> Point:
    """
    Compute a lock's point at ``now``.

    The slope is ``amount // max_time``: a lock spanning the whole horizon
    starts at (almost) its full amount and reaches zero exactly at
    ``end_time``. Integer division means an amount below ``max_time`` gets a
    zero slope and therefore no decaying weight at all.

    Args:
        amount: Locked quantity in base units
        end_time: Rounded expiry (ignored for permanent locks)
        is_permanent: Whether the lock never decays
        now: Evaluation time
        max_time: Maximum lock horizon in seconds

    Returns:
        Point with bias, slope and permanent balance at ``now``
    """
    if amount <= 0:
        return BLANK_POINT
    if is_permanent:
        return Point(bias=0, slope=0, permanent=amount)
    if end_time > now:
        slope = amount // max_time
        return Point(bias=slope * (end_time - now), slope=slope, permanent=0)
    return BLANK_POINT


def minimum_decaying_amount(max_time: int) -> int:
    """Smallest amount that produces a non-zero slope."""
    return max_time
