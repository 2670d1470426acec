"""Lazy catch-up walk over a slope schedule.

Aggregate traces (global and per delegatee) are only written when something
touches them. Before reading or updating one, its latest point is walked
forward clock unit by clock unit, folding in every slope delta scheduled on
the boundaries it crosses.
"""

import logging
from typing import Callable, Optional

from .checkpoints import Point
from .schedule import SlopeSchedule

logger = logging.getLogger(__name__)

StepCallback = Callable[[int, Point], None]


def round_to_clock(ts: int, clock_unit: int) -> int:
    """Floor ``ts`` to the clock unit boundary."""
    return (ts // clock_unit) * clock_unit


def catch_up(
    last_time: int,
    point: Point,
    target: int,
    schedule: SlopeSchedule,
    clock_unit: int,
    max_steps: int,
    on_step: Optional[StepCallback] = None,
) -> Point:
    """
    Advance ``point`` recorded at ``last_time`` to ``target``.

    Args:
        last_time: Timestamp of the latest stored checkpoint
        point: Point stored at ``last_time``
        target: Time to walk to (now for mutations, the query time for reads)
        schedule: Slope deltas for this aggregate
        clock_unit: Step size; schedule keys sit on multiples of it
        max_steps: Iteration cap; reaching it leaves the remainder for the next call
        on_step: Receives ``(ts, point)`` for every boundary before ``target``
            that carried a slope delta. Mutating callers persist these,
            historical reads pass None.

    Returns:
        Point at ``target`` (or at the last boundary reached when capped)
    """
    bias, slope, permanent = point.bias, point.slope, point.permanent
    if target <= last_time:
        return point

    last_checkpoint = last_time
    t_i = round_to_clock(last_time, clock_unit)
    for _ in range(max_steps):
        t_i += clock_unit
        d_slope = 0
        if t_i > target:
            t_i = target
        else:
            d_slope = schedule.get(t_i)

        bias -= max(slope, 0) * (t_i - last_checkpoint)
        slope += d_slope
        if bias < 0:
            bias = 0
        if slope < 0:
            slope = 0
        last_checkpoint = t_i

        if t_i == target:
            break
        if d_slope != 0 and on_step is not None:
            on_step(t_i, Point(bias, slope, permanent))
    else:
        logger.debug(
            "catch-up walk from %s stopped at %s after %s steps, target %s",
            last_time, last_checkpoint, max_steps, target,
        )

    return Point(bias, slope, permanent)
