"""Shared fixtures for the escrow ledger tests."""

import os
import sys

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from vescrow.config.schema import EscrowConfig
from vescrow.engine.collaborators import ManualClock, TokenCustody
from vescrow.engine.escrow import VotingEscrow

DAY = 86400
WEEK = 7 * DAY
MAX_TIME = 2 * 365 * DAY
UNIT = 10 ** 18
LOCKED = 1000 * UNIT
# A clock-unit boundary, so durations of whole weeks land exactly on expiries.
START = 2000 * WEEK
FULL_END = START + (MAX_TIME // WEEK) * WEEK


def slope_of(amount: int) -> int:
    return amount // MAX_TIME


def expected_balance(amount: int, end: int, ts: int) -> int:
    return max(slope_of(amount) * (end - ts), 0)


@pytest.fixture
def clock():
    return ManualClock(START)


@pytest.fixture
def custody():
    return TokenCustody({
        "alice": 1_000_000 * UNIT,
        "bob": 1_000_000 * UNIT,
        "calvin": 1_000_000 * UNIT,
    })


@pytest.fixture
def config():
    return EscrowConfig()


@pytest.fixture
def escrow(config, clock, custody):
    return VotingEscrow(config, clock=clock, custody=custody)
