"""Export functionality for CSV and JSON."""

import json
from typing import Iterable

import numpy as np
import pandas as pd

from ..engine.escrow import VotingEscrow


def sample_timestamps(start: int, end: int, step: int) -> np.ndarray:
    """Evenly spaced integer sample times from ``start`` through ``end`` inclusive."""
    if step <= 0:
        raise ValueError("step must be positive")
    samples = np.arange(start, end + 1, step, dtype=np.int64)
    if samples.size == 0 or samples[-1] != end:
        samples = np.append(samples, np.int64(end))
    return samples


def sample_history(escrow: VotingEscrow, timestamps: Iterable[int]) -> pd.DataFrame:
    """
    Query the ledger at each timestamp.

    Returns:
        DataFrame indexed by timestamp with a ``total_supply`` column, one
        ``lock_<id>`` column per lock and one ``votes_<delegatee>`` column per delegatee
    """
    lock_ids = escrow.lock_ids()
    delegatees = escrow.delegatees()
    data = []
    for ts in timestamps:
        ts = int(ts)
        row = {'t': ts, 'total_supply': escrow.get_past_total_supply(ts)}
        for lock_id in lock_ids:
            row[f'lock_{lock_id}'] = escrow.balance_of_lock_at(lock_id, ts)
        for delegatee in delegatees:
            row[f'votes_{delegatee}'] = escrow.get_past_votes(delegatee, ts)
        data.append(row)

    df = pd.DataFrame(data)
    if not df.empty:
        df = df.set_index('t')
    return df


def export_csv(escrow: VotingEscrow, timestamps: Iterable[int], filepath: str):
    """Export sampled ledger history to CSV."""
    df = sample_history(escrow, timestamps)
    df.to_csv(filepath)


def export_json(escrow: VotingEscrow, timestamps: Iterable[int], filepath: str):
    """Export sampled ledger history plus lock records to JSON."""
    df = sample_history(escrow, timestamps)
    export_data = {
        'config': escrow.config.to_dict(),
        'config_hash': escrow.config.compute_hash(),
        'locks': {
            str(lock_id): {
                'amount': record.amount,
                'start_time': record.start_time,
                'end_time': record.end_time,
                'is_permanent': record.is_permanent,
            }
            for lock_id, record in ((i, escrow.lock_details(i)) for i in escrow.lock_ids())
        },
        'history': [
            {'t': int(ts), **{col: int(val) for col, val in row.items()}}
            for ts, row in df.iterrows()
        ],
    }

    with open(filepath, 'w') as f:
        json.dump(export_data, f, indent=2)
