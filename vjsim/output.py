"""Output utilities for simulation results."""

from __future__ import annotations

import csv
import json
from pathlib import Path

import pandas as pd

from vjsim.simulation import TRACE_COLUMNS, SimulationTrace


def write_trace_csv(path: Path, trace: SimulationTrace) -> None:
    """Write a push-off trace to CSV, one row per integration step (SI units)."""
    columns = [getattr(trace, name) for name in TRACE_COLUMNS]
    with path.open('w', newline='', encoding='utf-8') as f:
        w = csv.writer(f)
        w.writerow(TRACE_COLUMNS)
        for i in range(len(trace)):
            w.writerow([f'{col[i]:.6f}' for col in columns])


def write_table_csv(path: Path, table: pd.DataFrame) -> None:
    table.to_csv(path, index=False, float_format='%.6f')


def write_summary_json(path: Path, summary: dict) -> None:
    path.write_text(json.dumps(summary, indent=2, default=float) + '\n', encoding='utf-8')
