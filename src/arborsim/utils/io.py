# src/arborsim/utils/io.py
from __future__ import annotations

from pathlib import Path
from typing import Any

import pandas as pd


def save_simulation_history(history: Any, filepath: str | Path, category: str = "joints") -> Path:
    """
    Save simulation results to a CSV file.

    Args:
        history: A SimulationResult, a DataFrame, or a list of row dicts,
            e.g. [{'t': 0.1, 'hinge.angle': 1.0}, ...]
        filepath: Destination path (e.g., 'results/run1.csv')
        category: Category to export when history is a SimulationResult

    Returns:
        The written path.
    """
    if hasattr(history, "to_dataframe"):
        df = history.to_dataframe(category)
    elif isinstance(history, pd.DataFrame):
        df = history
    else:
        if not history:
            raise ValueError("Simulation history is empty. Nothing to save.")
        df = pd.DataFrame(history)

    if df.empty:
        raise ValueError("Simulation history is empty. Nothing to save.")

    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    print(f"Simulation results saved to {path.absolute()}")
    return path


def load_simulation_history(filepath: str | Path) -> pd.DataFrame:
    """
    Load a CSV written by ResultLogger or save_simulation_history.

    Raises:
        ValueError: If the first column is not the time column 't'.
    """
    df = pd.read_csv(filepath)
    if df.columns[0] != "t":
        raise ValueError(f"First column must be time 't', got '{df.columns[0]}'")
    return df
