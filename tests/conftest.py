"""Pytest configuration for repository-relative imports and shared data."""

import os
import sys

import numpy as np
import pandas as pd
import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from mp_stats.registry import reset_registry  # noqa: E402


@pytest.fixture(autouse=True)
def _clean_registry():
    reset_registry()
    yield
    reset_registry()


@pytest.fixture
def grouped_data():
    """Small dataset with a three-level factor and two numeric predictors."""
    rng = np.random.default_rng(42)
    n = 90
    g = np.repeat(["a", "b", "c"], n // 3)
    x = rng.normal(size=n)
    z = rng.uniform(1.0, 5.0, size=n)
    effect = pd.Series(g).map({"a": 0.0, "b": 1.0, "c": -0.5}).to_numpy()
    y = 1.0 + effect + 0.8 * x + 0.3 * np.log(z) + rng.normal(scale=0.5, size=n)
    return pd.DataFrame({"y": y, "g": g, "x": x, "z": z})


@pytest.fixture
def imputed_datasets(grouped_data):
    """Five perturbed copies of grouped_data, standing in for imputations."""
    rng = np.random.default_rng(7)
    datasets = []
    for _ in range(5):
        d = grouped_data.copy()
        d["x"] = d["x"] + rng.normal(scale=0.1, size=len(d))
        datasets.append(d)
    return datasets
