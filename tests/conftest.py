"""
Shared fixtures for the scoreperf test-suite.
"""

import matplotlib
matplotlib.use('Agg')

import numpy as np
import pandas as pd
import pytest


@pytest.fixture
def binary_test_data():
    """Scored binary sample: bads drawn from beta(8, 2), goods from beta(2, 8)."""
    np.random.seed(42)
    n_samples = 1000
    y_true = np.random.binomial(1, 0.3, n_samples)
    y_pred = np.where(
        y_true == 1,
        np.random.beta(8, 2, n_samples),
        np.random.beta(2, 8, n_samples)
    )
    return y_true, y_pred


@pytest.fixture
def tied_test_data():
    """Coarse scores with many ties between and within classes."""
    rng = np.random.default_rng(7)
    n_samples = 500
    y_true = rng.binomial(1, 0.25, n_samples)
    y_pred = np.round(np.clip(0.3 * y_true + rng.normal(0.4, 0.2, n_samples), 0, 1), 1)
    return y_true, y_pred


@pytest.fixture
def score_populations():
    """Two score samples on a 100-800 scale with labels, slightly shifted."""
    rng = np.random.default_rng(186)
    train_y = rng.binomial(1, 0.2, 2000)
    test_y = rng.binomial(1, 0.2, 1500)
    train = pd.DataFrame({"score": np.clip(550 - 120 * train_y + rng.normal(0, 60, 2000), 150, 780)})
    test = pd.DataFrame({"score": np.clip(530 - 120 * test_y + rng.normal(0, 70, 1500), 150, 780)})
    scores = {"train": train, "test": test}
    labels = {"train": pd.DataFrame({"y": train_y}), "test": pd.DataFrame({"y": test_y})}
    return scores, labels
