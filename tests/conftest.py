"""Shared fixtures for the ISE study tests.

Forces a non-interactive matplotlib backend so CLI tests can save figures.
"""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(20240601)
