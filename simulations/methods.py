# simulations/methods.py

from __future__ import annotations

from typing import Callable, Dict, Iterable

import numpy as np

from src.density_ise.estimators import (
    DensityEstimate,
    Estimator,
    HistogramEstimator,
    KernelDensityEstimator,
    LocalLikelihoodEstimator,
)


# --- Registry / dispatch -----------------------------------------------------

def get_method(name: str) -> Estimator:
    """
    Build a fresh estimator for a method name.
    """
    name = name.strip().lower()
    if name not in METHODS:
        raise ValueError(f"unknown method '{name}'. Available: {sorted(METHODS.keys())}")
    return METHODS[name]()


def build_estimators(names: Iterable[str]) -> Dict[str, Estimator]:
    """
    Estimators keyed by their normalized method name, in the given order.
    """
    out: Dict[str, Estimator] = {}
    for name in names:
        est = get_method(name)
        out[est.name] = est
    return out


def fit_all(sample: np.ndarray, estimators: Dict[str, Estimator]) -> Dict[str, DensityEstimate]:
    """
    Fit every estimator to the same sample.
    """
    return {name: est.fit(sample) for name, est in estimators.items()}


# METHODS maps method name -> estimator factory.
# Each factory uses the estimator's default smoothing rule.
METHODS: Dict[str, Callable[[], Estimator]] = {
    "histogram": HistogramEstimator,
    "kde": KernelDensityEstimator,
    "locfit": LocalLikelihoodEstimator,
}
