from typing import Callable, Tuple

import numpy as np
from scipy.interpolate import PchipInterpolator

from .estimators import DensityEstimate
from .scenarios import Scenario


def squared_error_spline(
    x: np.ndarray,
    estimate: np.ndarray,
    density: Callable[[np.ndarray], np.ndarray],
) -> PchipInterpolator:
    """
    Interpolating spline through (x, (estimate - truth)^2).

    Repeated x values are collapsed to their first occurrence. PCHIP never
    overshoots its data, so the spline stays non-negative between knots.
    """
    x = np.asarray(x, dtype=float)
    estimate = np.asarray(estimate, dtype=float)
    order = np.argsort(x, kind="stable")
    x, estimate = x[order], estimate[order]
    x, first = np.unique(x, return_index=True)
    estimate = estimate[first]
    if len(x) < 2:
        raise ValueError("need at least 2 distinct points to build the error spline")
    return PchipInterpolator(x, (estimate - density(x)) ** 2)


def integrated_squared_error(
    estimate: DensityEstimate,
    density: Callable[[np.ndarray], np.ndarray],
    lower: float,
    upper: float,
) -> float:
    """
    ISE of `estimate` against `density` over [lower, upper].

    The estimate enters only through its discrete points() table; outside
    the table's x range the spline extrapolates.
    """
    if not lower < upper:
        raise ValueError("lower must be < upper")
    x, y = estimate.points()
    spline = squared_error_spline(x, y, density)
    return max(float(spline.integrate(lower, upper)), 0.0)


def sample_range(sample: np.ndarray) -> Tuple[float, float]:
    return float(np.min(sample)), float(np.max(sample))


def ise_for(estimate: DensityEstimate, scenario: Scenario, sample: np.ndarray) -> float:
    """
    ISE of an estimate against the scenario's true density over the
    observed range of the sample it was fitted to.
    """
    lower, upper = sample_range(sample)
    return integrated_squared_error(estimate, scenario.pdf, lower, upper)
