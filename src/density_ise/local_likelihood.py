import logging
import math
from typing import Optional, Tuple

import numpy as np
from scipy.interpolate import CubicSpline


LOG = logging.getLogger(__name__)

# Nearest-neighbour fraction: the local window around x holds this share
# of the sample.
DEFAULT_NN = 0.7
DEFAULT_VERTICES = 41
DEFAULT_MAX_ITER = 50
DEFAULT_TOL = 1e-7

# Gauss-Legendre rule on [-1, 1] for the local integral term.
_GL_NODES, _GL_WEIGHTS = np.polynomial.legendre.leggauss(40)


def tricube(z: np.ndarray) -> np.ndarray:
    z = np.abs(np.asarray(z, dtype=float))
    return np.where(z < 1.0, (1.0 - z ** 3) ** 3, 0.0)


def _basis(z: np.ndarray) -> np.ndarray:
    # local quadratic in the scaled offset: [1, z, z^2 / 2]
    return np.vstack([np.ones_like(z), z, 0.5 * z * z])


def nn_bandwidth(data: np.ndarray, x0: float, nn: float = DEFAULT_NN) -> float:
    """
    Distance from x0 to its k-th nearest observation, k = floor(nn * n).
    """
    n = len(data)
    k = max(int(math.floor(nn * n)), 1)
    d = np.abs(data - x0)
    return float(np.partition(d, k - 1)[k - 1])


def local_log_density(
    data: np.ndarray,
    x0: float,
    h: float,
    lower: float,
    upper: float,
    max_iter: int = DEFAULT_MAX_ITER,
    tol: float = DEFAULT_TOL,
) -> np.ndarray:
    """
    Maximize the local log-likelihood at x0 and return the polynomial
    coefficients theta = (log f(x0), slope, curvature) in scaled units.

    The criterion is

        sum_i W(z_i) P(z_i)  -  n h * integral W(z) exp(P(z)) dz

    with z = (u - x0) / h, tricube weights W and the integral restricted to
    the window intersected with [lower, upper]. The integral term forces the
    local fit to carry the same mass as the weighted data, which is what
    makes the estimate integrate to (approximately) one.

    The criterion is concave, so Newton steps with step halving converge;
    failure to converge within max_iter raises RuntimeError.
    """
    if h <= 0:
        raise RuntimeError(f"degenerate bandwidth at x={x0!r}")

    n = len(data)
    z = (data - x0) / h
    zi = z[np.abs(z) < 1.0]
    s = _basis(zi) @ tricube(zi)

    zl = max(-1.0, (lower - x0) / h)
    zr = min(1.0, (upper - x0) / h)
    half = 0.5 * (zr - zl)
    mid = 0.5 * (zr + zl)
    zq = mid + half * _GL_NODES
    wq = half * _GL_WEIGHTS * tricube(zq) * n * h
    phi = _basis(zq)

    def objective(theta):
        with np.errstate(over="ignore"):
            e = np.exp(theta @ phi)
        return float(theta @ s - wq @ e), e

    theta = np.array([math.log(s[0] / wq.sum()), 0.0, 0.0])
    value, e = objective(theta)

    for _ in range(max_iter):
        we = wq * e
        grad = s - phi @ we
        # negative Hessian, positive definite
        info = (phi * we) @ phi.T
        step = np.linalg.solve(info, grad)

        t = 1.0
        while True:
            cand = theta + t * step
            cand_value, cand_e = objective(cand)
            if np.isfinite(cand_value) and cand_value >= value - 1e-10 * abs(value):
                break
            t *= 0.5
            if t < 1e-10:
                raise RuntimeError(f"local likelihood line search failed at x={x0!r}")

        theta, value, e = cand, cand_value, cand_e
        if np.max(np.abs(t * step)) < tol:
            return theta

    raise RuntimeError(f"local likelihood fit did not converge at x={x0!r} after {max_iter} iterations")


class LocalLikelihoodFit:
    """
    Local-likelihood density estimate of a 1-D sample.

    The local quadratic log-density model is fitted at `n_vertices` evenly
    spaced points over the fitting bounds (the observed range by default).
    In between, log f is interpolated with a cubic spline, so the estimate is
    positive everywhere on the bounds and zero outside them.
    """

    def __init__(
        self,
        data,
        nn: float = DEFAULT_NN,
        n_vertices: int = DEFAULT_VERTICES,
        bounds: Optional[Tuple[float, float]] = None,
    ):
        data = np.asarray(data, dtype=float)
        if data.ndim != 1 or len(data) < 2:
            raise ValueError("data must be a 1-D sample with at least 2 values")
        if not 0.0 < nn <= 1.0:
            raise ValueError("nn must be in (0, 1]")
        if n_vertices < 2:
            raise ValueError("n_vertices must be >= 2")

        self.data = data
        self.nn = float(nn)
        if bounds is None:
            bounds = (float(data.min()), float(data.max()))
        self.lower, self.upper = bounds
        if not self.lower < self.upper:
            raise ValueError("bounds must satisfy lower < upper")

        self.vertices = np.linspace(self.lower, self.upper, n_vertices)
        self.bandwidths = np.empty(n_vertices)
        self.coefficients = np.empty((n_vertices, 3))
        for i, x0 in enumerate(self.vertices):
            h = nn_bandwidth(data, x0, self.nn)
            self.bandwidths[i] = h
            self.coefficients[i] = local_log_density(data, x0, h, self.lower, self.upper)

        self._log_spline = CubicSpline(self.vertices, self.coefficients[:, 0])
        LOG.debug(
            "local likelihood fit: n=%d vertices=%d bandwidth range=[%.4g, %.4g]",
            len(data), n_vertices, self.bandwidths.min(), self.bandwidths.max(),
        )

    def __call__(self, x) -> np.ndarray:
        x = np.asarray(x, dtype=float)
        inside = (x >= self.lower) & (x <= self.upper)
        log_f = self._log_spline(np.clip(x, self.lower, self.upper))
        return np.where(inside, np.exp(log_f), 0.0)

    def fitted(self) -> np.ndarray:
        """
        Estimated density at each observation, in sample order.
        """
        return self(self.data)
