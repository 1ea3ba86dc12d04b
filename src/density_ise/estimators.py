from typing import Dict, Optional, Sequence, Tuple, Union

import numpy as np
from scipy import integrate
from scipy.stats import gaussian_kde

from .local_likelihood import DEFAULT_NN, DEFAULT_VERTICES, LocalLikelihoodFit


class DensityEstimate:
    """
    A fitted density: evaluable anywhere, plus the discrete (x, f(x)) table
    the ISE evaluator integrates over.

    Subclasses set `method`, `support` and `smoothing` and implement
    `__call__` and `points`.
    """
    method: str = ""

    def __init__(self, data: np.ndarray, support: Tuple[float, float], smoothing: float):
        self.data = data
        self.support = support
        self.smoothing = smoothing

    @property
    def n(self) -> int:
        return len(self.data)

    def __call__(self, x) -> np.ndarray:
        raise NotImplementedError

    def points(self) -> Tuple[np.ndarray, np.ndarray]:
        raise NotImplementedError

    def total_mass(self) -> float:
        """
        Integral of the estimate over its own support (adaptive quadrature).
        """
        lo, hi = self.support
        breaks = [b for b in self._breakpoints() if lo < b < hi]
        value, _ = integrate.quad(
            lambda x: float(self(x)),
            lo,
            hi,
            points=breaks or None,
            limit=max(50, 4 * len(breaks)),
        )
        return value

    def _breakpoints(self) -> Sequence[float]:
        return ()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(n={self.n}, smoothing={self.smoothing:.4g})"


# ------------------------------------------------------------
# Histogram
# ------------------------------------------------------------

class HistogramEstimate(DensityEstimate):
    method = "histogram"

    def __init__(self, data: np.ndarray, edges: np.ndarray, counts: np.ndarray):
        self.edges = edges
        self.counts = counts
        width = float(edges[1] - edges[0])
        self.density = counts / (len(data) * width)
        super().__init__(data, (float(edges[0]), float(edges[-1])), width)

    @property
    def bins(self) -> int:
        return len(self.counts)

    def __call__(self, x) -> np.ndarray:
        # out-of-range queries take the nearest bin's density
        idx = np.searchsorted(self.edges, np.asarray(x, dtype=float), side="right") - 1
        idx = np.clip(idx, 0, self.bins - 1)
        return self.density[idx]

    def points(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Sorted sample values, each paired with the density of its bin
        (bin density repeated once per observation in the bin).
        """
        return np.sort(self.data), np.repeat(self.density, self.counts)

    def sample(self, size: int, rng: np.random.Generator) -> np.ndarray:
        """
        Pick bins with probability equal to their mass, then a uniform
        point inside each chosen bin.
        """
        mass = self.counts / self.counts.sum()
        b = rng.choice(self.bins, size=size, p=mass)
        return rng.uniform(self.edges[b], self.edges[b + 1])

    def _breakpoints(self) -> Sequence[float]:
        return list(self.edges)


class HistogramEstimator:
    """
    Equal-width bins over the observed range, bin count by Sturges' rule
    unless `bins` says otherwise (anything np.histogram accepts).
    """
    name = "histogram"

    def __init__(self, bins: Union[int, str] = "sturges"):
        self.bins = bins

    def fit(self, sample) -> HistogramEstimate:
        data = np.asarray(sample, dtype=float)
        counts, edges = np.histogram(data, bins=self.bins)
        return HistogramEstimate(data, edges, counts)


# ------------------------------------------------------------
# Kernel density
# ------------------------------------------------------------

def normal_reference_bandwidth(data: np.ndarray) -> float:
    """
    0.9 * min(sd, IQR / 1.34) * n^(-1/5), falling back to whichever scale
    is non-zero when the data are degenerate.
    """
    n = len(data)
    sd = float(np.std(data, ddof=1))
    q75, q25 = np.percentile(data, [75, 25])
    iqr = float(q75 - q25)
    lo = min(sd, iqr / 1.34)
    if not lo > 0:
        lo = sd or abs(float(data[0])) or 1.0
    return 0.9 * lo * n ** -0.2


class KernelDensityEstimate(DensityEstimate):
    method = "kde"

    def __init__(self, data: np.ndarray, bandwidth: float, grid: np.ndarray, values: np.ndarray):
        self.grid = grid
        self.values = values
        super().__init__(data, (float(grid[0]), float(grid[-1])), bandwidth)

    @property
    def bandwidth(self) -> float:
        return self.smoothing

    def __call__(self, x) -> np.ndarray:
        return np.interp(np.asarray(x, dtype=float), self.grid, self.values, left=0.0, right=0.0)

    def points(self) -> Tuple[np.ndarray, np.ndarray]:
        return self.grid, self.values

    def sample(self, size: int, rng: np.random.Generator) -> np.ndarray:
        """
        Smoothed bootstrap: resample observations, then jitter each by the
        kernel.
        """
        centers = rng.choice(self.data, size=size, replace=True)
        return rng.normal(centers, self.bandwidth)

    def _breakpoints(self) -> Sequence[float]:
        return list(self.grid)


class KernelDensityEstimator:
    """
    Gaussian KDE with the normal-reference bandwidth, tabulated on a regular
    grid that extends `cut` bandwidths past the observed range.
    """
    name = "kde"

    def __init__(self, grid_size: int = 512, cut: float = 3.0, bandwidth: Optional[float] = None):
        if grid_size < 2:
            raise ValueError("grid_size must be >= 2")
        self.grid_size = grid_size
        self.cut = cut
        self.bandwidth = bandwidth

    def fit(self, sample) -> KernelDensityEstimate:
        data = np.asarray(sample, dtype=float)
        bw = self.bandwidth if self.bandwidth is not None else normal_reference_bandwidth(data)
        # gaussian_kde scales its kernel by the sample sd
        kde = gaussian_kde(data, bw_method=bw / np.std(data, ddof=1))
        grid = np.linspace(data.min() - self.cut * bw, data.max() + self.cut * bw, self.grid_size)
        return KernelDensityEstimate(data, bw, grid, kde(grid))


# ------------------------------------------------------------
# Local likelihood
# ------------------------------------------------------------

class LocalLikelihoodEstimate(DensityEstimate):
    method = "locfit"

    def __init__(self, data: np.ndarray, fit: LocalLikelihoodFit):
        self.fit = fit
        super().__init__(data, (fit.lower, fit.upper), fit.nn)

    def __call__(self, x) -> np.ndarray:
        return self.fit(x)

    def points(self) -> Tuple[np.ndarray, np.ndarray]:
        x = np.sort(self.data)
        return x, self.fit(x)

    def _breakpoints(self) -> Sequence[float]:
        return list(self.fit.vertices)


class LocalLikelihoodEstimator:
    """
    Local quadratic log-density fit with a nearest-neighbour bandwidth.
    `nn` is the fraction of the sample inside each local window.
    """
    name = "locfit"

    def __init__(self, nn: float = DEFAULT_NN, n_vertices: int = DEFAULT_VERTICES):
        self.nn = nn
        self.n_vertices = n_vertices

    def fit(self, sample) -> LocalLikelihoodEstimate:
        data = np.asarray(sample, dtype=float)
        return LocalLikelihoodEstimate(data, LocalLikelihoodFit(data, nn=self.nn, n_vertices=self.n_vertices))


Estimator = Union[HistogramEstimator, KernelDensityEstimator, LocalLikelihoodEstimator]


def default_estimators() -> Dict[str, Estimator]:
    """
    Fresh instances of the three estimators, keyed by method name, in
    report order.
    """
    return {
        e.name: e
        for e in (HistogramEstimator(), KernelDensityEstimator(), LocalLikelihoodEstimator())
    }
