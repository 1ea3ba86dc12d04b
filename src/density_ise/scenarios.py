from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple, Union

import numpy as np
from scipy import stats


RngLike = Union[np.random.Generator, int, None]


@dataclass(frozen=True)
class Scenario:
    """
    A ground-truth distribution used in the ISE study.

    Each scenario couples three things that must stay in sync:

        density(x)      closed-form pdf, vectorized over numpy arrays
        support         theoretical (lower, upper) bounds of the pdf
        sampler(n, rng) generation rule producing n iid draws

    The ISE itself is always computed over the observed sample range, not
    over `support`; the support is kept for plotting and sanity checks.
    """
    name: str
    label: str
    density: Callable[[np.ndarray], np.ndarray]
    support: Tuple[float, float]
    sampler: Callable[[int, np.random.Generator], np.ndarray]

    def pdf(self, x) -> np.ndarray:
        return self.density(np.asarray(x, dtype=float))

    def sample(self, n: int, rng: RngLike = None) -> np.ndarray:
        return draw_sample(self, n, rng)


# ------------------------------------------------------------
# Generation rules
# ------------------------------------------------------------

def _sample_uniform(n: int, rng: np.random.Generator) -> np.ndarray:
    return rng.uniform(1.0, 3.0, size=n)


def _sample_mixture(n: int, rng: np.random.Generator) -> np.ndarray:
    # Each draw picks its component with a fair coin, then both normals are
    # drawn and the weight selects one of them.
    w = rng.binomial(1, 0.5, size=n)
    low = rng.normal(0.0, 1.0, size=n)
    high = rng.normal(5.0, 0.5, size=n)
    return w * low + (1 - w) * high


def _sample_lognormal(n: int, rng: np.random.Generator) -> np.ndarray:
    return rng.lognormal(mean=0.0, sigma=1.0, size=n)


# ------------------------------------------------------------
# Closed-form densities
# ------------------------------------------------------------

def _uniform_pdf(x: np.ndarray) -> np.ndarray:
    return stats.uniform.pdf(x, loc=1.0, scale=2.0)


def _mixture_pdf(x: np.ndarray) -> np.ndarray:
    return 0.5 * stats.norm.pdf(x, 0.0, 1.0) + 0.5 * stats.norm.pdf(x, 5.0, 0.5)


def _lognormal_pdf(x: np.ndarray) -> np.ndarray:
    return stats.lognorm.pdf(x, s=1.0, scale=1.0)


UNIFORM = Scenario(
    name="uniform",
    label="Uniform(1, 3)",
    density=_uniform_pdf,
    support=(1.0, 3.0),
    sampler=_sample_uniform,
)

MIXTURE = Scenario(
    name="mixture",
    label="0.5 N(0, 1) + 0.5 N(5, 0.5)",
    density=_mixture_pdf,
    support=(-np.inf, np.inf),
    sampler=_sample_mixture,
)

LOGNORMAL = Scenario(
    name="lognormal",
    label="LogNormal(0, 1)",
    density=_lognormal_pdf,
    support=(0.0, np.inf),
    sampler=_sample_lognormal,
)


# SCENARIOS maps scenario name -> Scenario, in report order.
SCENARIOS: Dict[str, Scenario] = {
    s.name: s for s in (UNIFORM, MIXTURE, LOGNORMAL)
}


def get_scenario(name: str) -> Scenario:
    name = name.strip().lower()
    if name not in SCENARIOS:
        raise ValueError(f"unknown scenario '{name}'. Available: {sorted(SCENARIOS.keys())}")
    return SCENARIOS[name]


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    """
    Build a numpy Generator. A None seed draws fresh OS entropy.
    """
    return np.random.default_rng(seed)


def draw_sample(scenario: Union[Scenario, str], n: int, rng: RngLike = None) -> np.ndarray:
    """
    Draw n iid values from a scenario.

    `rng` may be a Generator (consumed in place) or an integer seed; the same
    seed always yields the same sequence.
    """
    if isinstance(scenario, str):
        scenario = get_scenario(scenario)
    if n <= 0:
        raise ValueError("n must be > 0")
    if not isinstance(rng, np.random.Generator):
        rng = make_rng(rng)
    return np.asarray(scenario.sampler(n, rng), dtype=float)
