# simulations/common.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple
import math
import time


# Script-time configuration for the report.
ILLUSTRATION_SEED = 9
ILLUSTRATION_SIZE = 500
DEFAULT_SIZES: Tuple[int, ...] = (250, 500, 1000)
DEFAULT_TRIALS = 5000
DEFAULT_SCENARIOS: Tuple[str, ...] = ("uniform", "mixture", "lognormal")
DEFAULT_METHODS: Tuple[str, ...] = ("histogram", "kde", "locfit")


@dataclass(frozen=True)
class StudySpec:
    """
    Parameters of one Monte Carlo ISE study.
    """
    scenarios: Tuple[str, ...] = DEFAULT_SCENARIOS
    sizes: Tuple[int, ...] = DEFAULT_SIZES
    methods: Tuple[str, ...] = DEFAULT_METHODS
    trials: int = DEFAULT_TRIALS
    seed: Optional[int] = None  # None: fresh entropy, not reproducible

    def __post_init__(self) -> None:
        if not self.scenarios:
            raise ValueError("scenarios must be non-empty")
        if not self.methods:
            raise ValueError("methods must be non-empty")
        if not self.sizes:
            raise ValueError("sizes must be non-empty")
        for n in self.sizes:
            if n < 2:
                raise ValueError("sample sizes must be >= 2")
        if self.trials <= 0:
            raise ValueError("trials must be > 0")


class ISEAccumulator:
    """
    Running per-method ISE totals for one (scenario, size) cell.

    Only sums are kept: each trial's values are folded in and dropped.
    """
    def __init__(self, methods) -> None:
        self.methods: Tuple[str, ...] = tuple(methods)
        self._count = 0
        self._sum: Dict[str, float] = {m: 0.0 for m in self.methods}
        self._sumsq: Dict[str, float] = {m: 0.0 for m in self.methods}

    @property
    def count(self) -> int:
        return self._count

    def add(self, trial: Dict[str, float]) -> None:
        """
        Fold in one trial's ISE per method. Every method must be present.
        """
        missing = [m for m in self.methods if m not in trial]
        if missing:
            raise ValueError(f"trial is missing methods: {missing}")
        for m in self.methods:
            v = trial[m]
            self._sum[m] += v
            self._sumsq[m] += v * v
        self._count += 1

    def mean(self, method: str) -> float:
        if self._count == 0:
            raise ValueError("no trials accumulated")
        return self._sum[method] / self._count

    def std(self, method: str) -> float:
        """
        Sample stddev of the per-trial ISE (0.0 for a single trial).
        """
        if self._count < 2:
            return 0.0
        mean = self.mean(method)
        var = (self._sumsq[method] - self._count * mean * mean) / (self._count - 1)
        return math.sqrt(max(var, 0.0))

    def means(self) -> Dict[str, float]:
        return {m: self.mean(m) for m in self.methods}


@dataclass
class CellResult:
    """
    Mean ISE per method for one (scenario, sample size) pair.
    """
    scenario: str
    n: int
    trials: int
    mean_ise: Dict[str, float]
    std_ise: Dict[str, float] = field(default_factory=dict)
    runtime_s: Optional[float] = None

    @classmethod
    def from_accumulator(
        cls,
        scenario: str,
        n: int,
        acc: ISEAccumulator,
        runtime_s: Optional[float] = None,
    ) -> "CellResult":
        return cls(
            scenario=scenario,
            n=n,
            trials=acc.count,
            mean_ise=acc.means(),
            std_ise={m: acc.std(m) for m in acc.methods},
            runtime_s=runtime_s,
        )


@dataclass
class StudyResult:
    """
    All cells of a study, keyed by (scenario, n).
    """
    spec: StudySpec
    cells: Dict[Tuple[str, int], CellResult] = field(default_factory=dict)

    def add(self, cell: CellResult) -> None:
        self.cells[(cell.scenario, cell.n)] = cell

    def mean_ise(self, scenario: str, method: str, n: int) -> float:
        return self.cells[(scenario, n)].mean_ise[method]

    def rows(self) -> Iterator[Tuple[str, str, int, float]]:
        """
        (scenario, method, n, mean ISE) in study order.
        """
        for s in self.spec.scenarios:
            for m in self.spec.methods:
                for n in self.spec.sizes:
                    cell = self.cells.get((s, n))
                    if cell is not None:
                        yield s, m, n, cell.mean_ise[m]


class Timer:
    """
    Tiny timing helper for simulations.
    Usage:
        with Timer() as t:
            ...
        elapsed = t.elapsed_s
    """
    def __init__(self) -> None:
        self._start: Optional[float] = None
        self.elapsed_s: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.time()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._start is not None:
            self.elapsed_s = time.time() - self._start


def format_cell_line(cell: CellResult) -> str:
    """
    Human-friendly one-liner for printing in compare tools.
    """
    parts = [f"{m}={v:.5f}" for m, v in cell.mean_ise.items()]
    return (
        f"{cell.scenario} n={cell.n} ({cell.trials} trials): " + ", ".join(parts)
        + (f", runtime={cell.runtime_s:.3f}s" if cell.runtime_s is not None else "")
    )


def format_table(result: StudyResult) -> List[str]:
    """
    Mean-ISE table: one row per (scenario, method), one column per size.
    """
    sizes = result.spec.sizes
    header = f"{'scenario':<10} {'method':<10} " + " ".join(f"{'n=' + str(n):>12}" for n in sizes)
    lines = [header, "-" * len(header)]
    for s in result.spec.scenarios:
        for m in result.spec.methods:
            cols = []
            for n in sizes:
                cell = result.cells.get((s, n))
                cols.append(f"{cell.mean_ise[m]:>12.6f}" if cell is not None else f"{'-':>12}")
            lines.append(f"{s:<10} {m:<10} " + " ".join(cols))
    return lines
