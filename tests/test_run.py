"""Tests for the Monte Carlo aggregator and study runner."""

from __future__ import annotations

import numpy as np
import pytest

from simulations.common import (
    CellResult,
    ISEAccumulator,
    StudyResult,
    StudySpec,
    format_cell_line,
    format_table,
)
from simulations.methods import METHODS, build_estimators, get_method
from simulations.run import run_cell, run_illustration, run_study, run_trial
from src.density_ise.scenarios import get_scenario, make_rng


# ---------------------------------------------------------------------------
# Accumulator / spec
# ---------------------------------------------------------------------------

class TestISEAccumulator:

    def test_mean_and_std(self):
        acc = ISEAccumulator(["a", "b"])
        for a, b in [(1.0, 0.0), (2.0, 0.0), (3.0, 3.0)]:
            acc.add({"a": a, "b": b})
        assert acc.count == 3
        assert acc.mean("a") == pytest.approx(2.0)
        assert acc.mean("b") == pytest.approx(1.0)
        assert acc.std("a") == pytest.approx(1.0)
        assert acc.means() == pytest.approx({"a": 2.0, "b": 1.0})

    def test_single_trial_std_is_zero(self):
        acc = ISEAccumulator(["a"])
        acc.add({"a": 0.3})
        assert acc.std("a") == 0.0

    def test_missing_method_rejected(self):
        acc = ISEAccumulator(["a", "b"])
        with pytest.raises(ValueError, match="missing"):
            acc.add({"a": 1.0})
        assert acc.count == 0

    def test_empty_mean_rejected(self):
        with pytest.raises(ValueError, match="no trials"):
            ISEAccumulator(["a"]).mean("a")


class TestStudySpec:

    def test_defaults(self):
        spec = StudySpec()
        assert spec.sizes == (250, 500, 1000)
        assert spec.trials == 5000
        assert spec.seed is None
        assert spec.methods == ("histogram", "kde", "locfit")

    @pytest.mark.parametrize(
        "kwargs",
        [{"trials": 0}, {"sizes": ()}, {"sizes": (1,)}, {"scenarios": ()}, {"methods": ()}],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            StudySpec(**kwargs)


class TestMethodRegistry:

    def test_names(self):
        assert sorted(METHODS) == ["histogram", "kde", "locfit"]

    def test_fresh_instances(self):
        assert get_method("KDE") is not get_method("kde")
        assert get_method(" locfit ").name == "locfit"

    def test_unknown(self):
        with pytest.raises(ValueError, match="unknown method"):
            get_method("wavelet")

    def test_build_keeps_order(self):
        assert list(build_estimators(["locfit", "Histogram"])) == ["locfit", "histogram"]


# ---------------------------------------------------------------------------
# Trials and studies
# ---------------------------------------------------------------------------

def test_run_trial_returns_one_ise_per_method(rng):
    values = run_trial(get_scenario("mixture"), 250, rng, build_estimators(["histogram", "kde", "locfit"]))
    assert set(values) == {"histogram", "kde", "locfit"}
    assert all(v >= 0.0 for v in values.values())


def test_run_cell_is_mean_of_trials():
    scenario = get_scenario("uniform")
    estimators = build_estimators(["histogram", "kde"])
    cell = run_cell(scenario, 100, 4, make_rng(3), estimators)

    rng = make_rng(3)
    trials = [run_trial(scenario, 100, rng, estimators) for _ in range(4)]
    assert cell.trials == 4
    assert cell.runtime_s is not None
    for m in ("histogram", "kde"):
        assert cell.mean_ise[m] == pytest.approx(np.mean([t[m] for t in trials]))


def test_run_study_covers_every_cell():
    spec = StudySpec(scenarios=("Uniform", "lognormal"), sizes=(100, 200), trials=2, seed=1)
    result = run_study(spec)
    assert set(result.cells) == {("uniform", 100), ("uniform", 200), ("lognormal", 100), ("lognormal", 200)}
    rows = list(result.rows())
    assert len(rows) == 2 * 3 * 2
    assert all(v >= 0.0 for *_, v in rows)


def test_seeded_study_is_reproducible():
    spec = StudySpec(scenarios=("mixture",), sizes=(150,), methods=("histogram", "kde"), trials=3, seed=42)
    a = run_study(spec)
    b = run_study(spec)
    assert a.cells[("mixture", 150)].mean_ise == b.cells[("mixture", 150)].mean_ise


def test_uniform_histogram_error_shrinks_with_n():
    scenario = get_scenario("uniform")
    estimators = build_estimators(["histogram"])
    rng = make_rng(123)
    small = run_cell(scenario, 250, 40, rng, estimators).mean_ise["histogram"]
    large = run_cell(scenario, 1000, 40, rng, estimators).mean_ise["histogram"]
    assert large <= small * 1.1


def test_lognormal_kde_beats_histogram_at_1000():
    cell = run_cell(get_scenario("lognormal"), 1000, 20, make_rng(77), build_estimators(["histogram", "kde"]))
    assert cell.mean_ise["kde"] < cell.mean_ise["histogram"]


def test_run_illustration_is_seeded():
    sc, sample, fits, ise = run_illustration("uniform", 250, 9)
    _, sample2, _, ise2 = run_illustration("uniform", 250, 9)
    assert sc.name == "uniform"
    assert np.array_equal(sample, sample2)
    assert set(fits) == {"histogram", "kde", "locfit"}
    assert ise == ise2


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

def test_format_table_and_line():
    spec = StudySpec(scenarios=("uniform",), sizes=(250, 500), methods=("histogram", "kde"), trials=1)
    result = StudyResult(spec=spec)
    result.add(CellResult(scenario="uniform", n=250, trials=1, mean_ise={"histogram": 0.25, "kde": 0.125}))

    lines = format_table(result)
    assert "n=250" in lines[0] and "n=500" in lines[0]
    assert lines[2].split() == ["uniform", "histogram", "0.250000", "-"]
    assert lines[3].split() == ["uniform", "kde", "0.125000", "-"]

    line = format_cell_line(result.cells[("uniform", 250)])
    assert line == "uniform n=250 (1 trials): histogram=0.25000, kde=0.12500"
