"""Tests for the local-likelihood density fitter."""

from __future__ import annotations

import numpy as np
import pytest
from scipy import stats

from src.density_ise.local_likelihood import (
    LocalLikelihoodFit,
    local_log_density,
    nn_bandwidth,
    tricube,
)


class TestHelpers:

    def test_tricube_shape(self):
        assert tricube(0.0) == pytest.approx(1.0)
        assert tricube(0.5) == pytest.approx((1 - 0.125) ** 3)
        assert tricube(-0.5) == pytest.approx(tricube(0.5))
        assert np.all(tricube([1.0, 1.5, -2.0]) == 0.0)

    def test_nn_bandwidth_is_kth_distance(self):
        data = np.arange(10.0)
        # k = floor(0.5 * 10) = 5 -> distances 0..9, fifth smallest is 4
        assert nn_bandwidth(data, 0.0, nn=0.5) == pytest.approx(4.0)

    def test_nn_bandwidth_full_window(self):
        data = np.arange(10.0)
        assert nn_bandwidth(data, 4.5, nn=1.0) == pytest.approx(4.5)


class TestLocalLogDensity:

    def test_zero_bandwidth_is_fatal(self):
        with pytest.raises(RuntimeError, match="degenerate bandwidth"):
            local_log_density(np.arange(5.0), 2.0, 0.0, 0.0, 4.0)

    def test_non_convergence_is_fatal(self):
        data = np.random.default_rng(1).normal(size=200)
        with pytest.raises(RuntimeError, match="did not converge"):
            local_log_density(data, 0.0, 1.0, data.min(), data.max(), max_iter=0)

    def test_standard_normal_peak(self):
        data = np.random.default_rng(2).normal(size=4000)
        h = nn_bandwidth(data, 0.0)
        theta = local_log_density(data, 0.0, h, data.min(), data.max())
        assert np.exp(theta[0]) == pytest.approx(stats.norm.pdf(0.0), abs=0.04)
        # symmetric data: slope near zero, log-density curves downward
        assert abs(theta[1]) < 0.3
        assert theta[2] < 0


class TestLocalLikelihoodFit:

    def test_rejects_bad_inputs(self):
        with pytest.raises(ValueError):
            LocalLikelihoodFit([1.0])
        with pytest.raises(ValueError, match="nn"):
            LocalLikelihoodFit(np.arange(10.0), nn=0.0)
        with pytest.raises(ValueError, match="n_vertices"):
            LocalLikelihoodFit(np.arange(10.0), n_vertices=1)
        with pytest.raises(ValueError, match="lower < upper"):
            LocalLikelihoodFit(np.arange(10.0), bounds=(3.0, 3.0))

    def test_zero_outside_bounds(self, rng):
        data = rng.uniform(1.0, 3.0, size=500)
        fit = LocalLikelihoodFit(data)
        assert np.all(fit([data.min() - 0.1, data.max() + 0.1]) == 0.0)
        assert np.all(fit(np.linspace(data.min(), data.max(), 50)) > 0.0)

    def test_uniform_is_flat(self, rng):
        data = rng.uniform(1.0, 3.0, size=1000)
        fit = LocalLikelihoodFit(data)
        assert fit(2.0) == pytest.approx(0.5, abs=0.1)

    def test_fitted_matches_sample_order(self, rng):
        data = rng.normal(size=300)
        fit = LocalLikelihoodFit(data, n_vertices=21)
        fitted = fit.fitted()
        assert fitted.shape == data.shape
        assert np.allclose(fitted, fit(data))
        assert fit.vertices[0] == data.min()
        assert fit.vertices[-1] == data.max()
        assert np.all(fit.bandwidths > 0)
