"""Tests for Bridson Poisson-disc sampling."""

from __future__ import annotations

import numpy as np
import pytest
from scipy.spatial.distance import pdist

import poisson_disc


def test_minimum_separation_2d(rng: np.random.Generator) -> None:
    pts = poisson_disc.sample_2d(30.0, 20.0, 1.5, rng=rng)
    assert len(pts) > 50
    assert pdist(pts).min() >= 1.5 - 1e-9


def test_minimum_separation_3d(rng: np.random.Generator) -> None:
    pts = poisson_disc.sample_3d(25.0, 25.0, 1.0, rng=rng)
    assert pts.shape[1] == 3
    np.testing.assert_array_equal(pts[:, 1], 0.0)
    assert pdist(pts).min() >= 1.0 - 1e-9


def test_points_stay_inside_domain(rng: np.random.Generator) -> None:
    pts = poisson_disc.sample_2d(10.0, 5.0, 0.7, rng=rng)
    assert np.all(pts[:, 0] >= 0) and np.all(pts[:, 0] < 10.0)
    assert np.all(pts[:, 1] >= 0) and np.all(pts[:, 1] < 5.0)


def test_domain_is_filled(rng: np.random.Generator) -> None:
    # no large holes: every probe lies near some sample
    pts = poisson_disc.sample_2d(20.0, 20.0, 1.0, rng=rng)
    probe = np.stack(np.meshgrid(np.linspace(2, 18, 17), np.linspace(2, 18, 17)), -1).reshape(-1, 2)
    nearest = np.min(np.linalg.norm(probe[:, None, :] - pts[None, :, :], axis=2), axis=1)
    assert nearest.max() < 3.0


@pytest.mark.parametrize("width,height", [(0.0, 10.0), (10.0, 0.0), (-1.0, 5.0)])
def test_degenerate_domain_is_empty(width: float, height: float) -> None:
    assert poisson_disc.sample_2d(width, height, 1.0).shape == (0, 2)
    assert poisson_disc.sample_3d(width, height, 1.0).shape == (0, 3)


def test_invalid_radius_raises() -> None:
    with pytest.raises(ValueError):
        poisson_disc.sample_2d(10.0, 10.0, 0.0)
    with pytest.raises(ValueError):
        poisson_disc.sample_2d(10.0, 10.0, 1.0, k=0)


def test_same_seed_same_points() -> None:
    a = poisson_disc.sample_2d(10.0, 10.0, 1.0, rng=42)
    b = poisson_disc.sample_2d(10.0, 10.0, 1.0, rng=42)
    np.testing.assert_array_equal(a, b)
