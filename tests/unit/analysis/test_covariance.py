"""Tests for covariance aggregation."""

from __future__ import annotations

import numpy as np

from btcstats.analysis import covariance_per_object, safe_cov


def test_no_rows_is_none() -> None:
    assert safe_cov(np.zeros((0, 3))) is None


def test_single_row_is_nan() -> None:
    cov = safe_cov(np.array([[1.0, 2.0, 3.0]]))
    assert cov is not None
    assert cov.shape == (3, 3)
    assert np.isnan(cov).all()


def test_sample_covariance() -> None:
    ev = np.array([[1.0, 2.0], [3.0, 6.0], [5.0, 10.0]])
    cov = safe_cov(ev)
    assert cov is not None
    np.testing.assert_allclose(cov, [[4.0, 8.0], [8.0, 16.0]])


def test_single_feature_is_2d() -> None:
    cov = safe_cov(np.array([[1.0], [3.0]]))
    assert cov is not None
    assert cov.shape == (1, 1)
    assert cov[0, 0] == 2.0


def test_per_object() -> None:
    ev = np.array([[1.0], [3.0], [10.0]])
    covs = covariance_per_object(ev, np.array([4, 4, 9]))
    assert list(covs) == [4, 9]
    assert covs[4] is not None
    assert covs[4][0, 0] == 2.0
    assert covs[9] is not None
    assert np.isnan(covs[9]).all()
