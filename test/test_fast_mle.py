import pytest  # noqa: F401
import numpy as np
import polars as pl
from warnings import catch_warnings, simplefilter

from matern_lscale.distances import pairwise_distance
from matern_lscale.fast_mle import (
    default_range_candidates,
    fit_matern_fast,
    null_space_projector,
    trend_basis,
)
from matern_lscale.lengthscale import fit_matern_lengthscale
from matern_lscale.matern import matern
from matern_lscale.utils import BoundaryReachedWarning


def _locations(seed: int) -> np.ndarray:
    rng = np.random.default_rng(seed)
    axis = 0.5 + np.arange(10)
    x, y = np.meshgrid(axis, axis)
    pos = np.column_stack([x.ravel(), y.ravel()])
    return pos + rng.uniform(-0.3, 0.3, size=pos.shape)


def _simulate(
    pos: np.ndarray,
    range: float,
    smoothness: float,
    sill: float,
    nugget: float,
    n_real: int,
    seed: int,
) -> np.ndarray:
    rng = np.random.default_rng(seed)
    n = pos.shape[0]
    cov = matern(pairwise_distance(pos), range, smoothness, variance=sill)
    chol = np.linalg.cholesky(cov + 1e-10 * np.eye(n))
    signal = chol @ rng.standard_normal((n, n_real))
    trend = (1.0 + 0.2 * pos[:, 0] - 0.1 * pos[:, 1])[:, None]
    return signal + trend + np.sqrt(nugget) * rng.standard_normal((n, n_real))


def test_recover_parameters() -> None:  # noqa: D103
    pos = _locations(1)
    values = _simulate(pos, 1.0, 1.0, 1.0, 0.1, n_real=30, seed=2)

    fit = fit_matern_fast(
        pos, values, smoothness=1.0, range_candidates=np.linspace(0.2, 3, 15)
    )

    assert np.isclose(fit.range, 1.0, rtol=0.2)  # noqa: S101
    assert np.isclose(fit.sill, 1.0, rtol=0.3)  # noqa: S101
    assert np.isclose(fit.nugget, 0.1, rtol=0.5)  # noqa: S101
    assert np.isclose(fit.lambda_, fit.nugget / fit.sill)  # noqa: S101
    assert np.isclose(fit.sigma, np.sqrt(fit.nugget))  # noqa: S101
    assert 0 < fit.trace < pos.shape[0] - 3  # noqa: S101
    assert fit.range_search.height == 15  # noqa: S101
    assert fit.log_likelihood >= fit.range_search[  # noqa: S101
        "log_likelihood"
    ].max() - 1e-8
    return None


def test_agrees_with_grid_search() -> None:  # noqa: D103
    pos = _locations(7)
    smoothness = 1.0
    values = _simulate(pos, 1.2, smoothness, 2.0, 0.0, n_real=30, seed=8)
    values = values - (1.0 + 0.2 * pos[:, 0] - 0.1 * pos[:, 1])[:, None]

    with catch_warnings():
        # The nugget is zero, the nugget-to-sill ratio hits its boundary
        simplefilter("ignore", BoundaryReachedWarning)
        fast = fit_matern_fast(
            pos,
            values,
            smoothness=smoothness,
            range_candidates=np.linspace(0.3, 3, 10),
            lambda_grid=10.0 ** np.arange(-6.0, 1.0),
        )

    # Grid search over practical ranges around the fast estimate
    practical = np.sqrt(8 * smoothness) * fast.range
    lscale = practical * np.linspace(0.7, 1.3, 61)
    n = pos.shape[0]
    n_real = values.shape[1]
    df = pl.DataFrame(
        {
            "x": np.tile(pos[:, 0], n_real),
            "y": np.tile(pos[:, 1], n_real),
            "t": np.repeat(np.arange(n_real), n),
            "z": values.T.ravel(),
        }
    )
    with catch_warnings():
        simplefilter("ignore", BoundaryReachedWarning)
        grid = fit_matern_lengthscale(
            df,
            lscale=lscale,
            nu=smoothness,
            variance=np.linspace(0.5, 4.0, 71),
        )

    grid_range = grid.spatial["lscale"][0] / np.sqrt(8 * smoothness)
    assert np.isclose(grid_range, fast.range, rtol=0.15)  # noqa: S101
    assert np.isclose(  # noqa: S101
        grid.spatial["variance"][0], fast.sill, rtol=0.25
    )
    return None


def test_single_range() -> None:  # noqa: D103
    pos = _locations(3)
    values = _simulate(pos, 1.0, 1.5, 1.0, 0.2, n_real=5, seed=4)

    fit = fit_matern_fast(pos, values, smoothness=1.5, range_candidates=1.3)

    assert fit.range == 1.3  # noqa: S101
    assert fit.range_search.height == 1  # noqa: S101
    assert fit.smoothness == 1.5  # noqa: S101
    return None


def test_default_range_candidates() -> None:  # noqa: D103
    pos = _locations(5)
    dist = pairwise_distance(pos)

    candidates = default_range_candidates(dist)
    pairs = dist[np.triu_indices_from(dist, k=1)]

    assert len(candidates) == 10  # noqa: S101
    assert np.isclose(candidates[0], np.quantile(pairs, 0.03))  # noqa: S101
    assert np.isclose(candidates[-1], np.quantile(pairs, 0.97))  # noqa: S101
    with pytest.raises(ValueError):
        default_range_candidates(np.zeros((4, 4)))
    return None


def test_null_space_projector() -> None:  # noqa: D103
    pos = _locations(9)
    basis = trend_basis(pos)

    proj = null_space_projector(basis)

    assert proj.shape == (100, 97)  # noqa: S101
    assert np.allclose(proj.T @ basis, 0.0)  # noqa: S101
    assert np.allclose(proj.T @ proj, np.eye(97))  # noqa: S101
    return None


def test_fast_invalid_input() -> None:  # noqa: D103
    pos = _locations(11)
    values = np.ones(100)
    with pytest.raises(ValueError):
        fit_matern_fast(pos, values[:-1])
    with pytest.raises(ValueError):
        fit_matern_fast(pos, values, smoothness=0.0)
    with pytest.raises(ValueError):
        fit_matern_fast(pos, values, range_candidates=[-1.0, 2.0])
    with pytest.raises(ValueError):
        fit_matern_fast(pos[:3], values[:3])
    bad = values.copy()
    bad[4] = np.nan
    with pytest.raises(ValueError):
        fit_matern_fast(pos, bad)
    return None
