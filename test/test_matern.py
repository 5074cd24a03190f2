import pytest  # noqa: F401
import numpy as np
import xarray as xr

from matern_lscale.matern import (
    MaternCovariance,
    gaussian_rbf,
    matern,
    practical_correlation_range_from_range,
    range_from_practical_correlation_range,
)


@pytest.mark.parametrize(
    "range, nu, variance, nugget",
    [
        (1.0, 0.5, 1.0, 0.0),
        (250.0, 1.5, 4.0, 0.5),
        (3.0, 2.5, 0.3, 0.1),
        (0.1, 0.3, 2.0, 0.0),
    ],
)
def test_zero_distance(range, nu, variance, nugget) -> None:  # noqa: D103
    cov = matern(
        np.zeros((3, 3)), range, nu, variance=variance, nugget=nugget
    )
    assert np.allclose(cov, variance + nugget)  # noqa: S101
    return None


@pytest.mark.parametrize("nu", [0.5, 1.0, 1.5, 2.0, 2.5, 5.0])
def test_monotone(nu) -> None:  # noqa: D103
    dist = np.linspace(0, 20, 401)
    cov = matern(dist, 1.3, nu, variance=2.0)

    assert np.all(np.diff(cov) <= 1e-12)  # noqa: S101
    assert np.all(cov >= 0.0)  # noqa: S101
    assert np.all(cov <= 2.0)  # noqa: S101
    return None


def test_exponential_special_case() -> None:  # noqa: D103
    dist = np.linspace(0, 10, 51)
    cov = matern(dist, 2.0, 0.5, variance=3.0)

    assert np.allclose(cov, 3.0 * np.exp(-dist / 2.0))  # noqa: S101
    return None


def test_three_halves_special_case() -> None:  # noqa: D103
    dist = np.linspace(0, 10, 51)
    cov = matern(dist, 2.0, 1.5)
    scaled = dist / 2.0

    assert np.allclose(cov, (1 + scaled) * np.exp(-scaled))  # noqa: S101
    return None


def test_tiny_distance() -> None:  # noqa: D103
    cov = matern(np.array([1e-300, 1e-12, 1e5]), 1.0, 2.5)

    assert np.all(np.isfinite(cov))  # noqa: S101
    assert np.isclose(cov[0], 1.0)  # noqa: S101
    assert np.isclose(cov[1], 1.0)  # noqa: S101
    assert cov[2] == 0.0  # noqa: S101
    return None


def test_range_conversion() -> None:  # noqa: D103
    practical = 1700.0
    nu = 2.0
    rng = range_from_practical_correlation_range(practical, nu)

    assert np.isclose(rng, 425.0)  # noqa: S101
    assert np.isclose(  # noqa: S101
        practical_correlation_range_from_range(rng, nu), practical
    )

    model = MaternCovariance(practical_range=practical, nu=nu)
    assert np.isclose(model.range, 425.0)  # noqa: S101

    model = MaternCovariance(range=425.0, nu=nu)
    assert np.isclose(model.practical_range, practical)  # noqa: S101
    return None


def test_practical_range_correlation() -> None:  # noqa: D103
    # Correlation at the practical range is roughly 0.1 for moderate nu
    for nu in [1.0, 1.5, 2.5]:
        model = MaternCovariance(practical_range=10.0, nu=nu)
        corr = model.correlation(np.array([10.0]))[0]
        assert 0.08 < corr < 0.16  # noqa: S101
    return None


def test_invalid_parameters() -> None:  # noqa: D103
    with pytest.raises(ValueError):
        MaternCovariance(nu=1.5)
    with pytest.raises(ValueError):
        MaternCovariance(range=1.0, nu=0.0)
    with pytest.raises(ValueError):
        MaternCovariance(range=-1.0, nu=1.5)
    with pytest.raises(ValueError):
        MaternCovariance(range=1.0, nu=1.5, nugget=-0.1)
    with pytest.raises(ValueError):
        matern(np.array([-1.0]), 1.0, 1.5)
    return None


def test_fit_dataarray() -> None:  # noqa: D103
    dist = xr.DataArray(
        np.array([[0.0, 1.0], [1.0, 0.0]]),
        coords=xr.Coordinates({"a": [0, 1], "b": [0, 1]}),
        name="distance",
    )
    model = MaternCovariance(variance=2.0, nugget=0.5, range=1.0, nu=0.5)

    cov = model.fit(dist)

    assert isinstance(cov, xr.DataArray)  # noqa: S101
    assert cov.name == "covariance"  # noqa: S101
    assert cov.dims == dist.dims  # noqa: S101
    assert np.allclose(np.diag(cov.values), 2.5)  # noqa: S101
    assert np.isclose(cov.values[0, 1], 2.0 * np.exp(-1.0))  # noqa: S101
    return None


def test_gaussian_rbf() -> None:  # noqa: D103
    dist = np.array([0.0, 1.0, 2.0])

    out = gaussian_rbf(dist, variance=1.0, amplitude=2.0)

    assert np.allclose(out, 2.0 * np.exp(-(dist**2) / 2.0))  # noqa: S101
    with pytest.raises(ValueError):
        gaussian_rbf(dist, variance=0.0)
    return None
