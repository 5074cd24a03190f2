import pytest  # noqa: F401
import numpy as np
from warnings import catch_warnings, simplefilter

from matern_lscale.likelihood import (
    cholesky_terms,
    gaussian_log_likelihood,
    golden_section_search,
    minus_profile_log_likelihood,
    profile_nugget,
)
from matern_lscale.utils import (
    BoundaryReachedWarning,
    NumericalInstabilityError,
)


def test_cholesky_terms() -> None:  # noqa: D103
    rng = np.random.default_rng(42)
    a = rng.normal(size=(8, 8))
    corr = a @ a.T + 8 * np.eye(8)
    z = rng.normal(size=8)

    quad, logdet = cholesky_terms(corr, z)

    assert np.isclose(quad, z @ np.linalg.solve(corr, z))  # noqa: S101
    assert np.isclose(logdet, np.linalg.slogdet(corr)[1])  # noqa: S101
    return None


def test_cholesky_terms_not_positive_definite() -> None:  # noqa: D103
    corr = np.array([[1.0, 2.0], [2.0, 1.0]])
    with pytest.raises(NumericalInstabilityError):
        cholesky_terms(corr, np.ones(2))
    corr = np.array([[1.0, np.nan], [np.nan, 1.0]])
    with pytest.raises(NumericalInstabilityError):
        cholesky_terms(corr, np.ones(2))
    return None


def test_gaussian_log_likelihood() -> None:  # noqa: D103
    # Maximised at variance = quad / n
    variance = np.linspace(0.1, 5, 491)
    ll = gaussian_log_likelihood(20.0, 1.0, 10, variance)

    assert np.isclose(variance[np.argmax(ll)], 2.0)  # noqa: S101
    return None


def test_golden_section() -> None:  # noqa: D103
    result = golden_section_search(
        lambda x: (x - 0.3) ** 2, np.linspace(-1, 1, 11), tol=1e-8
    )

    assert not result.on_boundary  # noqa: S101
    assert np.isclose(result.x, 0.3, atol=1e-6)  # noqa: S101
    assert np.isclose(result.fmin, 0.0, atol=1e-10)  # noqa: S101
    assert result.coarse_search.shape == (11, 2)  # noqa: S101
    return None


def test_golden_section_boundary() -> None:  # noqa: D103
    with pytest.warns(BoundaryReachedWarning):
        result = golden_section_search(lambda x: x, np.linspace(0, 1, 5))

    assert result.on_boundary  # noqa: S101
    assert result.x == 0.0  # noqa: S101

    with catch_warnings():
        simplefilter("error", BoundaryReachedWarning)
        result = golden_section_search(lambda x: x, np.array([2.0]))
    assert result.x == 2.0  # noqa: S101
    return None


def test_golden_section_not_finite() -> None:  # noqa: D103
    with pytest.raises(NumericalInstabilityError):
        golden_section_search(lambda x: np.nan, np.linspace(0, 1, 5))

    # Non-finite points are skipped
    result = golden_section_search(
        lambda x: np.inf if x < 0 else (x - 0.5) ** 2,
        np.linspace(-1, 2, 7),
    )
    assert np.isclose(result.x, 0.5, atol=1e-6)  # noqa: S101
    return None


def test_profile_nugget() -> None:  # noqa: D103
    eigvals = np.linspace(0.1, 5.0, 50)
    lam, sill = 0.5, 2.0
    energy = sill * (lam + eigvals)

    profile = profile_nugget(eigvals, energy, 10.0 ** np.arange(-4.0, 5.0))

    assert np.isclose(profile.lambda_, lam, rtol=1e-4)  # noqa: S101
    assert np.isclose(profile.sill, sill, rtol=1e-4)  # noqa: S101
    assert np.isclose(profile.nugget, lam * sill, rtol=1e-4)  # noqa: S101
    assert np.isclose(  # noqa: S101
        profile.trace, np.sum(eigvals / (lam + eigvals)), rtol=1e-4
    )
    assert np.isclose(  # noqa: S101
        profile.minus_log_likelihood,
        minus_profile_log_likelihood(np.log(lam), eigvals, energy),
    )
    assert not profile.on_boundary  # noqa: S101
    return None


def test_profile_realisations_scale() -> None:  # noqa: D103
    eigvals = np.linspace(0.1, 5.0, 50)
    energy = 1.0 + eigvals
    one = minus_profile_log_likelihood(0.0, eigvals, energy, 1)
    three = minus_profile_log_likelihood(0.0, eigvals, energy, 3)

    assert np.isclose(three, 3 * one)  # noqa: S101
    return None
