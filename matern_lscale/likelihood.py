r"""
Likelihood
----------

Building blocks for Gaussian (profile) likelihoods of Matern models.

* Log-likelihood terms from a Cholesky factorisation of a correlation matrix,
  used by the grid-search estimators.
* A golden-section line search, used to maximise profile likelihoods over a
  single log-scale parameter.
* The profile likelihood of the nugget-to-sill ratio, given the
  eigendecomposition of a trend-projected correlation matrix.
"""

from collections.abc import Callable
from dataclasses import dataclass
import logging
import numpy as np
from scipy.linalg import LinAlgError, cho_factor, cho_solve
from warnings import warn

from .constants import GOLDEN_RATIO, GOLDEN_SECTION_TOL
from .utils import (
    BoundaryReachedWarning,
    NumericalInstabilityError,
    on_boundary,
)


def cholesky_terms(
    corr: np.ndarray,
    z: np.ndarray,
) -> tuple[float, float]:
    """
    Compute the quadratic form and log-determinant of a correlation matrix via
    its Cholesky factorisation.

    Parameters
    ----------
    corr : numpy.ndarray
        Symmetric positive definite correlation matrix.
    z : numpy.ndarray
        Vector of values.

    Returns
    -------
    quad : float
        z^T corr^{-1} z
    logdet : float
        log(det(corr))

    Raises
    ------
    NumericalInstabilityError
        If the matrix is not finite or not positive definite.
    """
    if not np.all(np.isfinite(corr)):
        raise NumericalInstabilityError("Correlation matrix is not finite")
    try:
        factor = cho_factor(corr, lower=True, check_finite=False)
    except LinAlgError as err:
        raise NumericalInstabilityError(
            "Correlation matrix is not positive definite"
        ) from err

    diag = np.diag(factor[0])
    if np.any(diag <= 0):
        raise NumericalInstabilityError(
            "Correlation matrix is numerically singular"
        )
    quad = float(z @ cho_solve(factor, z, check_finite=False))
    logdet = float(2.0 * np.sum(np.log(diag)))
    return quad, logdet


def gaussian_log_likelihood(
    quad: float,
    logdet: float,
    n: int,
    variance: float | np.ndarray,
) -> float | np.ndarray:
    """
    Gaussian log-likelihood (up to a constant) of data with covariance
    variance * corr, given the terms returned by `cholesky_terms`:

        -0.5 * quad / variance - 0.5 * n * log(variance) - 0.5 * logdet
    """
    return -0.5 * quad / variance - 0.5 * n * np.log(variance) - 0.5 * logdet


@dataclass(frozen=True)
class GoldenSectionResult:
    """
    Result of a golden-section search.

    Parameters
    ----------
    x : float
        The minimising value.
    fmin : float
        The minimum value of the function.
    coarse_search : numpy.ndarray
        The (x, f(x)) pairs of the initial grid search, an (n, 2) array.
    on_boundary : bool
        The grid minimum was on the edge of the grid, so no refinement was
        performed.
    """

    x: float
    fmin: float
    coarse_search: np.ndarray
    on_boundary: bool


def golden_section_search(
    func: Callable[[float], float],
    grid: np.ndarray,
    tol: float = GOLDEN_SECTION_TOL,
    label: str = "parameter",
) -> GoldenSectionResult:
    """
    Minimise a function of one variable. The function is first evaluated on a
    coarse grid. The grid minimum and its two neighbours form the bracket for
    a golden-section search.

    If the grid minimum is on the edge of the grid a BoundaryReachedWarning is
    raised and the grid minimum is returned without refinement.

    Parameters
    ----------
    func : Callable[[float], float]
        The function to minimise. Non-finite values are treated as +inf.
    grid : numpy.ndarray
        Coarse grid of trial values.
    tol : float
        Width of the final bracket.
    label : str
        Name of the parameter, used in warnings.

    Returns
    -------
    GoldenSectionResult
    """
    grid = np.sort(np.atleast_1d(np.asarray(grid, dtype=float)))

    def _func(x: float) -> float:
        val = func(x)
        return val if np.isfinite(val) else np.inf

    fgrid = np.array([_func(x) for x in grid])
    coarse_search = np.column_stack([grid, fgrid])
    if not np.any(np.isfinite(fgrid)):
        raise NumericalInstabilityError(
            f"Objective is not finite for any grid value of {label}"
        )

    ind = int(np.argmin(fgrid))
    if on_boundary(ind, len(grid)):
        if len(grid) > 1:
            warn(
                f"Minimum at the boundary of the search grid for {label}",
                BoundaryReachedWarning,
            )
        return GoldenSectionResult(
            x=float(grid[ind]),
            fmin=float(fgrid[ind]),
            coarse_search=coarse_search,
            on_boundary=True,
        )

    lower, upper = grid[ind - 1], grid[ind + 1]
    x1 = upper - GOLDEN_RATIO * (upper - lower)
    x2 = lower + GOLDEN_RATIO * (upper - lower)
    f1, f2 = _func(x1), _func(x2)
    n_iter = 0
    while abs(upper - lower) > tol:
        if f1 < f2:
            upper, x2, f2 = x2, x1, f1
            x1 = upper - GOLDEN_RATIO * (upper - lower)
            f1 = _func(x1)
        else:
            lower, x1, f1 = x1, x2, f2
            x2 = lower + GOLDEN_RATIO * (upper - lower)
            f2 = _func(x2)
        n_iter += 1
    logging.debug(f"Golden-section search for {label}: {n_iter} iterations")

    x, fmin = min(
        [(x1, f1), (x2, f2), (grid[ind], fgrid[ind])], key=lambda p: p[1]
    )
    return GoldenSectionResult(
        x=float(x),
        fmin=float(fmin),
        coarse_search=coarse_search,
        on_boundary=False,
    )


@dataclass(frozen=True)
class NuggetProfile:
    """
    Nugget-to-sill ratio maximising the profile likelihood for a fixed range.

    Parameters
    ----------
    lambda_ : float
        Nugget-to-sill ratio.
    sill : float
        Maximum likelihood sill (marginal variance).
    nugget : float
        Maximum likelihood nugget variance, lambda_ * sill.
    trace : float
        Trace of the smoothing (hat) matrix, effective degrees of freedom.
    minus_log_likelihood : float
        Minus the maximised profile log-likelihood.
    on_boundary : bool
        The ratio is on the edge of the search grid.
    """

    lambda_: float
    sill: float
    nugget: float
    trace: float
    minus_log_likelihood: float
    on_boundary: bool


def _sill_mle(lam: float, eigvals: np.ndarray, energy: np.ndarray) -> float:
    return float(np.sum(energy / (lam + eigvals)) / len(eigvals))


def minus_profile_log_likelihood(
    log_lambda: float,
    eigvals: np.ndarray,
    energy: np.ndarray,
    n_realisations: int = 1,
) -> float:
    r"""
    Minus the profile log-likelihood of the log nugget-to-sill ratio.

    With :math:`N` eigenvalues :math:`D_i` of the trend-projected correlation
    matrix, mean squared rotated response :math:`u_i` and
    :math:`\hat\rho = \frac{1}{N}\sum_i u_i / (\lambda + D_i)`:

    .. math::
        -M \left(-\frac{N}{2} - \frac{N}{2}\log(2\pi)
        - \frac{N}{2}\log\hat\rho - \frac{1}{2}\sum_i\log(\lambda + D_i)
        \right)

    Parameters
    ----------
    log_lambda : float
        log of the nugget-to-sill ratio.
    eigvals : numpy.ndarray
        Eigenvalues of the projected correlation matrix.
    energy : numpy.ndarray
        Mean (over realisations) squared response, rotated into the
        eigenbasis.
    n_realisations : int
        Number of independent realisations (M).
    """
    lam = np.exp(log_lambda)
    n = len(eigvals)
    sill = _sill_mle(lam, eigvals, energy)
    with np.errstate(divide="ignore", invalid="ignore"):
        ln_det_cov = np.sum(np.log(lam + eigvals))
        return float(
            -n_realisations
            * (
                -n / 2
                - np.log(2 * np.pi) * (n / 2)
                - (n / 2) * np.log(sill)
                - 0.5 * ln_det_cov
            )
        )


def profile_nugget(
    eigvals: np.ndarray,
    energy: np.ndarray,
    lambda_grid: np.ndarray,
    n_realisations: int = 1,
    tol: float = GOLDEN_SECTION_TOL,
) -> NuggetProfile:
    """
    Profile out the nugget and sill for a fixed range. A golden-section search
    over log(nugget / sill) is bracketed by the log of `lambda_grid`.

    Parameters
    ----------
    eigvals : numpy.ndarray
        Eigenvalues of the trend-projected correlation matrix.
    energy : numpy.ndarray
        Mean squared response rotated into the eigenbasis.
    lambda_grid : numpy.ndarray
        Coarse grid of candidate nugget-to-sill ratios.
    n_realisations : int
        Number of independent realisations.
    tol : float
        Golden-section tolerance on log(lambda).

    Returns
    -------
    NuggetProfile
    """
    result = golden_section_search(
        lambda llam: minus_profile_log_likelihood(
            llam, eigvals, energy, n_realisations
        ),
        np.log(lambda_grid),
        tol=tol,
        label="nugget-to-sill ratio",
    )
    lam = float(np.exp(result.x))
    sill = _sill_mle(lam, eigvals, energy)
    return NuggetProfile(
        lambda_=lam,
        sill=sill,
        nugget=lam * sill,
        trace=float(np.sum(eigvals / (lam + eigvals))),
        minus_log_likelihood=result.fmin,
        on_boundary=result.on_boundary,
    )
