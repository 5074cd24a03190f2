"""
Fast Matern MLE
---------------

Maximum likelihood estimation of the Matern range, with the sill and nugget
profiled out analytically.

A linear trend (constant plus coordinates) is removed by projecting the
observations onto the orthogonal complement of the trend basis (REML). For a
given range the projected correlation matrix is eigen-decomposed, which makes
the profile likelihood of the nugget-to-sill ratio cheap to evaluate for any
ratio. The range itself is then optimised by a golden-section search on
log(range).
"""

from dataclasses import dataclass
import logging
import numpy as np
import polars as pl
from scipy.linalg import LinAlgError, eigh, qr

from .constants import (
    DEFAULT_LAMBDA_GRID,
    DEFAULT_RANGE_NGRID,
    DEFAULT_RANGE_QUANTILES,
    GOLDEN_SECTION_TOL,
    NEGATIVE_EIGENVALUE_TOL,
)
from .distances import pairwise_distance
from .likelihood import NuggetProfile, golden_section_search, profile_nugget
from .matern import matern
from .utils import (
    NumericalInstabilityError,
    adjust_small_negative,
    as_search_axis,
)


@dataclass(frozen=True)
class FastMaternFit:
    """
    Result of `fit_matern_fast`.

    Parameters
    ----------
    range : float
        Maximum likelihood Matern range parameter.
    sill : float
        Maximum likelihood marginal variance.
    nugget : float
        Maximum likelihood nugget (measurement error) variance.
    trace : float
        Trace of the smoothing (hat) matrix implied by the fit.
    log_likelihood : float
        Maximised profile log-likelihood.
    lambda_ : float
        Nugget-to-sill ratio.
    smoothness : float
        The (fixed) smoothness parameter.
    range_search : polars.DataFrame
        Profile log-likelihood at the candidate ranges, columns "range",
        "log_likelihood".
    """

    range: float
    sill: float
    nugget: float
    trace: float
    log_likelihood: float
    lambda_: float
    smoothness: float
    range_search: pl.DataFrame

    @property
    def sigma(self) -> float:
        """Nugget standard deviation"""
        return float(np.sqrt(self.nugget))


def trend_basis(locations: np.ndarray) -> np.ndarray:
    """Linear trend basis: a constant column and the coordinates"""
    locations = np.asarray(locations, dtype=float)
    if locations.ndim == 1:
        locations = locations[:, None]
    return np.column_stack([np.ones(locations.shape[0]), locations])


def null_space_projector(basis: np.ndarray) -> np.ndarray:
    """
    Orthonormal basis of the orthogonal complement of the column space of
    `basis`, from a complete QR decomposition.
    """
    n, p = basis.shape
    if n <= p:
        raise ValueError(
            f"At least {p + 1} observations are needed to remove the trend"
        )
    q, r = qr(basis, mode="full")
    if np.any(np.abs(np.diag(r)) < 1e-10 * np.abs(r).max()):
        raise NumericalInstabilityError(
            "Trend basis is rank deficient (collinear locations?)"
        )
    return q[:, p:]


class _RangeProfile:
    """Profile likelihood of the Matern range for fixed data"""

    def __init__(
        self,
        distance: np.ndarray,
        projector: np.ndarray,
        values: np.ndarray,
        smoothness: float,
        lambda_grid: np.ndarray,
        tol: float,
    ) -> None:
        self.distance = distance
        self.projector = projector
        self.projected = projector.T @ values
        self.smoothness = smoothness
        self.lambda_grid = lambda_grid
        self.tol = tol
        return None

    def profile(self, range: float) -> NuggetProfile:
        corr = matern(self.distance, range, self.smoothness)
        try:
            eigvals, eigvecs = eigh(self.projector.T @ corr @ self.projector)
        except LinAlgError as err:
            raise NumericalInstabilityError(
                f"Eigendecomposition failed for range = {range}"
            ) from err
        eigvals = adjust_small_negative(eigvals, atol=NEGATIVE_EIGENVALUE_TOL)
        if np.any(eigvals < 0):
            raise NumericalInstabilityError(
                "Projected correlation matrix is not positive semi-definite "
                + f"for range = {range}"
            )
        rotated = eigvecs.T @ self.projected
        energy = np.mean(np.power(rotated, 2), axis=1)
        return profile_nugget(
            eigvals,
            energy,
            self.lambda_grid,
            n_realisations=self.projected.shape[1],
            tol=self.tol,
        )

    def objective(self, log_range: float) -> float:
        try:
            return self.profile(float(np.exp(log_range))).minus_log_likelihood
        except NumericalInstabilityError as err:
            logging.debug(f"Range {np.exp(log_range)} skipped: {err}")
            return np.inf


def default_range_candidates(
    distance: np.ndarray,
    ngrid: int = DEFAULT_RANGE_NGRID,
    quantiles: tuple[float, float] = DEFAULT_RANGE_QUANTILES,
) -> np.ndarray:
    """
    Evenly spaced candidate ranges between quantiles of the distinct pairwise
    distances.
    """
    pairs = distance[np.triu_indices_from(distance, k=1)]
    pairs = pairs[pairs > 0]
    if pairs.size == 0:
        raise ValueError("All observation locations are coincident")
    lower, upper = np.quantile(pairs, quantiles)
    return np.linspace(lower, upper, ngrid)


def fit_matern_fast(
    locations: np.ndarray,
    values: np.ndarray,
    smoothness: float = 1.0,
    range_candidates: np.ndarray | float | None = None,
    lambda_grid: np.ndarray = DEFAULT_LAMBDA_GRID,
    tol: float = GOLDEN_SECTION_TOL,
) -> FastMaternFit:
    """
    Estimate the Matern range, sill and nugget by maximising the profile
    likelihood, after removing a linear trend.

    Parameters
    ----------
    locations : numpy.ndarray
        Observation locations, (n, d) array or a vector for 1d problems.
    values : numpy.ndarray
        Observed values, a vector of length n or an (n, M) matrix whose
        columns are treated as independent realisations.
    smoothness : float
        Matern smoothness, fixed.
    range_candidates : numpy.ndarray | float | None
        A single range (no optimisation over the range), or a grid of
        candidate ranges used as a coarse search and as the bracket of a
        golden-section search on log(range). If None, a grid between the 3%
        and 97% quantiles of the pairwise distances is used.
    lambda_grid : numpy.ndarray
        Candidate nugget-to-sill ratios bracketing the search for the ratio.
    tol : float
        Golden-section tolerance (on the log scale).

    Returns
    -------
    FastMaternFit
    """
    locations = np.asarray(locations, dtype=float)
    values = np.asarray(values, dtype=float)
    if values.ndim == 1:
        values = values[:, None]
    if values.ndim != 2 or values.shape[0] != locations.shape[0]:
        raise ValueError(
            "Number of values must match the number of locations, "
            + f"got {values.shape[0]} values and {locations.shape[0]} "
            + "locations"
        )
    if not np.all(np.isfinite(values)) or not np.all(np.isfinite(locations)):
        raise ValueError("Locations and values must be finite")
    if smoothness <= 0:
        raise ValueError("smoothness must be positive")
    lambda_grid = as_search_axis(lambda_grid, "lambda_grid")

    distance = pairwise_distance(locations)
    projector = null_space_projector(trend_basis(locations))
    if range_candidates is None:
        range_candidates = default_range_candidates(distance)
    range_candidates = np.sort(as_search_axis(range_candidates, "range"))

    range_profile = _RangeProfile(
        distance, projector, values, smoothness, lambda_grid, tol
    )
    if len(range_candidates) == 1:
        best_range = float(range_candidates[0])
        coarse = np.array(
            [[best_range, range_profile.objective(np.log(best_range))]]
        )
    else:
        logging.info(
            f"Searching {len(range_candidates)} candidate ranges between "
            + f"{range_candidates[0]:.4g} and {range_candidates[-1]:.4g}"
        )
        result = golden_section_search(
            range_profile.objective,
            np.log(range_candidates),
            tol=tol,
            label="range",
        )
        best_range = float(np.exp(result.x))
        coarse = result.coarse_search.copy()
        coarse[:, 0] = np.exp(coarse[:, 0])

    best = range_profile.profile(best_range)
    logging.info(
        f"Fast Matern MLE: range = {best_range:.4g}, sill = {best.sill:.4g}, "
        + f"nugget = {best.nugget:.4g}"
    )
    return FastMaternFit(
        range=best_range,
        sill=best.sill,
        nugget=best.nugget,
        trace=best.trace,
        log_likelihood=-best.minus_log_likelihood,
        lambda_=best.lambda_,
        smoothness=smoothness,
        range_search=pl.DataFrame(
            {"range": coarse[:, 0], "log_likelihood": -coarse[:, 1]}
        ),
    )
