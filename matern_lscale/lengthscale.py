"""
Length Scales
-------------

Estimation of spatial (and temporal) length scales of a field by maximising
the Gaussian likelihood of a Matern model over a pre-specified parameter grid.

If the data is spatio-temporal a separable covariance structure is assumed:
a Matern covariance in space, independent between time indices, and a
first-order auto-regressive (AR(1)) correlation in time,
:math:`x_{t+1} = \\theta x_{t} + e_{t}`, independent between sites.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from itertools import product
import logging
from typing import NamedTuple
import numpy as np
import polars as pl
import xarray as xr
from warnings import warn

from .constants import DEFAULT_AR1_GRID
from .distances import pairwise_distance, time_lags
from .likelihood import cholesky_terms, gaussian_log_likelihood
from .matern import MaternCovariance
from .observations import Observations
from .utils import (
    BoundaryReachedWarning,
    NumericalInstabilityError,
    as_search_axis,
    on_boundary,
)


class SliceData(NamedTuple):
    """Distance matrix and values for the observations at one time index"""

    distance: np.ndarray
    values: np.ndarray


class LikelihoodTerms(NamedTuple):
    """Accumulated Cholesky terms over a set of independent blocks"""

    quad: float
    logdet: float
    n: int


@dataclass(frozen=True)
class LengthscaleFit:
    """
    Result of `fit_matern_lengthscale`.

    Parameters
    ----------
    spatial : polars.DataFrame
        One row per smoothness value containing the maximum likelihood
        practical range ("lscale"), "variance", smoothness ("nu"), the
        maximised "log_likelihood", and whether the optimum was on the
        "boundary" of the search grid.
    temporal : polars.DataFrame | None
        Maximum likelihood AR(1) coefficient ("ar1"), "variance",
        "log_likelihood" and "boundary". None if there is only one time
        index.
    spatial_surface : xarray.DataArray
        Log-likelihood over the spatial search grid, dimensions
        ("nu", "lscale", "variance").
    temporal_surface : xarray.DataArray | None
        Log-likelihood over the temporal search grid, dimensions
        ("ar1", "variance").
    """

    spatial: pl.DataFrame
    temporal: pl.DataFrame | None
    spatial_surface: xr.DataArray
    temporal_surface: xr.DataArray | None


def build_slice_cache(obs: Observations) -> dict[float, SliceData]:
    """
    Compute the spatial distance matrix of each time slice of the
    observations. The result is computed once and shared (read-only) by every
    point of the grid search.
    """
    cache: dict[float, SliceData] = {}
    for time_slice in obs.time_slices():
        t = time_slice.get_column("t").item(0)
        cache[t] = SliceData(
            distance=pairwise_distance(
                time_slice.select(obs.coord_cols).to_numpy()
            ),
            values=time_slice.get_column("z").to_numpy(),
        )
    logging.debug(f"Computed distance matrices for {len(cache)} time slices")
    return cache


def _spatial_terms(
    cache: dict[float, SliceData],
    nu: float,
    lscale: float,
) -> LikelihoodTerms | None:
    model = MaternCovariance(variance=1.0, practical_range=lscale, nu=nu)
    quad = logdet = 0.0
    n = 0
    for t, slice_data in cache.items():
        corr = model.fit(slice_data.distance)
        np.fill_diagonal(corr, 1.0)  # type: ignore
        try:
            q, ld = cholesky_terms(corr, slice_data.values)  # type: ignore
        except NumericalInstabilityError as err:
            logging.debug(
                f"Skipping nu = {nu}, lscale = {lscale} (t = {t}): {err}"
            )
            return None
        quad += q
        logdet += ld
        n += len(slice_data.values)
    return LikelihoodTerms(quad, logdet, n)


def _temporal_terms(
    sites: list[tuple[np.ndarray, np.ndarray]],
    ar1: float,
) -> LikelihoodTerms | None:
    quad = logdet = 0.0
    n = 0
    for lags, values in sites:
        with np.errstate(invalid="ignore"):
            corr = np.power(ar1, lags)
        np.fill_diagonal(corr, 1.0)
        try:
            q, ld = cholesky_terms(corr, values)
        except NumericalInstabilityError as err:
            logging.debug(f"Skipping ar1 = {ar1}: {err}")
            return None
        quad += q
        logdet += ld
        n += len(values)
    return LikelihoodTerms(quad, logdet, n)


def _surface_row(
    terms: LikelihoodTerms | None,
    variance: np.ndarray,
) -> np.ndarray:
    if terms is None:
        return np.full(len(variance), -np.inf)
    return gaussian_log_likelihood(
        terms.quad, terms.logdet, terms.n, variance
    )  # type: ignore


def _argmax(surface: np.ndarray, label: str) -> tuple[int, int]:
    if not np.any(np.isfinite(surface)):
        raise NumericalInstabilityError(
            f"Likelihood could not be computed at any grid point for {label}"
        )
    i, j = np.unravel_index(np.argmax(surface), surface.shape)
    return int(i), int(j)


def fit_matern_lengthscale(
    obs: Observations | pl.DataFrame,
    lscale: np.ndarray | float,
    nu: np.ndarray | float = 1.5,
    variance: np.ndarray | float = 1.0,
    ar1: np.ndarray | float = DEFAULT_AR1_GRID,
    n_jobs: int = 1,
) -> LengthscaleFit:
    """
    Find spatial and temporal length scales by fitting a Matern model.

    The likelihood is maximised over a grid of practical ranges, smoothness
    values and marginal variances. For each (smoothness, practical range) pair
    the normalised correlation matrix of each time slice is Cholesky factored
    once; the likelihood for every variance value is then computed from the
    cached quadratic forms and log-determinants.

    If there is more than one time index, the AR(1) coefficient is estimated
    separately, treating the observations at each site as a time series.

    A grid point whose correlation matrix is not positive definite is assigned
    a log-likelihood of -inf. A BoundaryReachedWarning is raised if an optimum
    is on the edge of its search grid.

    Parameters
    ----------
    obs : Observations | polars.DataFrame
        The observations. A DataFrame must contain columns "x" and "z", and
        optionally "y" and "t".
    lscale : numpy.ndarray | float
        Practical correlation ranges to search.
    nu : numpy.ndarray | float
        Smoothness values to search.
    variance : numpy.ndarray | float
        Marginal variances to search.
    ar1 : numpy.ndarray | float
        First-order auto-regressive coefficients to search. Only used if there
        is more than one time index.
    n_jobs : int
        Number of threads used to evaluate the (nu, lscale) grid.

    Returns
    -------
    LengthscaleFit
    """
    if isinstance(obs, pl.DataFrame):
        obs = Observations.from_frame(obs)
    lscale = as_search_axis(lscale, "lscale")
    nu = as_search_axis(nu, "nu")
    variance = as_search_axis(variance, "variance")
    if n_jobs < 1:
        raise ValueError("n_jobs must be at least 1")

    cache = build_slice_cache(obs)
    cells = list(product(nu, lscale))
    logging.info(
        f"Evaluating spatial likelihood at {len(cells) * len(variance)} "
        + "grid points"
    )
    if n_jobs > 1:
        with ThreadPoolExecutor(max_workers=n_jobs) as pool:
            terms = list(pool.map(lambda c: _spatial_terms(cache, *c), cells))
    else:
        terms = [_spatial_terms(cache, *c) for c in cells]

    surface = np.array([_surface_row(term, variance) for term in terms])
    surface = surface.reshape((len(nu), len(lscale), len(variance)))

    rows = []
    for k, nu_k in enumerate(nu):
        i, j = _argmax(surface[k], f"nu = {nu_k}")
        boundary = on_boundary(i, len(lscale)) or on_boundary(j, len(variance))
        if boundary:
            warn(
                f"Reached search boundary for nu = {nu_k}",
                BoundaryReachedWarning,
            )
        rows.append(
            {
                "lscale": lscale[i],
                "variance": variance[j],
                "nu": nu_k,
                "log_likelihood": surface[k, i, j],
                "boundary": boundary,
            }
        )
    spatial = pl.DataFrame(rows)
    spatial_surface = xr.DataArray(
        surface,
        coords=xr.Coordinates(
            {"nu": nu, "lscale": lscale, "variance": variance}
        ),
        name="log_likelihood",
    )

    temporal = temporal_surface = None
    if obs.has_temporal_dimension:
        temporal, temporal_surface = _fit_ar1(
            obs, as_search_axis(ar1, "ar1", positive=False), variance
        )

    return LengthscaleFit(
        spatial=spatial,
        temporal=temporal,
        spatial_surface=spatial_surface,
        temporal_surface=temporal_surface,
    )


def _fit_ar1(
    obs: Observations,
    ar1: np.ndarray,
    variance: np.ndarray,
) -> tuple[pl.DataFrame, xr.DataArray]:
    sites = [
        (time_lags(site.get_column("t").to_numpy()), site["z"].to_numpy())
        for site in obs.sites()
    ]
    logging.info(
        f"Evaluating temporal likelihood over {len(sites)} sites at "
        + f"{len(ar1) * len(variance)} grid points"
    )
    surface = np.array(
        [_surface_row(_temporal_terms(sites, a), variance) for a in ar1]
    )

    i, j = _argmax(surface, "temporal correlation")
    boundary = on_boundary(i, len(ar1)) or on_boundary(j, len(variance))
    if boundary:
        warn(
            "Reached search boundary for temporal correlation",
            BoundaryReachedWarning,
        )
    temporal = pl.DataFrame(
        {
            "ar1": [ar1[i]],
            "variance": [variance[j]],
            "log_likelihood": [surface[i, j]],
            "boundary": [boundary],
        }
    )
    temporal_surface = xr.DataArray(
        surface,
        coords=xr.Coordinates({"ar1": ar1, "variance": variance}),
        name="log_likelihood",
    )
    return temporal, temporal_surface
