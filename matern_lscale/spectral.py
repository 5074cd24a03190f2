"""
Spectral Analysis
-----------------

Fit a Matern model to scattered observations, evaluate the fitted covariance
on a regular 2d lag grid, and compute its power spectrum by a discrete Fourier
transform. Optionally krige the observations onto the lag grid.
"""

from collections.abc import Iterable
from dataclasses import dataclass
import logging
import numpy as np
import xarray as xr
from warnings import warn

from .constants import CUTOFF_FRACTION, DEFAULT_LAGS, MAX_OBSERVATIONS
from .distances import pairwise_distance
from .fast_mle import FastMaternFit, fit_matern_fast, trend_basis
from .grid import grid_positions, lag_grid, lag_spacing, radial_distance
from .kriging import UniversalKriging
from .matern import MaternCovariance, practical_correlation_range_from_range
from .utils import ExcessDataWarning


@dataclass(frozen=True)
class SpectralAnalysis:
    """
    Result of `analyze_spectrum`.

    Parameters
    ----------
    fit : FastMaternFit
        Fitted Matern parameters.
    cutoff_frequency : float
        First frequency at which the spectrum drops below 10% of its peak.
        NaN if the spectrum never drops below the threshold.
    practical_range : float
        Practical correlation range of the fitted model.
    covariance : xarray.DataArray
        Fitted covariance evaluated on the lag grid, dimensions ("s2", "s1").
    power_spectrum : xarray.DataArray
        Amplitude of the discrete Fourier transform of the lag-grid
        covariance, dimensions ("f2", "f1").
    n_obs : int
        Number of observations used in the fit (after dithering).
    prediction : xarray.Dataset | None
        Kriged field ("prediction") and its "standard_error" on the lag grid,
        None if not requested.
    """

    fit: FastMaternFit
    cutoff_frequency: float
    practical_range: float
    covariance: xr.DataArray
    power_spectrum: xr.DataArray
    n_obs: int
    prediction: xr.Dataset | None = None


def _frequencies(n: int, spacing: float) -> np.ndarray:
    return (1.0 / spacing) * np.arange(n) / n


def decimate(
    locations: np.ndarray,
    values: np.ndarray,
    max_obs: int = MAX_OBSERVATIONS,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Systematically sub-sample observations, keeping every other observation,
    until there are no more than `max_obs` observations.

    Parameters
    ----------
    locations : numpy.ndarray
        Observation locations, one row per observation.
    values : numpy.ndarray
        Observation values, one row per observation.
    max_obs : int
        Maximum number of observations to keep.

    Returns
    -------
    locations, values : tuple[numpy.ndarray, numpy.ndarray]
        The retained observations.
    """
    if max_obs < 1:
        raise ValueError("max_obs must be at least 1")
    n_start = values.shape[0]
    while values.shape[0] > max_obs:
        locations = locations[::2]
        values = values[::2]
    if values.shape[0] < n_start:
        msg = (
            f"Dithering: too much data, reduced from {n_start} to "
            + f"{values.shape[0]} observations"
        )
        logging.warning(msg)
        warn(msg, ExcessDataWarning)
    return locations, values


def power_spectrum_2d(
    s1: np.ndarray,
    s2: np.ndarray,
    x: np.ndarray,
) -> xr.DataArray:
    """
    Power spectrum of a 2d field sampled on a regular grid.

    Parameters
    ----------
    s1 : numpy.ndarray
        Regularly spaced coordinates of the columns of `x`.
    s2 : numpy.ndarray
        Regularly spaced coordinates of the rows of `x`.
    x : numpy.ndarray
        The field, shape (len(s2), len(s1)).

    Returns
    -------
    ps : xarray.DataArray
        Squared amplitude of the discrete Fourier transform of the field
        (scaled by the spacing of s1), with frequency coordinates "f2", "f1"
        in cycles per unit distance.
    """
    x = np.asarray(x, dtype=float)
    if x.shape != (len(s2), len(s1)):
        raise ValueError("x must have shape (len(s2), len(s1))")
    ds = float(np.mean(np.diff(s1)))
    ps = np.power(np.abs(np.fft.fft2(x * ds)), 2)
    return xr.DataArray(
        ps,
        coords=xr.Coordinates(
            {
                "f2": _frequencies(len(s2), ds),
                "f1": _frequencies(len(s1), ds),
            }
        ),
        name="power_spectrum",
    )


def cutoff_frequency(
    spectrum: xr.DataArray,
    fraction: float = CUTOFF_FRACTION,
) -> float:
    """
    First frequency along "f1", on the zero frequency row of "f2", at which the
    spectrum is below `fraction` of its value at zero frequency.
    """
    row = spectrum.isel(f2=0)
    below = np.flatnonzero(row.values < fraction * row.values[0])
    if below.size == 0:
        warn(
            "Spectrum does not drop below the cutoff threshold, "
            + "extend the lag grid"
        )
        return np.nan
    return float(row.coords["f1"].values[below[0]])


def _predict(
    locations: np.ndarray,
    values: np.ndarray,
    grid: xr.DataArray,
    model: MaternCovariance,
) -> xr.Dataset:
    target = grid_positions(grid, order=["s1", "s2"])
    obs_cov = model.fit(pairwise_distance(locations))
    signal = MaternCovariance(
        variance=model.variance, range=model.range, nu=model.nu
    )
    cross_cov = signal.fit(pairwise_distance(locations, target))
    kriging = UniversalKriging(
        obs_cov=obs_cov,  # type: ignore
        cross_cov=cross_cov,  # type: ignore
        trend_obs=trend_basis(locations),
        trend_target=trend_basis(target),
    )
    predicted = kriging.solve(values)
    uncert = kriging.get_uncertainty(model.variance)

    shape = grid.shape
    if predicted.shape[1] == 1:
        prediction = xr.DataArray(
            predicted[:, 0].reshape(shape),
            coords=grid.coords,
            dims=grid.dims,
        )
    else:
        prediction = xr.DataArray(
            predicted.reshape((*shape, predicted.shape[1])),
            coords=grid.coords,
            dims=[*grid.dims, "realisation"],
        )
    return xr.Dataset(
        {
            "prediction": prediction,
            "standard_error": xr.DataArray(
                uncert.reshape(shape), coords=grid.coords, dims=grid.dims
            ),
        }
    )


def analyze_spectrum(
    locations: np.ndarray,
    values: np.ndarray,
    smoothness: float = 2.5,
    lags: Iterable[float] = DEFAULT_LAGS,
    range_candidates: np.ndarray | float | None = None,
    dither: bool = True,
    predict: bool = True,
    plot: bool = False,
) -> SpectralAnalysis:
    """
    Fit a Matern model to observations and compute the power spectrum of the
    fitted covariance.

    Steps:

    1. If there are more than 200 observations (and `dither` is set),
       keep every other observation until there are at most 200.
    2. Remove the mean of each column of values.
    3. Fit the Matern range, sill and nugget with `fit_matern_fast`.
    4. Evaluate the fitted covariance on the 2d lag grid.
    5. Compute the discrete Fourier transform of the lag-grid covariance, and
       find the cutoff frequency.
    6. Compute the practical correlation range, sqrt(8 nu) * range.
    7. Optionally krige the observations onto the lag grid.

    Parameters
    ----------
    locations : numpy.ndarray
        2d observation locations, an (n, 2) array, or a pair of coordinate
        vectors.
    values : numpy.ndarray
        Observed values, a vector or an (n, M) matrix of M realisations.
    smoothness : float
        Matern smoothness.
    lags : Iterable[float]
        Regularly spaced lags defining both axes of the lag grid.
    range_candidates : numpy.ndarray | float | None
        Candidate Matern ranges, see `fit_matern_fast`.
    dither : bool
        Sub-sample the observations if there are too many.
    predict : bool
        Compute the kriged prediction surface on the lag grid.
    plot : bool
        Plot the kernel, the power spectrum and the kriged field.

    Returns
    -------
    SpectralAnalysis
    """
    if isinstance(locations, (list, tuple)):
        locations = np.column_stack(locations)
    locations = np.asarray(locations, dtype=float)
    values = np.asarray(values, dtype=float)
    if values.ndim == 1:
        values = values[:, None]
    if locations.ndim != 2 or locations.shape[1] != 2:
        raise ValueError("locations must be an (n, 2) array")
    if values.shape[0] != locations.shape[0]:
        raise ValueError("Number of values must match number of locations")
    grid = lag_grid(lags)
    spacing = lag_spacing(grid)

    if dither:
        locations, values = decimate(locations, values)

    logging.info("Using a Matern field to model data")
    values = values - values.mean(axis=0)
    fit = fit_matern_fast(
        locations,
        values,
        smoothness=smoothness,
        range_candidates=range_candidates,
    )

    model = MaternCovariance(
        variance=fit.sill, nugget=fit.nugget, range=fit.range, nu=smoothness
    )
    # The spectrum is of the signal, the nugget is excluded
    covariance = MaternCovariance(
        variance=fit.sill, range=fit.range, nu=smoothness
    ).fit(radial_distance(grid))

    spectrum = xr.DataArray(
        np.abs(np.fft.fft2(covariance.values * spacing)),
        coords=xr.Coordinates(
            {
                "f2": _frequencies(grid.shape[0], spacing),
                "f1": _frequencies(grid.shape[1], spacing),
            }
        ),
        name="power_spectrum",
    )

    prediction = None
    if predict:
        prediction = _predict(locations, values, grid, model)

    result = SpectralAnalysis(
        fit=fit,
        cutoff_frequency=cutoff_frequency(spectrum),
        practical_range=float(
            practical_correlation_range_from_range(fit.range, smoothness)
        ),
        covariance=covariance,  # type: ignore
        power_spectrum=spectrum,
        n_obs=values.shape[0],
        prediction=prediction,
    )

    if plot:
        from .plotting import plot_spectral_analysis

        plot_spectral_analysis(result)

    return result
