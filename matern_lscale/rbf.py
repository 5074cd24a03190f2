"""
Radial Basis Function Smoothing
-------------------------------

Smooth scattered 2d observations by placing a Gaussian radial basis function
at each observation and estimating the weights by least-squares. The constant
mean is removed before the fit and added back on at the end.

This is equivalent to Simple Kriging with a Gaussian covariance function, no
nugget and the sample mean as the known mean.
"""

import logging
import numpy as np
import polars as pl

from .constants import DEFAULT_RBF_VARIANCE
from .distances import pairwise_distance
from .kriging import SimpleKriging
from .matern import gaussian_rbf
from .utils import NumericalInstabilityError, check_cols


def fit_rbf(
    obs: pl.DataFrame,
    targets: pl.DataFrame,
    value_col: str = "z",
    kernel_variance: float = DEFAULT_RBF_VARIANCE,
    coord_cols: list[str] = ["x", "y"],
) -> np.ndarray:
    """
    Smooth observations onto target locations with Gaussian radial basis
    functions.

    Parameters
    ----------
    obs : polars.DataFrame
        Observations, containing the `coord_cols` columns and the `value_col`
        column.
    targets : polars.DataFrame
        Locations of the output field (typically a grid), containing the
        `coord_cols` columns.
    value_col : str
        Name of the column in `obs` containing the values to smooth.
    kernel_variance : float
        Variance (spread) of the radial basis function.
    coord_cols : list[str]
        Names of the coordinate columns, in both DataFrames.

    Returns
    -------
    smoothed : numpy.ndarray
        The smoothed field values at each target location.

    Examples
    --------
    >>> from matern_lscale.grid import grid_from_axes, grid_positions
    >>> obs = pl.DataFrame(
    ...     {"x": [1, 1, 2, 2], "y": [1, 2, 1, 2], "z": [1, 2, 3, 4]}
    ... )
    >>> targets = grid_from_axes(
    ...     [np.arange(0, 3, 0.1), np.arange(0, 3, 0.1)], ["x", "y"]
    ... )
    >>> targets = pl.DataFrame(grid_positions(targets), schema=["x", "y"])
    >>> smoothed = fit_rbf(obs, targets, "z", kernel_variance=1)
    """
    check_cols(obs, [*coord_cols, value_col])
    check_cols(targets, coord_cols)
    if kernel_variance <= 0:
        raise ValueError("kernel_variance must be positive")
    if obs.height == 0:
        raise ValueError("No observations to smooth")

    obs_pos = obs.select(coord_cols).to_numpy().astype(float)
    if obs.select(coord_cols).is_duplicated().any():
        raise NumericalInstabilityError(
            "Coincident observation locations make the RBF system singular"
        )
    target_pos = targets.select(coord_cols).to_numpy().astype(float)
    z = obs.get_column(value_col).to_numpy().astype(float)

    kernel = gaussian_rbf(pairwise_distance(obs_pos), kernel_variance)
    cross = gaussian_rbf(
        pairwise_distance(obs_pos, target_pos), kernel_variance
    )
    cond = np.linalg.cond(kernel)
    if not np.isfinite(cond) or cond * np.finfo(float).eps > 1:
        raise NumericalInstabilityError(
            f"RBF kernel matrix is singular (condition number {cond:.3g}), "
            + "reduce kernel_variance"
        )
    logging.debug(f"RBF kernel condition number: {cond:.3g}")

    rbf = SimpleKriging(obs_cov=kernel, cross_cov=cross)
    return rbf.solve(z, mean=float(np.mean(z)))
