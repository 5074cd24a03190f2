r"""Utility functions for `matern_lscale`"""

from collections import OrderedDict
import inspect
import logging
from typing import Any
import numpy as np
import polars as pl
from warnings import warn


class ColumnNotFoundError(Exception):
    """Error class for Column Not Being Found"""

    pass


class NumericalInstabilityError(Exception):
    """
    Error class for a covariance (or kernel) matrix that is singular or not
    positive definite, so that a Cholesky factorisation, eigendecomposition or
    linear solve cannot be trusted.
    """

    pass


class BoundaryReachedWarning(UserWarning):
    """The optimum of a grid search lies on the edge of the search grid"""

    pass


class ExcessDataWarning(UserWarning):
    """Too many observations were supplied, the input has been sub-sampled"""

    pass


class ConfigParserMultiValues(OrderedDict):
    """Internal Helper Class"""

    def __setitem__(self, key, value):
        if key in self and isinstance(value, list):
            self[key].extend(value)
        else:
            super().__setitem__(key, value)

    @staticmethod
    def getlist(value):  # noqa: D102
        return value.splitlines()


def adjust_small_negative(
    vals: np.ndarray,
    atol: float = 1e-08,
) -> np.ndarray:
    """
    Adjusts small negative values (with absolute value < atol) to 0.

    Raises a warning if any small negative values are detected. Larger negative
    values are left in place for the caller to deal with.

    Parameters
    ----------
    vals : np.ndarray[float]
        Values that should be non-negative up to rounding error, for example
        eigenvalues of a correlation matrix or squared kriging uncertainties.
    atol : float
        Absolute tolerance for considering a negative value as rounding error.

    Returns
    -------
    ret : np.ndarray[float]
        A copy of the input with small negative values set to 0.
    """
    small_negative_check = np.logical_and(
        np.isclose(vals, 0, atol=atol), vals < 0.0
    )
    ret = vals.copy()
    if small_negative_check.any():
        warn("Small negative vals are detected. Setting to 0.")
        logging.debug(f"Small negative values: {vals[small_negative_check]}")
        ret[small_negative_check] = 0.0
    return ret


def check_cols(
    df: pl.DataFrame,
    cols: list[str],
) -> None:
    """Check that all columns in a list of columns are in a DataFrame"""
    # Get name of function that is calling this
    calling_func = str(inspect.stack()[1][3])

    missing_cols = [c for c in cols if c not in df.columns]
    if missing_cols:
        raise ColumnNotFoundError(
            calling_func
            + ": DataFrame is missing required columns: "
            + ", ".join(missing_cols)
        )
    return None


def as_search_axis(
    vals: Any,
    name: str,
    positive: bool = True,
) -> np.ndarray:
    """
    Convert a scalar or iterable of candidate parameter values to a 1d float
    array, checking that it is non-empty, finite, and (optionally) strictly
    positive.

    Parameters
    ----------
    vals : float | Iterable[float]
        The candidate values.
    name : str
        Name of the parameter, used in error messages.
    positive : bool
        Require all values to be strictly positive.

    Returns
    -------
    axis : numpy.ndarray
        The values as a 1d array of floats.
    """
    axis = np.atleast_1d(np.asarray(vals, dtype=float))
    if axis.ndim != 1:
        raise ValueError(f"'{name}' must be a scalar or a 1d sequence")
    if axis.size == 0:
        raise ValueError(f"'{name}' must contain at least one value")
    if not np.all(np.isfinite(axis)):
        raise ValueError(f"'{name}' must only contain finite values")
    if positive and np.any(axis <= 0):
        raise ValueError(f"'{name}' must only contain positive values")
    return axis


def on_boundary(idx: int, n: int) -> bool:
    """Is an index the first or last index of an axis of length n"""
    return idx == 0 or idx == n - 1


def _get_logging_level(level: str) -> int:
    match level.lower():
        case "debug":
            level_i = 10
        case "info":
            level_i = 20
        case "warn":
            level_i = 30
        case "error":
            level_i = 40
        case "critical":
            level_i = 50
        case _:
            raise ValueError(f"Unknown logging level: {level}")
    return level_i


def init_logging(
    file: str | None = None,
    level: str = "DEBUG",
) -> None:
    """
    Initialise the logger

    Parameters
    ----------
    file : str
        File to send log messages to. If set to None (default) then print log
        messages to STDout
    level : str
        Level of logging, one of: "debug", "info", "warn", "error", "critical".

    Returns
    -------
    None
    """
    level_i: int = _get_logging_level(level)

    logging.basicConfig(
        filename=file,
        filemode="a",
        encoding="utf-8",
        format="%(levelname)s at %(asctime)s : %(message)s",
        level=level_i,
        force=True,
    )
    logging.captureWarnings(True)
    return None
