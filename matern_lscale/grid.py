"""
Grid
----

Functions for creating regular grids (for example lag grids or prediction
grids) and extracting their positions.
"""

from collections.abc import Iterable
import numpy as np
import polars as pl
import xarray as xr


def grid_from_axes(
    axes: list[Iterable[float]],
    coord_names: list[str],
) -> xr.DataArray:
    """
    Generate an empty regular grid from a list of coordinate axes.

    Parameters
    ----------
    axes : list[Iterable[float]]
        The values of each coordinate axis.
    coord_names : list[str]
        List of coordinate names, one for each axis.

    Returns
    -------
    grid : xarray.DataArray:
        The grid with the input axes as coordinates.
    """
    if len(axes) != len(coord_names):
        raise ValueError("Input lists must have the same length")
    coords = {
        c_name: np.asarray(axis, dtype=float)
        for c_name, axis in zip(coord_names, axes)
    }
    return xr.DataArray(coords=xr.Coordinates(coords))


def lag_grid(
    lags: Iterable[float],
    coord_names: list[str] = ["s2", "s1"],
) -> xr.DataArray:
    """
    Square 2d grid of lags, using the same lag axis in both directions.

    Parameters
    ----------
    lags : Iterable[float]
        Regularly spaced lag values.
    coord_names : list[str]
        Names of the two coordinates, row coordinate first.

    Returns
    -------
    grid : xarray.DataArray
    """
    lags = np.asarray(lags, dtype=float)
    if lags.ndim != 1 or lags.size < 2:
        raise ValueError("Lags must be a vector with at least 2 values")
    spacing = np.diff(lags)
    if np.any(spacing <= 0) or not np.allclose(spacing, spacing[0]):
        raise ValueError("Lags must be increasing and regularly spaced")
    return grid_from_axes([lags, lags], coord_names)


def lag_spacing(grid: xr.DataArray, coord: str = "s1") -> float:
    """Mean spacing of a grid coordinate"""
    return float(np.mean(np.diff(grid.coords[coord].values)))


def grid_positions(
    grid: xr.DataArray,
    order: list[str] | None = None,
) -> np.ndarray:
    """
    Positions of every point of a grid, as an (N, d) array in "C" (row-major)
    order of the grid.

    Parameters
    ----------
    grid : xarray.DataArray
        The grid.
    order : list[str] | None
        Order of the coordinates in the output columns. Defaults to the
        dimension order of the grid.
    """
    coords = grid.coords
    dims = list(grid.dims)
    pos = pl.from_records(
        list(coords.to_index(dims)),
        schema=[str(d) for d in dims],
        orient="row",
    )
    return pos.select(order or [str(d) for d in dims]).to_numpy()


def radial_distance(
    grid: xr.DataArray,
) -> xr.DataArray:
    """Distance of every grid point from the origin"""
    squares = [
        np.power(grid.coords[dim], 2) for dim in grid.dims
    ]  # broadcast by xarray
    dist = np.sqrt(sum(squares[1:], squares[0]))
    dist = dist.transpose(*grid.dims)
    dist.name = "distance"
    return dist
