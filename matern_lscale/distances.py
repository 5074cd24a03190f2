"""
Functions for calculating distances between sets of locations (or times) in
Euclidean space.
"""

import numpy as np
from sklearn.metrics.pairwise import euclidean_distances


def _as_coords(pos: np.ndarray) -> np.ndarray:
    pos = np.asarray(pos, dtype=float)
    if pos.ndim == 1:
        return pos[:, None]
    if pos.ndim != 2:
        raise ValueError("Positions must be a 1d or 2d array")
    return pos


def pairwise_distance(
    pos_a: np.ndarray,
    pos_b: np.ndarray | None = None,
) -> np.ndarray:
    """
    Compute the Euclidean distance between every pair of positions in two sets
    of positions.

    If the second set is not supplied, the distances between all positions in
    the first set are computed. In this case the result is exactly symmetric
    with a zero diagonal.

    Parameters
    ----------
    pos_a : numpy.ndarray
        The first set of positions, an (n, d) array, or a vector of n positions
        for 1d problems.
    pos_b : numpy.ndarray | None
        The second set of positions, an (m, d) array, or a vector of m
        positions for 1d problems.

    Returns
    -------
    dist : numpy.ndarray[float]
        An (n, m) matrix of distances (or (n, n) if pos_b is not set).
    """
    pos_a = _as_coords(pos_a)
    if pos_b is None:
        dist = euclidean_distances(pos_a)
        dist = 0.5 * (dist + dist.T)
        np.fill_diagonal(dist, 0.0)
        return dist

    pos_b = _as_coords(pos_b)
    if pos_a.shape[1] != pos_b.shape[1]:
        raise ValueError(
            "Both sets of positions must have the same number of dimensions"
        )
    return euclidean_distances(pos_a, pos_b)


def time_lags(times: np.ndarray) -> np.ndarray:
    """
    Absolute differences between every pair of time indices.

    Parameters
    ----------
    times : numpy.ndarray
        Vector of time indices.

    Returns
    -------
    lags : numpy.ndarray[float]
        Symmetric matrix of absolute time differences, zero on the diagonal.
    """
    times = np.asarray(times, dtype=float)
    return np.abs(times[:, None] - times[None, :])
