"""
Matern Covariance
-----------------

Evaluation of the Matern covariance function on distance matrices, and
conversion between the Matern range parameter and the practical correlation
range.

The parameterisation used throughout is:

.. math::
    C(d) = \\sigma^2 \\frac{2^{1 - \\nu}}{\\Gamma(\\nu)}
        \\left(\\frac{d}{\\theta}\\right)^{\\nu}
        K_{\\nu}\\left(\\frac{d}{\\theta}\\right)

with :math:`C(0) = \\sigma^2 + \\tau^2`, where :math:`\\theta` is the range,
:math:`\\nu` the smoothness, :math:`\\sigma^2` the variance (sill) and
:math:`\\tau^2` the nugget.
"""

from dataclasses import dataclass
import numpy as np
import xarray as xr

from scipy.special import gamma, kv


def range_from_practical_correlation_range(
    practical_range: float | np.ndarray,
    nu: float | np.ndarray,
) -> float | np.ndarray:
    """
    Convert a practical correlation range to the Matern range parameter.

    The practical correlation range is the distance at which the correlation
    has dropped to approximately 0.1 (Lindgren et al. 2011):
        practical_range = sqrt(8 nu) * range

    Parameters
    ----------
    practical_range : float | numpy.ndarray
        Practical correlation range(s).
    nu : float | numpy.ndarray
        Smoothness parameter(s).

    Returns
    -------
    range : float | numpy.ndarray
        The Matern range parameter.

    Reference
    ---------
    Lindgren, F., Rue, H., Lindström, J. (2011). An explicit link between
    Gaussian fields and Gaussian Markov random fields: the stochastic partial
    differential equation approach. JRSS-B 73(4).
    """
    return practical_range / np.sqrt(8.0 * nu)


def practical_correlation_range_from_range(
    range: float | np.ndarray,
    nu: float | np.ndarray,
) -> float | np.ndarray:
    """
    Convert the Matern range parameter to the practical correlation range.
    Inverse of `range_from_practical_correlation_range`.
    """
    return range * np.sqrt(8.0 * nu)


@dataclass()
class MaternCovariance:
    """
    Matern covariance model.

    Parameters
    ----------
    variance : float
        Marginal variance (sill) of the field, the covariance at distances
        just above zero.
    nugget : float
        Measurement error variance, added at zero distance only.
    practical_range : float | None
        Distance at which the correlation drops to about 0.1. One of
        practical_range and range must be set.
    range : float | None
        The range parameter. If range is not set, it will be computed from
        practical_range.
    nu : float
        Smoothness parameter, shapes to a smooth or rough covariance function
    """

    variance: float = 1.0
    nugget: float = 0.0
    practical_range: float | None = None
    range: float | None = None
    nu: float = 0.5

    def __post_init__(self) -> None:
        if self.practical_range is None and self.range is None:
            raise ValueError(
                "One of range and practical_range must be specified"
            )
        if self.nu <= 0:
            raise ValueError("Smoothness 'nu' must be positive")
        if self.range is None and self.practical_range is not None:
            self.range = range_from_practical_correlation_range(
                self.practical_range, self.nu
            )
        elif self.practical_range is None and self.range is not None:
            self.practical_range = practical_correlation_range_from_range(
                self.range, self.nu
            )
        if self.range <= 0:  # type: ignore
            raise ValueError("Range must be positive")
        if self.variance < 0:
            raise ValueError("Variance must be non-negative")
        if self.nugget < 0:
            raise ValueError("Nugget must be non-negative")
        return None

    @property
    def _left(self) -> float:
        return np.power(2.0, 1.0 - self.nu) / gamma(self.nu)

    def correlation(self, distance: np.ndarray) -> np.ndarray:
        """
        Matern correlation for an array of distances (1 at zero distance).
        """
        distance = np.asarray(distance, dtype=float)
        if np.any(distance < 0):
            raise ValueError("Distances must be non-negative")
        dist_over_range = distance / self.range
        with np.errstate(invalid="ignore", over="ignore"):
            out = (
                self._left
                * np.power(dist_over_range, self.nu)
                * kv(self.nu, dist_over_range)
            )
        # The Bessel term is singular at 0, the limit of the product is 1.
        # For tiny scaled distances the product is inf * 0 = nan.
        out = np.where(
            np.isfinite(out), out, np.where(dist_over_range < 1.0, 1.0, 0.0)
        )
        out = np.where(dist_over_range == 0, 1.0, out)
        return np.minimum(out, 1.0)

    def fit(
        self, distance_matrix: np.ndarray | xr.DataArray
    ) -> np.ndarray | xr.DataArray:
        """Evaluate the MaternCovariance model on a distance matrix"""
        if isinstance(distance_matrix, xr.DataArray):
            out = distance_matrix.copy(
                data=self.fit(distance_matrix.values)  # type: ignore
            )
            out.name = "covariance"
            return out

        distance_matrix = np.asarray(distance_matrix, dtype=float)
        out = self.variance * self.correlation(distance_matrix)
        if self.nugget > 0:
            out = np.where(distance_matrix == 0, out + self.nugget, out)
        return out


def matern(
    distance: np.ndarray,
    range: float,
    smoothness: float,
    variance: float = 1.0,
    nugget: float = 0.0,
) -> np.ndarray:
    """
    Apply the Matern covariance function to every element of a distance
    matrix.

    Parameters
    ----------
    distance : numpy.ndarray
        Matrix (or array) of non-negative distances.
    range : float
        Matern range parameter (not the practical range).
    smoothness : float
        Smoothness parameter nu.
    variance : float
        Marginal variance of the field.
    nugget : float
        Variance added at zero distance.

    Returns
    -------
    cov : numpy.ndarray
        The covariance values.
    """
    model = MaternCovariance(
        variance=variance, nugget=nugget, range=range, nu=smoothness
    )
    return model.fit(distance)  # type: ignore


def gaussian_rbf(
    distance: np.ndarray,
    variance: float,
    amplitude: float | np.ndarray = 1.0,
) -> np.ndarray:
    """
    Gaussian radial basis function:
        amplitude * exp(-d^2 / (2 variance))

    Parameters
    ----------
    distance : numpy.ndarray
        Distances from the basis function centre(s).
    variance : float
        Spread of the basis function.
    amplitude : float | numpy.ndarray
        Height of the basis function.
    """
    if variance <= 0:
        raise ValueError("RBF variance must be positive")
    distance = np.asarray(distance, dtype=float)
    return amplitude * np.exp(-np.power(distance, 2.0) / (2.0 * variance))
