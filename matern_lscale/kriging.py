"""
Functions for performing Kriging.

Interpolation using a Gaussian Process. Available methods are Simple Kriging,
with a known constant mean, and Universal Kriging, with a mean that is an
unknown linear combination of trend basis functions.
"""

from abc import ABC, abstractmethod
import logging
import numpy as np

from .utils import NumericalInstabilityError, adjust_small_negative


def _solve(lhs: np.ndarray, rhs: np.ndarray) -> np.ndarray:
    try:
        return np.linalg.solve(lhs, rhs)
    except np.linalg.LinAlgError as err:
        raise NumericalInstabilityError(
            "Kriging system is singular (coincident observations?)"
        ) from err


class Kriging(ABC):
    """
    Class for Kriging.

    Do not use this class, use SimpleKriging or UniversalKriging classes.

    Parameters
    ----------
    obs_cov : numpy.ndarray
        Covariance between observation locations, including any nugget or
        measurement error variance. Shape (n, n).
    cross_cov : numpy.ndarray
        Covariance between observation locations and target locations,
        excluding measurement error. Shape (n, m).
    """

    def __init__(self, obs_cov: np.ndarray, cross_cov: np.ndarray) -> None:
        if not hasattr(self, "method"):
            raise TypeError(
                "Do not use the generic class directly, "
                + "use SimpleKriging or UniversalKriging"
            )
        if obs_cov.shape[0] != obs_cov.shape[1]:
            raise ValueError("obs_cov must be square")
        if cross_cov.shape[0] != obs_cov.shape[0]:
            raise ValueError(
                "cross_cov must have one row for each observation location"
            )
        self.obs_cov = obs_cov
        self.cross_cov = cross_cov
        return None

    def set_kriging_weights(self, kriging_weights: np.ndarray) -> None:
        """
        Set Kriging Weights.

        Sets the `kriging_weights` attribute.

        Parameters
        ----------
        kriging_weights : numpy.ndarray
            The pre-computed kriging_weights to use.
        """
        self.kriging_weights = kriging_weights
        return None

    @abstractmethod
    def get_kriging_weights(self) -> None:
        """
        Compute the Kriging weights, one row for each target location.

        Sets the `kriging_weights` attribute.
        """
        raise NotImplementedError(
            "`get_kriging_weights` not implemented for default class"
        )

    @abstractmethod
    def solve(self, obs: np.ndarray) -> np.ndarray:
        """
        Solves the Kriging problem. Computes the Kriging weights if the
        `kriging_weights` attribute is not already set.

        Parameters
        ----------
        obs : numpy.ndarray
            The observation values, a vector of length n, or an (n, M) matrix
            of M realisations.

        Returns
        -------
        numpy.ndarray
            The predicted values at the target locations.
        """
        raise NotImplementedError("`solve` not implemented for default class")

    @abstractmethod
    def get_uncertainty(
        self, target_variance: float | np.ndarray
    ) -> np.ndarray:
        """
        Compute the kriging uncertainty (standard error) at the target
        locations. This requires the attribute `kriging_weights` to be
        computed.

        Parameters
        ----------
        target_variance : float | numpy.ndarray
            Prior variance of the field at the target locations.

        Returns
        -------
        uncert : numpy.ndarray
            The Kriging uncertainty.
        """
        raise NotImplementedError(
            "`get_uncertainty` not implemented for default class"
        )

    def _uncertainty(
        self, explained: np.ndarray, target_variance: float | np.ndarray
    ) -> np.ndarray:
        dz_squared = adjust_small_negative(target_variance - explained)
        if np.any(dz_squared < 0):
            logging.warning("Negative kriging variance, setting to 0")
            dz_squared = np.maximum(dz_squared, 0.0)
        return np.sqrt(dz_squared)


class SimpleKriging(Kriging):
    r"""
    Class for SimpleKriging.

    The equation for simple Kriging is:
    .. math::
        K_{cross}^T \times K_{obs}^{-1} \times (y - \mu) + \mu

    Where :math:`\mu` is a constant known mean.

    Parameters
    ----------
    obs_cov : numpy.ndarray
        Covariance between observation locations.
    cross_cov : numpy.ndarray
        Covariance between observation locations and target locations.
    """

    method: str = "simple"

    def get_kriging_weights(self) -> None:
        r"""
        Compute the Kriging weights:

        .. math::
            (K_{obs}^{-1} \times K_{cross})^T

        Sets the `kriging_weights` attribute.
        """
        self.kriging_weights = _solve(self.obs_cov, self.cross_cov).T
        return None

    def solve(
        self,
        obs: np.ndarray,
        mean: np.ndarray | float = 0.0,
    ) -> np.ndarray:
        r"""
        Solves the simple Kriging problem. Computes the Kriging weights if the
        `kriging_weights` attribute is not already set.

        Parameters
        ----------
        obs : numpy.ndarray
            The observation values.
        mean : numpy.ndarray | float
            Constant, known, mean value of the system. Defaults to 0.0.

        Returns
        -------
        numpy.ndarray
            The solution to the simple Kriging problem.
        """
        if not hasattr(self, "kriging_weights"):
            self.get_kriging_weights()

        return self.kriging_weights @ (obs - mean) + mean

    def get_uncertainty(
        self, target_variance: float | np.ndarray
    ) -> np.ndarray:
        """
        Compute the simple kriging uncertainty. This requires the attribute
        `kriging_weights` to be computed.
        """
        if not hasattr(self, "kriging_weights"):
            raise KeyError("Please compute Kriging Weights first")

        explained = np.sum(self.kriging_weights * self.cross_cov.T, axis=1)
        return self._uncertainty(explained, target_variance)


class UniversalKriging(Kriging):
    r"""
    Class for UniversalKriging.

    The mean of the field is an unknown linear combination of trend basis
    functions (for example a constant and the coordinates). The weights are
    constrained so that the trend is reproduced exactly.

    The matrix :math:`K_{obs}` is extended by the trend basis evaluated at the
    observation locations :math:`T` (as extra columns, and transposed as extra
    rows) with a zero block on the diagonal. The :math:`K_{cross}` matrix is
    extended by the trend basis evaluated at the target locations
    :math:`T_0^T`.

    .. math::
        \begin{pmatrix} K_{obs} & T \\ T^T & 0 \end{pmatrix}
        \begin{pmatrix} w \\ \mu \end{pmatrix}
        =
        \begin{pmatrix} K_{cross} \\ T_0^T \end{pmatrix}

    Ordinary Kriging is the special case where :math:`T` is a column of ones.

    Parameters
    ----------
    obs_cov : numpy.ndarray
        Covariance between observation locations.
    cross_cov : numpy.ndarray
        Covariance between observation locations and target locations.
    trend_obs : numpy.ndarray
        Trend basis at the observation locations, shape (n, p).
    trend_target : numpy.ndarray
        Trend basis at the target locations, shape (m, p).
    """

    method: str = "universal"

    def __init__(
        self,
        obs_cov: np.ndarray,
        cross_cov: np.ndarray,
        trend_obs: np.ndarray,
        trend_target: np.ndarray,
    ) -> None:
        super().__init__(obs_cov, cross_cov)
        if trend_obs.shape[0] != obs_cov.shape[0]:
            raise ValueError("trend_obs must have one row per observation")
        if trend_target.shape != (cross_cov.shape[1], trend_obs.shape[1]):
            raise ValueError(
                "trend_target must have one row per target location and the "
                + "same number of basis functions as trend_obs"
            )
        self.trend_obs = trend_obs
        self.trend_target = trend_target
        return None

    def _extended_cross(self) -> np.ndarray:
        return np.concatenate((self.cross_cov, self.trend_target.T), axis=0)

    def get_kriging_weights(self) -> None:
        """
        Compute the extended Kriging weights (including the Lagrange
        multipliers, in the final p columns).

        Sets the `kriging_weights` attribute.
        """
        p = self.trend_obs.shape[1]
        extended_cov = np.block(
            [
                [self.obs_cov, self.trend_obs],
                [self.trend_obs.T, np.zeros((p, p))],
            ]
        )
        self.kriging_weights = _solve(extended_cov, self._extended_cross()).T
        return None

    def solve(self, obs: np.ndarray) -> np.ndarray:
        """
        Solves the universal Kriging problem. Computes the Kriging weights if
        the `kriging_weights` attribute is not already set.

        Parameters
        ----------
        obs : numpy.ndarray
            The observation values, a vector or an (n, M) matrix.

        Returns
        -------
        numpy.ndarray
            The solution to the universal Kriging problem.
        """
        if not hasattr(self, "kriging_weights"):
            self.get_kriging_weights()

        n = self.obs_cov.shape[0]
        return self.kriging_weights[:, :n] @ obs

    def get_uncertainty(
        self, target_variance: float | np.ndarray
    ) -> np.ndarray:
        """
        Compute the universal kriging uncertainty. This requires the attribute
        `kriging_weights` to be computed.
        """
        if not hasattr(self, "kriging_weights"):
            raise KeyError("Please compute Kriging Weights first")

        explained = np.sum(self.kriging_weights * self._extended_cross().T, 1)
        return self._uncertainty(explained, target_variance)
