"""
Estimation of spatial and spatio-temporal length scales of a field from
scattered observations, by maximum likelihood fitting of Matern covariance
models. The fitted covariance can be used to smooth or krige the field onto
new locations, and to derive its power spectrum.
"""

from .distances import pairwise_distance
from .fast_mle import FastMaternFit, fit_matern_fast
from .lengthscale import LengthscaleFit, fit_matern_lengthscale
from .matern import (
    MaternCovariance,
    matern,
    practical_correlation_range_from_range,
    range_from_practical_correlation_range,
)
from .observations import Observations
from .rbf import fit_rbf
from .spectral import SpectralAnalysis, analyze_spectrum, power_spectrum_2d
from .utils import (
    BoundaryReachedWarning,
    ColumnNotFoundError,
    ExcessDataWarning,
    NumericalInstabilityError,
)

__all__ = [
    "BoundaryReachedWarning",
    "ColumnNotFoundError",
    "ExcessDataWarning",
    "FastMaternFit",
    "LengthscaleFit",
    "MaternCovariance",
    "NumericalInstabilityError",
    "Observations",
    "SpectralAnalysis",
    "analyze_spectrum",
    "fit_matern_fast",
    "fit_matern_lengthscale",
    "fit_rbf",
    "matern",
    "pairwise_distance",
    "power_spectrum_2d",
    "practical_correlation_range_from_range",
    "range_from_practical_correlation_range",
]

__version__ = "0.1.0"
