"""Constants used by various functions and methods within the library"""

import numpy as np

# Observation count above which the spectral driver dithers the input
MAX_OBSERVATIONS: int = 200

# Tolerance of the golden-section search (on the log-scale parameter)
GOLDEN_SECTION_TOL: float = 1e-7
GOLDEN_RATIO: float = (np.sqrt(5.0) - 1.0) / 2.0

# Fraction of the zero-lag spectral peak defining the cutoff frequency
CUTOFF_FRACTION: float = 0.1

# Default search axes
DEFAULT_AR1_GRID: np.ndarray = np.round(np.arange(-0.99, 1.0, 0.33), 2)
DEFAULT_LAMBDA_GRID: np.ndarray = 10.0 ** np.arange(-4.0, 5.0)
DEFAULT_RANGE_NGRID: int = 10
DEFAULT_RANGE_QUANTILES: tuple[float, float] = (0.03, 0.97)
DEFAULT_LAGS: np.ndarray = np.linspace(-5.0, 5.0, 101)

# Default spread of the Gaussian radial basis function (distance units ** 2)
DEFAULT_RBF_VARIANCE: float = 800.0**2

# Eigenvalues of a projected correlation matrix more negative than this are
# treated as a loss of positive definiteness
NEGATIVE_EIGENVALUE_TOL: float = 1e-8
