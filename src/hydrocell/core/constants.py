"""
Physical constants, default values, and package-wide constants.
"""
from typing import Final

# Brooks-Corey conductivity exponent e = 2/λ + 3
BROOKS_COREY_BASE_EXPONENT: Final[float] = 3.0
BROOKS_COREY_LAMBDA_FACTOR: Final[float] = 2.0

# Weight of the previous step's percolation in the temporal average
PERCOLATION_SMOOTHING: Final[float] = 0.5

# Water balance closure tolerance (m of water over the cell)
DEFAULT_WATER_BALANCE_TOLERANCE: Final[float] = 1e-9

# Sentinel for "no cut bank in this cell"
NO_CUT_BANK: Final[int] = -1
