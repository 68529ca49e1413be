"""
Type definitions and type aliases for the hydrocell package.
"""
from enum import Enum
from typing import Protocol, Tuple, TYPE_CHECKING, runtime_checkable

import numpy as np
from typing_extensions import TypeAlias

if TYPE_CHECKING:
    from hydrocell.physics.soil_column import SoilColumn


# Type aliases for clarity
Meters: TypeAlias = float
Seconds: TypeAlias = float


class InfiltrationPolicy(str, Enum):
    """How infiltration blocked by a surface water table is accounted for"""
    STATIC = "static"
    DYNAMIC = "dynamic"


class DeficitAction(str, Enum):
    """What to do when lateral outflow exceeds the available saturated storage"""
    RAISE = "raise"
    WARN = "warn"


# (table_depth, root-zone moisture, deep-layer moisture)
WaterTableResult: TypeAlias = Tuple[float, np.ndarray, float]


@runtime_checkable
class WaterTableDiagnostic(Protocol):
    """Protocol for water-table depth diagnostics.

    Implementations must not mutate the column; any moisture adjustment is
    returned and written back by the caller.
    """

    def __call__(self, column: "SoilColumn") -> WaterTableResult:
        ...
