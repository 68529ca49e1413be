"""
Soil column data model shared by the unsaturated and saturated flow routines.

One ``SoilColumn`` describes a single grid cell: N root-zone layers plus an
implicit deep layer that fills the rest of the profile down to
``total_depth``. Static properties are set once by the cell setup; the
dynamic state (moisture, percolation, water table, runoff) is carried from
one time step to the next and mutated in place by the flow routines.

Units: depths in m, conductivity in m/s, moisture as volumetric fraction,
percolation and runoff as water depth over the cell (m).
"""
from dataclasses import dataclass, fields, replace
from typing import List, Optional

import numpy as np
import pandas as pd

from hydrocell.core.constants import NO_CUT_BANK
from hydrocell.core.exceptions import ErrorContext, SoilColumnConfigurationError

# Per-layer float arrays, all of length N
_LAYER_ARRAYS = (
    "layer_depth",
    "conductivity",
    "pore_dist_index",
    "porosity",
    "field_capacity",
    "moisture",
    "percolation",
    "percolation_area",
    "thickness_adjust",
)


@dataclass
class SoilColumn:
    """
    Soil column state for one grid cell.

    The deep layer below the root zone is kept in distinct fields
    (``deep_moisture``, ``deep_thickness_adjust``); its porosity and field
    capacity are those of the lowest root-zone layer.
    """
    # Static soil properties
    layer_depth: np.ndarray  # Thickness of each layer (m)
    total_depth: float  # Total profile depth (m)
    conductivity: np.ndarray  # Vertical saturated conductivity Ks (m/s)
    pore_dist_index: np.ndarray  # Brooks-Corey pore size distribution index
    porosity: np.ndarray
    field_capacity: np.ndarray

    # Dynamic state
    moisture: np.ndarray  # Volumetric moisture per root-zone layer
    deep_moisture: float  # Volumetric moisture of the deep layer
    table_depth: float  # Water table depth below surface (m)
    percolation: Optional[np.ndarray] = None  # Last inter-layer flux (m)
    runoff: float = 0.0  # Runoff accumulator (m)

    # Road / channel cut geometry
    percolation_area: Optional[np.ndarray] = None  # Fraction of cell area draining
    thickness_adjust: Optional[np.ndarray] = None  # Storage correction per layer
    deep_thickness_adjust: float = 1.0
    cut_bank_zone: int = NO_CUT_BANK  # Layer holding the cut bottom, N = deep layer
    bank_height: float = 0.0  # Surface to cut bottom (m)

    def __post_init__(self):
        n_layers = len(np.atleast_1d(self.layer_depth))
        if self.percolation is None:
            self.percolation = np.zeros(n_layers)
        if self.percolation_area is None:
            self.percolation_area = np.ones(n_layers)
        if self.thickness_adjust is None:
            self.thickness_adjust = np.ones(n_layers)

        for name in _LAYER_ARRAYS:
            setattr(self, name, np.array(getattr(self, name), dtype=float, ndmin=1))

        self.total_depth = float(self.total_depth)
        self.deep_moisture = float(self.deep_moisture)
        self.deep_thickness_adjust = float(self.deep_thickness_adjust)
        self.table_depth = float(self.table_depth)
        self.runoff = float(self.runoff)
        self.bank_height = float(self.bank_height)
        self.cut_bank_zone = int(self.cut_bank_zone)

        self.validate()

    # ------------------------------------------------------------------
    # Derived quantities
    # ------------------------------------------------------------------

    @property
    def layer_count(self) -> int:
        """Number of explicit root-zone layers"""
        return len(self.layer_depth)

    @property
    def deep_layer_depth(self) -> float:
        """Thickness of the layer below the deepest root layer (m)"""
        return float(self.total_depth - np.sum(self.layer_depth))

    @property
    def deep_porosity(self) -> float:
        return float(self.porosity[-1])

    @property
    def deep_field_capacity(self) -> float:
        return float(self.field_capacity[-1])

    @property
    def effective_thickness(self) -> np.ndarray:
        """Layer thickness corrected for soil lost to a road or channel cut (m)"""
        return self.layer_depth * self.thickness_adjust

    @property
    def deep_effective_thickness(self) -> float:
        return self.deep_layer_depth * self.deep_thickness_adjust

    @property
    def has_cut_bank(self) -> bool:
        return self.cut_bank_zone >= 0

    def storage(self) -> float:
        """Total water stored in the column (m)"""
        root_zone = float(np.sum(self.moisture * self.effective_thickness))
        return root_zone + self.deep_moisture * self.deep_effective_thickness

    def moisture_profile(self) -> np.ndarray:
        """Moisture of all N+1 layers, deep layer last"""
        return np.append(self.moisture, self.deep_moisture)

    def copy(self) -> "SoilColumn":
        """Deep copy, arrays included"""
        arrays = {name: getattr(self, name).copy() for name in _LAYER_ARRAYS}
        return replace(self, **arrays)

    def assign_state(self, other: "SoilColumn"):
        """Take over the dynamic state of another column of the same shape, in place"""
        self.moisture[:] = other.moisture
        self.percolation[:] = other.percolation
        self.deep_moisture = float(other.deep_moisture)
        self.table_depth = float(other.table_depth)
        self.runoff = float(other.runoff)

    def profile_frame(self) -> pd.DataFrame:
        """One row per layer (deep layer last) for inspection and reporting"""
        n = self.layer_count
        top = np.concatenate([[0.0], np.cumsum(self.layer_depth)])
        return pd.DataFrame(
            {
                "layer": [str(i) for i in range(n)] + ["deep"],
                "depth_top_m": top,
                "depth_bottom_m": np.append(top[1:], self.total_depth),
                "moisture": self.moisture_profile(),
                "porosity": np.append(self.porosity, self.deep_porosity),
                "field_capacity": np.append(self.field_capacity, self.deep_field_capacity),
                "thickness_adjust": np.append(self.thickness_adjust, self.deep_thickness_adjust),
                "percolation_m": np.append(self.percolation, np.nan),
            }
        ).set_index("layer")

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self):
        """
        Check array shapes and physical bounds.

        Raises:
            SoilColumnConfigurationError: listing every inconsistency found
        """
        problems = self._collect_problems()
        if problems:
            raise SoilColumnConfigurationError(
                "Invalid soil column: " + "; ".join(problems),
                context=ErrorContext(
                    component="SoilColumn",
                    operation="validate",
                    details={"problems": problems},
                ),
            )

    def _collect_problems(self) -> List[str]:
        n = self.layer_count
        if n == 0:
            return ["at least one soil layer is required"]

        problems = []
        for name in _LAYER_ARRAYS:
            values = getattr(self, name)
            if values.shape != (n,):
                problems.append(f"{name} has shape {values.shape}, expected ({n},)")
            elif not np.all(np.isfinite(values)):
                problems.append(f"{name} contains non-finite values")
        if problems:
            return problems

        scalars = ("total_depth", "deep_moisture", "table_depth", "runoff",
                   "deep_thickness_adjust", "bank_height")
        for name in scalars:
            if not np.isfinite(getattr(self, name)):
                problems.append(f"{name} must be finite")

        if np.any(self.layer_depth <= 0):
            problems.append("layer_depth must be positive")
        if self.deep_layer_depth < 0:
            problems.append(
                f"layer depths sum to {np.sum(self.layer_depth):.4g} m, "
                f"more than total_depth {self.total_depth:.4g} m"
            )
        if np.any(self.porosity <= 0) or np.any(self.porosity > 1):
            problems.append("porosity must lie in (0, 1]")
        if np.any(self.field_capacity < 0) or np.any(self.field_capacity > self.porosity):
            problems.append("field_capacity must lie in [0, porosity]")
        if np.any(self.pore_dist_index <= 0):
            problems.append("pore_dist_index must be positive")
        if np.any(self.conductivity < 0):
            problems.append("conductivity must be non-negative")
        if np.any(self.percolation_area <= 0) or np.any(self.percolation_area > 1):
            problems.append("percolation_area must lie in (0, 1]")
        if np.any(self.thickness_adjust <= 0) or np.any(self.thickness_adjust > 1):
            problems.append("thickness_adjust must lie in (0, 1]")
        if not 0 < self.deep_thickness_adjust <= 1:
            problems.append("deep_thickness_adjust must lie in (0, 1]")
        if np.any(self.moisture < 0) or self.deep_moisture < 0:
            problems.append("moisture must be non-negative")
        if self.cut_bank_zone > n:
            problems.append(
                f"cut_bank_zone {self.cut_bank_zone} outside [0, {n}] "
                "(use a negative value for no cut)"
            )
        return problems


def column_from_profile(
    layer_depth,
    total_depth: float,
    conductivity,
    pore_dist_index,
    porosity,
    field_capacity,
    moisture_profile,
    table_depth: float,
    **kwargs
) -> SoilColumn:
    """
    Build a column from an N+1 moisture profile (deep layer last) and an
    N+1 thickness adjustment, as produced by grid-based cell setup.
    """
    profile = np.asarray(moisture_profile, dtype=float)
    n = len(np.atleast_1d(layer_depth))
    if profile.shape != (n + 1,):
        raise SoilColumnConfigurationError(
            f"moisture profile has shape {profile.shape}, expected ({n + 1},)",
            context=ErrorContext(component="SoilColumn", operation="column_from_profile"),
        )

    adjust = kwargs.pop("thickness_adjust", None)
    if adjust is not None:
        adjust = np.asarray(adjust, dtype=float)
        if adjust.shape != (n + 1,):
            raise SoilColumnConfigurationError(
                f"thickness_adjust has shape {adjust.shape}, expected ({n + 1},)",
                context=ErrorContext(component="SoilColumn", operation="column_from_profile"),
            )
        kwargs["thickness_adjust"] = adjust[:n]
        kwargs["deep_thickness_adjust"] = float(adjust[n])

    known = {f.name for f in fields(SoilColumn)}
    unknown = set(kwargs) - known
    if unknown:
        raise SoilColumnConfigurationError(
            f"Unknown soil column fields: {sorted(unknown)}",
            context=ErrorContext(component="SoilColumn", operation="column_from_profile"),
        )

    return SoilColumn(
        layer_depth=layer_depth,
        total_depth=total_depth,
        conductivity=conductivity,
        pore_dist_index=pore_dist_index,
        porosity=porosity,
        field_capacity=field_capacity,
        moisture=profile[:n],
        deep_moisture=float(profile[n]),
        table_depth=table_depth,
        **kwargs,
    )
