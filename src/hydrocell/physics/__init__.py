"""Physics modules for soil column moisture redistribution."""
from hydrocell.physics.soil_column import SoilColumn, column_from_profile
from hydrocell.physics.soil_hydraulics import brooks_corey_K, brooks_corey_exponent
from hydrocell.physics.water_table import compute_water_table_depth
from hydrocell.physics.unsaturated_flow import DrainageFluxes, unsaturated_drainage
from hydrocell.physics.saturated_flow import SaturatedFlowFluxes, distribute_saturated_flow
from hydrocell.physics.cell_model import CellStepResult, SoilColumnModel

__all__ = [
    "SoilColumn",
    "column_from_profile",
    "brooks_corey_K",
    "brooks_corey_exponent",
    "compute_water_table_depth",
    # Vertical drainage
    "DrainageFluxes",
    "unsaturated_drainage",
    # Lateral saturated flow
    "SaturatedFlowFluxes",
    "distribute_saturated_flow",
    # Cell step
    "CellStepResult",
    "SoilColumnModel",
]
