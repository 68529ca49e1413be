"""Per-cell soil moisture redistribution for distributed hydrology models."""

__version__ = "0.1.0"

from hydrocell.core.config import HydroCellConfig, configure_logging, get_config, set_config
from hydrocell.physics.cell_model import SoilColumnModel
from hydrocell.physics.soil_column import SoilColumn, column_from_profile

__all__ = [
    "HydroCellConfig",
    "SoilColumn",
    "SoilColumnModel",
    "column_from_profile",
    "configure_logging",
    "get_config",
    "set_config",
]
