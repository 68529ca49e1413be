"""
Water-table diagnostic for a soil column.

Locates the water table from the moisture profile and moves any water held
above porosity up the column. A layer at or above porosity is fully
saturated; the first unsaturated layer met on the way up holds the table,
partially filled in proportion to its drainable pore space (θ-fc)/(φ-fc).
Water pushed out of the top layer is ponded on the surface and shows up as
a negative table depth of the same magnitude.
"""
import logging
from typing import Tuple

import numpy as np

from hydrocell.core.types import WaterTableResult
from hydrocell.physics.soil_column import SoilColumn

logger = logging.getLogger(__name__)


def _saturate(
    theta: float,
    porosity: float,
    field_capacity: float,
    thickness: float,
    effective_thickness: float
) -> Tuple[float, float, float, bool]:
    """
    Returns (new theta, excess water (m), saturated thickness (m), saturated?)
    for one layer.
    """
    if theta >= porosity:
        excess = (theta - porosity) * effective_thickness
        return porosity, excess, thickness, True

    saturated_thickness = 0.0
    if theta > field_capacity:
        saturated_thickness = (theta - field_capacity) / (porosity - field_capacity) * thickness
    return theta, 0.0, saturated_thickness, False


def compute_water_table_depth(column: SoilColumn) -> WaterTableResult:
    """
    Water table depth below the surface for the column's moisture profile.

    The column is not modified.

    Returns:
        (table_depth, moisture, deep_moisture); table_depth is negative when
        water ponds on the surface.
    """
    moisture = column.moisture.copy()
    table_depth = column.total_depth

    deep_moisture, transfer, saturated, full = _saturate(
        column.deep_moisture,
        column.deep_porosity,
        column.deep_field_capacity,
        column.deep_layer_depth,
        column.deep_effective_thickness,
    )
    table_depth -= saturated

    # A zero-thickness deep layer never blocks the walk up the root zone
    if full or column.deep_layer_depth == 0.0:
        effective = column.effective_thickness
        for i in range(column.layer_count - 1, -1, -1):
            moisture[i] += transfer / effective[i]
            moisture[i], transfer, saturated, full = _saturate(
                moisture[i],
                column.porosity[i],
                column.field_capacity[i],
                column.layer_depth[i],
                effective[i],
            )
            table_depth -= saturated
            if not full:
                break

    if transfer > 0.0:
        table_depth -= transfer
        logger.debug("Ponding %.6f m above the surface", transfer)

    return float(table_depth), moisture, float(deep_moisture)
