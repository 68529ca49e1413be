"""
Unsaturated (vertical) flow through a soil column.

Infiltrated water cascades down the root-zone layers and into the deep
layer under a unit hydraulic gradient (Wigmosta et al., 1994). Drainage
from a layer uses the Brooks-Corey unsaturated conductivity and is averaged
with the previous step's percolation. There is no drainage below field
capacity and no upward (capillary) flow; water held above porosity after
drainage is passed on to the layer below. Once the cascade is done the
water-table diagnostic reconciles the profile and any ponded water becomes
runoff.

Road and channel cuts are handled through per-layer thickness adjustments,
the fraction of the cell each layer drains through, and the layer holding
the bottom of the cut, which receives roadbed/channel infiltration.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from hydrocell.core.exceptions import (
    ErrorContext, ParameterError, SoilColumnConfigurationError
)
from hydrocell.core.types import InfiltrationPolicy, Meters, Seconds, WaterTableDiagnostic
from hydrocell.physics.soil_column import SoilColumn
from hydrocell.physics.soil_hydraulics import brooks_corey_K, smoothed_percolation
from hydrocell.physics.water_table import compute_water_table_depth

logger = logging.getLogger(__name__)


@dataclass
class DrainageFluxes:
    """Water routed by one unsaturated flow step (all in m over the cell)"""
    infiltration: float = 0.0  # Effective surface infiltration after policy reconciliation
    infiltration_runoff: float = 0.0  # Surface infiltration rejected by a ponded surface
    roadbed_infiltration: float = 0.0  # Roadbed/channel infiltration entering the soil
    roadbed_runoff: float = 0.0  # Roadbed infiltration rejected by a high water table
    roadbed_dropped: float = 0.0  # Roadbed infiltration with no cut-bank zone to enter
    deep_drainage: float = 0.0  # Flux from the lowest root layer into the deep layer
    ponding_runoff: float = 0.0  # Water pushed above the surface by the diagnostic
    table_depth: float = 0.0  # Water table depth after the step
    cell_area_m2: Optional[float] = None

    @property
    def runoff(self) -> float:
        """Total runoff generated during the step"""
        return self.infiltration_runoff + self.roadbed_runoff + self.ponding_runoff

    @property
    def runoff_volume_m3(self) -> Optional[float]:
        if self.cell_area_m2 is None:
            return None
        return self.runoff * self.cell_area_m2


def _cell_area(cell_width: Optional[float], cell_height: Optional[float]) -> Optional[float]:
    if cell_width is None or cell_height is None:
        return None
    return cell_width * cell_height


def _check_inputs(dt: float, infiltration: float, roadbed_infiltration: float):
    context = ErrorContext(component="UnsaturatedFlow", operation="unsaturated_drainage")
    if not dt > 0:
        raise ParameterError(f"Time step must be positive, got {dt}", context=context)
    if infiltration < 0 or roadbed_infiltration < 0:
        raise ParameterError(
            f"Infiltration must be non-negative, got surface={infiltration}, "
            f"roadbed={roadbed_infiltration}",
            context=context,
        )


def _add_to_deep_layer(column: SoilColumn, water: float, operation: str):
    if water == 0.0:
        return
    if column.deep_effective_thickness <= 0.0:
        raise SoilColumnConfigurationError(
            f"{water:.6g} m of water routed to a zero-thickness deep layer",
            context=ErrorContext(
                component="UnsaturatedFlow",
                layer=column.layer_count,
                operation=operation,
            ),
        )
    column.deep_moisture += water / column.deep_effective_thickness


def _route_roadbed_infiltration(
    column: SoilColumn,
    roadbed_infiltration: float,
    fluxes: DrainageFluxes
):
    """Roadbed/channel infiltration enters at the bottom of the cut"""
    if column.table_depth <= column.bank_height:
        # Water table at or above the road/channel surface
        column.runoff += roadbed_infiltration
        fluxes.roadbed_runoff = roadbed_infiltration
        return

    zone = column.cut_bank_zone
    if zone == column.layer_count:
        _add_to_deep_layer(column, roadbed_infiltration, "roadbed_infiltration")
    elif zone >= 0:
        column.moisture[zone] += (
            roadbed_infiltration / (column.layer_depth[zone] * column.thickness_adjust[zone])
        )
    else:
        if roadbed_infiltration > 0.0:
            logger.warning(
                "Dropping %.6g m roadbed infiltration: no cut-bank zone in this cell",
                roadbed_infiltration,
            )
        fluxes.roadbed_dropped = roadbed_infiltration
        return
    fluxes.roadbed_infiltration = roadbed_infiltration


def _route_surface_infiltration(
    column: SoilColumn,
    infiltration: float,
    policy: InfiltrationPolicy,
    fluxes: DrainageFluxes
):
    if column.table_depth <= 0.0:
        # Water table at or above the surface
        column.runoff += infiltration
        fluxes.infiltration_runoff = infiltration
        if policy == InfiltrationPolicy.DYNAMIC:
            infiltration = 0.0
    else:
        column.moisture[0] += infiltration / (column.layer_depth[0] * column.thickness_adjust[0])
    fluxes.infiltration = infiltration


def _drain_layers(column: SoilColumn, dt: float):
    """Percolation cascade from the top layer down; updates moisture and percolation"""
    n = column.layer_count
    moisture = column.moisture
    percolation = column.percolation

    for i in range(n):
        if moisture[i] > column.field_capacity[i]:
            drainage = brooks_corey_K(
                moisture[i],
                column.porosity[i],
                column.conductivity[i],
                column.pore_dist_index[i],
            ) * dt
            percolation[i] = smoothed_percolation(
                percolation[i], drainage, column.percolation_area[i]
            )

            max_soil_water = column.layer_depth[i] * column.porosity[i] * column.thickness_adjust[i]
            soil_water = column.layer_depth[i] * moisture[i] * column.thickness_adjust[i]
            field_capacity = column.layer_depth[i] * column.field_capacity[i] * column.thickness_adjust[i]

            # Never drain below field capacity
            if soil_water - percolation[i] < field_capacity:
                percolation[i] = soil_water - field_capacity

            # Water still above porosity goes down with the percolation
            soil_water -= percolation[i]
            if soil_water > max_soil_water:
                percolation[i] += soil_water - max_soil_water

            moisture[i] -= percolation[i] / (column.layer_depth[i] * column.thickness_adjust[i])
            if i < n - 1:
                moisture[i + 1] += (
                    percolation[i] / (column.layer_depth[i + 1] * column.thickness_adjust[i + 1])
                )
        else:
            percolation[i] = 0.0

        # Back to a 1-d flux over the whole cell
        percolation[i] /= column.percolation_area[i]


def unsaturated_drainage(
    column: SoilColumn,
    dt: Seconds,
    infiltration: Meters,
    roadbed_infiltration: Meters = 0.0,
    infiltration_policy: InfiltrationPolicy = InfiltrationPolicy.STATIC,
    water_table: WaterTableDiagnostic = compute_water_table_depth,
    cell_width: Optional[float] = None,
    cell_height: Optional[float] = None,
) -> DrainageFluxes:
    """
    Run one unsaturated flow step on a column, in place.

    Updates ``moisture``, ``deep_moisture``, ``percolation``, ``table_depth``
    and ``runoff`` of the column.

    Args:
        column: Soil column of the cell
        dt: Time step (s)
        infiltration: Water entering the top of the column (m)
        roadbed_infiltration: Water entering through the roadbed/channel (m)
        infiltration_policy: DYNAMIC zeroes and reconciles infiltration
            rejected by a ponded surface; STATIC leaves it untouched
        water_table: Diagnostic returning (table_depth, moisture, deep_moisture)
        cell_width: Cell width (m), only used to report runoff volume
        cell_height: Cell height (m), only used to report runoff volume

    Returns:
        DrainageFluxes for the step

    Raises:
        SoilColumnConfigurationError: the column is inconsistent, or water
            reaches a zero-thickness deep layer. The column is left untouched.
        ParameterError: non-positive time step or negative infiltration
    """
    column.validate()
    _check_inputs(dt, infiltration, roadbed_infiltration)
    infiltration_policy = InfiltrationPolicy(infiltration_policy)
    fluxes = DrainageFluxes(cell_area_m2=_cell_area(cell_width, cell_height))

    # The caller's column only changes once the whole step has succeeded
    work = column.copy()

    _route_roadbed_infiltration(work, roadbed_infiltration, fluxes)
    _route_surface_infiltration(work, infiltration, infiltration_policy, fluxes)

    _drain_layers(work, dt)

    n = work.layer_count
    fluxes.deep_drainage = float(work.percolation[n - 1] * work.percolation_area[n - 1])
    _add_to_deep_layer(work, fluxes.deep_drainage, "deep_drainage")

    table_depth, moisture, deep_moisture = water_table(work)
    work.moisture[:] = moisture
    work.deep_moisture = float(deep_moisture)

    if table_depth < 0.0:
        ponded = -table_depth
        work.runoff += ponded
        fluxes.ponding_runoff = ponded
        if infiltration_policy == InfiltrationPolicy.DYNAMIC:
            if fluxes.infiltration > ponded:
                fluxes.infiltration -= ponded
            else:
                fluxes.infiltration = 0.0
        table_depth = 0.0
    work.table_depth = float(table_depth)

    column.assign_state(work)
    fluxes.table_depth = column.table_depth

    logger.debug(
        "Unsaturated step: infiltration=%.6g m, deep drainage=%.6g m, "
        "runoff=%.6g m, table depth=%.4f m",
        fluxes.infiltration, fluxes.deep_drainage, fluxes.runoff, column.table_depth,
    )
    return fluxes
