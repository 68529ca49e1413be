"""
Distribution of net lateral saturated flow over a soil column.

Outflow (negative flow) drains the saturated zone from the water table
down: each layer below the table gives up its drainable water
(porosity - field capacity) over the submerged part of its thickness,
shallowest layer first, and the deep layer covers what is left. Inflow
(positive flow) fills the column from the bottom up, deep layer first;
whatever the column cannot hold becomes runoff.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from hydrocell.core.exceptions import ErrorContext, SaturatedFlowDeficitError
from hydrocell.core.types import DeficitAction, Meters
from hydrocell.physics.soil_column import SoilColumn

logger = logging.getLogger(__name__)


@dataclass
class SaturatedFlowFluxes:
    """Water moved by one saturated flow distribution (all in m over the cell)"""
    sat_flow_in: float = 0.0
    extracted: float = 0.0  # Removed from storage by outflow
    stored: float = 0.0  # Absorbed into storage from inflow
    runoff: float = 0.0  # Inflow the column could not hold
    unmet_deficit: float = 0.0  # Outflow left unsatisfied
    cell_area_m2: Optional[float] = None

    @property
    def storage_change(self) -> float:
        return self.stored - self.extracted

    @property
    def runoff_volume_m3(self) -> Optional[float]:
        if self.cell_area_m2 is None:
            return None
        return self.runoff * self.cell_area_m2


def _available_water(
    porosity: float,
    field_capacity: float,
    adjust: float,
    thickness: float,
    submerged: float
) -> float:
    """Drainable water in the part of a layer below the water table (m)"""
    overlap = thickness if submerged > thickness else submerged
    return (porosity - field_capacity) * adjust * overlap


def _distribute_outflow(column: SoilColumn, sat_flow: float) -> float:
    """Shallowest saturated layer first, then the deep layer. Returns what is left."""
    total_depth = column.total_depth
    table_depth = column.table_depth
    depth = 0.0

    for i in range(column.layer_count):
        if depth >= total_depth:
            break
        if column.layer_depth[i] < total_depth - depth:
            depth += column.layer_depth[i]
        else:
            depth = total_depth

        available = 0.0
        if depth > table_depth:
            available = _available_water(
                column.porosity[i],
                column.field_capacity[i],
                column.thickness_adjust[i],
                column.layer_depth[i],
                depth - table_depth,
            )

        # Signed: extraction is negative like the outflow itself
        extraction = -available if -sat_flow > available else sat_flow
        column.moisture[i] += extraction / (column.layer_depth[i] * column.thickness_adjust[i])
        sat_flow -= extraction
        if sat_flow == 0.0:
            return sat_flow

    if sat_flow < 0.0 and depth < total_depth:
        depth = total_depth
        available = _available_water(
            column.deep_porosity,
            column.deep_field_capacity,
            column.deep_thickness_adjust,
            column.deep_layer_depth,
            max(depth - table_depth, 0.0),
        )
        extraction = -available if -sat_flow > available else sat_flow
        if extraction != 0.0:
            column.deep_moisture += extraction / column.deep_effective_thickness
        sat_flow -= extraction

    return sat_flow


def _distribute_inflow(column: SoilColumn, sat_flow: float, guard_by_water_table: bool) -> float:
    """Deep layer first, then the root zone bottom-up. Returns what is left."""
    # Height of the water table above the bottom of the profile
    table_height = column.total_depth - column.table_depth
    depth = column.deep_layer_depth

    if column.deep_effective_thickness > 0.0 and (not guard_by_water_table or depth > table_height):
        # A layer above porosity gives its excess back to the flow
        gap = (column.deep_porosity - column.deep_moisture) * column.deep_effective_thickness
        fill = gap if sat_flow > gap else sat_flow
        sat_flow -= fill
        column.deep_moisture += fill / column.deep_effective_thickness

    for i in range(column.layer_count - 1, -1, -1):
        if sat_flow <= 0.0:
            break
        depth += column.layer_depth[i]
        if guard_by_water_table and depth <= table_height:
            continue
        effective = column.layer_depth[i] * column.thickness_adjust[i]
        gap = (column.porosity[i] - column.moisture[i]) * effective
        fill = gap if sat_flow > gap else sat_flow
        sat_flow -= fill
        column.moisture[i] += fill / effective

    return sat_flow


def distribute_saturated_flow(
    column: SoilColumn,
    sat_flow: Meters,
    guard_inflow_by_water_table: bool = False,
    deficit_action: DeficitAction = DeficitAction.RAISE,
    cell_width: Optional[float] = None,
    cell_height: Optional[float] = None,
) -> SaturatedFlowFluxes:
    """
    Distribute net lateral saturated flow over the column, in place.

    Updates ``moisture``, ``deep_moisture`` and ``runoff`` of the column.

    Args:
        column: Soil column of the cell
        sat_flow: Net lateral flow (m); negative leaves the cell, positive arrives
        guard_inflow_by_water_table: Only fill layers reaching above the water
            table. Historical runs fill every layer, which is the default.
        deficit_action: RAISE (default) or WARN when outflow exceeds the
            drainable water below the table
        cell_width: Cell width (m), only used to report runoff volume
        cell_height: Cell height (m), only used to report runoff volume

    Returns:
        SaturatedFlowFluxes for the step

    Raises:
        SoilColumnConfigurationError: the column is inconsistent
        SaturatedFlowDeficitError: outflow could not be satisfied and
            deficit_action is RAISE. The column is left untouched.
    """
    column.validate()
    deficit_action = DeficitAction(deficit_action)
    fluxes = SaturatedFlowFluxes(sat_flow_in=sat_flow)
    if cell_width is not None and cell_height is not None:
        fluxes.cell_area_m2 = cell_width * cell_height

    work = column.copy()
    if sat_flow < 0.0:
        remaining = _distribute_outflow(work, sat_flow)
        fluxes.extracted = remaining - sat_flow
    elif sat_flow > 0.0:
        remaining = _distribute_inflow(work, sat_flow, guard_inflow_by_water_table)
        fluxes.stored = sat_flow - remaining
    else:
        remaining = 0.0

    if remaining > 0.0:
        work.runoff += remaining
        fluxes.runoff = remaining
    elif remaining < 0.0:
        fluxes.unmet_deficit = -remaining
        message = (
            f"Saturated outflow of {-sat_flow:.6g} m exceeds available water "
            f"by {-remaining:.6g} m (table depth {column.table_depth:.4f} m)"
        )
        if deficit_action == DeficitAction.RAISE:
            raise SaturatedFlowDeficitError(
                message,
                deficit=-remaining,
                context=ErrorContext(
                    component="SaturatedFlow",
                    operation="distribute_saturated_flow",
                    details={"sat_flow": sat_flow, "extracted": fluxes.extracted},
                ),
            )
        logger.warning("%s; unmet deficit discarded", message)

    column.assign_state(work)
    logger.debug(
        "Saturated flow %.6g m: extracted=%.6g m, stored=%.6g m, runoff=%.6g m",
        sat_flow, fluxes.extracted, fluxes.stored, fluxes.runoff,
    )
    return fluxes
