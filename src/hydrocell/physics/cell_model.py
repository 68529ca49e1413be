"""
Per-cell soil moisture step.

Binds the flow routines to the package configuration and checks water
balance closure around each call, the way a grid driver would use them for
one cell and one time step.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from hydrocell.core.config import SoilFlowConfig, get_config
from hydrocell.core.exceptions import (
    ErrorContext, HydroCellError, WaterBalanceError, handle_exception
)
from hydrocell.core.types import WaterTableDiagnostic
from hydrocell.physics.saturated_flow import SaturatedFlowFluxes, distribute_saturated_flow
from hydrocell.physics.soil_column import SoilColumn
from hydrocell.physics.unsaturated_flow import DrainageFluxes, unsaturated_drainage
from hydrocell.physics.water_table import compute_water_table_depth

logger = logging.getLogger(__name__)


@dataclass
class CellStepResult:
    """Results from one cell step"""
    drainage: DrainageFluxes
    saturated: SaturatedFlowFluxes
    storage_before: float
    storage_after: float
    water_balance_error: float = 0.0
    table_depth: float = 0.0
    fluxes: Dict[str, float] = field(default_factory=dict)

    @property
    def runoff(self) -> float:
        return self.drainage.runoff + self.saturated.runoff


class SoilColumnModel:
    """
    Runs unsaturated drainage and saturated flow distribution on soil columns.

    Water balance per step, over the column:

        Δstorage = infiltration in + roadbed in + saturated flow in
                   - runoff - unmet outflow deficit
    """

    def __init__(
        self,
        config: Optional[SoilFlowConfig] = None,
        water_table: WaterTableDiagnostic = compute_water_table_depth,
        cell_width: Optional[float] = None,
        cell_height: Optional[float] = None,
    ):
        self.config = config or get_config().soil
        self.water_table = water_table
        self.cell_width = cell_width
        self.cell_height = cell_height
        self._setup_logging()

    def _setup_logging(self):
        """Configure model-specific logging"""
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def unsaturated_flow(
        self,
        column: SoilColumn,
        dt: float,
        infiltration: float,
        roadbed_infiltration: float = 0.0,
    ) -> DrainageFluxes:
        """Vertical drainage step with the configured infiltration policy"""
        initial_storage = column.storage()
        initial_runoff = column.runoff

        fluxes = unsaturated_drainage(
            column,
            dt,
            infiltration,
            roadbed_infiltration=roadbed_infiltration,
            infiltration_policy=self.config.infiltration_policy,
            water_table=self.water_table,
            cell_width=self.cell_width,
            cell_height=self.cell_height,
        )

        if self.config.check_water_balance:
            inputs = infiltration + roadbed_infiltration - fluxes.roadbed_dropped
            self._check_water_balance(
                column, initial_storage, initial_runoff, inputs, "unsaturated_flow"
            )
        return fluxes

    def distribute_saturated_flow(self, column: SoilColumn, sat_flow: float) -> SaturatedFlowFluxes:
        """Lateral redistribution with the configured inflow guard and deficit handling"""
        initial_storage = column.storage()
        initial_runoff = column.runoff

        fluxes = distribute_saturated_flow(
            column,
            sat_flow,
            guard_inflow_by_water_table=self.config.guard_inflow_by_water_table,
            deficit_action=self.config.deficit_action,
            cell_width=self.cell_width,
            cell_height=self.cell_height,
        )

        if self.config.check_water_balance:
            inputs = sat_flow + fluxes.unmet_deficit
            self._check_water_balance(
                column, initial_storage, initial_runoff, inputs, "distribute_saturated_flow"
            )
        return fluxes

    def step(
        self,
        column: SoilColumn,
        dt: float,
        infiltration: float,
        roadbed_infiltration: float = 0.0,
        sat_flow: float = 0.0,
    ) -> CellStepResult:
        """
        Run one time step for one cell: unsaturated flow, then saturated flow.

        Args:
            column: Soil column of the cell, updated in place
            dt: Time step (s)
            infiltration: Surface infiltration (m)
            roadbed_infiltration: Roadbed/channel infiltration (m)
            sat_flow: Net lateral saturated flow from the routing (m)

        Returns:
            CellStepResult with both flux records and the water balance error
        """
        storage_before = column.storage()
        runoff_before = column.runoff

        try:
            drainage = self.unsaturated_flow(column, dt, infiltration, roadbed_infiltration)
            saturated = self.distribute_saturated_flow(column, sat_flow)
        except HydroCellError:
            raise
        except Exception as e:
            self.logger.error(f"Error in cell step: {e}")
            raise handle_exception(
                e, ErrorContext(component="SoilColumnModel", operation="step")
            ) from e

        storage_after = column.storage()
        inputs = (
            infiltration
            + roadbed_infiltration
            - drainage.roadbed_dropped
            + sat_flow
            + saturated.unmet_deficit
        )
        error = (storage_after - storage_before) + (column.runoff - runoff_before) - inputs

        result = CellStepResult(
            drainage=drainage,
            saturated=saturated,
            storage_before=storage_before,
            storage_after=storage_after,
            water_balance_error=error,
            table_depth=column.table_depth,
            fluxes={
                "infiltration": drainage.infiltration,
                "roadbed_infiltration": drainage.roadbed_infiltration,
                "deep_drainage": drainage.deep_drainage,
                "sat_flow": sat_flow,
                "sat_flow_extracted": saturated.extracted,
                "sat_flow_stored": saturated.stored,
                "runoff": drainage.runoff + saturated.runoff,
            },
        )
        self.logger.debug(
            "Cell step complete: storage %.6f -> %.6f m, runoff=%.6g m, WB_error=%.3g m",
            storage_before, storage_after, result.runoff, error,
        )
        return result

    def _check_water_balance(
        self,
        column: SoilColumn,
        initial_storage: float,
        initial_runoff: float,
        inputs: float,
        operation: str
    ) -> float:
        """Closure error (m); raises WaterBalanceError beyond tolerance"""
        delta_storage = column.storage() - initial_storage
        delta_runoff = column.runoff - initial_runoff
        error = delta_storage + delta_runoff - inputs

        if abs(error) > self.config.water_balance_tolerance:
            raise WaterBalanceError(
                f"Water balance not closed: error={error:.3g} m "
                f"(Δstorage={delta_storage:.6g}, runoff={delta_runoff:.6g}, inputs={inputs:.6g})",
                context=ErrorContext(
                    component="SoilColumnModel",
                    operation=operation,
                    details={"error": error},
                ),
            )
        return error
