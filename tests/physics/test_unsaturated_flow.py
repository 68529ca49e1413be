"""
Tests for the unsaturated (vertical) drainage step.
Covers the drainage cascade, infiltration routing, ponding and mass balance.
"""
import numpy as np
import pytest

from hydrocell.core.exceptions import ParameterError, SoilColumnConfigurationError
from hydrocell.core.types import InfiltrationPolicy
from hydrocell.physics.soil_hydraulics import brooks_corey_K
from hydrocell.physics.unsaturated_flow import unsaturated_drainage

DT = 3600.0


class TestUnsaturatedDrainage:
    """Test suite for the percolation cascade"""

    def test_single_layer_scenario(self, make_column):
        """Infiltration enters layer 0, which then drains into the deep layer"""
        column = make_column()

        fluxes = unsaturated_drainage(column, DT, infiltration=0.01)

        expected_perc = 0.5 * brooks_corey_K(0.26, 0.4, 1e-6, 0.3) * DT
        assert column.percolation[0] == pytest.approx(expected_perc)
        assert column.moisture[0] == pytest.approx(0.26 - expected_perc)
        assert column.moisture[0] < 0.26
        assert column.deep_moisture == pytest.approx(0.1 + expected_perc)
        assert fluxes.deep_drainage == pytest.approx(expected_perc)
        assert column.runoff == 0.0
        assert column.table_depth == pytest.approx(2.0)
        assert fluxes.infiltration == pytest.approx(0.01)

    def test_no_drainage_at_field_capacity(self, make_column):
        column = make_column(moisture=[0.2], percolation=[0.003])

        unsaturated_drainage(column, DT, infiltration=0.0)

        assert column.percolation[0] == 0.0
        assert column.moisture[0] == pytest.approx(0.2)
        assert column.deep_moisture == pytest.approx(0.1)

    def test_previous_percolation_is_averaged(self, make_column):
        column = make_column(moisture=[0.3], percolation=[0.002])

        unsaturated_drainage(column, DT, infiltration=0.0)

        drainage = brooks_corey_K(0.3, 0.4, 1e-6, 0.3) * DT
        assert column.percolation[0] == pytest.approx(0.5 * (0.002 + drainage))

    def test_field_capacity_floor(self, make_three_layer_column):
        # Deep layer large enough to take the drainage without saturating
        column = make_three_layer_column(conductivity=[1e-2, 1e-2, 1e-2], total_depth=5.0)
        start_wet = column.moisture > column.field_capacity

        unsaturated_drainage(column, DT, infiltration=0.0)

        assert np.all(column.moisture[start_wet] >= column.field_capacity[start_wet] - 1e-12)
        # Fast soil drains each layer exactly to field capacity
        np.testing.assert_allclose(column.moisture, column.field_capacity)

    def test_supersaturated_layer_spills_down(self, make_column):
        column = make_column(conductivity=[0.0], moisture=[0.38], table_depth=0.5)

        unsaturated_drainage(column, DT, infiltration=0.05)

        # 0.03 m above porosity goes to the deep layer even with Ks = 0
        assert column.moisture[0] == pytest.approx(0.4)
        assert column.deep_moisture == pytest.approx(0.13)

    def test_percolation_area_scaling(self, make_column):
        column = make_column(moisture=[0.3], percolation_area=[0.5])

        fluxes = unsaturated_drainage(column, DT, infiltration=0.0)

        drainage = brooks_corey_K(0.3, 0.4, 1e-6, 0.3) * DT
        # Reported as a 1-d flux, water moved is scaled by the area fraction
        assert column.percolation[0] == pytest.approx(0.5 * drainage)
        assert fluxes.deep_drainage == pytest.approx(0.25 * drainage)
        assert column.moisture[0] == pytest.approx(0.3 - 0.25 * drainage)

    def test_thickness_adjust_concentrates_infiltration(self, make_column):
        column = make_column(
            moisture=[0.1], thickness_adjust=[0.5], deep_thickness_adjust=0.5
        )

        unsaturated_drainage(column, DT, infiltration=0.02)

        assert column.moisture[0] == pytest.approx(0.14)

    def test_zero_input_leaves_dry_column_unchanged(self, make_three_layer_column):
        column = make_three_layer_column(moisture=[0.2, 0.2, 0.15], deep_moisture=0.1)
        before = column.moisture_profile()

        unsaturated_drainage(column, DT, infiltration=0.0)

        np.testing.assert_array_equal(column.moisture_profile(), before)
        np.testing.assert_array_equal(column.percolation, np.zeros(3))
        assert column.runoff == 0.0

    def test_zero_input_on_wet_column_only_smooths_percolation(self, make_column):
        # Above field capacity, water table at the bottom of the profile
        column = make_column(moisture=[0.25], percolation=[1e-5], runoff=0.02)
        storage = column.storage()

        unsaturated_drainage(column, DT, infiltration=0.0)

        drainage = brooks_corey_K(0.25, 0.4, 1e-6, 0.3) * DT
        expected = 0.5 * (1e-5 + drainage)
        assert column.percolation[0] == pytest.approx(expected)
        assert column.moisture[0] == pytest.approx(0.25 - expected)
        assert column.deep_moisture == pytest.approx(0.1 + expected)
        assert column.runoff == 0.02
        assert column.table_depth == pytest.approx(2.0)
        assert column.storage() == pytest.approx(storage)

    def test_invalid_time_step(self, make_column):
        with pytest.raises(ParameterError):
            unsaturated_drainage(make_column(), 0.0, infiltration=0.01)

    def test_negative_infiltration(self, make_column):
        with pytest.raises(ParameterError):
            unsaturated_drainage(make_column(), DT, infiltration=-0.01)

    def test_zero_thickness_deep_layer_cannot_take_drainage(self, make_column):
        column = make_column(total_depth=1.0, moisture=[0.3], deep_moisture=0.0)

        with pytest.raises(SoilColumnConfigurationError, match="zero-thickness"):
            unsaturated_drainage(column, DT, infiltration=0.0)

    def test_failed_step_leaves_column_untouched(self, make_column):
        column = make_column(total_depth=1.0, moisture=[0.3], deep_moisture=0.0)
        before = column.copy()

        with pytest.raises(SoilColumnConfigurationError, match="zero-thickness"):
            unsaturated_drainage(column, DT, infiltration=0.01)

        np.testing.assert_array_equal(column.moisture, before.moisture)
        np.testing.assert_array_equal(column.percolation, before.percolation)
        assert column.deep_moisture == before.deep_moisture
        assert column.runoff == before.runoff
        assert column.storage() == pytest.approx(0.3)

    def test_column_revalidated_on_entry(self, make_column):
        column = make_column()
        column.moisture[0] = -0.05

        with pytest.raises(SoilColumnConfigurationError, match="non-negative"):
            unsaturated_drainage(column, DT, infiltration=0.01)

        assert column.moisture[0] == -0.05

    def test_custom_water_table_diagnostic(self, make_column):
        column = make_column()
        calls = []

        def diagnostic(col):
            calls.append(col.moisture.copy())
            return 1.25, col.moisture.copy(), col.deep_moisture

        fluxes = unsaturated_drainage(column, DT, infiltration=0.0, water_table=diagnostic)

        assert len(calls) == 1
        assert column.table_depth == 1.25
        assert fluxes.table_depth == 1.25


class TestMassBalance:
    """Water in equals storage change plus runoff"""

    def test_conservation_three_layers(self, make_three_layer_column):
        column = make_three_layer_column()
        storage_before = column.storage()

        fluxes = unsaturated_drainage(column, DT, infiltration=0.015)

        delta = column.storage() - storage_before
        assert delta + fluxes.runoff == pytest.approx(0.015, abs=1e-12)

    def test_conservation_over_many_steps(self, make_three_layer_column):
        column = make_three_layer_column()
        storage_before = column.storage()
        total_in = 0.0

        for step in range(48):
            infiltration = 0.004 if step % 6 == 0 else 0.0
            total_in += infiltration
            runoff_before = column.runoff
            unsaturated_drainage(column, DT, infiltration=infiltration)
            assert column.runoff >= runoff_before

        delta = column.storage() - storage_before
        assert delta + column.runoff == pytest.approx(total_in, abs=1e-10)
        assert np.all(column.moisture >= 0)
        assert np.all(column.moisture <= column.porosity + 1e-12)


class TestInfiltrationRouting:
    """Surface and roadbed infiltration routing and ponding"""

    def test_ponded_surface_rejects_infiltration_static(self, make_column):
        column = make_column(moisture=[0.2], table_depth=0.0)

        fluxes = unsaturated_drainage(
            column, DT, infiltration=0.01, infiltration_policy=InfiltrationPolicy.STATIC
        )

        assert column.runoff == pytest.approx(0.01)
        assert column.moisture[0] == pytest.approx(0.2)
        assert fluxes.infiltration_runoff == pytest.approx(0.01)
        assert fluxes.infiltration == pytest.approx(0.01)

    def test_ponded_surface_rejects_infiltration_dynamic(self, make_column):
        column = make_column(moisture=[0.2], table_depth=0.0)

        fluxes = unsaturated_drainage(
            column, DT, infiltration=0.01, infiltration_policy="dynamic"
        )

        assert column.runoff == pytest.approx(0.01)
        assert fluxes.infiltration == 0.0

    def test_ponding_becomes_runoff(self, make_column):
        column = make_column(
            conductivity=[0.0], moisture=[0.4], deep_moisture=0.4, table_depth=0.5
        )

        fluxes = unsaturated_drainage(column, DT, infiltration=0.05)

        assert column.runoff == pytest.approx(0.05)
        assert fluxes.ponding_runoff == pytest.approx(0.05)
        assert column.table_depth == 0.0
        assert column.moisture[0] == pytest.approx(0.4)
        assert column.deep_moisture == pytest.approx(0.4)

    def test_ponding_reconciles_dynamic_infiltration(self, make_column):
        column = make_column(
            conductivity=[0.0], moisture=[0.4], deep_moisture=0.38, table_depth=0.5
        )

        fluxes = unsaturated_drainage(
            column, DT, infiltration=0.05, infiltration_policy=InfiltrationPolicy.DYNAMIC
        )

        # 0.02 m fills the deep layer, 0.03 m ponds
        assert fluxes.ponding_runoff == pytest.approx(0.03)
        assert fluxes.infiltration == pytest.approx(0.02)

    def test_ponding_leaves_static_infiltration(self, make_column):
        column = make_column(
            conductivity=[0.0], moisture=[0.4], deep_moisture=0.38, table_depth=0.5
        )

        fluxes = unsaturated_drainage(column, DT, infiltration=0.05)

        assert fluxes.infiltration == pytest.approx(0.05)

    def test_roadbed_blocked_by_high_water_table(self, make_three_layer_column):
        column = make_three_layer_column(
            moisture=[0.2, 0.2, 0.15], cut_bank_zone=1, bank_height=0.8, table_depth=0.6
        )

        fluxes = unsaturated_drainage(column, DT, infiltration=0.0, roadbed_infiltration=0.02)

        assert fluxes.roadbed_runoff == pytest.approx(0.02)
        assert column.runoff >= 0.02

    def test_roadbed_enters_cut_bank_layer(self, make_three_layer_column):
        column = make_three_layer_column(
            moisture=[0.2, 0.1, 0.15], cut_bank_zone=1, bank_height=0.8
        )

        fluxes = unsaturated_drainage(column, DT, infiltration=0.0, roadbed_infiltration=0.02)

        assert column.moisture[1] == pytest.approx(0.14)
        assert fluxes.roadbed_infiltration == pytest.approx(0.02)
        assert column.runoff == 0.0

    def test_roadbed_enters_deep_layer(self, make_three_layer_column):
        column = make_three_layer_column(
            moisture=[0.2, 0.2, 0.15], deep_moisture=0.1, cut_bank_zone=3, bank_height=1.6
        )

        unsaturated_drainage(column, DT, infiltration=0.0, roadbed_infiltration=0.02)

        assert column.deep_moisture == pytest.approx(0.14)

    def test_roadbed_dropped_without_cut_bank(self, make_three_layer_column, caplog):
        column = make_three_layer_column(moisture=[0.2, 0.2, 0.15])
        storage_before = column.storage()

        fluxes = unsaturated_drainage(column, DT, infiltration=0.0, roadbed_infiltration=0.02)

        assert fluxes.roadbed_dropped == pytest.approx(0.02)
        assert column.storage() == pytest.approx(storage_before)
        assert "no cut-bank zone" in caplog.text

    def test_runoff_volume(self, make_column):
        column = make_column(moisture=[0.2], table_depth=0.0)

        fluxes = unsaturated_drainage(
            column, DT, infiltration=0.01, cell_width=30.0, cell_height=30.0
        )

        assert fluxes.runoff_volume_m3 == pytest.approx(9.0)
