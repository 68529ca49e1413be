"""Shared fixtures for soil column tests."""
import pytest

from hydrocell.core.config import set_config
from hydrocell.physics.soil_column import SoilColumn


def build_column(**overrides) -> SoilColumn:
    """Single 1 m root layer over a 1 m deep layer, loam-like properties"""
    params = dict(
        layer_depth=[1.0],
        total_depth=2.0,
        conductivity=[1e-6],
        pore_dist_index=[0.3],
        porosity=[0.4],
        field_capacity=[0.2],
        moisture=[0.25],
        deep_moisture=0.1,
        table_depth=2.0,
    )
    params.update(overrides)
    return SoilColumn(**params)


def build_three_layer_column(**overrides) -> SoilColumn:
    """Three 0.5 m root layers over a 0.5 m deep layer"""
    params = dict(
        layer_depth=[0.5, 0.5, 0.5],
        total_depth=2.0,
        conductivity=[5e-6, 2e-6, 1e-6],
        pore_dist_index=[0.4, 0.3, 0.25],
        porosity=[0.45, 0.42, 0.40],
        field_capacity=[0.25, 0.22, 0.20],
        moisture=[0.40, 0.35, 0.30],
        deep_moisture=0.25,
        table_depth=2.0,
    )
    params.update(overrides)
    return SoilColumn(**params)


@pytest.fixture
def make_column():
    return build_column


@pytest.fixture
def make_three_layer_column():
    return build_three_layer_column


@pytest.fixture(autouse=True)
def reset_config():
    """Each test starts from a fresh configuration singleton"""
    set_config(None)
    yield
    set_config(None)
