"""
Soil hydraulic functions for gravity drainage under a unit hydraulic gradient.

The unsaturated hydraulic conductivity follows Brooks and Corey with zero
residual moisture, so relative saturation is simply θ/φ:

    K(θ) = K_sat * (θ/φ)^(2/λ + 3)

References:
- Brooks, R.H. and Corey, A.T. (1964). Hydraulic properties of porous media.
  Hydrology Paper No. 3, Colorado State University.
- Wigmosta, M.S., Vail, L.W. and Lettenmaier, D.P. (1994). A distributed
  hydrology-vegetation model for complex terrain. Water Resources Research,
  30(6):1665-1679, eq. 41-42.
"""
from hydrocell.core.constants import (
    BROOKS_COREY_BASE_EXPONENT,
    BROOKS_COREY_LAMBDA_FACTOR,
    PERCOLATION_SMOOTHING,
)


def brooks_corey_exponent(pore_dist_index: float) -> float:
    """Conductivity exponent 2/λ + 3 for pore size distribution index λ"""
    return BROOKS_COREY_LAMBDA_FACTOR / pore_dist_index + BROOKS_COREY_BASE_EXPONENT


def brooks_corey_K(
    theta: float,
    porosity: float,
    K_sat: float,
    pore_dist_index: float
) -> float:
    """
    Calculate unsaturated K using the Brooks-Corey model.

    Moisture above porosity can occur transiently while water cascades
    down the column; conductivity is capped at K_sat in that case.

    Args:
        theta: Volumetric water content (m³/m³)
        porosity: Saturated water content (m³/m³)
        K_sat: Saturated hydraulic conductivity (m/s)
        pore_dist_index: Brooks-Corey λ

    Returns:
        Unsaturated hydraulic conductivity (m/s)
    """
    if theta > porosity:
        return K_sat
    return K_sat * (theta / porosity) ** brooks_corey_exponent(pore_dist_index)


def smoothed_percolation(
    previous: float,
    drainage: float,
    area_fraction: float
) -> float:
    """
    Average this step's drainage with the previous step's percolation and
    scale by the fraction of the cell the layer drains through (eq. 42).
    """
    return PERCOLATION_SMOOTHING * (previous + drainage) * area_fraction
