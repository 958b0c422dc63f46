"""
Gas flow correction from actual (line) conditions to base (standard) conditions.

Actual volumetric flow is derived from velocity and pipe bore, then scaled by
the pressure and temperature ratios and the compressibility ratio z_base / z_actual
evaluated with the Peng-Robinson equation of state.
"""

import math

from .eos import compressibility
from .types import BASE_STATE, GasComposition, ThermodynamicState

METERS_PER_INCH = 0.0254
SECONDS_PER_DAY = 86400.0
HOURS_PER_DAY = 24.0


def pipe_area(diameter_in: float) -> float:
    """Internal cross-section in m² for a bore given in inches."""
    d = diameter_in * METERS_PER_INCH
    return math.pi * d * d / 4.0


def actual_flow(velocity: float, diameter_in: float) -> float:
    """Actual volumetric flow in m³/day from velocity (m/s) and bore (inches)."""
    return velocity * pipe_area(diameter_in) * SECONDS_PER_DAY


def to_base_conditions(
    flow: float,
    state: ThermodynamicState,
    z_actual: float,
    z_base: float,
    base: ThermodynamicState = BASE_STATE,
) -> float:
    """Scale an actual-condition flow to base conditions (real-gas law)."""
    return (
        flow
        * (state.pressure_kpa / base.pressure_kpa)
        * (base.temperature_k / state.temperature_k)
        * (z_base / z_actual)
    )


def correct_rate(
    velocity: float,
    diameter: float,
    pressure: float,
    temperature: float,
    composition: GasComposition,
) -> float:
    """
    Corrected base flow in standard m³/day.

    velocity in m/s, diameter in inches, pressure in barg, temperature in °C.
    Zero velocity gives exactly 0.0. Out-of-range states give a non-finite
    result; callers must treat that as a fault, not a measurement.
    """
    if velocity == 0:
        return 0.0
    state = ThermodynamicState.from_gauge(pressure, temperature)
    z_actual = compressibility(composition, state)
    z_base = compressibility(composition, BASE_STATE)
    return to_base_conditions(actual_flow(velocity, diameter), state, z_actual, z_base)


def raw_rate_per_day(rate_per_hour: float) -> float:
    """Convert the instrument's actual rate (m³/h) to m³/day for the controller."""
    return rate_per_hour * HOURS_PER_DAY
