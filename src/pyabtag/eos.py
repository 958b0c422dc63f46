"""
Peng-Robinson equation of state for natural gas mixtures.

Computes the compressibility factor Z of a GasComposition at a ThermodynamicState
using van der Waals one-fluid mixing with zero binary interaction parameters.
The cubic in Z is solved for the vapour (largest) root by bracketed Newton iteration.
"""

import logging
import math
from dataclasses import dataclass

from .types import GasComposition, ThermodynamicState

logger = logging.getLogger(__name__)

_OMEGA_A = 0.45723553
_OMEGA_B = 0.07779607

_MAX_ITER = 100
_TOLERANCE = 1e-12


@dataclass(frozen=True)
class Component:
    """Critical constants: temperature (K), pressure (kPa), acentric factor."""

    tc: float
    pc: float
    omega: float

    @property
    def kappa(self) -> float:
        return 0.37464 + 1.54226 * self.omega - 0.26992 * self.omega**2


COMPONENTS: dict[str, Component] = {
    "methane": Component(190.564, 4599.2, 0.01142),
    "nitrogen": Component(126.192, 3395.8, 0.0372),
    "carbon_dioxide": Component(304.1282, 7377.3, 0.22394),
    "ethane": Component(305.322, 4872.2, 0.0995),
    "propane": Component(369.89, 4251.2, 0.1521),
    "isobutane": Component(407.81, 3629.0, 0.184),
    "n_butane": Component(425.125, 3796.0, 0.201),
    "isopentane": Component(460.35, 3378.0, 0.2274),
    "n_pentane": Component(469.7, 3370.0, 0.251),
    "n_hexane": Component(507.82, 3034.0, 0.299),
    "n_heptane": Component(540.13, 2736.0, 0.349),
    "n_octane": Component(569.32, 2497.0, 0.393),
    "n_nonane": Component(594.55, 2281.0, 0.443),
    "n_decane": Component(617.7, 2103.0, 0.488),
    "hydrogen": Component(33.145, 1296.4, -0.219),
    "oxygen": Component(154.581, 5043.0, 0.0222),
    "carbon_monoxide": Component(132.86, 3494.0, 0.0497),
    "water": Component(647.096, 22064.0, 0.3443),
    "hydrogen_sulfide": Component(373.1, 9000.0, 0.1005),
    "helium": Component(5.1953, 227.46, -0.382),
    "argon": Component(150.687, 4863.0, -0.00219),
}


def mixture_parameters(composition: GasComposition, state: ThermodynamicState) -> tuple[float, float]:
    """Return the dimensionless mixture parameters (A, B) at the given state."""
    p = state.pressure_kpa
    t = state.temperature_k
    total = composition.total
    sqrt_a: list[tuple[float, float]] = []
    b_mix = 0.0
    for name, x in composition.fractions.items():
        c = COMPONENTS[name]
        x = x / total
        tr = t / c.tc
        pr = p / c.pc
        alpha = (1.0 + c.kappa * (1.0 - math.sqrt(tr))) ** 2
        sqrt_a.append((x, math.sqrt(_OMEGA_A * alpha * pr / tr**2)))
        b_mix += x * _OMEGA_B * pr / tr
    a_mix = sum(x * a for x, a in sqrt_a) ** 2
    return a_mix, b_mix


def solve_z(a: float, b: float) -> float:
    """
    Largest real root of Z^3 - (1-B)Z^2 + (A-3B^2-2B)Z - (AB-B^2-B^3) = 0.

    Newton iteration from above, kept inside a bracket that always holds the
    largest root; a step that leaves the bracket is replaced by bisection.
    Returns NaN when iteration does not converge or the root is not physical (Z <= B).
    """
    c2 = -(1.0 - b)
    c1 = a - 3.0 * b * b - 2.0 * b
    c0 = -(a * b - b * b - b * b * b)
    # The cubic is -2B^2 at Z = B and positive above the Cauchy bound.
    lo = b
    hi = 1.0 + max(abs(c2), abs(c1), abs(c0))
    z = hi
    for _ in range(_MAX_ITER):
        f = ((z + c2) * z + c1) * z + c0
        if f > 0.0:
            hi = z
        elif f < 0.0:
            lo = z
        elif f == 0.0:
            return _physical_root(z, b)
        else:
            break
        df = (3.0 * z + 2.0 * c2) * z + c1
        z_next = z - f / df if df != 0.0 else math.nan
        if not lo < z_next < hi:
            z_next = 0.5 * (lo + hi)
        if abs(z_next - z) < _TOLERANCE:
            return _physical_root(z_next, b)
        z = z_next
    logger.debug("Z solve did not converge (A=%.6g, B=%.6g)", a, b)
    return math.nan


def _physical_root(z: float, b: float) -> float:
    if z <= b:
        logger.debug("Non-physical Z root %.6g <= B %.6g", z, b)
        return math.nan
    return z


def compressibility(composition: GasComposition, state: ThermodynamicState) -> float:
    """Compressibility factor Z of the gas at `state`; NaN when the state is out of range."""
    p = state.pressure_kpa
    t = state.temperature_k
    if not (math.isfinite(p) and math.isfinite(t)) or p <= 0 or t <= 0:
        logger.debug("Out-of-range state for Z: P=%s kPa, T=%s K", p, t)
        return math.nan
    a, b = mixture_parameters(composition, state)
    return solve_z(a, b)
