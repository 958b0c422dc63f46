"""Core data model: tag types and values, register pairs, gas composition, flow samples, bridge config."""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from .codec import decode_f32
from .tagpath import TagPath


class TagType(str, Enum):
    """Atomic Logix tag types supported for read/write."""

    BOOL = "bool"
    INT = "int"
    DINT = "dint"
    REAL = "real"

    @property
    def logix_name(self) -> str:
        return self.value.upper()

    def coerce(self, value: Any) -> bool | int | float:
        """Validate a Python value against this type; return it in canonical form."""
        if self is TagType.BOOL:
            if not isinstance(value, (bool, int)) or value not in (0, 1):
                raise ValueError(f"BOOL value must be true/false or 0/1, got {value!r}")
            return bool(value)
        if self is TagType.INT or self is TagType.DINT:
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{self.logix_name} value must be an integer, got {value!r}")
            lo, hi = (-32768, 32767) if self is TagType.INT else (-(2**31), 2**31 - 1)
            if not lo <= value <= hi:
                raise ValueError(f"{self.logix_name} value out of range {lo}..{hi}: {value}")
            return int(value)
        if self is TagType.REAL:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"REAL value must be a number, got {value!r}")
            return float(value)
        raise ValueError(f"Unsupported tag type: {self!r}")


@dataclass(frozen=True)
class TagValue:
    """A typed tag value. Build with TagValue.of(); one subclass per TagType."""

    value: Any
    tag_type: TagType = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", self.tag_type.coerce(self.value))

    @staticmethod
    def of(tag_type: TagType, value: Any) -> "TagValue":
        return _VALUE_CLASSES[tag_type](value)


@dataclass(frozen=True)
class BoolValue(TagValue):
    tag_type: TagType = field(default=TagType.BOOL, init=False)


@dataclass(frozen=True)
class IntValue(TagValue):
    tag_type: TagType = field(default=TagType.INT, init=False)


@dataclass(frozen=True)
class DintValue(TagValue):
    tag_type: TagType = field(default=TagType.DINT, init=False)


@dataclass(frozen=True)
class RealValue(TagValue):
    tag_type: TagType = field(default=TagType.REAL, init=False)


_VALUE_CLASSES: dict[TagType, type[TagValue]] = {
    TagType.BOOL: BoolValue,
    TagType.INT: IntValue,
    TagType.DINT: DintValue,
    TagType.REAL: RealValue,
}


@dataclass(frozen=True)
class RegisterPair:
    """Two consecutive unsigned 16-bit holding register words, high word first."""

    first: int
    second: int

    def __post_init__(self) -> None:
        for name, word in (("first", self.first), ("second", self.second)):
            if not 0 <= word <= 0xFFFF:
                raise ValueError(f"{name} must be 0–65535, got {word}")

    def decode(self) -> float:
        """Decoded value widened to a Python float for arithmetic."""
        return float(decode_f32(self.first, self.second))


# Component set of the AGA-8 detail characterization.
COMPONENT_NAMES: tuple[str, ...] = (
    "methane",
    "nitrogen",
    "carbon_dioxide",
    "ethane",
    "propane",
    "isobutane",
    "n_butane",
    "isopentane",
    "n_pentane",
    "n_hexane",
    "n_heptane",
    "n_octane",
    "n_nonane",
    "n_decane",
    "hydrogen",
    "oxygen",
    "carbon_monoxide",
    "water",
    "hydrogen_sulfide",
    "helium",
    "argon",
)


@dataclass(frozen=True)
class GasComposition:
    """
    Mole fractions of the process gas, keyed by component name.

    Immutable for the lifetime of a bridge session. Components not listed are 0.
    """

    fractions: Mapping[str, float]

    def __post_init__(self) -> None:
        clean: dict[str, float] = {}
        for name, x in self.fractions.items():
            if name not in COMPONENT_NAMES:
                raise ValueError(f"Unknown gas component: {name!r}")
            if not math.isfinite(x) or x < 0:
                raise ValueError(f"Mole fraction for {name} must be finite and >= 0, got {x}")
            if x > 0:
                clean[name] = float(x)
        if not clean:
            raise ValueError("Gas composition must contain at least one component")
        object.__setattr__(self, "fractions", MappingProxyType(clean))

    @classmethod
    def from_fractions(cls, fractions: Mapping[str, float]) -> "GasComposition":
        """Build a composition, normalizing the fractions to sum to 1.0."""
        total = sum(fractions.values())
        if total <= 0:
            raise ValueError("Mole fractions must sum to a positive value")
        return cls({name: x / total for name, x in fractions.items()})

    @property
    def total(self) -> float:
        return sum(self.fractions.values())

    def __hash__(self) -> int:
        return hash(tuple(sorted(self.fractions.items())))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GasComposition):
            return NotImplemented
        return dict(self.fractions) == dict(other.fractions)


DEFAULT_COMPOSITION = GasComposition(
    {
        "methane": 0.79,
        "nitrogen": 0.04,
        "carbon_dioxide": 0.04,
        "propane": 0.13,
    }
)

ATMOSPHERIC_BAR = 1.01325
KELVIN_OFFSET = 273.15
RANKINE_OFFSET = 459.67
KPA_PER_PSI = 6.894757293168


@dataclass(frozen=True)
class ThermodynamicState:
    """Absolute pressure (kPa) and temperature (K) at which compressibility is evaluated."""

    pressure_kpa: float
    temperature_k: float

    @classmethod
    def from_gauge(cls, pressure_barg: float, temperature_c: float) -> "ThermodynamicState":
        return cls(
            pressure_kpa=(pressure_barg + ATMOSPHERIC_BAR) * 100.0,
            temperature_k=temperature_c + KELVIN_OFFSET,
        )

    @classmethod
    def from_imperial(cls, pressure_psia: float, temperature_f: float) -> "ThermodynamicState":
        return cls(
            pressure_kpa=pressure_psia * KPA_PER_PSI,
            temperature_k=(temperature_f + RANKINE_OFFSET) * 5.0 / 9.0,
        )


# Standard conditions: 14.73 psia, 60 °F.
BASE_STATE = ThermodynamicState.from_imperial(14.73, 60.0)


@dataclass(frozen=True)
class FlowSample:
    """One cycle's measurement: decoded velocity and raw rate, live state, corrected rate."""

    velocity: float
    raw_rate: float
    pressure: float
    temperature: float
    corrected_rate: float


@dataclass(frozen=True)
class Cycle:
    sequence: int
    started_at: datetime
    sample: FlowSample | None = None


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff for transient protocol faults."""

    max_attempts: int = 3
    initial_backoff_s: float = 0.5
    max_backoff_s: float = 5.0
    multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 0:
            raise ValueError(f"max_attempts must be >= 0, got {self.max_attempts}")
        if self.initial_backoff_s < 0 or self.max_backoff_s < 0:
            raise ValueError("backoff delays must be >= 0")

    def delay(self, attempt: int) -> float:
        """Backoff before retry number `attempt` (1-based)."""
        return min(self.max_backoff_s, self.initial_backoff_s * self.multiplier ** max(attempt - 1, 0))


class BridgeState(str, Enum):
    """States of the bridge loop."""

    IDLE = "idle"
    POLLING = "polling"
    CORRECTING = "correcting"
    WRITING = "writing"
    REPORTING = "reporting"
    SLEEPING = "sleeping"
    RETRYING = "retrying"
    STOPPED = "stopped"
    FAULTED = "faulted"


@dataclass(frozen=True)
class BridgeConfig:
    """Everything the bridge loop needs besides its two connected clients."""

    velocity_register: int
    rate_register: int
    pressure_tag: TagPath
    temperature_tag: TagPath
    raw_rate_tag: TagPath
    base_rate_tag: TagPath
    diameter_in: float
    composition: GasComposition = DEFAULT_COMPOSITION
    interval_s: float = 0.5
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    def __post_init__(self) -> None:
        for name in ("velocity_register", "rate_register"):
            addr = getattr(self, name)
            if not 0 <= addr <= 0xFFFE:
                raise ValueError(f"{name} must be 0–65534 (two registers are read), got {addr}")
        if not self.diameter_in > 0:
            raise ValueError(f"diameter must be > 0 inches, got {self.diameter_in}")
        if self.interval_s < 0:
            raise ValueError(f"interval must be >= 0 seconds, got {self.interval_s}")
