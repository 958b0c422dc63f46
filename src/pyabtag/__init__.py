"""pyabtag: Logix controller tag read/write via pycomm3, plus a Modbus RTU flow bridge."""

__version__ = "0.1.0"

from .bridge import BridgeLoop, format_status
from .client import TagClient
from .codec import decode_f32, encode_f32
from .eos import compressibility
from .errors import (
    ComputationFault,
    ConnectError,
    ProtocolIOError,
    ProtocolReadError,
    ProtocolWriteError,
    PyABTagError,
    TagPathError,
)
from .fieldbus import FieldBusClient
from .flow import correct_rate
from .tagpath import TagPath
from .types import (
    BASE_STATE,
    DEFAULT_COMPOSITION,
    BridgeConfig,
    BridgeState,
    Cycle,
    FlowSample,
    GasComposition,
    RegisterPair,
    RetryPolicy,
    TagType,
    TagValue,
    ThermodynamicState,
)

__all__ = [
    "__version__",
    "BridgeLoop",
    "format_status",
    "TagClient",
    "decode_f32",
    "encode_f32",
    "compressibility",
    "ComputationFault",
    "ConnectError",
    "ProtocolIOError",
    "ProtocolReadError",
    "ProtocolWriteError",
    "PyABTagError",
    "TagPathError",
    "FieldBusClient",
    "correct_rate",
    "TagPath",
    "BASE_STATE",
    "DEFAULT_COMPOSITION",
    "BridgeConfig",
    "BridgeState",
    "Cycle",
    "FlowSample",
    "GasComposition",
    "RegisterPair",
    "RetryPolicy",
    "TagType",
    "TagValue",
    "ThermodynamicState",
]
