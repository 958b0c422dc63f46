"""FieldBusClient: holding register reads from a Modbus RTU slave via pymodbus."""

import logging
from typing import Any

from pymodbus.client import ModbusSerialClient
from pymodbus.exceptions import ConnectionException, ModbusException, ModbusIOException

from .errors import ConnectError, ProtocolReadError
from .types import RegisterPair

logger = logging.getLogger(__name__)

# Modbus exception codes worth retrying: acknowledge, slave busy, gateway target no response.
_TRANSIENT_EXCEPTION_CODES = frozenset({0x05, 0x06, 0x0B})


class FieldBusClient:
    """
    Reads register pairs from one serial slave. Wraps pymodbus ModbusSerialClient (RTU, 8N1).
    """

    def __init__(
        self,
        port: str,
        slave: int = 1,
        baudrate: int = 9600,
        timeout: float = 1.0,
        retries: int = 0,
    ) -> None:
        if not 0 <= slave <= 0xFF:
            raise ValueError(f"slave address must be 0–255, got {slave}")
        self._port = port
        self._slave = slave
        self._baudrate = baudrate
        self._timeout = timeout
        self._retries = retries
        self._client: ModbusSerialClient | None = None

    @property
    def target(self) -> str:
        return f"{self._port}@{self._baudrate} slave {self._slave}"

    def _get_client(self) -> ModbusSerialClient:
        if self._client is None:
            client = ModbusSerialClient(
                port=self._port,
                baudrate=self._baudrate,
                timeout=self._timeout,
                retries=self._retries,
                parity="N",
                stopbits=1,
                bytesize=8,
            )
            if not client.connect():
                raise ConnectError(self.target, f"Failed to open serial port {self._port}")
            logger.debug("Opened %s", self.target)
            self._client = client
        return self._client

    def connect(self) -> None:
        """Open the serial port."""
        self._get_client()

    def close(self) -> None:
        """Close the serial port."""
        if self._client is not None:
            try:
                self._client.close()
            except ModbusException as e:
                logger.warning("Error closing serial client: %s", e)
            self._client = None

    def __enter__(self) -> "FieldBusClient":
        self.connect()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def read_registers(self, address: int, count: int) -> list[int]:
        """Read `count` holding registers starting at `address`; raises ProtocolReadError."""
        client = self._get_client()
        target = f"holding register {address} ({self.target})"
        try:
            rr = client.read_holding_registers(address, count=count, device_id=self._slave)
        except (ModbusIOException, ConnectionException) as e:
            raise ProtocolReadError(f"Read {target} failed: {e}", target=target, transient=True, cause=e) from e
        except ModbusException as e:
            raise ProtocolReadError(f"Read {target} failed: {e}", target=target, cause=e) from e

        if rr.isError():
            code = getattr(rr, "exception_code", None)
            raise ProtocolReadError(
                f"Read {target} failed: {rr}",
                target=target,
                transient=code in _TRANSIENT_EXCEPTION_CODES,
            )
        registers = getattr(rr, "registers", None)
        if not registers or len(registers) < count:
            raise ProtocolReadError(f"Short register response from {target}", target=target)
        return [int(r) for r in registers[:count]]

    def read_pair(self, address: int) -> RegisterPair:
        """Read two consecutive holding registers as a RegisterPair (high word first)."""
        first, second = self.read_registers(address, 2)
        return RegisterPair(first, second)
