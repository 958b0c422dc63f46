"""Tests for TagClient dispatch over pycomm3 and FieldBusClient over pymodbus (mocked drivers)."""

from unittest.mock import MagicMock, patch

import pytest
from pycomm3 import CommError, RequestError
from pymodbus.exceptions import ModbusIOException

from pyabtag import FieldBusClient, RegisterPair, TagClient, TagPath, TagType, TagValue
from pyabtag.errors import ConnectError, ProtocolReadError, ProtocolWriteError, TagPathError


def _tag(value: object, type_: str | None, error: str | None = None) -> MagicMock:
    return MagicMock(value=value, type=type_, error=error)


@pytest.fixture
def mock_driver() -> MagicMock:
    driver = MagicMock()
    driver.open.return_value = True
    driver.read.return_value = _tag(1.5, "REAL")
    driver.write.return_value = _tag(None, "REAL")
    return driver


@pytest.fixture
def tag_client(mock_driver: MagicMock):
    with patch("pyabtag.client.LogixDriver", return_value=mock_driver) as driver_class:
        client = TagClient("192.168.1.10/0")
        yield client
        if client._driver is not None:
            driver_class.assert_called_once_with("192.168.1.10/0", init_tags=True)


# ============================================================================
# TagClient
# ============================================================================


def test_read_real(tag_client: TagClient, mock_driver: MagicMock) -> None:
    value = tag_client.read("Program:Main.Flow_PV", TagType.REAL)
    assert value == TagValue.of(TagType.REAL, 1.5)
    mock_driver.read.assert_called_once_with("Program:Main.Flow_PV")


def test_read_accepts_parsed_path(tag_client: TagClient, mock_driver: MagicMock) -> None:
    mock_driver.read.return_value = _tag(True, "BOOL")
    value = tag_client.read(TagPath.parse("Status.3"), TagType.BOOL)
    assert value.value is True
    mock_driver.read.assert_called_once_with("Status.3")


def test_read_type_mismatch_is_permanent(tag_client: TagClient, mock_driver: MagicMock) -> None:
    mock_driver.read.return_value = _tag(7, "DINT")
    with pytest.raises(ProtocolReadError, match="does not match REAL") as exc_info:
        tag_client.read("Flow_PV", TagType.REAL)
    assert exc_info.value.transient is False
    assert exc_info.value.target == "Flow_PV"


def test_read_tag_error(tag_client: TagClient, mock_driver: MagicMock) -> None:
    mock_driver.read.return_value = _tag(None, None, error="Path destination unknown")
    with pytest.raises(ProtocolReadError, match="Path destination unknown") as exc_info:
        tag_client.read("Missing", TagType.REAL)
    assert exc_info.value.transient is False


def test_read_comm_error_is_transient(tag_client: TagClient, mock_driver: MagicMock) -> None:
    mock_driver.read.side_effect = CommError("socket timed out")
    with pytest.raises(ProtocolReadError) as exc_info:
        tag_client.read("Flow_PV", TagType.REAL)
    assert exc_info.value.transient is True
    assert isinstance(exc_info.value.cause, CommError)


def test_read_request_error_is_permanent(tag_client: TagClient, mock_driver: MagicMock) -> None:
    mock_driver.read.side_effect = RequestError("bad request")
    with pytest.raises(ProtocolReadError) as exc_info:
        tag_client.read("Flow_PV", TagType.REAL)
    assert exc_info.value.transient is False


def test_read_invalid_path_raises_before_io(tag_client: TagClient, mock_driver: MagicMock) -> None:
    with pytest.raises(TagPathError):
        tag_client.read("Flow PV", TagType.REAL)
    mock_driver.open.assert_not_called()


def test_write_real(tag_client: TagClient, mock_driver: MagicMock) -> None:
    tag_client.write("Rate_SP", TagValue.of(TagType.REAL, 12.5))
    mock_driver.write.assert_called_once_with("Rate_SP", 12.5)


def test_write_real_helper(tag_client: TagClient, mock_driver: MagicMock) -> None:
    tag_client.write_real(TagPath.parse("Rate_SP"), 3)
    mock_driver.write.assert_called_once_with("Rate_SP", 3.0)


def test_write_tag_error(tag_client: TagClient, mock_driver: MagicMock) -> None:
    mock_driver.write.return_value = _tag(None, None, error="Privilege violation")
    with pytest.raises(ProtocolWriteError, match="Privilege violation"):
        tag_client.write("Rate_SP", TagValue.of(TagType.REAL, 1.0))


def test_write_comm_error_is_transient(tag_client: TagClient, mock_driver: MagicMock) -> None:
    mock_driver.write.side_effect = CommError("connection reset")
    with pytest.raises(ProtocolWriteError) as exc_info:
        tag_client.write("Rate_SP", TagValue.of(TagType.REAL, 1.0))
    assert exc_info.value.transient is True


def test_connect_failure(mock_driver: MagicMock) -> None:
    mock_driver.open.return_value = False
    with patch("pyabtag.client.LogixDriver", return_value=mock_driver):
        with pytest.raises(ConnectError) as exc_info:
            TagClient("10.0.0.9").connect()
    assert exc_info.value.target == "10.0.0.9"


def test_connect_comm_error(mock_driver: MagicMock) -> None:
    mock_driver.open.side_effect = CommError("failed to open a connection")
    with patch("pyabtag.client.LogixDriver", return_value=mock_driver):
        with pytest.raises(ConnectError, match="failed to open a connection"):
            TagClient("10.0.0.9").connect()


def test_context_manager_opens_and_closes(mock_driver: MagicMock) -> None:
    with patch("pyabtag.client.LogixDriver", return_value=mock_driver):
        with TagClient("10.0.0.9") as client:
            client.read_real("Flow_PV")
    mock_driver.open.assert_called_once()
    mock_driver.close.assert_called_once()


# ============================================================================
# FieldBusClient
# ============================================================================


@pytest.fixture
def mock_serial() -> MagicMock:
    client = MagicMock()
    client.connect.return_value = True
    client.read_holding_registers.return_value = MagicMock(isError=lambda: False, registers=[0x4120, 0x0000])
    return client


@pytest.fixture
def bus(mock_serial: MagicMock):
    with patch("pyabtag.fieldbus.ModbusSerialClient", return_value=mock_serial) as serial_class:
        yield FieldBusClient("/dev/ttyUSB0", slave=7, baudrate=19200, timeout=0.5)
        if serial_class.called:
            kwargs = serial_class.call_args.kwargs
            assert kwargs["port"] == "/dev/ttyUSB0"
            assert kwargs["baudrate"] == 19200


def test_read_pair(bus: FieldBusClient, mock_serial: MagicMock) -> None:
    pair = bus.read_pair(100)
    assert pair == RegisterPair(0x4120, 0x0000)
    assert pair.decode() == 10.0
    mock_serial.read_holding_registers.assert_called_once_with(100, count=2, device_id=7)


def test_read_timeout_is_transient(bus: FieldBusClient, mock_serial: MagicMock) -> None:
    mock_serial.read_holding_registers.side_effect = ModbusIOException("No response received")
    with pytest.raises(ProtocolReadError) as exc_info:
        bus.read_pair(100)
    assert exc_info.value.transient is True


@pytest.mark.parametrize(("code", "transient"), [(0x02, False), (0x06, True), (0x0B, True)])
def test_exception_response_classification(
    bus: FieldBusClient, mock_serial: MagicMock, code: int, transient: bool
) -> None:
    mock_serial.read_holding_registers.return_value = MagicMock(isError=lambda: True, exception_code=code)
    with pytest.raises(ProtocolReadError) as exc_info:
        bus.read_pair(100)
    assert exc_info.value.transient is transient


def test_short_response(bus: FieldBusClient, mock_serial: MagicMock) -> None:
    mock_serial.read_holding_registers.return_value = MagicMock(isError=lambda: False, registers=[0x4120])
    with pytest.raises(ProtocolReadError, match="Short register response"):
        bus.read_pair(100)


def test_serial_connect_failure(bus: FieldBusClient, mock_serial: MagicMock) -> None:
    mock_serial.connect.return_value = False
    with pytest.raises(ConnectError, match="/dev/ttyUSB0"):
        bus.connect()


def test_invalid_slave_address() -> None:
    with pytest.raises(ValueError, match="slave address"):
        FieldBusClient("/dev/ttyUSB0", slave=256)
