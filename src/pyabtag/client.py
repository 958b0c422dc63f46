"""TagClient: typed tag read/write for Logix controllers over pycomm3 (EtherNet/IP)."""

import logging
from typing import Any

from pycomm3 import CommError, LogixDriver, PycommError

from .errors import ConnectError, ProtocolReadError, ProtocolWriteError
from .tagpath import TagPath
from .types import TagType, TagValue

logger = logging.getLogger(__name__)


class TagClient:
    """
    High-level client that reads/writes Logix tags by symbolic name with a declared type
    (BOOL, INT, DINT, REAL). Wraps pycomm3's LogixDriver; parsed TagPaths are cached.
    """

    def __init__(self, address: str, *, init_tags: bool = True) -> None:
        """`address` is a CIP path: 'host', 'host/slot' or a full route."""
        self._address = address
        self._init_tags = init_tags
        self._driver: LogixDriver | None = None
        self._cache: dict[str, TagPath] = {}

    @property
    def address(self) -> str:
        return self._address

    def _get_driver(self) -> LogixDriver:
        if self._driver is None:
            driver = LogixDriver(self._address, init_tags=self._init_tags)
            try:
                opened = driver.open()
            except PycommError as e:
                raise ConnectError(self._address, f"Failed to connect to {self._address}: {e}", cause=e) from e
            if not opened:
                raise ConnectError(self._address)
            logger.debug("Connected to controller at %s", self._address)
            self._driver = driver
        return self._driver

    def _resolve(self, tag: TagPath | str) -> TagPath:
        if isinstance(tag, TagPath):
            return tag
        if tag not in self._cache:
            self._cache[tag] = TagPath.parse(tag)
        return self._cache[tag]

    def connect(self) -> None:
        """Open the EtherNet/IP session to the controller."""
        self._get_driver()

    def close(self) -> None:
        """Close the session."""
        if self._driver is not None:
            try:
                self._driver.close()
            except PycommError as e:
                logger.warning("Error closing controller session: %s", e)
            self._driver = None

    def __enter__(self) -> "TagClient":
        self.connect()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def read(self, tag: TagPath | str, tag_type: TagType) -> TagValue:
        """Read one tag and return it as a TagValue of `tag_type`; raises ProtocolReadError."""
        path = self._resolve(tag)
        name = str(path)
        driver = self._get_driver()
        try:
            result = driver.read(name)
        except CommError as e:
            raise ProtocolReadError(f"Read {name} failed: {e}", target=name, transient=True, cause=e) from e
        except PycommError as e:
            raise ProtocolReadError(f"Read {name} failed: {e}", target=name, cause=e) from e

        if result.error is not None:
            raise ProtocolReadError(f"Read {name} failed: {result.error}", target=name)
        if result.type != tag_type.logix_name:
            raise ProtocolReadError(
                f"Read {name}: controller type {result.type} does not match {tag_type.logix_name}",
                target=name,
            )
        try:
            return TagValue.of(tag_type, result.value)
        except ValueError as e:
            raise ProtocolReadError(f"Read {name}: {e}", target=name, cause=e) from e

    def write(self, tag: TagPath | str, value: TagValue) -> None:
        """Write one typed value; raises ProtocolWriteError."""
        path = self._resolve(tag)
        name = str(path)
        driver = self._get_driver()
        try:
            result = driver.write(name, value.value)
        except CommError as e:
            raise ProtocolWriteError(f"Write {name} failed: {e}", target=name, transient=True, cause=e) from e
        except PycommError as e:
            raise ProtocolWriteError(f"Write {name} failed: {e}", target=name, cause=e) from e
        if result.error is not None:
            raise ProtocolWriteError(f"Write {name} failed: {result.error}", target=name)
        logger.debug("Wrote %s = %r (%s)", name, value.value, value.tag_type.logix_name)

    def read_real(self, tag: TagPath | str) -> float:
        return self.read(tag, TagType.REAL).value

    def write_real(self, tag: TagPath | str, value: float) -> None:
        self.write(tag, TagValue.of(TagType.REAL, value))

