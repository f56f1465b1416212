"""Fingerprint device drivers."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict

from .config import Vfs0097Config
from .const import DRIVER_ID, FULL_NAME, PRODUCT_ID, VENDOR_ID
from .core.errors import ConfigurationError
from .core.executor import CommandExecutor
from .core.models import DeviceSession
from .core.state_machine import InitState, InitStateMachine
from .core.transport import TransportInterface

_LOGGER = logging.getLogger(__name__)


class DeviceType(Enum):
    """How the driver reaches its device."""

    USB = "usb"


class ScanType(Enum):
    """How a finger is presented to the sensor."""

    PRESS = "press"
    SWIPE = "swipe"


class DriverInfo(BaseModel):
    """Static description used to match a driver to a device."""

    model_config = ConfigDict(frozen=True)

    id: str
    full_name: str
    type: DeviceType
    scan_type: ScanType
    id_table: tuple[tuple[int, int], ...]

    def supports(self, vendor_id: int, product_id: int) -> bool:
        """Check if the driver handles the given USB ids."""
        return (vendor_id, product_id) in self.id_table


VFS0097_DRIVER_INFO = DriverInfo(
    id=DRIVER_ID,
    full_name=FULL_NAME,
    type=DeviceType.USB,
    scan_type=ScanType.PRESS,
    id_table=((VENDOR_ID, PRODUCT_ID),),
)


class FingerprintDevice(ABC):
    """Abstract base class for fingerprint device drivers."""

    info: DriverInfo

    @abstractmethod
    async def open(self) -> None:
        """Open the device and bring it to a usable state.

        Raises:
            Vfs0097Error: If the device could not be opened.
        """

    @abstractmethod
    async def close(self) -> None:
        """Close the device and drop all session state."""

    @abstractmethod
    async def enroll(self, template: Any) -> Any:
        """Enroll a finger into the given print template."""

    @abstractmethod
    async def identify(self, gallery: list[Any]) -> Any | None:
        """Find the presented finger in a gallery of prints."""

    @abstractmethod
    async def verify(self, template: Any) -> bool | None:
        """Check the presented finger against one print."""

    @abstractmethod
    async def delete(self, template: Any) -> None:
        """Delete a print stored on the device."""

    @abstractmethod
    async def list_prints(self) -> list[Any]:
        """List prints stored on the device."""

    @abstractmethod
    def cancel(self) -> None:
        """Request cancellation of the running operation."""


class Vfs0097Device(FingerprintDevice):
    """Validity VFS0097 driver.

    Only open and close talk to the sensor; the print operations complete
    immediately without a result.

    To use:
        device = Vfs0097Device(UsbTransport(), Vfs0097Config(profile=profile))
        await device.open()
    """

    info = VFS0097_DRIVER_INFO

    def __init__(
        self, transport: TransportInterface, config: Vfs0097Config | None = None
    ) -> None:
        """Initialize the driver.

        Args:
            transport: The USB transport.
            config: Driver settings. Defaults are used if None.
        """
        self._transport = transport
        self._config = config or Vfs0097Config()
        self._session = DeviceSession(seed=self._config.seed)
        self._cancel_event = asyncio.Event()
        self._init_machine: InitStateMachine | None = None

    @property
    def session(self) -> DeviceSession:
        """The session state shared by the init sequence."""
        return self._session

    @property
    def init_state(self) -> InitState | None:
        """State the last init sequence reached, None before open()."""
        if self._init_machine is None:
            return None
        return self._init_machine.state

    async def open(self) -> None:
        """Claim the device and run the init sequence.

        Raises:
            ConfigurationError: If the seed or device profile is incomplete.
            TransportError: If any transfer fails.
            DeviceNotInitializedError: If the sensor was never provisioned.
            FlashContainerError: If the TLS flash data is malformed.
        """
        if not self._session.seed:
            raise ConfigurationError("Seed value is not initialized")
        self._config.profile.require_complete()

        if self._transport.is_open:
            _LOGGER.debug("Reopening %s", FULL_NAME)
            await self._transport.close()
        # Material from an earlier open is dropped, the seed survives
        self._session.release()

        self._cancel_event.clear()
        await self._transport.open()
        self._session.allocate_buffer(self._config.buffer_size)

        executor = CommandExecutor(
            self._transport, self._session, self._config.usb_timeout, self._cancel_event
        )
        self._init_machine = InitStateMachine(
            executor, self._session, self._config.profile, self._cancel_event
        )

        try:
            await self._init_machine.run()
        except BaseException as err:
            _LOGGER.error(
                "Failed to open %s in state %s: %r",
                FULL_NAME,
                self._init_machine.state.name,
                err,
            )
            self._session.release()
            await self._transport.close()
            raise

        if not self._session.has_private_key():
            _LOGGER.warning("Opened %s without a usable private key", FULL_NAME)
        else:
            _LOGGER.info("Opened %s", FULL_NAME)

    async def close(self) -> None:
        """Drop session material and release the interface."""
        self._session.release()
        await self._transport.close()
        _LOGGER.debug("Closed %s", FULL_NAME)

    async def enroll(self, template: Any) -> Any:
        """Return the template unchanged."""
        _LOGGER.debug("enroll")
        return template

    async def identify(self, gallery: list[Any]) -> Any | None:
        """Report no match."""
        _LOGGER.debug("identify")
        return None

    async def verify(self, template: Any) -> bool | None:
        """Report no result."""
        _LOGGER.debug("verify")
        return None

    async def delete(self, template: Any) -> None:
        """Complete without deleting anything."""
        _LOGGER.debug("delete")

    async def list_prints(self) -> list[Any]:
        """Report an empty print list."""
        _LOGGER.debug("list")
        return []

    def cancel(self) -> None:
        """Make the running state machine stop at its next state boundary."""
        _LOGGER.debug("cancel")
        self._cancel_event.set()
