"""pyusb transport implementation for the VFS0097."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, TypeVar

import usb.core
import usb.util

from .const import PRODUCT_ID, USB_CONFIGURATION, USB_INTERFACE, VENDOR_ID
from .core.errors import TransportError, TransportTimeoutError
from .core.transport import TransportInterface

_LOGGER = logging.getLogger(__name__)

_T = TypeVar("_T")


class UsbTransport(TransportInterface):
    """Concrete implementation of TransportInterface on top of pyusb.

    pyusb transfers block, so each one runs in the default executor while
    the calling coroutine waits for it.
    """

    def __init__(
        self,
        vendor_id: int = VENDOR_ID,
        product_id: int = PRODUCT_ID,
        device: usb.core.Device | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            vendor_id: USB vendor id to look up.
            product_id: USB product id to look up.
            device: An already located device; skips the lookup.
        """
        self._vendor_id = vendor_id
        self._product_id = product_id
        self._device = device
        self._claimed = False

    @property
    def is_open(self) -> bool:
        """Check if the interface is currently claimed."""
        return self._device is not None and self._claimed

    async def open(self) -> None:
        """Reset the device, select its configuration and claim interface 0."""
        await self._run(self._open)
        _LOGGER.debug(
            "Claimed interface %d on %04x:%04x",
            USB_INTERFACE,
            self._vendor_id,
            self._product_id,
        )

    async def close(self) -> None:
        """Release the claimed interface."""
        if not self._claimed or self._device is None:
            return

        device = self._device
        try:
            await self._run(usb.util.release_interface, device, USB_INTERFACE)
        finally:
            self._claimed = False
            usb.util.dispose_resources(device)

    async def submit_write(self, endpoint: int, data: bytes, timeout: int) -> int:
        """Write data to a bulk-out endpoint."""
        device = self._require_device()
        return await self._run(device.write, endpoint, data, timeout)

    async def submit_read(self, endpoint: int, max_len: int, timeout: int) -> bytes:
        """Read up to max_len bytes from a bulk-in endpoint."""
        device = self._require_device()
        data = await self._run(device.read, endpoint, max_len, timeout)
        return bytes(data)

    def _open(self) -> None:
        if self._device is None:
            self._device = usb.core.find(
                idVendor=self._vendor_id, idProduct=self._product_id
            )
        if self._device is None:
            raise TransportError(
                f"Device {self._vendor_id:04x}:{self._product_id:04x} not found"
            )

        device = self._device
        try:
            device.reset()

            try:
                configuration = device.get_active_configuration()
            except usb.core.USBError:
                # Raised by pyusb when the device is unconfigured
                configuration = None

            if configuration is None or configuration.bConfigurationValue == 0:
                device.set_configuration(USB_CONFIGURATION)

            usb.util.claim_interface(device, USB_INTERFACE)
        except usb.core.USBError:
            usb.util.dispose_resources(device)
            raise
        self._claimed = True

    def _require_device(self) -> usb.core.Device:
        if not self.is_open or self._device is None:
            raise TransportError("USB interface is not claimed")
        return self._device

    async def _run(self, func: Callable[..., _T], *args: Any) -> _T:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, func, *args)
        except usb.core.USBTimeoutError as err:
            _LOGGER.error("USB transfer timed out: %s", err)
            raise TransportTimeoutError(str(err)) from err
        except usb.core.USBError as err:
            _LOGGER.error("USB transfer: %s", err)
            raise TransportError(str(err)) from err
