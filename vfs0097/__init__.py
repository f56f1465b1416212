"""The Validity VFS0097 fingerprint sensor driver."""

from __future__ import annotations

import logging

from .config import Vfs0097Config, load_config, load_profile, read_host_seed
from .core.errors import (
    ConfigurationError,
    DeviceNotInitializedError,
    FlashContainerError,
    OperationCancelledError,
    ProtocolError,
    TransportError,
    TransportTimeoutError,
    Vfs0097Error,
)
from .core.profile import DeviceProfile
from .device import VFS0097_DRIVER_INFO, FingerprintDevice, Vfs0097Device
from .usb_client import UsbTransport

__version__ = "0.1.0"

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "ConfigurationError",
    "DeviceNotInitializedError",
    "DeviceProfile",
    "FingerprintDevice",
    "FlashContainerError",
    "OperationCancelledError",
    "ProtocolError",
    "TransportError",
    "TransportTimeoutError",
    "UsbTransport",
    "VFS0097_DRIVER_INFO",
    "Vfs0097Config",
    "Vfs0097Device",
    "Vfs0097Error",
    "async_open_device",
    "load_config",
    "load_profile",
    "read_host_seed",
]


async def async_open_device(config: Vfs0097Config) -> Vfs0097Device:
    """Locate the sensor over USB and open it."""
    transport = UsbTransport()
    device = Vfs0097Device(transport, config)

    _LOGGER.debug("Opening %s", VFS0097_DRIVER_INFO.full_name)
    await device.open()

    return device
