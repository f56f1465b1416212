"""Tests for the pyusb transport."""

import asyncio
from unittest.mock import MagicMock, patch

import pytest
import usb.core

from vfs0097.core.errors import TransportError, TransportTimeoutError
from vfs0097.core.transport import EP_IN, EP_OUT
from vfs0097.usb_client import UsbTransport


@pytest.fixture
def device() -> MagicMock:
    device = MagicMock()
    device.get_active_configuration.return_value.bConfigurationValue = 1
    return device


@pytest.fixture
def usb_util():
    with patch("vfs0097.usb_client.usb.util") as usb_util:
        yield usb_util


def _open(transport: UsbTransport) -> None:
    asyncio.run(transport.open())


def test_open_claims_interface(device, usb_util):
    """Test the open sequence on a configured device."""
    transport = UsbTransport(device=device)

    _open(transport)

    device.reset.assert_called_once()
    device.set_configuration.assert_not_called()
    usb_util.claim_interface.assert_called_once_with(device, 0)
    assert transport.is_open


def test_open_configures_unconfigured_device(device, usb_util):
    """Test that configuration 1 is selected when none is active."""
    device.get_active_configuration.side_effect = usb.core.USBError("unconfigured")
    transport = UsbTransport(device=device)

    _open(transport)

    device.set_configuration.assert_called_once_with(1)
    assert transport.is_open


def test_open_device_not_found(usb_util):
    with patch("vfs0097.usb_client.usb.core.find", return_value=None):
        with pytest.raises(TransportError, match="138a:0097 not found"):
            _open(UsbTransport())


def test_open_claim_failure(device, usb_util):
    usb_util.claim_interface.side_effect = usb.core.USBError("busy")
    transport = UsbTransport(device=device)

    with pytest.raises(TransportError, match="busy"):
        _open(transport)

    assert not transport.is_open
    usb_util.dispose_resources.assert_called_once_with(device)


def test_transfers(device, usb_util):
    device.write.return_value = 3
    device.read.return_value = [0x01, 0x02]
    transport = UsbTransport(device=device)

    async def run():
        await transport.open()
        written = await transport.submit_write(EP_OUT, b"\x01\x02\x03", 100)
        data = await transport.submit_read(EP_IN, 64, 100)
        return written, data

    assert asyncio.run(run()) == (3, b"\x01\x02")
    device.write.assert_called_once_with(EP_OUT, b"\x01\x02\x03", 100)
    device.read.assert_called_once_with(EP_IN, 64, 100)


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (usb.core.USBTimeoutError("timeout"), TransportTimeoutError),
        (usb.core.USBError("pipe"), TransportError),
    ],
)
def test_transfer_errors(device, usb_util, error, expected):
    """Test mapping of pyusb errors."""
    device.read.side_effect = error
    transport = UsbTransport(device=device)

    async def run():
        await transport.open()
        await transport.submit_read(EP_IN, 64, 100)

    with pytest.raises(expected):
        asyncio.run(run())


def test_transfer_requires_open(device):
    transport = UsbTransport(device=device)

    with pytest.raises(TransportError, match="not claimed"):
        asyncio.run(transport.submit_write(EP_OUT, b"\x00", 100))


def test_close_releases_interface(device, usb_util):
    transport = UsbTransport(device=device)

    async def run():
        await transport.open()
        await transport.close()
        await transport.close()

    asyncio.run(run())

    usb_util.release_interface.assert_called_once_with(device, 0)
    usb_util.dispose_resources.assert_called_once_with(device)
    assert not transport.is_open


def test_open_configuration_failure_disposes(device, usb_util):
    """A failed set_configuration frees the device handle."""
    device.get_active_configuration.return_value.bConfigurationValue = 0
    device.set_configuration.side_effect = usb.core.USBError("access denied")
    transport = UsbTransport(device=device)

    with pytest.raises(TransportError, match="access denied"):
        _open(transport)

    usb_util.claim_interface.assert_not_called()
    usb_util.dispose_resources.assert_called_once_with(device)
    assert not transport.is_open
