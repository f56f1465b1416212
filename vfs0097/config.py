"""Configuration for the VFS0097 driver."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from .const import DEFAULT_BUFFER_SIZE, DEFAULT_SEED, DEFAULT_USB_TIMEOUT_MS, DMI_DIR
from .core.profile import DeviceProfile

_LOGGER = logging.getLogger(__name__)


class Vfs0097Config(BaseModel):
    """Settings for one device instance."""

    model_config = ConfigDict(frozen=True)

    seed: bytes = DEFAULT_SEED
    usb_timeout: int = Field(default=DEFAULT_USB_TIMEOUT_MS, gt=0)
    buffer_size: int = Field(default=DEFAULT_BUFFER_SIZE, gt=0)
    profile: DeviceProfile = Field(default_factory=DeviceProfile)


def load_profile(path: str | Path) -> DeviceProfile:
    """Load a device profile from a JSON file of hex strings."""
    return DeviceProfile.model_validate_json(Path(path).read_text(encoding="utf-8"))


def load_config(path: str | Path) -> Vfs0097Config:
    """Load driver settings, including an inline profile, from a JSON file."""
    return Vfs0097Config.model_validate_json(Path(path).read_text(encoding="utf-8"))


def _read_dmi(path: Path) -> bytes:
    try:
        value = path.read_bytes()
    except OSError as err:
        _LOGGER.warning("Could not read %s: %s", path, err)
        return b""
    return value.rstrip(b"\n")


def read_host_seed(dmi_dir: str | Path = DMI_DIR) -> bytes:
    """Build the seed from this machine's DMI product name and serial.

    The result has the same shape as the default seed: name, NUL, serial,
    NUL. Falls back to the default seed when the product name is unreadable.
    """
    dmi_dir = Path(dmi_dir)
    name = _read_dmi(dmi_dir / "product_name")
    if not name:
        _LOGGER.debug("No DMI product name, using default seed")
        return DEFAULT_SEED

    serial = _read_dmi(dmi_dir / "product_serial")
    seed = name + b"\0" + serial + b"\0"
    _LOGGER.debug("Initialized seed value: %s", seed)
    return seed
