"""Constants for the VFS0097 driver."""

from typing import Final

DRIVER_ID: Final = "vfs0097"
FULL_NAME: Final = "Validity VFS0097"

VENDOR_ID: Final = 0x138A
PRODUCT_ID: Final = 0x0097

USB_CONFIGURATION: Final = 1
USB_INTERFACE: Final = 0

DEFAULT_USB_TIMEOUT_MS: Final = 3000
DEFAULT_BUFFER_SIZE: Final = 0x10000

# Product name and serial of the host that paired the sensor, NUL terminated
DEFAULT_SEED: Final = b"VirtualBox\x000\x00"

DMI_DIR: Final = "/sys/class/dmi/id"
