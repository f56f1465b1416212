"""Interface for VFS0097 USB communication."""

from abc import ABC, abstractmethod
from typing import Final

# Bulk endpoints used by the command exchange
EP_OUT: Final = 0x01
EP_IN: Final = 0x81
# Declared by the device, not read by the init sequence
EP_INTERRUPT: Final = 0x83


class TransportInterface(ABC):
    """Abstract base class for VFS0097 USB transports."""

    @abstractmethod
    async def open(self) -> None:
        """Reset the device and claim its interface.

        Raises:
            TransportError: If the device cannot be prepared.
        """

    @abstractmethod
    async def close(self) -> None:
        """Release the interface claimed by open()."""

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Check if the interface is currently claimed."""

    @abstractmethod
    async def submit_write(self, endpoint: int, data: bytes, timeout: int) -> int:
        """Submit a single bulk write.

        Args:
            endpoint: The bulk-out endpoint address.
            data: The bytes to write.
            timeout: Timeout in milliseconds.

        Returns:
            The number of bytes actually written.

        Raises:
            TransportError: If the transfer fails or times out.
        """

    @abstractmethod
    async def submit_read(self, endpoint: int, max_len: int, timeout: int) -> bytes:
        """Submit a single bulk read.

        Args:
            endpoint: The bulk-in endpoint address.
            max_len: Maximum number of bytes to accept.
            timeout: Timeout in milliseconds.

        Returns:
            The bytes received, which may be fewer than max_len.

        Raises:
            TransportError: If the transfer fails or times out.
        """
