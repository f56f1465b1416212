"""
Core models for the VFS0097 protocol engine.
"""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import NamedTuple

from cryptography.hazmat.primitives.asymmetric import ec
from pydantic import BaseModel, ConfigDict, PrivateAttr


class BlockId(IntEnum):
    """Identifiers of the blocks stored in the TLS flash partition."""

    EMPTY_0 = 0x0000
    EMPTY_1 = 0x0001
    EMPTY_2 = 0x0002
    CERTIFICATE = 0x0003
    PRIVATE_KEY = 0x0004
    ECDH = 0x0006
    END = 0xFFFF


class Block(NamedTuple):
    """A hash-protected record read from the flash container."""

    block_id: int
    digest: bytes
    body: bytes

    def __str__(self) -> str:
        try:
            name = BlockId(self.block_id).name
        except ValueError:
            name = f"UNKNOWN_0x{self.block_id:04X}"
        return f"Block(id={name}, body_len={len(self.body)})"


class SignatureStatus(Enum):
    """Outcome of checking the ECDH block against the manufacturer key."""

    TRUSTED = "trusted"
    UNTRUSTED = "untrusted"
    MALFORMED = "malformed"


class DeviceSession(BaseModel):
    """
    Stores the per-device state shared by every step of the init sequence.

    The private key and the ECDH key can be installed once each; a second
    install is refused until release() drops them.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    seed: bytes
    certificate: bytes | None = None
    ecdh_status: SignatureStatus | None = None

    _buffer: bytearray | None = PrivateAttr(default=None)
    _buffer_length: int = PrivateAttr(default=0)
    _private_key: ec.EllipticCurvePrivateKey | None = PrivateAttr(default=None)
    _ecdh_public_key: ec.EllipticCurvePublicKey | None = PrivateAttr(default=None)

    # --- Response buffer ---

    def allocate_buffer(self, capacity: int) -> None:
        """Allocate a zeroed response buffer of fixed capacity."""
        if capacity <= 0:
            raise ValueError(f"Invalid buffer capacity: {capacity}")
        self._buffer = bytearray(capacity)
        self._buffer_length = 0

    @property
    def buffer_capacity(self) -> int:
        """Maximum number of bytes a single response can hold."""
        return len(self._buffer) if self._buffer is not None else 0

    @property
    def buffer_length(self) -> int:
        """Number of valid bytes from the most recent response."""
        return self._buffer_length

    @property
    def response(self) -> bytes:
        """Copy of the most recent response."""
        if self._buffer is None:
            return b""
        return bytes(self._buffer[: self._buffer_length])

    def store_response(self, data: bytes) -> None:
        """Copy a received response into the buffer and record its length."""
        if self._buffer is None:
            raise RuntimeError("Response buffer is not allocated")
        if len(data) > len(self._buffer):
            raise ValueError(
                f"Response of {len(data)} bytes exceeds buffer of {len(self._buffer)}"
            )
        self._buffer[: len(data)] = data
        self._buffer_length = len(data)

    # --- Key material ---

    @property
    def private_key(self) -> ec.EllipticCurvePrivateKey | None:
        """Device private key, present only after a successful unwrap."""
        return self._private_key

    @property
    def ecdh_public_key(self) -> ec.EllipticCurvePublicKey | None:
        """Device ECDH public key, present only after the ECDH block was parsed."""
        return self._ecdh_public_key

    def has_private_key(self) -> bool:
        """Check if a usable private key is installed."""
        return self._private_key is not None

    def install_private_key(self, key: ec.EllipticCurvePrivateKey) -> None:
        """Install the unwrapped device private key."""
        if self._private_key is not None:
            raise RuntimeError("Private key is already installed")
        self._private_key = key

    def install_ecdh_public_key(self, key: ec.EllipticCurvePublicKey) -> None:
        """Install the device ECDH public key."""
        if self._ecdh_public_key is not None:
            raise RuntimeError("ECDH public key is already installed")
        self._ecdh_public_key = key

    def release(self) -> None:
        """Drop the buffer and all key material. The seed is kept."""
        if self._buffer is not None:
            self._buffer[:] = bytes(len(self._buffer))
        self._buffer = None
        self._buffer_length = 0
        self._private_key = None
        self._ecdh_public_key = None
        self.certificate = None
        self.ecdh_status = None
