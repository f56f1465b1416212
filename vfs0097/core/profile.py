"""Compatibility literals for a VFS0097 sensor."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from .blobs import (
    INIT_SEQUENCE_MSG1,
    INIT_SEQUENCE_MSG2,
    INIT_SEQUENCE_MSG3,
    INIT_SEQUENCE_MSG5,
    INIT_SEQUENCE_MSG6,
    LABEL,
    LABEL_SIGN,
    PRE_KEY,
)
from .errors import ConfigurationError


def _hex_to_bytes(value: Any) -> Any:
    """Accept hex strings (whitespace ignored) wherever bytes are expected."""
    if isinstance(value, str):
        return bytes.fromhex("".join(value.split()))
    return value


class DeviceProfile(BaseModel):
    """
    Byte literals the sensor checks bit for bit.

    The init blob (message 4), the sign key and the manufacturer key are
    firmware specific and have no built-in value; they must be supplied,
    usually through a JSON profile file.
    """

    model_config = ConfigDict(frozen=True)

    init_msg1: bytes = INIT_SEQUENCE_MSG1
    init_msg2: bytes = INIT_SEQUENCE_MSG2
    init_msg3: bytes = INIT_SEQUENCE_MSG3
    init_msg4: bytes | None = None
    init_msg5: bytes = INIT_SEQUENCE_MSG5
    init_msg6: bytes = INIT_SEQUENCE_MSG6

    pre_key: bytes = PRE_KEY
    label: bytes = LABEL
    sign_key: bytes | None = None
    label_sign: bytes = LABEL_SIGN

    # Big-endian affine coordinates of the manufacturer signing key
    manufacturer_key_x: bytes | None = None
    manufacturer_key_y: bytes | None = None

    @field_validator(
        "init_msg1",
        "init_msg2",
        "init_msg3",
        "init_msg4",
        "init_msg5",
        "init_msg6",
        "pre_key",
        "sign_key",
        "manufacturer_key_x",
        "manufacturer_key_y",
        mode="before",
    )
    @classmethod
    def _decode_hex(cls, value: Any) -> Any:
        return _hex_to_bytes(value)

    @field_validator("manufacturer_key_x", "manufacturer_key_y")
    @classmethod
    def _check_coordinate(cls, value: bytes | None) -> bytes | None:
        if value is not None and len(value) != 32:
            raise ValueError(f"Coordinate must be 32 bytes, got {len(value)}")
        return value

    @property
    def init_commands(self) -> tuple[bytes, ...]:
        """The six init payloads in the order they are sent."""
        if self.init_msg4 is None:
            raise ConfigurationError("init_msg4 is not configured")
        return (
            self.init_msg1,
            self.init_msg2,
            self.init_msg3,
            self.init_msg4,
            self.init_msg5,
            self.init_msg6,
        )

    def missing_fields(self) -> list[str]:
        """Names of required literals that have no value."""
        return [
            name
            for name in (
                "init_msg4",
                "sign_key",
                "manufacturer_key_x",
                "manufacturer_key_y",
            )
            if getattr(self, name) is None
        ]

    def require_complete(self) -> None:
        """Raise ConfigurationError unless every literal is present."""
        if missing := self.missing_fields():
            raise ConfigurationError(
                f"Device profile is incomplete, missing: {', '.join(missing)}"
            )
