"""Parse the signed ECDH block and check it against the manufacturer key."""

from __future__ import annotations

import logging
import struct
from typing import Final

from cryptography.hazmat.primitives.asymmetric import ec

from .crypto import (
    COORDINATE_SIZE,
    int_from_le,
    public_key_from_coordinates,
    sha256,
    verify_prehashed_signature,
)
from .errors import ConfigurationError
from .models import DeviceSession, SignatureStatus
from .profile import DeviceProfile

_LOGGER = logging.getLogger(__name__)

# Layout of the ECDH block
ECDH_X_OFFSET: Final = 0x08
ECDH_Y_OFFSET: Final = 0x4C
ECDH_SIGNED_SIZE: Final = 0x90
SIGNATURE_LENGTH_SIZE: Final = 4


def manufacturer_public_key(profile: DeviceProfile) -> ec.EllipticCurvePublicKey:
    """Build the manufacturer signing key from the profile.

    Raises:
        ConfigurationError: If the key coordinates are not configured.
        ValueError: If the coordinates are not a point on P-256.
    """
    if profile.manufacturer_key_x is None or profile.manufacturer_key_y is None:
        raise ConfigurationError("Manufacturer key is not configured")

    return public_key_from_coordinates(
        int.from_bytes(profile.manufacturer_key_x, "big"),
        int.from_bytes(profile.manufacturer_key_y, "big"),
    )


def check_ecdh(
    session: DeviceSession, body: bytes, profile: DeviceProfile
) -> SignatureStatus | None:
    """Install the device ECDH key and verify its signature.

    The key is installed before the signature is checked and stays
    installed whatever the outcome; the outcome is recorded on the session.

    Args:
        session: The session receiving the key.
        body: The ECDH block body.
        profile: Supplies the manufacturer key.

    Returns:
        The verification outcome, or None if no key could be read.
    """
    if session.ecdh_public_key is not None:
        _LOGGER.warning("ECDH key already installed, skipping duplicate block")
        return None

    if len(body) < ECDH_SIGNED_SIZE + SIGNATURE_LENGTH_SIZE:
        _LOGGER.warning("ECDH block too short: %d bytes", len(body))
        return None

    x = int_from_le(body[ECDH_X_OFFSET : ECDH_X_OFFSET + COORDINATE_SIZE])
    y = int_from_le(body[ECDH_Y_OFFSET : ECDH_Y_OFFSET + COORDINATE_SIZE])

    try:
        ecdh_key = public_key_from_coordinates(x, y)
    except ValueError as err:
        _LOGGER.error("Failed to set ECDH public key coordinates: %s", err)
        return None

    _LOGGER.debug("ECDH X: %064x", x)
    _LOGGER.debug("ECDH Y: %064x", y)
    session.install_ecdh_public_key(ecdh_key)

    (signature_length,) = struct.unpack_from("<L", body, ECDH_SIGNED_SIZE)
    start = ECDH_SIGNED_SIZE + SIGNATURE_LENGTH_SIZE
    signature = body[start : start + signature_length]

    for offset in range(start + signature_length, len(body)):
        if body[offset] != 0:
            _LOGGER.warning("Expected zero at %d", offset)

    status = _verify_signature(
        body[:ECDH_SIGNED_SIZE], signature, signature_length, profile
    )
    session.ecdh_status = status
    return status


def _verify_signature(
    signed: bytes, signature: bytes, signature_length: int, profile: DeviceProfile
) -> SignatureStatus:
    if len(signature) != signature_length:
        _LOGGER.error(
            "Failed to verify signature: %d bytes declared, %d present",
            signature_length,
            len(signature),
        )
        return SignatureStatus.MALFORMED

    try:
        device_key = manufacturer_public_key(profile)
        trusted = verify_prehashed_signature(device_key, sha256(signed), signature)
    except ValueError as err:
        _LOGGER.error("Failed to verify signature: %s", err)
        return SignatureStatus.MALFORMED

    if not trusted:
        _LOGGER.error("Untrusted device")
        return SignatureStatus.UNTRUSTED

    return SignatureStatus.TRUSTED
