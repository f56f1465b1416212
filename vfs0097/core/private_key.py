"""Unwrap the encrypted device private key stored in flash."""

from __future__ import annotations

import logging
from typing import Final

from cryptography.hazmat.primitives.asymmetric import ec

from .crypto import (
    AES_BLOCK_SIZE,
    COORDINATE_SIZE,
    SHA256_SIZE,
    aes_256_cbc_decrypt,
    int_from_le,
    prf_sha256,
    private_key_from_components,
    sensitive,
    verify_hmac_sha256,
)
from .errors import ConfigurationError
from .models import DeviceSession
from .profile import DeviceProfile

_LOGGER = logging.getLogger(__name__)

PRIVATE_KEY_PREFIX: Final = 0x02
# X, Y and D (3 x 32 bytes) plus one block of padding
PLAINTEXT_SIZE: Final = 0x70
MIN_BLOCK_SIZE: Final = 1 + AES_BLOCK_SIZE + PLAINTEXT_SIZE + SHA256_SIZE


def derive_master_key(seed: bytes, profile: DeviceProfile) -> bytes:
    """Derive the AES-256 key that encrypts the device private key."""
    return prf_sha256(profile.pre_key, profile.label, seed, SHA256_SIZE)


def derive_validation_key(master_key: bytes, profile: DeviceProfile) -> bytes:
    """Derive the HMAC key that signs the encrypted private key."""
    if profile.sign_key is None:
        raise ConfigurationError("sign_key is not configured")
    return prf_sha256(master_key, profile.label_sign, profile.sign_key, SHA256_SIZE)


def unwrap_private_key(
    seed: bytes, body: bytes, profile: DeviceProfile
) -> ec.EllipticCurvePrivateKey | None:
    """Validate and decrypt an encrypted private key block.

    The block is a 0x02 prefix, a 16-byte IV, the AES-256-CBC ciphertext
    and an HMAC-SHA256 over IV and ciphertext.

    Args:
        seed: The host seed both keys are derived from.
        body: The block body.
        profile: Literals used for key derivation.

    Returns:
        The validated key pair, or None if any check failed.
    """
    with (
        sensitive(derive_master_key(seed, profile)) as master_key,
        sensitive(derive_validation_key(master_key, profile)) as validation_key,
    ):
        if not body or body[0] != PRIVATE_KEY_PREFIX:
            _LOGGER.warning(
                "Unknown private key prefix %02x", body[0] if body else -1
            )
            return None

        if len(body) < MIN_BLOCK_SIZE:
            _LOGGER.warning("Private key block too short: %d bytes", len(body))
            return None

        encrypted = body[1:-SHA256_SIZE]
        signature = body[-SHA256_SIZE:]

        if not verify_hmac_sha256(validation_key, encrypted, signature):
            _LOGGER.warning(
                "Signature verification failed. "
                "This device was probably paired with another computer."
            )
            return None

        iv = encrypted[:AES_BLOCK_SIZE]
        ciphertext = encrypted[AES_BLOCK_SIZE : AES_BLOCK_SIZE + PLAINTEXT_SIZE]

        with sensitive(aes_256_cbc_decrypt(master_key, iv, ciphertext)) as plaintext:
            x = int_from_le(plaintext[:COORDINATE_SIZE])
            y = int_from_le(plaintext[COORDINATE_SIZE : 2 * COORDINATE_SIZE])
            d = int_from_le(plaintext[2 * COORDINATE_SIZE : 3 * COORDINATE_SIZE])

    try:
        key = private_key_from_components(x, y, d)
    except ValueError as err:
        _LOGGER.error("Failed to check private key: %s", err)
        return None
    finally:
        # Python ints cannot be wiped, only dropped
        del d

    _LOGGER.debug("X: %064x", x)
    _LOGGER.debug("Y: %064x", y)
    return key


def init_private_key(
    session: DeviceSession, body: bytes, profile: DeviceProfile
) -> bool:
    """Unwrap the private key block and install the result on the session.

    Returns:
        True if a key was installed.
    """
    if session.has_private_key():
        _LOGGER.warning("Private key already installed, skipping duplicate block")
        return False

    key = unwrap_private_key(session.seed, body, profile)
    if key is None:
        return False

    session.install_private_key(key)
    return True
