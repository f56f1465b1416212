from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Final

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, hmac
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import (
    Prehashed,
    decode_dss_signature,
)
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

_LOGGER = logging.getLogger(__name__)

# The sensor uses NIST P-256 (SECP256R1) for every key it handles
CURVE: Final = ec.SECP256R1()
COORDINATE_SIZE: Final = 32
SHA256_SIZE: Final = 32
AES_BLOCK_SIZE: Final = 16


def sha256(data: bytes) -> bytes:
    """Compute a SHA-256 digest.

    Args:
        data: The bytes to hash.

    Returns:
        The 32-byte digest.
    """
    digest = hashes.Hash(hashes.SHA256())
    digest.update(data)
    return digest.finalize()


def compute_hmac_sha256(key: bytes, data: bytes) -> bytes:
    """Compute HMAC-SHA256 signature.

    Args:
        key: The HMAC key.
        data: The data to sign.

    Returns:
        The 32-byte HMAC signature.
    """
    h = hmac.HMAC(bytes(key), hashes.SHA256())
    h.update(data)
    return h.finalize()


def verify_hmac_sha256(key: bytes, data: bytes, signature: bytes) -> bool:
    """Verify HMAC-SHA256 signature in constant time.

    Args:
        key: The HMAC key.
        data: The signed data.
        signature: The signature to verify.

    Returns:
        True if valid, False otherwise.
    """
    h = hmac.HMAC(bytes(key), hashes.SHA256())
    h.update(data)
    try:
        h.verify(bytes(signature))
        return True
    except InvalidSignature:
        return False


def prf_sha256(secret: bytes, label: bytes, seed: bytes, length: int) -> bytes:
    """Expand a secret with the TLS 1.2 HMAC-SHA256 pseudorandom function.

    A(0) = label + seed, A(i) = HMAC(secret, A(i-1)) and the output is
    HMAC(secret, A(1) + label + seed) + HMAC(secret, A(2) + label + seed) + ...
    truncated to the requested length.

    Args:
        secret: The HMAC key.
        label: The ASCII label.
        seed: The seed bytes.
        length: Desired output length in bytes.

    Returns:
        Exactly `length` derived bytes.
    """
    if length < 0:
        raise ValueError(f"Invalid PRF output length: {length}")

    label_seed = bytes(label) + bytes(seed)
    a = compute_hmac_sha256(secret, label_seed)
    output = bytearray()
    while len(output) < length:
        output.extend(compute_hmac_sha256(secret, a + label_seed))
        a = compute_hmac_sha256(secret, a)
    return bytes(output[:length])


def aes_256_cbc_decrypt(key: bytes, iv: bytes, data: bytes) -> bytes:
    """Decrypt data using AES-256-CBC without padding removal.

    Args:
        key: 32 byte AES key.
        iv: 16 byte initialization vector.
        data: Ciphertext, a multiple of the block size.

    Returns:
        The raw plaintext.
    """
    if len(data) % AES_BLOCK_SIZE:
        raise ValueError(f"Ciphertext is not block aligned: {len(data)} bytes")

    decryptor = Cipher(algorithms.AES(bytes(key)), modes.CBC(bytes(iv))).decryptor()
    return decryptor.update(bytes(data)) + decryptor.finalize()


def int_from_le(data: bytes) -> int:
    """Read an unsigned little-endian integer."""
    return int.from_bytes(data, "little")


def public_key_from_coordinates(x: int, y: int) -> ec.EllipticCurvePublicKey:
    """Build a P-256 public key from affine coordinates.

    Raises:
        ValueError: If the point is not on the curve.
    """
    return ec.EllipticCurvePublicNumbers(x, y, CURVE).public_key()


def private_key_from_components(x: int, y: int, d: int) -> ec.EllipticCurvePrivateKey:
    """Build a P-256 key pair and check that it is self-consistent.

    Args:
        x: Public key X coordinate.
        y: Public key Y coordinate.
        d: Private scalar.

    Returns:
        The private key object.

    Raises:
        ValueError: If the public point is off the curve, the scalar is out
            of range, or the scalar does not produce the given public point.
    """
    public_numbers = ec.EllipticCurvePublicNumbers(x, y, CURVE)
    # Validates the point before the pair is assembled
    public_numbers.public_key()

    private_key = ec.EllipticCurvePrivateNumbers(d, public_numbers).private_key()

    derived = ec.derive_private_key(d, CURVE).public_key().public_numbers()
    if (derived.x, derived.y) != (x, y):
        raise ValueError("Private scalar does not match public key")

    return private_key


def verify_prehashed_signature(
    public_key: ec.EllipticCurvePublicKey, digest: bytes, signature: bytes
) -> bool:
    """Verify a DER encoded ECDSA signature over a caller supplied SHA-256 digest.

    Args:
        public_key: The signer's public key.
        digest: The 32-byte SHA-256 digest that was signed.
        signature: DER encoded (r, s) signature.

    Returns:
        True if the signature is valid, False if it is cryptographically rejected.

    Raises:
        ValueError: If the signature is not a well-formed DER sequence.
    """
    decode_dss_signature(bytes(signature))
    try:
        public_key.verify(
            bytes(signature), bytes(digest), ec.ECDSA(Prehashed(hashes.SHA256()))
        )
        return True
    except InvalidSignature:
        return False


def wipe(buffer: bytearray) -> None:
    """Overwrite a mutable buffer with zeros in place."""
    buffer[:] = bytes(len(buffer))


@contextmanager
def sensitive(data: bytes = b"") -> Iterator[bytearray]:
    """Hold secret bytes in a buffer that is zeroed when the block exits.

    Args:
        data: Initial contents, copied into the buffer.

    Yields:
        The mutable buffer.
    """
    buffer = bytearray(data)
    try:
        yield buffer
    finally:
        wipe(buffer)
