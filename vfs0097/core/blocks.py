"""
Parser for the TLS data read from the sensor's certificate partition.

Container layout (little-endian):

    2 bytes   status, skipped
    4 bytes   payload size
    2 bytes   skipped
    payload   blocks until an END id or the payload is exhausted

Block layout: id (2), body size (2), SHA-256 of the body (32), body.
"""

from __future__ import annotations

import logging
import struct
from collections.abc import Iterator
from typing import Final

from .certificate import check_ecdh
from .crypto import SHA256_SIZE, sha256
from .errors import FlashContainerError
from .models import Block, BlockId, DeviceSession
from .private_key import init_private_key
from .profile import DeviceProfile

_LOGGER = logging.getLogger(__name__)

CONTAINER_HEADER: Final = struct.Struct("<2xL2x")
BLOCK_HEADER: Final = struct.Struct("<HH")


def read_container(data: bytes) -> bytes:
    """Strip the container header and return the block payload.

    Raises:
        FlashContainerError: If the declared payload size does not match the
            number of bytes following the header.
    """
    if len(data) < CONTAINER_HEADER.size:
        raise FlashContainerError(f"Flash container too short: {len(data)} bytes")

    (size,) = CONTAINER_HEADER.unpack_from(data)
    payload = data[CONTAINER_HEADER.size :]

    if len(payload) != size:
        raise FlashContainerError(
            f"Flash container declares {size} bytes, {len(payload)} present"
        )
    return payload


def iter_blocks(payload: bytes) -> Iterator[Block]:
    """Yield the blocks of a container payload without checking their hashes."""
    offset = 0
    while offset < len(payload):
        if len(payload) - offset < BLOCK_HEADER.size:
            _LOGGER.warning("Trailing %d bytes after last block", len(payload) - offset)
            return

        block_id, body_size = BLOCK_HEADER.unpack_from(payload, offset)
        offset += BLOCK_HEADER.size

        if block_id == BlockId.END:
            return

        end = offset + SHA256_SIZE + body_size
        if end > len(payload):
            _LOGGER.warning(
                "Block %04x truncated: %d bytes declared, %d present",
                block_id,
                body_size,
                max(len(payload) - offset - SHA256_SIZE, 0),
            )
            return

        digest = payload[offset : offset + SHA256_SIZE]
        body = payload[offset + SHA256_SIZE : end]
        offset = end
        yield Block(block_id=block_id, digest=digest, body=body)


def init_keys(
    session: DeviceSession, data: bytes, profile: DeviceProfile
) -> list[Block]:
    """Parse the flash container and load its blocks into the session.

    Blocks with a bad hash are skipped; key validation failures are logged
    by their handlers and leave the corresponding key unset.

    Args:
        session: The session receiving certificate and keys.
        data: The raw response to the flash read command.
        profile: Literals needed by the key handlers.

    Returns:
        The blocks whose hash matched, in container order.
    """
    payload = read_container(data)
    accepted: list[Block] = []

    for block in iter_blocks(payload):
        if sha256(block.body) != block.digest:
            _LOGGER.warning("Hash mismatch for block %d", block.block_id)
            continue

        accepted.append(block)
        _LOGGER.debug("Loading %s", block)

        if block.block_id in (BlockId.EMPTY_0, BlockId.EMPTY_1, BlockId.EMPTY_2):
            # All zeros
            continue
        if block.block_id == BlockId.CERTIFICATE:
            session.certificate = bytes(block.body)
        elif block.block_id == BlockId.PRIVATE_KEY:
            init_private_key(session, block.body, profile)
        elif block.block_id == BlockId.ECDH:
            check_ecdh(session, block.body, profile)
        else:
            _LOGGER.warning(
                "Unhandled block id %04x (%d bytes)", block.block_id, len(block.body)
            )

    return accepted
