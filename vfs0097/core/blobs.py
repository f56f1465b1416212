"""Command payloads and key derivation literals for the VFS0097."""

from struct import pack
from typing import Final

# Get ROM info. The 38-byte reply ends with the provisioning marker.
INIT_SEQUENCE_MSG1: Final = bytes.fromhex("01")
INIT_SEQUENCE_MSG2: Final = bytes.fromhex("19")
# Partition header of the fwext partition (02)
INIT_SEQUENCE_MSG3: Final = bytes.fromhex("4302")
# Get flash info
INIT_SEQUENCE_MSG5: Final = bytes.fromhex("3e")
# Read 0x1000 bytes at offset 0 of partition 1 (cert store)
INIT_SEQUENCE_MSG6: Final = pack("<BBBHLL", 0x40, 0x01, 0x01, 0x0000, 0x0, 0x1000)

PROVISIONED_REPLY_LENGTH: Final = 38
PROVISIONED_MARKER: Final = 0x07

PRE_KEY: Final = bytes.fromhex(
    "717cd72d0962bc4a2846138dbb2c24192512a76407065f383846139d4bec2033"
)
LABEL: Final = b"GWK"
LABEL_SIGN: Final = b"GWK_SIGN"
