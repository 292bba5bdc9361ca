"""
Versioned escrow protocol descriptor.

The escrow program evolved through wire variants that differ only in
whether the fee travels in the initialize and settle payloads. The
descriptor makes that an explicit, configuration-time choice.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict

# u8 flags x3 + six 32-byte addresses + two u64
ESCROW_RECORD_SPAN = 3 + 6 * 32 + 2 * 8


class EscrowInstruction(IntEnum):
    """Escrow program opcodes (first payload byte)."""

    INITIALIZE = 0
    SETTLE = 1
    CANCEL = 2
    CLOSE = 3


@dataclass(frozen=True)
class ProtocolDescriptor:
    """
    Wire format of one escrow protocol version.

    Attributes:
        version: Configuration name of the variant
        record_span: Size of the escrow account in bytes
        initialize_includes_fee: Append u64 fee to the initialize payload
        settle_includes_fee: Append u64 fee to the settle payload
    """

    version: str
    record_span: int
    initialize_includes_fee: bool
    settle_includes_fee: bool


PROTOCOL_V1 = ProtocolDescriptor(
    version="v1",
    record_span=ESCROW_RECORD_SPAN,
    initialize_includes_fee=False,
    settle_includes_fee=False,
)

PROTOCOL_V2 = ProtocolDescriptor(
    version="v2",
    record_span=ESCROW_RECORD_SPAN,
    initialize_includes_fee=True,
    settle_includes_fee=True,
)

PROTOCOLS: Dict[str, ProtocolDescriptor] = {
    PROTOCOL_V1.version: PROTOCOL_V1,
    PROTOCOL_V2.version: PROTOCOL_V2,
}

DEFAULT_PROTOCOL_VERSION = PROTOCOL_V2.version


def get_protocol_descriptor(version: str) -> ProtocolDescriptor:
    """
    Resolve a protocol descriptor by version name.

    Raises:
        ValueError: If the version is unknown
    """
    try:
        return PROTOCOLS[version.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown protocol version {version!r}. "
            f"Must be one of: {sorted(PROTOCOLS)}"
        ) from None
