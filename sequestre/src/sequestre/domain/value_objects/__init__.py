"""
Domain value objects.
"""

from sequestre.domain.value_objects.account_info import AccountInfo
from sequestre.domain.value_objects.escrow_record import EscrowRecord, EscrowState
from sequestre.domain.value_objects.identities import EscrowIdentities
from sequestre.domain.value_objects.program_ids import ProgramIds
from sequestre.domain.value_objects.protocol import (
    DEFAULT_PROTOCOL_VERSION,
    ESCROW_RECORD_SPAN,
    PROTOCOL_V1,
    PROTOCOL_V2,
    EscrowInstruction,
    ProtocolDescriptor,
    get_protocol_descriptor,
)
from sequestre.domain.value_objects.token_account_record import (
    TokenAccountRecord,
    TokenAccountState,
)

__all__ = [
    "AccountInfo",
    "EscrowRecord",
    "EscrowState",
    "EscrowIdentities",
    "ProgramIds",
    "ProtocolDescriptor",
    "EscrowInstruction",
    "PROTOCOL_V1",
    "PROTOCOL_V2",
    "DEFAULT_PROTOCOL_VERSION",
    "ESCROW_RECORD_SPAN",
    "get_protocol_descriptor",
    "TokenAccountRecord",
    "TokenAccountState",
]
