"""Binary codecs for on-chain records."""

from sequestre.codec.record_codec import (
    ESCROW_RECORD_LAYOUT,
    TOKEN_ACCOUNT_LAYOUT,
    TOKEN_ACCOUNT_SPAN,
    decode_escrow_record,
    decode_token_account_record,
    encode_escrow_record,
    encode_token_account_record,
)
from sequestre.domain.value_objects.protocol import ESCROW_RECORD_SPAN

__all__ = [
    "ESCROW_RECORD_LAYOUT",
    "ESCROW_RECORD_SPAN",
    "TOKEN_ACCOUNT_LAYOUT",
    "TOKEN_ACCOUNT_SPAN",
    "decode_escrow_record",
    "encode_escrow_record",
    "decode_token_account_record",
    "encode_token_account_record",
]
