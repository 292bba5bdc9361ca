"""Ledger-facing infrastructure."""

from sequestre.infrastructure.blockchain.solana_rpc_client import SolanaRPCClient
from sequestre.infrastructure.blockchain.transaction_assembler import (
    assemble_transaction,
    decode_payload,
    encode_payload,
    partial_signatures,
    serialize_message,
    serialize_transaction,
    sign_transaction,
    verify_presigned,
)

__all__ = [
    "SolanaRPCClient",
    "assemble_transaction",
    "sign_transaction",
    "serialize_transaction",
    "serialize_message",
    "encode_payload",
    "decode_payload",
    "partial_signatures",
    "verify_presigned",
]
