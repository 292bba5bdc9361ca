"""Instruction builders."""

from sequestre.instructions.instruction_builder import (
    TOKEN_INITIALIZE_ACCOUNT,
    TOKEN_TRANSFER,
    InstructionBuilder,
    encode_initialize_payload,
    encode_settle_payload,
)

__all__ = [
    "InstructionBuilder",
    "encode_initialize_payload",
    "encode_settle_payload",
    "TOKEN_INITIALIZE_ACCOUNT",
    "TOKEN_TRANSFER",
]
