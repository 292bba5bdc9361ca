"""Blockchain utilities shared across Sequestre components."""

from shared.blockchain.keypairs import (
    load_keypair,
    load_optional_keypair,
    parse_pubkey,
)

__all__ = [
    "load_keypair",
    "load_optional_keypair",
    "parse_pubkey",
]
