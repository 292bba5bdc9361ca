"""Utility modules for Sequestre."""

from sequestre.utils.addresses import (
    VAULT_AUTHORITY_SEED,
    AddressDeriver,
    derive_associated_token_address,
    derive_vault_authority,
)
from sequestre.utils.validation import validate_solana_address, validate_u64

__all__ = [
    "VAULT_AUTHORITY_SEED",
    "AddressDeriver",
    "derive_vault_authority",
    "derive_associated_token_address",
    "validate_solana_address",
    "validate_u64",
]
