"""
Address derivation for the escrow protocol.

Pure functions: no network access, identical inputs always give identical
outputs.
"""

from typing import Tuple

from solders.pubkey import Pubkey  # type: ignore

from sequestre.domain.value_objects.program_ids import ProgramIds

VAULT_AUTHORITY_SEED = b"escrow"


def derive_vault_authority(program_id: Pubkey) -> Tuple[Pubkey, int]:
    """
    Derive the escrow program's vault authority.

    Seeds: [b"escrow"]. The resulting address has no private key, so only
    the program can sign for the vault token accounts it owns.

    Args:
        program_id: Escrow program ID

    Returns:
        Tuple of (authority_address, bump_seed)

    Examples:
        >>> program = Pubkey.from_string(
        ...     "5DQUMRfBoEWYs3SWXtBiVt2EA46ahnNswHwncbuEcYjm"
        ... )
        >>> authority, bump = derive_vault_authority(program)
        >>> 0 <= bump <= 255
        True
    """
    return Pubkey.find_program_address([VAULT_AUTHORITY_SEED], program_id)


def derive_associated_token_address(
    owner: Pubkey,
    mint: Pubkey,
    token_program_id: Pubkey,
    associated_token_program_id: Pubkey,
) -> Pubkey:
    """
    Derive an owner's associated token address for a mint.

    Seeds: [owner, token_program_id, mint] under the associated token
    program.

    Args:
        owner: Wallet that owns the token account
        mint: Token type
        token_program_id: Token program ID
        associated_token_program_id: Associated token program ID

    Returns:
        Associated token address
    """
    address, _ = Pubkey.find_program_address(
        [bytes(owner), bytes(token_program_id), bytes(mint)],
        associated_token_program_id,
    )
    return address


class AddressDeriver:
    """Derivations bound to one set of program identifiers."""

    def __init__(self, program_ids: ProgramIds):
        self.program_ids = program_ids

    def vault_authority(self) -> Tuple[Pubkey, int]:
        """Vault authority of the configured escrow program."""
        return derive_vault_authority(self.program_ids.escrow_program)

    def associated_token_address(self, owner: Pubkey, mint: Pubkey) -> Pubkey:
        """Associated token address under the configured programs."""
        return derive_associated_token_address(
            owner,
            mint,
            self.program_ids.token_program,
            self.program_ids.associated_token_program,
        )
