"""
Program identifiers injected into the escrow client.

Defaults point at the public deployments; alternate deployments and test
doubles pass their own.
"""

from dataclasses import dataclass

from solders.pubkey import Pubkey  # type: ignore
from solders.system_program import ID as SYSTEM_PROGRAM_ID  # type: ignore
from solders.sysvar import RENT  # type: ignore

DEFAULT_ESCROW_PROGRAM_ID = "5DQUMRfBoEWYs3SWXtBiVt2EA46ahnNswHwncbuEcYjm"
DEFAULT_TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
DEFAULT_ASSOCIATED_TOKEN_PROGRAM_ID = "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"
DEFAULT_MEMO_PROGRAM_ID = "Memo1UhkJRfHyvLMcVucJwxXeuD728EqVDDwQDxFMNo"
DEFAULT_WRAPPED_NATIVE_MINT = "So11111111111111111111111111111111111111112"


@dataclass(frozen=True)
class ProgramIds:
    """On-chain programs and well-known accounts the client talks to."""

    escrow_program: Pubkey
    token_program: Pubkey = Pubkey.from_string(DEFAULT_TOKEN_PROGRAM_ID)
    associated_token_program: Pubkey = Pubkey.from_string(
        DEFAULT_ASSOCIATED_TOKEN_PROGRAM_ID
    )
    memo_program: Pubkey = Pubkey.from_string(DEFAULT_MEMO_PROGRAM_ID)
    wrapped_native_mint: Pubkey = Pubkey.from_string(DEFAULT_WRAPPED_NATIVE_MINT)
    system_program: Pubkey = SYSTEM_PROGRAM_ID
    rent_sysvar: Pubkey = RENT

    @classmethod
    def from_strings(
        cls,
        escrow_program: str = DEFAULT_ESCROW_PROGRAM_ID,
        token_program: str = DEFAULT_TOKEN_PROGRAM_ID,
        associated_token_program: str = DEFAULT_ASSOCIATED_TOKEN_PROGRAM_ID,
        memo_program: str = DEFAULT_MEMO_PROGRAM_ID,
        wrapped_native_mint: str = DEFAULT_WRAPPED_NATIVE_MINT,
    ) -> "ProgramIds":
        """Build from base58 strings (as stored in configuration)."""
        return cls(
            escrow_program=Pubkey.from_string(escrow_program),
            token_program=Pubkey.from_string(token_program),
            associated_token_program=Pubkey.from_string(associated_token_program),
            memo_program=Pubkey.from_string(memo_program),
            wrapped_native_mint=Pubkey.from_string(wrapped_native_mint),
        )

    def is_native_mint(self, mint: Pubkey) -> bool:
        return mint == self.wrapped_native_mint
