"""
Token account record value object.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

from solders.pubkey import Pubkey  # type: ignore


class TokenAccountState(IntEnum):
    """Token account state byte."""

    UNINITIALIZED = 0
    INITIALIZED = 1
    FROZEN = 2


@dataclass(frozen=True)
class TokenAccountRecord:
    """
    Decoded token-holding account.

    Only used to tell token accounts apart from plain wallets and to learn
    the token type (mint) behind an address.
    """

    mint: Pubkey
    owner: Pubkey
    amount: int
    delegate: Optional[Pubkey]
    delegated_amount: int
    state: TokenAccountState
    is_native: bool
    rent_exempt_reserve: Optional[int]
    close_authority: Optional[Pubkey]

    @property
    def is_initialized(self) -> bool:
        return self.state != TokenAccountState.UNINITIALIZED

    @property
    def is_frozen(self) -> bool:
        return self.state == TokenAccountState.FROZEN
