"""
Escrow record value object.

Decoded form of the on-chain escrow account. Every address is a role
reference; the record owns none of them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

from solders.pubkey import Pubkey  # type: ignore


class EscrowState(str, Enum):
    """Lifecycle state derived from the record flags."""

    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    SETTLED = "settled"
    CANCELED = "canceled"


@dataclass(frozen=True)
class EscrowRecord:
    """
    Escrow account record.

    ``is_settled`` and ``is_canceled`` are mutually exclusive terminal
    markers; once either is set no state-changing instruction is accepted.
    ``amount`` is fixed at initialization.
    """

    is_initialized: bool
    is_settled: bool
    is_canceled: bool
    payer: Pubkey
    payer_token_account: Pubkey
    payee_token_account: Pubkey
    vault_token_account: Pubkey
    authority: Pubkey
    fee_taker_token_account: Pubkey
    amount: int
    fee: int

    @property
    def is_terminal(self) -> bool:
        """True once settled or canceled."""
        return self.is_settled or self.is_canceled

    @property
    def state(self) -> EscrowState:
        if self.is_settled:
            return EscrowState.SETTLED
        if self.is_canceled:
            return EscrowState.CANCELED
        if self.is_initialized:
            return EscrowState.INITIALIZED
        return EscrowState.UNINITIALIZED

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly representation (addresses as base58)."""
        return {
            "state": self.state.value,
            "isInitialized": self.is_initialized,
            "isSettled": self.is_settled,
            "isCanceled": self.is_canceled,
            "payer": str(self.payer),
            "payerTokenAccount": str(self.payer_token_account),
            "payeeTokenAccount": str(self.payee_token_account),
            "vaultTokenAccount": str(self.vault_token_account),
            "authority": str(self.authority),
            "feeTakerTokenAccount": str(self.fee_taker_token_account),
            "amount": self.amount,
            "fee": self.fee,
        }
