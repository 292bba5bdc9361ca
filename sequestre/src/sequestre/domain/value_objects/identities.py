"""
Signer identities held by the escrow client for the duration of a call.
"""

from dataclasses import dataclass
from typing import Optional

from solders.keypair import Keypair  # type: ignore
from solders.pubkey import Pubkey  # type: ignore


@dataclass(frozen=True)
class EscrowIdentities:
    """
    Identities configured for the orchestrator.

    Attributes:
        fee_payer: Pays network fees and signs every transaction
        authority: Protocol-level approver; must match record.authority
        fee_taker: Wallet receiving protocol fees
        hot_wallet: Operator wallet used as intermediate settlement source
    """

    fee_payer: Keypair
    authority: Keypair
    fee_taker: Pubkey
    hot_wallet: Optional[Keypair] = None

    @property
    def fee_payer_address(self) -> Pubkey:
        return self.fee_payer.pubkey()

    @property
    def authority_address(self) -> Pubkey:
        return self.authority.pubkey()
