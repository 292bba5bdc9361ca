"""
Escrow operation Data Transfer Objects.

Inputs carry base58 addresses as strings; outputs are plain values the
CLI or an API layer can serialize directly.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional


@dataclass
class InitializePaymentInput:
    """Request to open an escrow funded by the payer."""

    payer_wallet_address: str
    payee_wallet_address: str
    token_mint_address: str
    amount: int
    fee: Optional[int] = None
    memo: Optional[str] = None


@dataclass
class InitializePaymentOutput:
    """
    Unsubmitted, partially signed initialize transaction.

    The payer signs ``message`` and fills its slot in ``signatures``
    (or signs ``transaction`` directly) before submitting it.
    """

    message: str  # base64 message bytes
    transaction: str  # base64 wire transaction with partial signatures
    signatures: List[Dict[str, Optional[str]]]
    escrow_address: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SettlePaymentInput:
    """Request to release escrowed funds to the payee."""

    escrow_address: str
    amount: int
    wallet_address: Optional[str] = None  # caller wallet, informational
    fee: Optional[int] = None
    memo: Optional[str] = None


@dataclass
class SettleAndTransferInput:
    """
    Settle, then forward funds from the hot wallet to the end recipient.
    """

    escrow_address: str
    amount: int
    wallet_address: str  # end recipient
    transfer_token_mint_address: str
    amount_to_transfer: int
    fee: Optional[int] = None
    memo: Optional[str] = None


@dataclass
class SettlePaymentOutput:
    """Settlement signature and where the funds went."""

    signature: str
    destination_wallet_address: str
    transfer_destination_address: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CancelPaymentInput:
    """Request to return principal to the payer."""

    escrow_address: str
    memo: Optional[str] = None


@dataclass
class CancelPaymentOutput:
    signature: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ClosePaymentInput:
    """Request to reclaim the record account's rent."""

    escrow_address: str
    memo: Optional[str] = None

