"""
Ledger transport service interface.

The RPC transport is an external collaborator: the escrow client only
needs account reads, a recent blockhash, rent figures, raw broadcast and
a transaction lookup for confirmation polling.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from solders.hash import Hash  # type: ignore
from solders.pubkey import Pubkey  # type: ignore

from sequestre.domain.value_objects.account_info import AccountInfo


class ILedgerTransport(ABC):
    """Abstract transport to the ledger network."""

    @abstractmethod
    async def get_account_info(self, address: Pubkey) -> Optional[AccountInfo]:
        """
        Fetch an account.

        Args:
            address: Account address

        Returns:
            AccountInfo, or None if the account does not exist
        """

    @abstractmethod
    async def get_latest_blockhash(self) -> Hash:
        """Fetch a recent blockhash to stamp transactions with."""

    @abstractmethod
    async def get_minimum_balance_for_rent_exemption(self, space: int) -> int:
        """
        Lamports an account of ``space`` bytes needs to be rent exempt.
        """

    @abstractmethod
    async def send_raw_transaction(
        self,
        payload: bytes,
        skip_preflight: bool = False,
    ) -> str:
        """
        Broadcast a serialized, signed transaction.

        Args:
            payload: Wire bytes of the transaction
            skip_preflight: Skip simulated validation before broadcast

        Returns:
            Transaction signature (base58)

        Raises:
            BlockchainException: On transport or node rejection
        """

    @abstractmethod
    async def get_transaction(self, signature: str) -> Optional[Dict[str, Any]]:
        """
        Look up a transaction by signature.

        Returns:
            Transaction payload, or None while it is not yet observable
        """
