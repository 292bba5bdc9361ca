"""
Raw ledger account as returned by the transport.
"""

from dataclasses import dataclass

from solders.pubkey import Pubkey  # type: ignore


@dataclass(frozen=True)
class AccountInfo:
    """Owner program, balance and raw data of a ledger account."""

    owner: Pubkey
    lamports: int
    data: bytes
    executable: bool = False
