"""
Blockchain transport exceptions.
"""

from typing import Optional


class BlockchainException(Exception):
    """Base exception for ledger transport operations."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class RPCException(BlockchainException):
    """RPC call failed."""


class RPCTimeoutException(RPCException):
    """RPC call exceeded its timeout."""
