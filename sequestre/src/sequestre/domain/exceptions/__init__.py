"""
Domain exceptions.
"""

from sequestre.domain.exceptions.blockchain_exceptions import (
    BlockchainException,
    RPCException,
    RPCTimeoutException,
)
from sequestre.domain.exceptions.escrow_exceptions import (
    AccountNotFoundException,
    AlreadyCanceledException,
    AlreadySettledException,
    AmountMismatchException,
    EscrowException,
    FeeMismatchException,
    InvalidAccountOwnerException,
    InvalidAuthorityException,
    InvalidSignatureException,
    MalformedRecordException,
    SignerNotConfiguredException,
    SubmissionFailedException,
)

__all__ = [
    "BlockchainException",
    "RPCException",
    "RPCTimeoutException",
    "EscrowException",
    "AccountNotFoundException",
    "InvalidAccountOwnerException",
    "InvalidAuthorityException",
    "AlreadyCanceledException",
    "AlreadySettledException",
    "AmountMismatchException",
    "FeeMismatchException",
    "InvalidSignatureException",
    "MalformedRecordException",
    "SignerNotConfiguredException",
    "SubmissionFailedException",
]
