"""
Escrow error kinds.

Every state-changing operation either returns a result or raises exactly
one of these. ``kind`` carries the protocol-level error name.
"""

from typing import Optional


class EscrowException(Exception):
    """Base exception for escrow operations."""

    kind = "EscrowError"

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class AccountNotFoundException(EscrowException):
    """Referenced address does not exist on the ledger."""

    kind = "AccountNotFound"


class InvalidAccountOwnerException(EscrowException):
    """Account is not owned by the expected program."""

    kind = "InvalidAccountOwner"


class InvalidAuthorityException(EscrowException):
    """Configured authority does not match the escrow record."""

    kind = "InvalidAuthority"


class AlreadyCanceledException(EscrowException):
    """Escrow record is already canceled."""

    kind = "AlreadyCanceled"


class AlreadySettledException(EscrowException):
    """Escrow record is already settled."""

    kind = "AlreadySettled"


class AmountMismatchException(EscrowException):
    """Requested settlement amount differs from the recorded principal."""

    kind = "AmountMismatch"


class FeeMismatchException(EscrowException):
    """Requested settlement fee differs from the recorded fee."""

    kind = "FeeMismatch"


class InvalidSignatureException(EscrowException):
    """A presigned transaction carries a missing or invalid signature."""

    kind = "InvalidSignature"


class MalformedRecordException(EscrowException):
    """Raw account bytes do not match the expected fixed layout."""

    kind = "MalformedRecord"


class SignerNotConfiguredException(EscrowException):
    """An operation needs a signer identity that is not configured."""

    kind = "SignerNotConfigured"


class SubmissionFailedException(EscrowException):
    """
    Broadcast failed at the transport layer.

    The outcome is ambiguous: the transaction may or may not have landed.
    Settlement-class operations attach ``destination_address`` so callers
    can reconcile without re-deriving it.
    """

    kind = "SubmissionFailed"

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None,
        destination_address: Optional[str] = None,
    ):
        super().__init__(message, details)
        self.destination_address = destination_address
        if destination_address is not None:
            self.details.setdefault("destination_address", destination_address)
