"""
Pre-flight checks mirroring the escrow program's own invariants.

The program re-enforces every rule on-chain; these checks only fail fast
so no fee is spent on a transaction that is certain to be rejected.
"""

from typing import Optional

from solders.pubkey import Pubkey  # type: ignore

from sequestre.domain.exceptions import (
    AccountNotFoundException,
    AlreadyCanceledException,
    AlreadySettledException,
    AmountMismatchException,
    FeeMismatchException,
    InvalidAccountOwnerException,
    InvalidAuthorityException,
)
from sequestre.domain.value_objects import AccountInfo, EscrowRecord


class EscrowStateValidator:
    """Stateless guards raising one typed escrow error each."""

    def assert_account_found(
        self,
        account: Optional[AccountInfo],
        address: Pubkey,
    ) -> AccountInfo:
        """
        Require that a referenced address exists.

        Returns:
            The account, narrowed to non-None
        """
        if account is None:
            raise AccountNotFoundException(
                f"Failed to find account {address}",
                details={"address": str(address)},
            )
        return account

    def assert_owned_by_program(
        self,
        account_owner: Pubkey,
        expected_program: Pubkey,
        address: Optional[Pubkey] = None,
    ) -> None:
        if account_owner != expected_program:
            raise InvalidAccountOwnerException(
                f"Invalid account owner: expected {expected_program}, "
                f"got {account_owner}",
                details={
                    "address": str(address) if address else None,
                    "expected_owner": str(expected_program),
                    "actual_owner": str(account_owner),
                },
            )

    def assert_authority_matches(
        self,
        record_authority: Pubkey,
        configured_authority: Pubkey,
    ) -> None:
        if record_authority != configured_authority:
            raise InvalidAuthorityException(
                "Invalid authority: configured authority does not match "
                "the escrow record",
                details={
                    "record_authority": str(record_authority),
                    "configured_authority": str(configured_authority),
                },
            )

    def assert_not_terminal(self, record: EscrowRecord) -> None:
        """Reject records that are already canceled or settled."""
        if record.is_canceled:
            raise AlreadyCanceledException("Account already canceled")
        if record.is_settled:
            raise AlreadySettledException("Account already settled")

    def assert_amount_matches(self, requested_amount: int, record: EscrowRecord):
        """No partial settlement: the requested amount must be exact."""
        if requested_amount != record.amount:
            raise AmountMismatchException(
                f"Amount mismatch: requested {requested_amount}, "
                f"escrowed {record.amount}",
                details={
                    "requested_amount": requested_amount,
                    "recorded_amount": record.amount,
                },
            )

    def assert_fee_matches(self, requested_fee: int, record: EscrowRecord):
        if requested_fee != record.fee:
            raise FeeMismatchException(
                f"Fee mismatch: requested {requested_fee}, recorded {record.fee}",
                details={
                    "requested_fee": requested_fee,
                    "recorded_fee": record.fee,
                },
            )
