"""
Unit tests for the transaction orchestrator lifecycle operations.

Tests settle, settle-and-transfer, cancel and close against the
in-memory ledger: validation order, instruction shape, signers and
submission failure handling.

Usage:
    pytest sequestre/tests/unit/test_transaction_orchestrator.py
"""

import dataclasses

import pytest
from solders.pubkey import Pubkey  # type: ignore

from sequestre.application import (
    CancelPaymentInput,
    ClosePaymentInput,
    SettleAndTransferInput,
    SettlePaymentInput,
    TransactionOrchestrator,
)
from sequestre.codec import encode_escrow_record
from sequestre.domain.exceptions import (
    AccountNotFoundException,
    AlreadyCanceledException,
    AlreadySettledException,
    AmountMismatchException,
    FeeMismatchException,
    InvalidAccountOwnerException,
    InvalidAuthorityException,
    MalformedRecordException,
    RPCException,
    SignerNotConfiguredException,
    SubmissionFailedException,
)
from sequestre.domain.value_objects import PROTOCOL_V1, PROTOCOL_V2
from sequestre.utils.addresses import AddressDeriver


def _vault_authority(program_ids):
    authority, _ = Pubkey.find_program_address([b"escrow"], program_ids.escrow_program)
    return authority


class TestSettle:
    """Settlement to the recorded payee."""

    async def test_settle_submits_settle_instruction(
        self, orchestrator, ledger, make_escrow, identities, program_ids
    ):
        """Test a valid settle broadcasts one correctly shaped instruction."""
        escrow = make_escrow()

        result = await orchestrator.settle(
            SettlePaymentInput(escrow_address=str(escrow.address), amount=1000)
        )

        assert result.destination_wallet_address == str(
            escrow.record.payee_token_account
        )
        assert len(ledger.sent) == 1
        transaction = ledger.sent[0]
        assert result.signature == str(transaction.signatures[0])

        [(program, data, accounts)] = ledger.instructions(transaction)
        assert program == program_ids.escrow_program
        assert list(data) == [1, 7, 0, 0, 0, 0, 0, 0, 0]
        assert accounts == [
            identities.authority_address,
            escrow.record.payee_token_account,
            escrow.record.fee_taker_token_account,
            escrow.record.vault_token_account,
            escrow.address,
            identities.fee_payer_address,
            program_ids.token_program,
            _vault_authority(program_ids),
        ]
        assert ledger.signers(transaction) == [
            identities.fee_payer_address,
            identities.authority_address,
        ]
        assert ledger.skip_preflight_flags == [False]

    async def test_settle_appends_memo(
        self, orchestrator, ledger, make_escrow, program_ids
    ):
        """Test a memo travels as a second instruction."""
        escrow = make_escrow()

        await orchestrator.settle(
            SettlePaymentInput(
                escrow_address=str(escrow.address), amount=1000, memo="order 17"
            )
        )

        instructions = ledger.instructions(ledger.sent[0])
        assert [program for program, _, _ in instructions] == [
            program_ids.escrow_program,
            program_ids.memo_program,
        ]
        assert instructions[1][1] == b"order 17"

    async def test_amount_mismatch_builds_nothing(
        self, orchestrator, ledger, make_escrow
    ):
        """Test settle for 999 of a 1000 escrow fails before any broadcast."""
        escrow = make_escrow(amount=1000)

        with pytest.raises(AmountMismatchException):
            await orchestrator.settle(
                SettlePaymentInput(escrow_address=str(escrow.address), amount=999)
            )

        assert ledger.send_attempts == 0

    async def test_fee_mismatch(self, orchestrator, ledger, make_escrow):
        """Test a caller fee different from the record is rejected."""
        escrow = make_escrow(fee=7)

        with pytest.raises(FeeMismatchException):
            await orchestrator.settle(
                SettlePaymentInput(
                    escrow_address=str(escrow.address), amount=1000, fee=8
                )
            )

        assert ledger.send_attempts == 0

    async def test_matching_fee_is_accepted(self, orchestrator, ledger, make_escrow):
        """Test an explicit fee equal to the record passes."""
        escrow = make_escrow(fee=7)

        await orchestrator.settle(
            SettlePaymentInput(escrow_address=str(escrow.address), amount=1000, fee=7)
        )

        [(_, data, _)] = ledger.instructions(ledger.sent[0])
        assert data[1:] == (7).to_bytes(8, "little")

    @pytest.mark.parametrize(
        "flags, error",
        [
            ({"is_canceled": True}, AlreadyCanceledException),
            ({"is_settled": True}, AlreadySettledException),
        ],
    )
    async def test_terminal_records_reject_settle(
        self, orchestrator, ledger, make_escrow, flags, error
    ):
        """Test settled and canceled records reject settle."""
        escrow = make_escrow(**flags)

        with pytest.raises(error):
            await orchestrator.settle(
                SettlePaymentInput(escrow_address=str(escrow.address), amount=1000)
            )

        assert ledger.send_attempts == 0

    async def test_foreign_authority_rejected(self, orchestrator, ledger, make_escrow):
        """Test a record owned by another authority fails before any write."""
        escrow = make_escrow(authority=Pubkey.new_unique())

        with pytest.raises(InvalidAuthorityException):
            await orchestrator.settle(
                SettlePaymentInput(escrow_address=str(escrow.address), amount=1000)
            )

        assert ledger.send_attempts == 0

    async def test_missing_escrow(self, orchestrator):
        """Test an unknown escrow address raises AccountNotFound."""
        with pytest.raises(AccountNotFoundException):
            await orchestrator.settle(
                SettlePaymentInput(escrow_address=str(Pubkey.new_unique()), amount=1)
            )

    async def test_escrow_owned_by_other_program(
        self, orchestrator, ledger, make_escrow
    ):
        """Test a record not created by the escrow program is rejected."""
        escrow = make_escrow()
        impostor = Pubkey.new_unique()
        ledger.put_account(
            impostor, Pubkey.new_unique(), encode_escrow_record(escrow.record)
        )

        with pytest.raises(InvalidAccountOwnerException):
            await orchestrator.settle(
                SettlePaymentInput(escrow_address=str(impostor), amount=1000)
            )

    async def test_malformed_escrow(self, orchestrator, ledger, program_ids):
        """Test undecodable record data raises MalformedRecord."""
        address = Pubkey.new_unique()
        ledger.put_account(address, program_ids.escrow_program, bytes(100))

        with pytest.raises(MalformedRecordException):
            await orchestrator.settle(
                SettlePaymentInput(escrow_address=str(address), amount=1000)
            )

    async def test_submission_failure_carries_destination(
        self, orchestrator, ledger, make_escrow
    ):
        """Test a broadcast failure reports where the funds were headed."""
        escrow = make_escrow()
        ledger.send_error = RPCException("RPC error: node is behind")

        with pytest.raises(SubmissionFailedException) as exc:
            await orchestrator.settle(
                SettlePaymentInput(escrow_address=str(escrow.address), amount=1000)
            )

        destination = str(escrow.record.payee_token_account)
        assert exc.value.kind == "SubmissionFailed"
        assert exc.value.destination_address == destination
        assert exc.value.details["destination_address"] == destination
        assert exc.value.details["operation"] == "settle"

    async def test_payee_wallet_gets_associated_account(
        self, orchestrator, ledger, make_escrow, program_ids
    ):
        """Test a payee recorded as a wallet is paid into its associated account."""
        escrow = make_escrow()
        payee_wallet = escrow.record.payee_token_account
        del ledger.accounts[payee_wallet]
        expected = AddressDeriver(program_ids).associated_token_address(
            payee_wallet, escrow.mint
        )

        result = await orchestrator.settle(
            SettlePaymentInput(escrow_address=str(escrow.address), amount=1000)
        )

        assert result.destination_wallet_address == str(expected)
        assert ledger.ata_creations == 1
        [(_, _, accounts)] = ledger.instructions(ledger.sent[-1])
        assert accounts[1] == expected

    async def test_fee_taker_creation_failure_names_taker(
        self, orchestrator, ledger, make_escrow, program_ids
    ):
        """Test a failed fee-taker account creation reports the settlement taker."""
        escrow = make_escrow()
        fee_taker_wallet = escrow.record.fee_taker_token_account
        del ledger.accounts[fee_taker_wallet]
        ledger.send_error = RPCException("RPC error: insufficient funds for rent")

        with pytest.raises(SubmissionFailedException) as exc:
            await orchestrator.settle(
                SettlePaymentInput(escrow_address=str(escrow.address), amount=1000)
            )

        assert exc.value.destination_address == str(
            escrow.record.payee_token_account
        )
        assert exc.value.details["fee_taker_address"] == str(
            AddressDeriver(program_ids).associated_token_address(
                fee_taker_wallet, escrow.mint
            )
        )
        assert exc.value.details["mint"] == str(escrow.mint)

    async def test_native_escrow_pays_recorded_addresses(
        self, orchestrator, ledger, make_escrow, program_ids
    ):
        """Test wrapped-native escrows settle to the recorded wallets as-is."""
        escrow = make_escrow(escrow_mint=program_ids.wrapped_native_mint)
        del ledger.accounts[escrow.record.payee_token_account]

        result = await orchestrator.settle(
            SettlePaymentInput(escrow_address=str(escrow.address), amount=1000)
        )

        assert result.destination_wallet_address == str(
            escrow.record.payee_token_account
        )
        assert ledger.ata_creations == 0

    async def test_settle_on_legacy_protocol(
        self, ledger, identities, program_ids, reporter, make_escrow
    ):
        """Test the v1 wire format sends the bare opcode."""
        legacy = TransactionOrchestrator(
            transport=ledger,
            identities=identities,
            program_ids=program_ids,
            protocol=PROTOCOL_V1,
            reporter=reporter,
        )
        escrow = make_escrow()

        await legacy.settle(
            SettlePaymentInput(escrow_address=str(escrow.address), amount=1000)
        )

        [(_, data, _)] = ledger.instructions(ledger.sent[0])
        assert data == bytes([1])


class TestSettleAndTransfer:
    """Settlement with an onward transfer from the hot wallet."""

    async def test_requires_hot_wallet(
        self, ledger, identities, program_ids, reporter, make_escrow
    ):
        """Test the operation is refused without a hot wallet signer."""
        orchestrator = TransactionOrchestrator(
            transport=ledger,
            identities=dataclasses.replace(identities, hot_wallet=None),
            program_ids=program_ids,
            protocol=PROTOCOL_V2,
            reporter=reporter,
        )
        escrow = make_escrow()

        with pytest.raises(SignerNotConfiguredException):
            await orchestrator.settle_and_transfer(
                SettleAndTransferInput(
                    escrow_address=str(escrow.address),
                    amount=1000,
                    wallet_address=str(Pubkey.new_unique()),
                    transfer_token_mint_address=str(Pubkey.new_unique()),
                    amount_to_transfer=50,
                )
            )

        assert ledger.send_attempts == 0

    async def test_settle_and_transfer_is_one_transaction(
        self, orchestrator, ledger, make_escrow, identities, program_ids
    ):
        """Test settle and the onward transfer share one signed transaction."""
        hot_wallet = identities.hot_wallet.pubkey()
        escrow = make_escrow(payee_owner=hot_wallet)
        recipient = Pubkey.new_unique()
        transfer_mint = Pubkey.new_unique()
        deriver = AddressDeriver(program_ids)

        result = await orchestrator.settle_and_transfer(
            SettleAndTransferInput(
                escrow_address=str(escrow.address),
                amount=1000,
                wallet_address=str(recipient),
                transfer_token_mint_address=str(transfer_mint),
                amount_to_transfer=50,
            )
        )

        recipient_account = deriver.associated_token_address(recipient, transfer_mint)
        assert result.destination_wallet_address == str(
            escrow.record.payee_token_account
        )
        assert result.transfer_destination_address == str(recipient_account)
        # recipient account creation, then the combined transaction
        assert ledger.ata_creations == 1
        assert len(ledger.sent) == 2

        transaction = ledger.sent[-1]
        settle, transfer = ledger.instructions(transaction)
        assert settle[0] == program_ids.escrow_program
        assert transfer[0] == program_ids.token_program
        assert transfer[1] == bytes([3]) + (50).to_bytes(8, "little")
        assert transfer[2] == [
            deriver.associated_token_address(hot_wallet, transfer_mint),
            recipient_account,
            hot_wallet,
        ]
        assert set(ledger.signers(transaction)) == {
            identities.fee_payer_address,
            identities.authority_address,
            hot_wallet,
        }

    async def test_amount_mismatch(self, orchestrator, ledger, make_escrow):
        """Test the escrow amount is validated before the transfer is built."""
        escrow = make_escrow()

        with pytest.raises(AmountMismatchException):
            await orchestrator.settle_and_transfer(
                SettleAndTransferInput(
                    escrow_address=str(escrow.address),
                    amount=10,
                    wallet_address=str(Pubkey.new_unique()),
                    transfer_token_mint_address=str(Pubkey.new_unique()),
                    amount_to_transfer=50,
                )
            )

        assert ledger.send_attempts == 0

    async def test_rejects_payee_outside_hot_wallet(
        self, orchestrator, ledger, make_escrow
    ):
        """Test a payee the hot wallet does not hold is refused before any write."""
        escrow = make_escrow()

        with pytest.raises(InvalidAccountOwnerException) as exc:
            await orchestrator.settle_and_transfer(
                SettleAndTransferInput(
                    escrow_address=str(escrow.address),
                    amount=1000,
                    wallet_address=str(Pubkey.new_unique()),
                    transfer_token_mint_address=str(Pubkey.new_unique()),
                    amount_to_transfer=50,
                )
            )

        assert exc.value.details["address"] == str(escrow.record.payee_token_account)
        assert ledger.send_attempts == 0

    async def test_recipient_creation_failure_names_taker(
        self, orchestrator, ledger, make_escrow, identities, program_ids
    ):
        """Test a failed recipient account creation reports the settlement taker."""
        escrow = make_escrow(payee_owner=identities.hot_wallet.pubkey())
        recipient = Pubkey.new_unique()
        transfer_mint = Pubkey.new_unique()
        ledger.send_error = RPCException("RPC error: insufficient funds for rent")

        with pytest.raises(SubmissionFailedException) as exc:
            await orchestrator.settle_and_transfer(
                SettleAndTransferInput(
                    escrow_address=str(escrow.address),
                    amount=1000,
                    wallet_address=str(recipient),
                    transfer_token_mint_address=str(transfer_mint),
                    amount_to_transfer=50,
                )
            )

        taker = str(escrow.record.payee_token_account)
        assert exc.value.destination_address == taker
        assert exc.value.details["destination_address"] == taker
        assert exc.value.details["transfer_destination_address"] == str(
            AddressDeriver(program_ids).associated_token_address(
                recipient, transfer_mint
            )
        )


class TestCancel:
    """Cancellation refunding the payer."""

    async def test_cancel_submits_cancel_instruction(
        self, orchestrator, ledger, make_escrow, identities, program_ids
    ):
        """Test cancel refunds the recorded payer token account."""
        escrow = make_escrow()

        result = await orchestrator.cancel(
            CancelPaymentInput(escrow_address=str(escrow.address))
        )

        transaction = ledger.sent[0]
        assert result.signature == str(transaction.signatures[0])
        [(program, data, accounts)] = ledger.instructions(transaction)
        assert program == program_ids.escrow_program
        assert data == bytes([2])
        assert accounts == [
            identities.authority_address,
            escrow.address,
            escrow.record.payer_token_account,
            identities.fee_payer_address,
            escrow.record.vault_token_account,
            program_ids.token_program,
            _vault_authority(program_ids),
        ]

    @pytest.mark.parametrize(
        "flags, error",
        [
            ({"is_canceled": True}, AlreadyCanceledException),
            ({"is_settled": True}, AlreadySettledException),
        ],
    )
    async def test_terminal_records_reject_cancel(
        self, orchestrator, ledger, make_escrow, flags, error
    ):
        """Test settled and canceled records reject cancel."""
        escrow = make_escrow(**flags)

        with pytest.raises(error):
            await orchestrator.cancel(
                CancelPaymentInput(escrow_address=str(escrow.address))
            )

        assert ledger.send_attempts == 0

    async def test_foreign_authority_rejected(self, orchestrator, ledger, make_escrow):
        """Test cancel checks the authority before any write."""
        escrow = make_escrow(authority=Pubkey.new_unique())

        with pytest.raises(InvalidAuthorityException):
            await orchestrator.cancel(
                CancelPaymentInput(escrow_address=str(escrow.address))
            )

        assert ledger.send_attempts == 0

    async def test_submission_failure(self, orchestrator, ledger, make_escrow):
        """Test transport failures surface as SubmissionFailed."""
        escrow = make_escrow()
        ledger.send_error = RPCException("RPC connection error: reset")

        with pytest.raises(SubmissionFailedException) as exc:
            await orchestrator.cancel(
                CancelPaymentInput(escrow_address=str(escrow.address))
            )

        assert exc.value.destination_address is None


class TestClose:
    """Rent reclamation."""

    async def test_close_skips_preflight(
        self, orchestrator, ledger, make_escrow, identities
    ):
        """Test close broadcasts with preflight skipped."""
        escrow = make_escrow(is_settled=True)

        signature = await orchestrator.close(
            ClosePaymentInput(escrow_address=str(escrow.address), memo="done")
        )

        transaction = ledger.sent[0]
        assert signature == str(transaction.signatures[0])
        (_, data, accounts), (_, memo, _) = ledger.instructions(transaction)
        assert data == bytes([3])
        assert accounts == [
            identities.authority_address,
            escrow.address,
            identities.fee_payer_address,
        ]
        assert memo == b"done"
        assert ledger.skip_preflight_flags == [True]

    async def test_close_leaves_terminal_check_to_program(
        self, orchestrator, ledger, make_escrow
    ):
        """Test close does not itself re-validate terminal state."""
        escrow = make_escrow()

        await orchestrator.close(ClosePaymentInput(escrow_address=str(escrow.address)))

        assert len(ledger.sent) == 1

    async def test_foreign_authority_rejected(self, orchestrator, ledger, make_escrow):
        """Test close still enforces the authority guard."""
        escrow = make_escrow(is_canceled=True, authority=Pubkey.new_unique())

        with pytest.raises(InvalidAuthorityException):
            await orchestrator.close(
                ClosePaymentInput(escrow_address=str(escrow.address))
            )

        assert ledger.send_attempts == 0
