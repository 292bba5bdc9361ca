"""
Transaction orchestrator for the escrow protocol.

Drives an escrow instance through its lifecycle:

    Unborn -> Initialized -> {Settled | Canceled} -> Closed

Each public operation is an independent request/response sequence: account
reads, pure validation and instruction building, then at most one
broadcast. Validation always runs before any transaction is built, so a
doomed operation costs no network fee.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from shared.blockchain import load_keypair, load_optional_keypair, parse_pubkey
from shared.reporter import SystemReporter
from solders.instruction import Instruction  # type: ignore
from solders.keypair import Keypair  # type: ignore
from solders.pubkey import Pubkey  # type: ignore
from solders.transaction import Transaction  # type: ignore

from sequestre.application.dto import (
    CancelPaymentInput,
    CancelPaymentOutput,
    ClosePaymentInput,
    InitializePaymentInput,
    InitializePaymentOutput,
    SettleAndTransferInput,
    SettlePaymentInput,
    SettlePaymentOutput,
)
from sequestre.application.escrow_state_validator import EscrowStateValidator
from sequestre.codec import (
    TOKEN_ACCOUNT_SPAN,
    decode_escrow_record,
    decode_token_account_record,
)
from sequestre.config.settings import SequestreConfig, get_settings
from sequestre.domain.exceptions import (
    BlockchainException,
    InvalidAccountOwnerException,
    InvalidSignatureException,
    SignerNotConfiguredException,
    SubmissionFailedException,
)
from sequestre.domain.services import ILedgerTransport
from sequestre.domain.value_objects import (
    PROTOCOL_V2,
    AccountInfo,
    EscrowIdentities,
    EscrowRecord,
    ProgramIds,
    ProtocolDescriptor,
    TokenAccountRecord,
)
from sequestre.infrastructure.blockchain.solana_rpc_client import SolanaRPCClient
from sequestre.infrastructure.blockchain.transaction_assembler import (
    assemble_transaction,
    decode_payload,
    encode_payload,
    partial_signatures,
    serialize_message,
    serialize_transaction,
    sign_transaction,
    verify_presigned,
)
from sequestre.instructions import InstructionBuilder
from sequestre.utils.addresses import AddressDeriver
from sequestre.utils.validation import validate_u64

# Substrings of the ledger's rejection when an account creation lost a race
ALREADY_EXISTS_MARKERS = ("already in use", "already exists")


def is_already_exists_error(error: Exception) -> bool:
    """True if a broadcast failed because the account already exists."""
    text = str(error)
    details = getattr(error, "details", None)
    if details:
        text += f" {details}"
    text = text.lower()
    return any(marker in text for marker in ALREADY_EXISTS_MARKERS)


def _unique_signers(signers: Sequence[Keypair]) -> List[Keypair]:
    seen = set()
    unique = []
    for signer in signers:
        pubkey = signer.pubkey()
        if pubkey not in seen:
            seen.add(pubkey)
            unique.append(signer)
    return unique


def _for_taker(
    error: SubmissionFailedException, taker: Pubkey, key: str
) -> SubmissionFailedException:
    """Re-address a creation failure to the settlement taker."""
    return SubmissionFailedException(
        error.message,
        details={
            **error.details,
            key: error.destination_address,
            "destination_address": str(taker),
        },
        destination_address=str(taker),
    )


class TransactionOrchestrator:
    """
    Prepares, validates and submits escrow transactions.

    The only shared state is the immutable identity and program
    configuration, so concurrent calls on one instance are safe.
    """

    def __init__(
        self,
        transport: ILedgerTransport,
        identities: EscrowIdentities,
        program_ids: ProgramIds,
        protocol: ProtocolDescriptor = PROTOCOL_V2,
        reporter: Optional[SystemReporter] = None,
        skip_preflight: bool = False,
        confirmation_poll_interval: float = 5.0,
        confirmation_max_retries: int = 10,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Initialize orchestrator.

        Args:
            transport: Ledger transport (RPC client or test double)
            identities: Fee payer, authority, fee taker and hot wallet
            program_ids: Program identifiers of the target deployment
            protocol: Wire format variant
            reporter: Optional logger
            skip_preflight: Default preflight toggle for broadcasts
            confirmation_poll_interval: Seconds between confirmation polls
            confirmation_max_retries: Confirmation polls before giving up
            sleep: Awaitable sleep used between polls
        """
        self.transport = transport
        self.identities = identities
        self.program_ids = program_ids
        self.protocol = protocol
        self.reporter = reporter or SystemReporter(name="sequestre")
        self.skip_preflight = skip_preflight
        self.confirmation_poll_interval = confirmation_poll_interval
        self.confirmation_max_retries = confirmation_max_retries
        self._sleep = sleep

        self.deriver = AddressDeriver(program_ids)
        self.builder = InstructionBuilder(program_ids, protocol)
        self.validator = EscrowStateValidator()

    @classmethod
    def from_settings(
        cls,
        settings: Optional[SequestreConfig] = None,
        transport: Optional[ILedgerTransport] = None,
        reporter: Optional[SystemReporter] = None,
    ) -> "TransactionOrchestrator":
        """
        Build an orchestrator from configuration.

        Raises:
            SignerNotConfiguredException: If the fee payer or authority
                keypair path is missing
        """
        settings = settings or get_settings()
        reporter = reporter or SystemReporter.from_level_name(
            name="sequestre",
            level_name=settings.log_level,
            log_dir=settings.log_dir,
        )

        if not settings.fee_payer_keypair_path:
            raise SignerNotConfiguredException("Fee payer keypair not configured")
        if not settings.authority_keypair_path:
            raise SignerNotConfiguredException("Authority keypair not configured")

        fee_payer = load_keypair(settings.fee_payer_keypair_path)
        authority = load_keypair(settings.authority_keypair_path)
        hot_wallet = load_optional_keypair(settings.hot_wallet_keypair_path)

        if settings.fee_taker_address:
            fee_taker = parse_pubkey(settings.fee_taker_address)
        else:
            fee_taker = fee_payer.pubkey()
            reporter.warning(
                f"fee_taker_address not configured, using fee payer {fee_taker}",
                context="TransactionOrchestrator",
            )

        if transport is None:
            transport = SolanaRPCClient(settings=settings, reporter=reporter)

        return cls(
            transport=transport,
            identities=EscrowIdentities(
                fee_payer=fee_payer,
                authority=authority,
                fee_taker=fee_taker,
                hot_wallet=hot_wallet,
            ),
            program_ids=settings.get_program_ids(),
            protocol=settings.get_protocol(),
            reporter=reporter,
            skip_preflight=settings.skip_preflight,
            confirmation_poll_interval=settings.confirmation_poll_interval,
            confirmation_max_retries=settings.confirmation_max_retries,
        )

    @property
    def fee_payer_address(self) -> Pubkey:
        return self.identities.fee_payer_address

    @property
    def authority_address(self) -> Pubkey:
        return self.identities.authority_address

    # ================================================================
    # Reads
    # ================================================================

    async def get_escrow(
        self, escrow_address: Pubkey
    ) -> Tuple[AccountInfo, EscrowRecord]:
        """
        Fetch and decode an escrow record.

        Raises:
            AccountNotFoundException: If the address does not exist
            InvalidAccountOwnerException: If not owned by the escrow program
            MalformedRecordException: If the data does not decode
        """
        account = self.validator.assert_account_found(
            await self.transport.get_account_info(escrow_address),
            escrow_address,
        )
        self.validator.assert_owned_by_program(
            account.owner, self.program_ids.escrow_program, escrow_address
        )
        return account, decode_escrow_record(account.data)

    async def get_token_account(self, address: Pubkey) -> TokenAccountRecord:
        """
        Fetch and decode a token account.

        Raises:
            AccountNotFoundException: If the address does not exist
            InvalidAccountOwnerException: If not owned by the token program
            MalformedRecordException: If the data is not a token account
        """
        account = self.validator.assert_account_found(
            await self.transport.get_account_info(address),
            address,
        )
        self.validator.assert_owned_by_program(
            account.owner, self.program_ids.token_program, address
        )
        return decode_token_account_record(account.data)

    async def get_or_create_associated_account(
        self,
        owner: Pubkey,
        mint: Pubkey,
    ) -> Pubkey:
        """
        Resolve ``owner``'s associated token account, creating it if absent.

        Best effort and not atomic: two concurrent callers may both see the
        account missing and both attempt creation. The loser's "already in
        use" rejection is absorbed and the account is re-read.

        Raises:
            AccountNotFoundException: If the account is still missing
            InvalidAccountOwnerException: If the address holds a non-token
                account that creation could not replace
            SubmissionFailedException: If creation failed for another reason
        """
        address = self.deriver.associated_token_address(owner, mint)

        account = await self.transport.get_account_info(address)
        if account is not None and account.owner == self.program_ids.token_program:
            return address

        reason = "missing" if account is None else f"owned by {account.owner}"
        self.reporter.info(
            f"Creating associated token account {address} "
            f"[owner={owner}] [mint={mint}] ({reason})",
            context="TransactionOrchestrator",
        )

        instruction = self.builder.build_create_associated_token_account(
            funder=self.fee_payer_address,
            owner=owner,
            mint=mint,
            associated_account=address,
        )
        try:
            signature = await self._broadcast(
                [instruction], [self.identities.fee_payer]
            )
        except BlockchainException as e:
            if not is_already_exists_error(e):
                raise SubmissionFailedException(
                    f"Associated account creation failed: {e.message}",
                    details={"owner": str(owner), "mint": str(mint)},
                    destination_address=str(address),
                ) from e
            self.reporter.info(
                f"Associated token account {address} created concurrently",
                context="TransactionOrchestrator",
            )
        else:
            await self.wait_for_confirmation(signature)

        account = self.validator.assert_account_found(
            await self.transport.get_account_info(address),
            address,
        )
        self.validator.assert_owned_by_program(
            account.owner, self.program_ids.token_program, address
        )
        return address

    # ================================================================
    # Lifecycle operations
    # ================================================================

    async def initialize(
        self, request: InitializePaymentInput
    ) -> InitializePaymentOutput:
        """
        Prepare an escrow funded by the payer.

        The transaction is returned unsubmitted, partially signed by the
        fee payer, the authority and the two fresh account keys. The payer
        completes it and submits via :meth:`submit_presigned`.
        """
        fee = request.fee or 0
        for name, value in (("amount", request.amount), ("fee", fee)):
            if not validate_u64(value):
                raise ValueError(f"{name} must fit an unsigned 64-bit integer")

        payer = parse_pubkey(request.payer_wallet_address)
        payee = parse_pubkey(request.payee_wallet_address)
        mint = parse_pubkey(request.token_mint_address)

        temp_account = Keypair()
        escrow_account = Keypair()
        temp = temp_account.pubkey()

        token_rent = await self.transport.get_minimum_balance_for_rent_exemption(
            TOKEN_ACCOUNT_SPAN
        )
        escrow_rent = await self.transport.get_minimum_balance_for_rent_exemption(
            self.protocol.record_span
        )

        create_temp = self.builder.build_create_account(
            funder=self.fee_payer_address,
            new_account=temp,
            lamports=token_rent,
            space=TOKEN_ACCOUNT_SPAN,
            owner_program=self.program_ids.token_program,
        )
        init_temp = self.builder.build_initialize_token_account(temp, mint, payer)

        if self.program_ids.is_native_mint(mint):
            payer_token = payer
            payee_token = payee
            fee_taker_account = self.identities.fee_taker
            # lamports land before the account is initialized as wrapped native
            instructions = [
                create_temp,
                self.builder.build_native_transfer(payer, temp, request.amount),
                init_temp,
            ]
        else:
            payer_token = await self.get_or_create_associated_account(payer, mint)
            payee_token = await self.get_or_create_associated_account(payee, mint)
            fee_taker_account = await self.get_or_create_associated_account(
                self.identities.fee_taker, mint
            )
            instructions = [
                create_temp,
                init_temp,
                self.builder.build_token_transfer(
                    payer_token, temp, payer, request.amount
                ),
            ]

        instructions.append(
            self.builder.build_create_account(
                funder=self.fee_payer_address,
                new_account=escrow_account.pubkey(),
                lamports=escrow_rent,
                space=self.protocol.record_span,
                owner_program=self.program_ids.escrow_program,
            )
        )
        instructions.append(
            self.builder.build_initialize(
                payer=payer,
                authority=self.authority_address,
                temp_token_account=temp,
                escrow_account=escrow_account.pubkey(),
                payer_token_account=payer_token,
                payee_token_account=payee_token,
                fee_taker_account=fee_taker_account,
                amount=request.amount,
                fee=fee,
            )
        )
        instructions.extend(self._memo(request.memo))

        blockhash = await self.transport.get_latest_blockhash()
        transaction = assemble_transaction(
            instructions, self.fee_payer_address, blockhash
        )
        sign_transaction(
            transaction,
            _unique_signers(
                [
                    self.identities.fee_payer,
                    self.identities.authority,
                    escrow_account,
                    temp_account,
                ]
            ),
            blockhash,
            partial=True,
        )

        self.reporter.info(
            f"Prepared escrow {escrow_account.pubkey()} "
            f"[payer={payer}] [payee={payee}] [mint={mint}] "
            f"[amount={request.amount}] [fee={fee}]",
            context="TransactionOrchestrator",
        )

        return InitializePaymentOutput(
            message=serialize_message(transaction),
            transaction=encode_payload(transaction),
            signatures=partial_signatures(transaction),
            escrow_address=str(escrow_account.pubkey()),
        )

    async def settle(self, request: SettlePaymentInput) -> SettlePaymentOutput:
        """
        Release escrowed funds to the payee recorded at initialization.

        Raises:
            SubmissionFailedException: Carrying the resolved destination
                when the broadcast fails
        """
        escrow_address = parse_pubkey(request.escrow_address)
        record, fee = await self._load_for_settlement(
            escrow_address, request.amount, request.fee
        )
        taker, fee_taker_account = await self._resolve_settlement_accounts(record)

        instructions = [
            self._settle_instruction(
                escrow_address, record, taker, fee_taker_account, fee
            ),
            *self._memo(request.memo),
        ]

        self.reporter.info(
            f"Settling escrow {escrow_address} [amount={record.amount}] "
            f"[fee={fee}] [taker={taker}] [caller={request.wallet_address}]",
            context="TransactionOrchestrator",
        )

        signature = await self._submit(
            instructions,
            [self.identities.fee_payer, self.identities.authority],
            operation="settle",
            destination_address=str(taker),
        )
        return SettlePaymentOutput(
            signature=signature,
            destination_wallet_address=str(taker),
        )

    async def settle_and_transfer(
        self, request: SettleAndTransferInput
    ) -> SettlePaymentOutput:
        """
        Settle and forward funds from the hot wallet in one transaction.

        The settle instruction pays the recorded payee (the operator's
        intermediate wallet); the second instruction moves
        ``amount_to_transfer`` of ``transfer_token_mint_address`` from the
        hot wallet's associated account to the recipient's.

        Raises:
            SignerNotConfiguredException: If no hot wallet is configured
            InvalidAccountOwnerException: If the recorded payee is not the
                hot wallet or one of its token accounts
        """
        hot_wallet = self.identities.hot_wallet
        if hot_wallet is None:
            raise SignerNotConfiguredException(
                "Hot wallet keypair not configured",
                details={"operation": "settle_and_transfer"},
            )
        if not validate_u64(request.amount_to_transfer):
            raise ValueError("amount_to_transfer must fit an unsigned 64-bit integer")

        escrow_address = parse_pubkey(request.escrow_address)
        recipient = parse_pubkey(request.wallet_address)
        transfer_mint = parse_pubkey(request.transfer_token_mint_address)

        record, fee = await self._load_for_settlement(
            escrow_address, request.amount, request.fee
        )
        await self._assert_feeds_hot_wallet(record, hot_wallet.pubkey())
        taker, fee_taker_account = await self._resolve_settlement_accounts(record)

        source = self.deriver.associated_token_address(
            hot_wallet.pubkey(), transfer_mint
        )
        try:
            destination = await self.get_or_create_associated_account(
                recipient, transfer_mint
            )
        except SubmissionFailedException as e:
            raise _for_taker(e, taker, "transfer_destination_address") from e

        instructions = [
            self._settle_instruction(
                escrow_address, record, taker, fee_taker_account, fee
            ),
            self.builder.build_token_transfer(
                source=source,
                destination=destination,
                owner=hot_wallet.pubkey(),
                amount=request.amount_to_transfer,
            ),
            *self._memo(request.memo),
        ]

        self.reporter.info(
            f"Settling escrow {escrow_address} with onward transfer "
            f"[taker={taker}] [recipient={recipient}] "
            f"[transfer={request.amount_to_transfer}]",
            context="TransactionOrchestrator",
        )

        signature = await self._submit(
            instructions,
            [self.identities.fee_payer, self.identities.authority, hot_wallet],
            operation="settle_and_transfer",
            destination_address=str(taker),
            details={"transfer_destination_address": str(destination)},
        )
        return SettlePaymentOutput(
            signature=signature,
            destination_wallet_address=str(taker),
            transfer_destination_address=str(destination),
        )

    async def cancel(self, request: CancelPaymentInput) -> CancelPaymentOutput:
        """Return escrowed principal to the payer's token account."""
        escrow_address = parse_pubkey(request.escrow_address)
        _, record = await self.get_escrow(escrow_address)
        self.validator.assert_authority_matches(
            record.authority, self.authority_address
        )
        self.validator.assert_not_terminal(record)

        vault_authority, _ = self.deriver.vault_authority()
        instructions = [
            self.builder.build_cancel(
                authority=self.authority_address,
                escrow_account=escrow_address,
                payer_token_account=record.payer_token_account,
                fee_payer=self.fee_payer_address,
                vault_token_account=record.vault_token_account,
                vault_authority=vault_authority,
            ),
            *self._memo(request.memo),
        ]

        self.reporter.info(
            f"Canceling escrow {escrow_address} "
            f"[refund={record.payer_token_account}]",
            context="TransactionOrchestrator",
        )

        signature = await self._submit(
            instructions,
            [self.identities.fee_payer, self.identities.authority],
            operation="cancel",
        )
        return CancelPaymentOutput(signature=signature)

    async def close(self, request: ClosePaymentInput) -> str:
        """
        Reclaim the record account's rent to the fee payer.

        Only meaningful after settlement or cancellation. Terminal state is
        left to the program; the authority guard still runs.
        """
        escrow_address = parse_pubkey(request.escrow_address)
        _, record = await self.get_escrow(escrow_address)
        self.validator.assert_authority_matches(
            record.authority, self.authority_address
        )

        instructions = [
            self.builder.build_close(
                authority=self.authority_address,
                escrow_account=escrow_address,
                fee_payer=self.fee_payer_address,
            ),
            *self._memo(request.memo),
        ]

        self.reporter.info(
            f"Closing escrow {escrow_address} [state={record.state.value}]",
            context="TransactionOrchestrator",
        )

        return await self._submit(
            instructions,
            [self.identities.fee_payer, self.identities.authority],
            operation="close",
            skip_preflight=True,
        )

    async def submit_presigned(self, payload: str) -> str:
        """
        Broadcast a transaction completed by the payer.

        Raises:
            InvalidSignatureException: If any required signature is missing
                or does not verify
        """
        transaction = decode_payload(payload)
        if not verify_presigned(transaction):
            raise InvalidSignatureException(
                "Invalid signature",
                details={
                    "signatures": partial_signatures(transaction),
                },
            )

        try:
            signature = await self.transport.send_raw_transaction(
                serialize_transaction(transaction), skip_preflight=False
            )
        except BlockchainException as e:
            self.reporter.error(
                f"Presigned submission failed: {e.message}",
                context="TransactionOrchestrator",
            )
            raise SubmissionFailedException(
                f"Transaction send error: {e.message}",
                details={"operation": "submit_presigned", **e.details},
            ) from e

        self.reporter.info(
            f"Submitted presigned transaction {signature}",
            context="TransactionOrchestrator",
        )
        return signature

    def sign_transaction(self, transaction: Transaction) -> bytes:
        """
        Add the fee payer's signature to a caller-built transaction.

        Raises:
            InvalidSignatureException: If the fee payer is not one of the
                transaction's required signers
        """
        message = transaction.message
        required = message.account_keys[: message.header.num_required_signatures]
        if self.fee_payer_address not in required:
            raise InvalidSignatureException(
                "Fee payer is not a required signer of this transaction",
                details={"fee_payer": str(self.fee_payer_address)},
            )
        sign_transaction(
            transaction,
            [self.identities.fee_payer],
            message.recent_blockhash,
            partial=True,
        )
        return serialize_transaction(transaction)

    async def wait_for_confirmation(
        self,
        signature: str,
        max_retries: Optional[int] = None,
        poll_interval: Optional[float] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Poll until the transaction is observable or retries run out.

        Returns:
            Transaction payload, or None when no confirmation was observed.
            None is not a failure of the transaction itself.
        """
        retries = (
            self.confirmation_max_retries if max_retries is None else max_retries
        )
        interval = (
            self.confirmation_poll_interval if poll_interval is None else poll_interval
        )

        for attempt in range(1, retries + 1):
            try:
                transaction = await self.transport.get_transaction(signature)
            except BlockchainException as e:
                self.reporter.warning(
                    f"Confirmation poll for {signature} aborted: {e.message}",
                    context="TransactionOrchestrator",
                )
                return None

            if transaction is not None:
                self.reporter.debug(
                    f"Transaction {signature} observed after {attempt} poll(s)",
                    context="TransactionOrchestrator",
                )
                return transaction

            if attempt < retries:
                await self._sleep(interval)

        self.reporter.warning(
            f"No confirmation observed for {signature} after {retries} polls",
            context="TransactionOrchestrator",
        )
        return None

    # ================================================================
    # Internals
    # ================================================================

    async def _load_for_settlement(
        self,
        escrow_address: Pubkey,
        amount: int,
        fee: Optional[int],
    ) -> Tuple[EscrowRecord, int]:
        _, record = await self.get_escrow(escrow_address)
        self.validator.assert_authority_matches(
            record.authority, self.authority_address
        )
        self.validator.assert_not_terminal(record)
        self.validator.assert_amount_matches(amount, record)
        if fee is None:
            fee = record.fee
        else:
            self.validator.assert_fee_matches(fee, record)
        return record, fee

    async def _resolve_settlement_accounts(
        self, record: EscrowRecord
    ) -> Tuple[Pubkey, Pubkey]:
        """Taker and fee-taker accounts able to receive the vault's token."""
        vault = await self.get_token_account(record.vault_token_account)
        if self.program_ids.is_native_mint(vault.mint):
            return record.payee_token_account, record.fee_taker_token_account

        taker = await self._resolve_token_destination(
            record.payee_token_account, vault.mint
        )
        try:
            fee_taker = await self._resolve_token_destination(
                record.fee_taker_token_account, vault.mint
            )
        except SubmissionFailedException as e:
            raise _for_taker(e, taker, "fee_taker_address") from e
        return taker, fee_taker

    async def _assert_feeds_hot_wallet(
        self, record: EscrowRecord, hot_wallet: Pubkey
    ) -> None:
        """
        The recorded payee must be the hot wallet or one of its token accounts.

        Raises:
            InvalidAccountOwnerException: If the payee belongs to anyone else
        """
        payee = record.payee_token_account
        if payee == hot_wallet:
            return
        account = await self.transport.get_account_info(payee)
        if account is not None and account.owner == self.program_ids.token_program:
            if decode_token_account_record(account.data).owner == hot_wallet:
                return
        raise InvalidAccountOwnerException(
            f"Payee {payee} does not belong to hot wallet {hot_wallet}",
            details={
                "address": str(payee),
                "expected_owner": str(hot_wallet),
            },
        )

    async def _resolve_token_destination(self, address: Pubkey, mint: Pubkey) -> Pubkey:
        # A token account is used as-is; anything else is treated as a wallet
        account = await self.transport.get_account_info(address)
        if account is not None and account.owner == self.program_ids.token_program:
            return address
        return await self.get_or_create_associated_account(address, mint)

    def _settle_instruction(
        self,
        escrow_address: Pubkey,
        record: EscrowRecord,
        taker: Pubkey,
        fee_taker_account: Pubkey,
        fee: int,
    ) -> Instruction:
        vault_authority, _ = self.deriver.vault_authority()
        return self.builder.build_settle(
            authority=self.authority_address,
            taker_account=taker,
            fee_taker_account=fee_taker_account,
            vault_token_account=record.vault_token_account,
            escrow_account=escrow_address,
            fee_payer=self.fee_payer_address,
            vault_authority=vault_authority,
            fee=fee,
        )

    def _memo(self, memo: Optional[str]) -> List[Instruction]:
        if not memo:
            return []
        return [self.builder.build_memo(memo, self.authority_address)]

    async def _broadcast(
        self,
        instructions: Sequence[Instruction],
        signers: Sequence[Keypair],
        skip_preflight: Optional[bool] = None,
    ) -> str:
        """Assemble, fully sign and send. Transport errors propagate."""
        blockhash = await self.transport.get_latest_blockhash()
        transaction = assemble_transaction(
            instructions, self.fee_payer_address, blockhash
        )
        sign_transaction(transaction, _unique_signers(signers), blockhash)

        if skip_preflight is None:
            skip_preflight = self.skip_preflight
        return await self.transport.send_raw_transaction(
            serialize_transaction(transaction),
            skip_preflight=skip_preflight,
        )

    async def _submit(
        self,
        instructions: Sequence[Instruction],
        signers: Sequence[Keypair],
        operation: str,
        destination_address: Optional[str] = None,
        skip_preflight: Optional[bool] = None,
        details: Optional[dict] = None,
    ) -> str:
        """Broadcast, translating transport failures to SubmissionFailed."""
        try:
            signature = await self._broadcast(instructions, signers, skip_preflight)
        except BlockchainException as e:
            self.reporter.error(
                f"{operation} submission failed: {e.message}",
                context="TransactionOrchestrator",
            )
            raise SubmissionFailedException(
                f"Transaction send error: {e.message}",
                details={"operation": operation, **(details or {}), **e.details},
                destination_address=destination_address,
            ) from e

        self.reporter.info(
            f"{operation} submitted: {signature}",
            context="TransactionOrchestrator",
        )
        return signature
