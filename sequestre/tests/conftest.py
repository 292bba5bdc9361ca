"""
Test fixtures and configuration.

The ledger is an in-memory ILedgerTransport: it stores accounts, executes
associated token account creations carried by submitted transactions and
records everything that was broadcast.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import pytest
from shared.reporter import SystemReporter
from solders.hash import Hash  # type: ignore
from solders.keypair import Keypair  # type: ignore
from solders.pubkey import Pubkey  # type: ignore
from solders.transaction import Transaction  # type: ignore

from sequestre.application import TransactionOrchestrator
from sequestre.codec import encode_escrow_record, encode_token_account_record
from sequestre.domain.exceptions import RPCException
from sequestre.domain.services import ILedgerTransport
from sequestre.domain.value_objects import (
    PROTOCOL_V2,
    AccountInfo,
    EscrowIdentities,
    EscrowRecord,
    ProgramIds,
    TokenAccountRecord,
    TokenAccountState,
)


def rent_for(space: int) -> int:
    """Rent-exempt minimum with mainnet parameters."""
    return (128 + space) * 6960


class FakeLedgerTransport(ILedgerTransport):
    """In-memory ledger."""

    def __init__(self, program_ids: ProgramIds):
        self.program_ids = program_ids
        self.accounts: Dict[Pubkey, AccountInfo] = {}
        self.blockhash = Hash.new_unique()

        self.sent: List[Transaction] = []
        self.skip_preflight_flags: List[bool] = []
        self.send_attempts = 0
        self.send_error: Optional[Exception] = None

        self.ata_creations = 0
        self.observed: Dict[str, Dict[str, Any]] = {}
        self.unobserved_polls = 0
        self.transaction_lookups = 0
        self.lookup_error: Optional[Exception] = None

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def put_account(
        self,
        address: Pubkey,
        owner: Pubkey,
        data: bytes = b"",
        lamports: Optional[int] = None,
    ) -> None:
        self.accounts[address] = AccountInfo(
            owner=owner,
            lamports=rent_for(len(data)) if lamports is None else lamports,
            data=data,
        )

    def put_token_account(
        self,
        address: Pubkey,
        mint: Pubkey,
        owner: Pubkey,
        amount: int = 0,
    ) -> None:
        record = TokenAccountRecord(
            mint=mint,
            owner=owner,
            amount=amount,
            delegate=None,
            delegated_amount=0,
            state=TokenAccountState.INITIALIZED,
            is_native=self.program_ids.is_native_mint(mint),
            rent_exempt_reserve=(
                rent_for(165) if self.program_ids.is_native_mint(mint) else None
            ),
            close_authority=None,
        )
        self.put_account(
            address, self.program_ids.token_program, encode_token_account_record(record)
        )

    def put_escrow(self, address: Pubkey, record: EscrowRecord) -> None:
        self.put_account(
            address, self.program_ids.escrow_program, encode_escrow_record(record)
        )

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def instructions(
        self, transaction: Transaction
    ) -> List[Tuple[Pubkey, bytes, List[Pubkey]]]:
        """(program, data, accounts) of every instruction in a transaction."""
        keys = transaction.message.account_keys
        return [
            (
                keys[ix.program_id_index],
                bytes(ix.data),
                [keys[index] for index in ix.accounts],
            )
            for ix in transaction.message.instructions
        ]

    def signers(self, transaction: Transaction) -> List[Pubkey]:
        required = transaction.message.header.num_required_signatures
        return list(transaction.message.account_keys[:required])

    # ------------------------------------------------------------------
    # ILedgerTransport
    # ------------------------------------------------------------------

    async def get_account_info(self, address: Pubkey) -> Optional[AccountInfo]:
        await asyncio.sleep(0)
        return self.accounts.get(address)

    async def get_latest_blockhash(self) -> Hash:
        return self.blockhash

    async def get_minimum_balance_for_rent_exemption(self, space: int) -> int:
        return rent_for(space)

    async def send_raw_transaction(
        self,
        payload: bytes,
        skip_preflight: bool = False,
    ) -> str:
        await asyncio.sleep(0)
        self.send_attempts += 1
        if self.send_error is not None:
            raise self.send_error

        transaction = Transaction.from_bytes(payload)
        for program, _, accounts in self.instructions(transaction):
            if program == self.program_ids.associated_token_program:
                self._create_associated_account(accounts)

        signature = str(transaction.signatures[0])
        self.sent.append(transaction)
        self.skip_preflight_flags.append(skip_preflight)
        self.observed[signature] = {"slot": 42, "meta": {"err": None}}
        return signature

    async def get_transaction(self, signature: str) -> Optional[Dict[str, Any]]:
        self.transaction_lookups += 1
        if self.lookup_error is not None:
            raise self.lookup_error
        if self.unobserved_polls > 0:
            self.unobserved_polls -= 1
            return None
        return self.observed.get(signature)

    def _create_associated_account(self, accounts: List[Pubkey]) -> None:
        address, owner, mint = accounts[1], accounts[2], accounts[3]
        existing = self.accounts.get(address)
        if existing is not None and existing.owner == self.program_ids.token_program:
            raise RPCException(
                "RPC error: Transaction simulation failed",
                details={
                    "method": "sendTransaction",
                    "error": {
                        "logs": [
                            f"Allocate: account Address {{ address: {address}, "
                            "base: None } already in use"
                        ]
                    },
                },
            )
        self.put_token_account(address, mint, owner)
        self.ata_creations += 1


@dataclass
class EscrowFixture:
    """An escrow seeded in the fake ledger."""

    address: Pubkey
    record: EscrowRecord
    mint: Pubkey


@pytest.fixture
def program_ids() -> ProgramIds:
    return ProgramIds.from_strings()


@pytest.fixture
def identities() -> EscrowIdentities:
    return EscrowIdentities(
        fee_payer=Keypair(),
        authority=Keypair(),
        fee_taker=Keypair().pubkey(),
        hot_wallet=Keypair(),
    )


@pytest.fixture
def ledger(program_ids: ProgramIds) -> FakeLedgerTransport:
    return FakeLedgerTransport(program_ids)


@pytest.fixture
def reporter() -> SystemReporter:
    return SystemReporter(name="sequestre-test", verbose=0)


@pytest.fixture
def sleeps() -> List[float]:
    """Delays requested by the orchestrator between polls."""
    return []


@pytest.fixture
def orchestrator(ledger, identities, program_ids, reporter, sleeps):
    async def no_sleep(delay: float) -> None:
        sleeps.append(delay)

    return TransactionOrchestrator(
        transport=ledger,
        identities=identities,
        program_ids=program_ids,
        protocol=PROTOCOL_V2,
        reporter=reporter,
        confirmation_poll_interval=5.0,
        confirmation_max_retries=3,
        sleep=no_sleep,
    )


@pytest.fixture
def mint() -> Pubkey:
    return Pubkey.new_unique()


@pytest.fixture
def make_escrow(ledger, identities, program_ids, mint):
    """
    Seed an initialized escrow holding ``amount`` of ``mint``.

    Keyword overrides are applied to the record; ``escrow_mint`` switches
    the vault's token type and ``payee_owner`` sets who holds the payee
    token account.
    """

    def _make(
        escrow_mint: Optional[Pubkey] = None,
        payee_owner: Optional[Pubkey] = None,
        **overrides,
    ) -> EscrowFixture:
        token_mint = escrow_mint or mint
        vault = Pubkey.new_unique()
        payee_token = Pubkey.new_unique()
        fee_taker_token = Pubkey.new_unique()
        vault_authority, _ = Pubkey.find_program_address(
            [b"escrow"], program_ids.escrow_program
        )

        fields = dict(
            is_initialized=True,
            is_settled=False,
            is_canceled=False,
            payer=Pubkey.new_unique(),
            payer_token_account=Pubkey.new_unique(),
            payee_token_account=payee_token,
            vault_token_account=vault,
            authority=identities.authority_address,
            fee_taker_token_account=fee_taker_token,
            amount=1000,
            fee=7,
        )
        fields.update(overrides)
        record = EscrowRecord(**fields)

        address = Pubkey.new_unique()
        ledger.put_escrow(address, record)
        ledger.put_token_account(vault, token_mint, vault_authority, record.amount)
        ledger.put_token_account(
            record.payee_token_account,
            token_mint,
            payee_owner or Pubkey.new_unique(),
        )
        ledger.put_token_account(
            record.fee_taker_token_account, token_mint, identities.fee_taker
        )
        return EscrowFixture(address=address, record=record, mint=token_mint)

    return _make
