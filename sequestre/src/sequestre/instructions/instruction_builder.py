"""
Instruction builders for the escrow protocol.

One instruction per call, no network access. Account order and the
signer/writable flags are part of the wire contract: the escrow program
indexes accounts positionally.

| Opcode | Payload               | Accounts                                      |
|--------|-----------------------|-----------------------------------------------|
| 0      | u64 amount[, u64 fee] | payer(S) temp(W) authority(S) escrow(W)       |
|        |                       | payer_token payee_token fee_taker rent token  |
| 1      | [u64 fee]             | authority(S) taker(W) fee_taker(W) vault(W)   |
|        |                       | escrow(W) fee_payer(W) token vault_authority  |
| 2      | -                     | authority(S) escrow(W) payer_token(W)         |
|        |                       | fee_payer(W) vault(W) token vault_authority   |
| 3      | -                     | authority(S) escrow(W) fee_payer(W)           |
"""

from typing import List, Optional

from borsh_construct import U8, U64, CStruct
from solders.instruction import AccountMeta, Instruction  # type: ignore
from solders.pubkey import Pubkey  # type: ignore
from solders.system_program import (  # type: ignore
    CreateAccountParams,
    TransferParams,
    create_account,
    transfer,
)

from sequestre.domain.value_objects.program_ids import ProgramIds
from sequestre.domain.value_objects.protocol import (
    PROTOCOL_V2,
    EscrowInstruction,
    ProtocolDescriptor,
)
from sequestre.utils.validation import validate_u64

# Token program opcodes
TOKEN_INITIALIZE_ACCOUNT = 1
TOKEN_TRANSFER = 3

OpcodeLayout = CStruct("opcode" / U8)
AmountLayout = CStruct("opcode" / U8, "amount" / U64)
AmountFeeLayout = CStruct("opcode" / U8, "amount" / U64, "fee" / U64)
FeeLayout = CStruct("opcode" / U8, "fee" / U64)


def _signer(pubkey: Pubkey, writable: bool = False) -> AccountMeta:
    return AccountMeta(pubkey=pubkey, is_signer=True, is_writable=writable)


def _writable(pubkey: Pubkey) -> AccountMeta:
    return AccountMeta(pubkey=pubkey, is_signer=False, is_writable=True)


def _readonly(pubkey: Pubkey) -> AccountMeta:
    return AccountMeta(pubkey=pubkey, is_signer=False, is_writable=False)


def _check_u64(value: int, field: str) -> int:
    if not validate_u64(value):
        raise ValueError(f"{field} must fit an unsigned 64-bit integer: {value!r}")
    return value


def encode_initialize_payload(
    amount: int,
    fee: int,
    protocol: ProtocolDescriptor,
) -> bytes:
    """
    Initialize payload: opcode, amount and, for fee-aware variants, fee.

    Raises:
        ValueError: If amount or fee does not fit u64
    """
    payload = {
        "opcode": EscrowInstruction.INITIALIZE,
        "amount": _check_u64(amount, "amount"),
    }
    if not protocol.initialize_includes_fee:
        return AmountLayout.build(payload)
    payload["fee"] = _check_u64(fee, "fee")
    return AmountFeeLayout.build(payload)


def encode_settle_payload(fee: int, protocol: ProtocolDescriptor) -> bytes:
    """Settle payload: opcode and, for fee-aware variants, fee."""
    if not protocol.settle_includes_fee:
        return OpcodeLayout.build({"opcode": EscrowInstruction.SETTLE})
    return FeeLayout.build(
        {"opcode": EscrowInstruction.SETTLE, "fee": _check_u64(fee, "fee")}
    )


class InstructionBuilder:
    """
    Builds escrow, token, memo and system instructions.

    Program identifiers and the protocol variant are injected so the same
    builder serves alternate deployments and legacy wire formats.
    """

    def __init__(
        self,
        program_ids: ProgramIds,
        protocol: ProtocolDescriptor = PROTOCOL_V2,
    ):
        self.program_ids = program_ids
        self.protocol = protocol

    # ================================================================
    # Escrow program
    # ================================================================

    def build_initialize(
        self,
        payer: Pubkey,
        authority: Pubkey,
        temp_token_account: Pubkey,
        escrow_account: Pubkey,
        payer_token_account: Pubkey,
        payee_token_account: Pubkey,
        fee_taker_account: Pubkey,
        amount: int,
        fee: int = 0,
    ) -> Instruction:
        """
        Build the initialize instruction (opcode 0).

        The fee is appended to the payload only when the protocol variant
        is fee-aware.
        """
        data = encode_initialize_payload(amount, fee, self.protocol)

        accounts = [
            _signer(payer),
            _writable(temp_token_account),
            _signer(authority),
            _writable(escrow_account),
            _readonly(payer_token_account),
            _readonly(payee_token_account),
            _readonly(fee_taker_account),
            _readonly(self.program_ids.rent_sysvar),
            _readonly(self.program_ids.token_program),
        ]
        return Instruction(self.program_ids.escrow_program, data, accounts)

    def build_settle(
        self,
        authority: Pubkey,
        taker_account: Pubkey,
        fee_taker_account: Pubkey,
        vault_token_account: Pubkey,
        escrow_account: Pubkey,
        fee_payer: Pubkey,
        vault_authority: Pubkey,
        fee: int = 0,
    ) -> Instruction:
        """Build the settle instruction (opcode 1)."""
        data = encode_settle_payload(fee, self.protocol)

        accounts = [
            _signer(authority),
            _writable(taker_account),
            _writable(fee_taker_account),
            _writable(vault_token_account),
            _writable(escrow_account),
            _writable(fee_payer),
            _readonly(self.program_ids.token_program),
            _readonly(vault_authority),
        ]
        return Instruction(self.program_ids.escrow_program, data, accounts)

    def build_cancel(
        self,
        authority: Pubkey,
        escrow_account: Pubkey,
        payer_token_account: Pubkey,
        fee_payer: Pubkey,
        vault_token_account: Pubkey,
        vault_authority: Pubkey,
    ) -> Instruction:
        """Build the cancel instruction (opcode 2), returning principal."""
        accounts = [
            _signer(authority),
            _writable(escrow_account),
            _writable(payer_token_account),
            _writable(fee_payer),
            _writable(vault_token_account),
            _readonly(self.program_ids.token_program),
            _readonly(vault_authority),
        ]
        return Instruction(
            self.program_ids.escrow_program,
            OpcodeLayout.build({"opcode": EscrowInstruction.CANCEL}),
            accounts,
        )

    def build_close(
        self,
        authority: Pubkey,
        escrow_account: Pubkey,
        fee_payer: Pubkey,
    ) -> Instruction:
        """Build the close instruction (opcode 3), reclaiming rent."""
        accounts = [
            _signer(authority),
            _writable(escrow_account),
            _writable(fee_payer),
        ]
        return Instruction(
            self.program_ids.escrow_program,
            OpcodeLayout.build({"opcode": EscrowInstruction.CLOSE}),
            accounts,
        )

    # ================================================================
    # Memo program
    # ================================================================

    def build_memo(self, text: str, signer: Optional[Pubkey] = None) -> Instruction:
        """Attach a UTF-8 annotation; the escrow program never reads it."""
        accounts: List[AccountMeta] = []
        if signer is not None:
            accounts.append(_signer(signer))
        return Instruction(
            self.program_ids.memo_program, text.encode("utf-8"), accounts
        )

    # ================================================================
    # Token program
    # ================================================================

    def build_token_transfer(
        self,
        source: Pubkey,
        destination: Pubkey,
        owner: Pubkey,
        amount: int,
    ) -> Instruction:
        """Plain token transfer (token opcode 3) signed by ``owner``."""
        data = AmountLayout.build(
            {"opcode": TOKEN_TRANSFER, "amount": _check_u64(amount, "amount")}
        )
        accounts = [
            _writable(source),
            _writable(destination),
            _signer(owner),
        ]
        return Instruction(self.program_ids.token_program, data, accounts)

    def build_initialize_token_account(
        self,
        account: Pubkey,
        mint: Pubkey,
        owner: Pubkey,
    ) -> Instruction:
        """Initialize a freshly allocated token account (token opcode 1)."""
        accounts = [
            _writable(account),
            _readonly(mint),
            _readonly(owner),
            _readonly(self.program_ids.rent_sysvar),
        ]
        return Instruction(
            self.program_ids.token_program,
            OpcodeLayout.build({"opcode": TOKEN_INITIALIZE_ACCOUNT}),
            accounts,
        )

    def build_create_associated_token_account(
        self,
        funder: Pubkey,
        owner: Pubkey,
        mint: Pubkey,
        associated_account: Pubkey,
    ) -> Instruction:
        """Create ``owner``'s associated token account for ``mint``."""
        accounts = [
            _signer(funder, writable=True),
            _writable(associated_account),
            _readonly(owner),
            _readonly(mint),
            _readonly(self.program_ids.system_program),
            _readonly(self.program_ids.token_program),
            _readonly(self.program_ids.rent_sysvar),
        ]
        return Instruction(self.program_ids.associated_token_program, b"", accounts)

    # ================================================================
    # System program
    # ================================================================

    def build_create_account(
        self,
        funder: Pubkey,
        new_account: Pubkey,
        lamports: int,
        space: int,
        owner_program: Pubkey,
    ) -> Instruction:
        """Allocate and fund ``new_account`` owned by ``owner_program``."""
        return create_account(
            CreateAccountParams(
                from_pubkey=funder,
                to_pubkey=new_account,
                lamports=lamports,
                space=space,
                owner=owner_program,
            )
        )

    def build_native_transfer(
        self,
        source: Pubkey,
        destination: Pubkey,
        lamports: int,
    ) -> Instruction:
        """Move native lamports between system accounts."""
        return transfer(
            TransferParams(
                from_pubkey=source,
                to_pubkey=destination,
                lamports=lamports,
            )
        )
