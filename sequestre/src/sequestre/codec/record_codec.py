"""
Fixed-layout codecs for escrow and token account records.

Both decoders are total: any input that does not match the layout raises
MalformedRecordException, never a parser error.

Escrow layout (211 bytes, little-endian):
    u8 is_initialized | u8 is_settled | u8 is_canceled |
    payer(32) | payer_token(32) | payee_token(32) | vault_token(32) |
    authority(32) | fee_taker(32) | u64 amount | u64 fee

Token account layout (165 bytes, little-endian):
    mint(32) | owner(32) | u64 amount | u32 delegate_option | delegate(32) |
    u8 state | u32 is_native_option | u64 is_native | u64 delegated_amount |
    u32 close_authority_option | close_authority(32)
"""

from typing import Optional

from borsh_construct import U8, U32, U64, CStruct
from construct import Bytes, ConstructError
from solders.pubkey import Pubkey  # type: ignore

from sequestre.domain.exceptions import MalformedRecordException
from sequestre.domain.value_objects.escrow_record import EscrowRecord
from sequestre.domain.value_objects.protocol import ESCROW_RECORD_SPAN
from sequestre.domain.value_objects.token_account_record import (
    TokenAccountRecord,
    TokenAccountState,
)
from sequestre.utils.validation import validate_u64

PUBKEY = Bytes(32)

ESCROW_RECORD_LAYOUT = CStruct(
    "is_initialized" / U8,
    "is_settled" / U8,
    "is_canceled" / U8,
    "payer" / PUBKEY,
    "payer_token_account" / PUBKEY,
    "payee_token_account" / PUBKEY,
    "vault_token_account" / PUBKEY,
    "authority" / PUBKEY,
    "fee_taker_token_account" / PUBKEY,
    "amount" / U64,
    "fee" / U64,
)

TOKEN_ACCOUNT_LAYOUT = CStruct(
    "mint" / PUBKEY,
    "owner" / PUBKEY,
    "amount" / U64,
    "delegate_option" / U32,
    "delegate" / PUBKEY,
    "state" / U8,
    "is_native_option" / U32,
    "is_native" / U64,
    "delegated_amount" / U64,
    "close_authority_option" / U32,
    "close_authority" / PUBKEY,
)

TOKEN_ACCOUNT_SPAN = 165
ZERO_PUBKEY = bytes(32)


def _flag(value: int, field: str) -> bool:
    if value not in (0, 1):
        raise MalformedRecordException(
            f"Flag {field} out of range: {value}",
            details={"field": field, "value": value},
        )
    return value == 1


def _option(value: int, field: str) -> bool:
    if value not in (0, 1):
        raise MalformedRecordException(
            f"Option discriminant {field} out of range: {value}",
            details={"field": field, "value": value},
        )
    return value == 1


def _check_span(data: bytes, expected: int, record: str) -> None:
    if len(data) != expected:
        raise MalformedRecordException(
            f"{record} must be {expected} bytes, got {len(data)}",
            details={"record": record, "expected": expected, "actual": len(data)},
        )


def decode_escrow_record(data: bytes) -> EscrowRecord:
    """
    Decode raw escrow account bytes.

    Raises:
        MalformedRecordException: On length mismatch, out-of-range flags, or
            both terminal markers set
    """
    _check_span(data, ESCROW_RECORD_SPAN, "Escrow record")

    try:
        raw = ESCROW_RECORD_LAYOUT.parse(bytes(data))
    except ConstructError as e:
        raise MalformedRecordException(f"Escrow record unreadable: {e}") from e

    is_settled = _flag(raw.is_settled, "is_settled")
    is_canceled = _flag(raw.is_canceled, "is_canceled")
    if is_settled and is_canceled:
        raise MalformedRecordException(
            "Escrow record is both settled and canceled",
        )

    return EscrowRecord(
        is_initialized=_flag(raw.is_initialized, "is_initialized"),
        is_settled=is_settled,
        is_canceled=is_canceled,
        payer=Pubkey.from_bytes(raw.payer),
        payer_token_account=Pubkey.from_bytes(raw.payer_token_account),
        payee_token_account=Pubkey.from_bytes(raw.payee_token_account),
        vault_token_account=Pubkey.from_bytes(raw.vault_token_account),
        authority=Pubkey.from_bytes(raw.authority),
        fee_taker_token_account=Pubkey.from_bytes(raw.fee_taker_token_account),
        amount=raw.amount,
        fee=raw.fee,
    )


def encode_escrow_record(record: EscrowRecord) -> bytes:
    """
    Encode an escrow record to its 211-byte form.

    Raises:
        MalformedRecordException: If amount/fee do not fit u64 or both
            terminal markers are set
    """
    if record.is_settled and record.is_canceled:
        raise MalformedRecordException("Escrow record is both settled and canceled")
    for field in ("amount", "fee"):
        if not validate_u64(getattr(record, field)):
            raise MalformedRecordException(
                f"Escrow {field} out of u64 range",
                details={"field": field, "value": getattr(record, field)},
            )

    return ESCROW_RECORD_LAYOUT.build(
        {
            "is_initialized": int(record.is_initialized),
            "is_settled": int(record.is_settled),
            "is_canceled": int(record.is_canceled),
            "payer": bytes(record.payer),
            "payer_token_account": bytes(record.payer_token_account),
            "payee_token_account": bytes(record.payee_token_account),
            "vault_token_account": bytes(record.vault_token_account),
            "authority": bytes(record.authority),
            "fee_taker_token_account": bytes(record.fee_taker_token_account),
            "amount": record.amount,
            "fee": record.fee,
        }
    )


def decode_token_account_record(data: bytes) -> TokenAccountRecord:
    """
    Decode raw token account bytes.

    Option discriminants are interpreted before the optional fields are
    materialized; absent options come back as None.

    Raises:
        MalformedRecordException: On length mismatch or invalid
            discriminant/state values
    """
    _check_span(data, TOKEN_ACCOUNT_SPAN, "Token account")

    try:
        raw = TOKEN_ACCOUNT_LAYOUT.parse(bytes(data))
    except ConstructError as e:
        raise MalformedRecordException(f"Token account unreadable: {e}") from e

    has_delegate = _option(raw.delegate_option, "delegate_option")
    is_native = _option(raw.is_native_option, "is_native_option")
    has_close_authority = _option(
        raw.close_authority_option, "close_authority_option"
    )

    try:
        state = TokenAccountState(raw.state)
    except ValueError:
        raise MalformedRecordException(
            f"Token account state out of range: {raw.state}",
            details={"field": "state", "value": raw.state},
        ) from None

    return TokenAccountRecord(
        mint=Pubkey.from_bytes(raw.mint),
        owner=Pubkey.from_bytes(raw.owner),
        amount=raw.amount,
        delegate=Pubkey.from_bytes(raw.delegate) if has_delegate else None,
        delegated_amount=raw.delegated_amount if has_delegate else 0,
        state=state,
        is_native=is_native,
        rent_exempt_reserve=raw.is_native if is_native else None,
        close_authority=(
            Pubkey.from_bytes(raw.close_authority) if has_close_authority else None
        ),
    )


def _optional_key(key: Optional[Pubkey]) -> bytes:
    return bytes(key) if key is not None else ZERO_PUBKEY


def encode_token_account_record(record: TokenAccountRecord) -> bytes:
    """
    Encode a token account record to its 165-byte form.

    Raises:
        MalformedRecordException: If an amount does not fit u64
    """
    reserve = record.rent_exempt_reserve if record.is_native else 0
    for field, value in (
        ("amount", record.amount),
        ("delegated_amount", record.delegated_amount),
        ("rent_exempt_reserve", reserve or 0),
    ):
        if not validate_u64(value):
            raise MalformedRecordException(
                f"Token account {field} out of u64 range",
                details={"field": field, "value": value},
            )

    return TOKEN_ACCOUNT_LAYOUT.build(
        {
            "mint": bytes(record.mint),
            "owner": bytes(record.owner),
            "amount": record.amount,
            "delegate_option": int(record.delegate is not None),
            "delegate": _optional_key(record.delegate),
            "state": int(record.state),
            "is_native_option": int(record.is_native),
            "is_native": reserve or 0,
            "delegated_amount": record.delegated_amount,
            "close_authority_option": int(record.close_authority is not None),
            "close_authority": _optional_key(record.close_authority),
        }
    )
