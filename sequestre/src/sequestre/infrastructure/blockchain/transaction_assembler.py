"""
Transaction assembly, signing and presigned payload verification.

Transactions are stamped with a fee payer and a recent blockhash, then
signed either fully (the orchestrator holds every required signer) or
partially (the payer completes the transaction on their side).
"""

import base64
from typing import Dict, List, Optional, Sequence

from solders.hash import Hash  # type: ignore
from solders.instruction import Instruction  # type: ignore
from solders.keypair import Keypair  # type: ignore
from solders.message import Message  # type: ignore
from solders.pubkey import Pubkey  # type: ignore
from solders.signature import Signature  # type: ignore
from solders.transaction import Transaction  # type: ignore

from sequestre.domain.exceptions import InvalidSignatureException


def assemble_transaction(
    instructions: Sequence[Instruction],
    fee_payer: Pubkey,
    recent_blockhash: Hash,
) -> Transaction:
    """
    Bundle instructions into one unsigned transaction.

    Args:
        instructions: Instructions in execution order
        fee_payer: Account paying network fees (first signer slot)
        recent_blockhash: Blockhash stamping the transaction

    Returns:
        Unsigned transaction with one empty slot per required signer
    """
    message = Message.new_with_blockhash(
        list(instructions), fee_payer, recent_blockhash
    )
    return Transaction.new_unsigned(message)


def sign_transaction(
    transaction: Transaction,
    signers: Sequence[Keypair],
    recent_blockhash: Hash,
    partial: bool = False,
) -> Transaction:
    """
    Sign in place and return the same transaction.

    A full signature requires every required signer; ``partial`` fills
    only the slots of the provided keypairs.
    """
    if partial:
        transaction.partial_sign(list(signers), recent_blockhash)
    else:
        transaction.sign(list(signers), recent_blockhash)
    return transaction


def serialize_transaction(transaction: Transaction) -> bytes:
    """Wire bytes of a transaction, signatures included."""
    return bytes(transaction)


def serialize_message(transaction: Transaction) -> str:
    """Base64 of the message bytes (what each signer signs)."""
    return base64.b64encode(bytes(transaction.message)).decode("ascii")


def encode_payload(transaction: Transaction) -> str:
    """Base64 of the full wire transaction."""
    return base64.b64encode(serialize_transaction(transaction)).decode("ascii")


def partial_signatures(transaction: Transaction) -> List[Dict[str, Optional[str]]]:
    """
    Signature slots of a partially signed transaction.

    Returns:
        One ``{"pubkey", "signature"}`` entry per required signer, in
        message order. Unfilled slots carry ``None``.
    """
    required = transaction.message.header.num_required_signatures
    signer_keys = transaction.message.account_keys[:required]
    empty = Signature.default()

    slots = []
    for pubkey, signature in zip(signer_keys, transaction.signatures):
        slots.append(
            {
                "pubkey": str(pubkey),
                "signature": None if signature == empty else str(signature),
            }
        )
    return slots


def decode_payload(payload: str) -> Transaction:
    """
    Parse a base64 wire transaction.

    Raises:
        InvalidSignatureException: If the payload is not a transaction
    """
    try:
        raw = base64.b64decode(payload, validate=True)
        return Transaction.from_bytes(raw)
    except Exception as e:
        raise InvalidSignatureException(
            "Payload is not a valid serialized transaction",
            details={"error": str(e)},
        ) from e


def verify_presigned(transaction: Transaction) -> bool:
    """
    Check that every required signer slot holds a valid signature.

    Returns:
        True if all signatures are present and verify against the message
    """
    required = transaction.message.header.num_required_signatures
    if len(transaction.signatures) != required:
        return False

    empty = Signature.default()
    if any(signature == empty for signature in transaction.signatures):
        return False

    return all(transaction.verify_with_results())
