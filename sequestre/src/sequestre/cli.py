"""
Sequestre CLI.

Usage:
    sequestre [-v] COMMAND ...
    sequestre authority [--program-id ID]
    sequestre ata OWNER MINT
    sequestre decode PAYLOAD [--token]
    sequestre inspect ESCROW
    sequestre settle ESCROW AMOUNT [--fee FEE] [--memo MEMO] [--wallet WALLET]
    sequestre cancel ESCROW [--memo MEMO]
    sequestre close ESCROW [--memo MEMO]
    sequestre submit PAYLOAD
    sequestre confirm SIGNATURE
"""

import asyncio
import base64
import binascii
import json
import sys

import click
from shared.blockchain import parse_pubkey
from shared.reporter import SystemReporter

from sequestre.application import (
    CancelPaymentInput,
    ClosePaymentInput,
    SettlePaymentInput,
    TransactionOrchestrator,
)
from sequestre.codec import decode_escrow_record, decode_token_account_record
from sequestre.config.settings import get_settings
from sequestre.domain.exceptions import BlockchainException, EscrowException
from sequestre.domain.value_objects import TokenAccountRecord
from sequestre.utils.addresses import AddressDeriver, derive_vault_authority


def _echo_json(payload: dict) -> None:
    click.echo(json.dumps(payload, indent=2))


def _fail(error: Exception) -> None:
    kind = getattr(error, "kind", type(error).__name__)
    click.echo(f"{kind}: {error}", err=True)
    details = getattr(error, "details", None)
    if details:
        click.echo(json.dumps(details, indent=2, default=str), err=True)
    sys.exit(1)


def _token_account_to_dict(record: TokenAccountRecord) -> dict:
    return {
        "mint": str(record.mint),
        "owner": str(record.owner),
        "amount": record.amount,
        "delegate": str(record.delegate) if record.delegate else None,
        "delegatedAmount": record.delegated_amount,
        "state": record.state.name.lower(),
        "isNative": record.is_native,
        "rentExemptReserve": record.rent_exempt_reserve,
        "closeAuthority": (
            str(record.close_authority) if record.close_authority else None
        ),
    }


def _run(coro_factory):
    """Build an orchestrator from settings and run one coroutine with it."""
    verbose = click.get_current_context().find_root().params.get("verbose", 0)
    try:
        settings = get_settings()
        reporter = SystemReporter.from_level_name(
            name="sequestre",
            level_name=settings.log_level,
            log_dir=settings.log_dir,
            verbose=verbose,
        )
        orchestrator = TransactionOrchestrator.from_settings(
            settings, reporter=reporter
        )
        return asyncio.run(coro_factory(orchestrator))
    except (EscrowException, BlockchainException, OSError, ValueError) as e:
        _fail(e)


@click.group()
@click.option("--verbose", "-v", count=True, help="Log progress (repeat for more)")
def cli(verbose):
    """Sequestre - Solana escrow payment orchestrator."""


# ================================================================
# Offline commands
# ================================================================


@cli.command()
@click.option("--program-id", default=None, help="Escrow program ID")
def authority(program_id):
    """Derive the escrow program's vault authority."""
    try:
        program = parse_pubkey(program_id or get_settings().escrow_program_id)
    except ValueError as e:
        _fail(e)
        return
    address, bump = derive_vault_authority(program)
    _echo_json({"programId": str(program), "authority": str(address), "bump": bump})


@cli.command()
@click.argument("owner")
@click.argument("mint")
def ata(owner, mint):
    """Derive OWNER's associated token address for MINT."""
    try:
        owner_key = parse_pubkey(owner)
        mint_key = parse_pubkey(mint)
    except ValueError as e:
        _fail(e)
        return
    deriver = AddressDeriver(get_settings().get_program_ids())
    click.echo(str(deriver.associated_token_address(owner_key, mint_key)))


@cli.command()
@click.argument("payload")
@click.option("--token", is_flag=True, help="Decode a token account instead")
def decode(payload, token):
    """Decode a base64 escrow record (or token account)."""
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        _fail(ValueError(f"Payload is not valid base64: {e}"))
        return

    try:
        if token:
            _echo_json(_token_account_to_dict(decode_token_account_record(data)))
        else:
            _echo_json(decode_escrow_record(data).to_dict())
    except EscrowException as e:
        _fail(e)


# ================================================================
# Network commands
# ================================================================


@cli.command()
@click.argument("escrow")
def inspect(escrow):
    """Fetch and decode an escrow record."""

    async def _inspect(orchestrator):
        account, record = await orchestrator.get_escrow(parse_pubkey(escrow))
        return {"address": escrow, "lamports": account.lamports, **record.to_dict()}

    _echo_json(_run(_inspect))


@cli.command()
@click.argument("escrow")
@click.argument("amount", type=int)
@click.option("--fee", type=int, default=None, help="Expected recorded fee")
@click.option("--memo", default=None, help="Memo attached to the transaction")
@click.option("--wallet", default=None, help="Caller wallet (informational)")
def settle(escrow, amount, fee, memo, wallet):
    """Settle ESCROW, releasing AMOUNT to the payee."""
    request = SettlePaymentInput(
        escrow_address=escrow,
        amount=amount,
        wallet_address=wallet,
        fee=fee,
        memo=memo,
    )

    async def _settle(orchestrator):
        return (await orchestrator.settle(request)).to_dict()

    _echo_json(_run(_settle))


@cli.command()
@click.argument("escrow")
@click.option("--memo", default=None, help="Memo attached to the transaction")
def cancel(escrow, memo):
    """Cancel ESCROW, refunding the payer."""
    request = CancelPaymentInput(escrow_address=escrow, memo=memo)

    async def _cancel(orchestrator):
        return (await orchestrator.cancel(request)).to_dict()

    _echo_json(_run(_cancel))


@cli.command()
@click.argument("escrow")
@click.option("--memo", default=None, help="Memo attached to the transaction")
def close(escrow, memo):
    """Close a settled or canceled ESCROW, reclaiming rent."""
    request = ClosePaymentInput(escrow_address=escrow, memo=memo)

    async def _close(orchestrator):
        return {"signature": await orchestrator.close(request)}

    _echo_json(_run(_close))


@cli.command()
@click.argument("payload")
def submit(payload):
    """Verify and broadcast a presigned base64 transaction."""

    async def _submit(orchestrator):
        return {"signature": await orchestrator.submit_presigned(payload)}

    _echo_json(_run(_submit))


@cli.command()
@click.argument("signature")
def confirm(signature):
    """Poll for a transaction until it is observed."""

    async def _confirm(orchestrator):
        transaction = await orchestrator.wait_for_confirmation(signature)
        return {
            "signature": signature,
            "confirmed": transaction is not None,
            "slot": transaction.get("slot") if transaction else None,
        }

    result = _run(_confirm)
    _echo_json(result)
    if not result["confirmed"]:
        sys.exit(2)


def main():
    """Console script entry point."""
    cli()


if __name__ == "__main__":
    main()
