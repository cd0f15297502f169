"""
invoicepay/cli/pay.py

`invoicepay pay` — discover and settle outstanding invoices.

Exit codes:
    0  nothing to pay, discovery only, declined, or every batch confirmed
    1  fatal error (transport, data integrity, failed batch, bad keypair)
    2  usage error
"""

import logging
import sys
from dataclasses import replace
from typing import Optional

import click
from solders.pubkey import Pubkey

from invoicepay.core.config import (
    COMMITMENT_LEVELS,
    DEFAULT_RPC_URL,
    THE_VAULT,
    SettlementSettings,
    load_config,
)
from invoicepay.core.crypto import PayerKeypair
from invoicepay.core.exceptions import InvoicePayError, SubmissionError
from invoicepay.core.models import SettlementPlan, SubmissionResult, format_amount
from invoicepay.rpc.client import RpcClient
from invoicepay.settlement.engine import InvoicePayer


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"


# ── ANSI color ────────────────────────────────────────────────────────────────

class _Color:
    """
    Minimal ANSI color wrapper.
    Auto-disables when not a TTY or --no-color is passed.
    """
    _on: bool = True

    @classmethod
    def configure(cls, enabled: bool) -> None:
        cls._on = enabled and sys.stdout.isatty()

    @classmethod
    def green(cls, s: str) -> str:
        return f"\033[32m{s}\033[0m" if cls._on else s

    @classmethod
    def red(cls, s: str) -> str:
        return f"\033[31m{s}\033[0m" if cls._on else s

    @classmethod
    def yellow(cls, s: str) -> str:
        return f"\033[33m{s}\033[0m" if cls._on else s

    @classmethod
    def bold(cls, s: str) -> str:
        return f"\033[1m{s}\033[0m" if cls._on else s


def _fail(message: str) -> None:
    click.echo(_Color.red(f"Error: {message}"), err=True)


def _parse_pubkey(ctx, param, value: str) -> Pubkey:
    try:
        return Pubkey.from_string(value)
    except Exception:
        raise click.BadParameter(f"invalid address '{value}'")


def _show_plan(plan: SettlementPlan) -> None:
    click.echo()
    for line in plan.summary_lines():
        click.echo(f"  {line}")
    click.echo()


def _announce(plan: SettlementPlan) -> bool:
    _show_plan(plan)
    return True


def _prompt_confirm(plan: SettlementPlan) -> bool:
    _show_plan(plan)
    try:
        return click.confirm("Proceed to payment?", default=False)
    except click.Abort:
        # stdin closed before an answer
        click.echo()
        return False


def _echo_confirmed(result: SubmissionResult) -> None:
    click.echo(_Color.green(result.signature))


# ── CLI command ───────────────────────────────────────────────────────────────

@click.command(name="pay")
@click.option(
    "-r", "--rpc",
    default=DEFAULT_RPC_URL,
    show_default=True,
    help="URL of the RPC used to fetch invoices and send transactions.",
)
@click.option(
    "-p", "--payer",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to payer keypair file. Without it invoices are only listed.",
)
@click.option(
    "-v", "--vote-account",
    required=True,
    callback=_parse_pubkey,
    help="Validator vote account the invoices are addressed to.",
)
@click.option(
    "-a", "--auto",
    is_flag=True,
    default=False,
    help="Pay invoices without asking for confirmation.",
)
@click.option(
    "-c", "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="YAML file overriding deployment addresses and settlement settings.",
)
@click.option(
    "--commitment",
    type=click.Choice(COMMITMENT_LEVELS),
    default=None,
    help="Commitment each batch must reach before the next is sent.",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
)
@click.option(
    "--no-color",
    is_flag=True,
    default=False,
    help="Disable ANSI color output.",
)
def pay_command(
    rpc:          str,
    payer:        Optional[str],
    vote_account: Pubkey,
    auto:         bool,
    config_path:  Optional[str],
    commitment:   Optional[str],
    log_level:    str,
    no_color:     bool,
) -> None:
    """
    List outstanding invoices for a vote account and optionally pay them.
    """
    _Color.configure(not no_color)
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger = logging.getLogger("invoicepay")

    try:
        if config_path:
            deployment, settings = load_config(config_path)
        else:
            deployment, settings = THE_VAULT, SettlementSettings()
        if commitment:
            settings = replace(settings, commitment=commitment)

        with RpcClient(
            rpc,
            timeout=         settings.rpc_timeout,
            confirm_timeout= settings.confirm_timeout,
            poll_interval=   settings.poll_interval,
        ) as client:
            engine = InvoicePayer(client, deployment, settings)
            invoices = engine.discover(vote_account)

            if not invoices:
                click.echo("No invoice to pay")
                return

            for invoice in invoices:
                click.echo(
                    f"Epoch {invoice.period}: "
                    f"{format_amount(invoice.outstanding_balance)} vSOL"
                )

            if payer is None:
                return

            try:
                keypair = PayerKeypair.from_file(payer)
            except (OSError, ValueError) as exc:
                _fail(f"Could not read keypair: {exc}")
                sys.exit(1)

            results = engine.settle(
                invoices,
                keypair,
                confirm=      _announce if auto else _prompt_confirm,
                on_confirmed= _echo_confirmed,
            )
            if results is None:
                click.echo("Payment aborted")
                return

    except SubmissionError as exc:
        _fail(str(exc))
        if exc.submitted:
            click.echo(
                _Color.yellow(
                    f"{len(exc.submitted)} batch(es) already confirmed; "
                    "re-run to pay what is still outstanding."
                ),
                err=True,
            )
        sys.exit(1)
    except InvoicePayError as exc:
        logger.debug("Fatal error", exc_info=True)
        _fail(str(exc))
        sys.exit(1)
