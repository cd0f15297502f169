"""
invoicepay/cli/__init__.py

invoicepay CLI — root Click command group.

Registered in pyproject.toml as:

    [project.scripts]
    invoicepay = "invoicepay.cli:cli"
"""

import click

from invoicepay.cli.pay import pay_command


@click.group()
@click.version_option(package_name="invoicepay")
def cli() -> None:
    """
    invoicepay — pay The Vault stake-as-a-service invoices.

    \b
    Commands:
      pay       List outstanding invoices and, with --payer, settle them.

    \b
    Quick start:
      invoicepay pay --vote-account <VOTE_PUBKEY>
      invoicepay pay --vote-account <VOTE_PUBKEY> --payer ~/.config/solana/id.json
      invoicepay pay --vote-account <VOTE_PUBKEY> --payer id.json --auto
    """
    pass


cli.add_command(pay_command)
