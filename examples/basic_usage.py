"""
invoicepay: Basic Usage Example

Demonstrates:
- Discovering outstanding invoices for a vote account
- Reviewing the settlement plan before anything is signed
- Paying with an explicit confirmation callback

Usage:
    python examples/basic_usage.py <VOTE_ACCOUNT> [KEYPAIR_PATH]
"""

import logging
import sys

from solders.pubkey import Pubkey

from invoicepay import InvoicePayer, PayerKeypair, RpcClient
from invoicepay.core.models import format_amount


def review(plan) -> bool:
    """Print the plan and ask before submitting."""
    for line in plan.summary_lines():
        print(f"  {line}")
    return input("Proceed? [y/N] ").strip().lower() == "y"


def main():
    logging.basicConfig(level=logging.INFO)

    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(2)

    vote_account = Pubkey.from_string(sys.argv[1])

    print("=" * 60)
    print("invoicepay: Basic Usage Example")
    print("=" * 60)

    with RpcClient() as rpc:
        payer = InvoicePayer(rpc)

        # 1. Discover
        invoices = payer.discover(vote_account)
        if not invoices:
            print("No invoice to pay")
            return
        for invoice in invoices:
            print(f"Epoch {invoice.period}: {format_amount(invoice.outstanding_balance)} vSOL")

        if len(sys.argv) < 3:
            return

        # 2. Plan, review, submit
        keypair = PayerKeypair.from_file(sys.argv[2])
        results = payer.settle(invoices, keypair, confirm=review)
        if results is None:
            print("Payment aborted")
            return

        for result in results:
            print(f"Batch {result.batch_index + 1}: {result.signature}")


if __name__ == "__main__":
    main()
