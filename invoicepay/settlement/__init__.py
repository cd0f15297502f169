"""
invoicepay Settlement

Turns outstanding invoices into signed, confirmed transactions:

- SettlementBuilder   — plan: create account, convert SOL, pay invoices
- SettlementSubmitter — batches of 5, sign, send, confirm, fail fast
- InvoicePayer        — discovery + plan + confirmation + submission

Critical Invariants:
- Conversion rounds up, never down
- Conversion always precedes the payments it funds
- A failed batch stops the run; earlier batches stay applied
"""

from invoicepay.settlement.builder import SettlementBuilder
from invoicepay.settlement.conversion import required_primary_amount
from invoicepay.settlement.engine import InvoicePayer, auto_confirm
from invoicepay.settlement.submitter import SettlementSubmitter, partition

__all__ = [
    "InvoicePayer",
    "SettlementBuilder",
    "SettlementSubmitter",
    "auto_confirm",
    "partition",
    "required_primary_amount",
]
