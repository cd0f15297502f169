"""
invoicepay Invoice Discovery

Reads invoice accounts written by the invoicing program. Never writes.
"""

from invoicepay.invoices.repository import InvoiceRepository

__all__ = ["InvoiceRepository"]
