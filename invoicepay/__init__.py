"""
invoicepay/__init__.py

invoicepay: settle stake-as-a-service invoices with vSOL.

Discovers unpaid invoices addressed to a validator vote account, converts
SOL into vSOL through the stake pool when needed, and pays every invoice
in signed, confirmed transactions.
"""

__version__ = "0.1.0"

from invoicepay.core.config import (
    THE_VAULT,
    DeploymentConfig,
    SettlementSettings,
    load_config,
)
from invoicepay.core.crypto import PayerKeypair
from invoicepay.core.exceptions import InvoicePayError
from invoicepay.core.models import Invoice, PoolState, SettlementPlan, SubmissionResult
from invoicepay.rpc.client import RpcClient
from invoicepay.settlement.engine import InvoicePayer, auto_confirm

__all__ = [
    # Orchestration
    "InvoicePayer",
    "RpcClient",
    "PayerKeypair",
    "auto_confirm",
    # Data model
    "Invoice",
    "PoolState",
    "SettlementPlan",
    "SubmissionResult",
    # Configuration
    "DeploymentConfig",
    "SettlementSettings",
    "THE_VAULT",
    "load_config",
    # Errors
    "InvoicePayError",
]
