"""
Invoice discovery.

Looks back over the most recent closed periods, fetches every candidate
invoice account in one round trip and keeps those still owing vSOL.
"""

import logging
from typing import List

from solders.pubkey import Pubkey

from invoicepay.core.addresses import find_invoice_address
from invoicepay.core.config import DeploymentConfig
from invoicepay.core.exceptions import IntegrityError, TransportError
from invoicepay.core.models import Invoice


logger = logging.getLogger(__name__)


class InvoiceRepository:
    """
    Read-only view of the invoicing program's accounts for one deployment.

    The window covers periods [current - lookback, current): the running
    period is never billed yet.
    """

    def __init__(self, rpc, deployment: DeploymentConfig, lookback_periods: int = 20):
        self.rpc = rpc
        self.deployment = deployment
        self.lookback_periods = lookback_periods

    def current_period(self) -> int:
        info = self.rpc.get_epoch_info()
        try:
            epoch = info["epoch"]
        except (KeyError, TypeError) as exc:
            raise TransportError("getEpochInfo returned no epoch") from exc
        if not isinstance(epoch, int) or epoch < 0:
            raise IntegrityError("Invalid epoch from RPC", {"epoch": epoch})
        return epoch

    def window(self, current: int) -> range:
        """Periods inspected, oldest first."""
        return range(max(0, current - self.lookback_periods), current)

    def fetch_outstanding(self, issuer: Pubkey, validator: Pubkey) -> List[Invoice]:
        """
        Return invoices addressed to validator with a non-zero outstanding
        balance, in period order.

        Raises IntegrityError if the RPC returns a different number of
        accounts than requested or an account fails to decode.
        """
        current = self.current_period()
        periods = self.window(current)
        addresses = [
            find_invoice_address(self.deployment, issuer, validator, period)
            for period in periods
        ]
        logger.info(
            "Inspecting %d invoice accounts for periods %d..%d",
            len(addresses), periods.start, periods.stop - 1,
        )

        accounts = self.rpc.get_multiple_accounts(addresses)
        if len(accounts) != len(addresses):
            raise IntegrityError(
                "Account count mismatch from getMultipleAccounts",
                {"requested": len(addresses), "returned": len(accounts)},
            )

        invoices: List[Invoice] = []
        for address, data in zip(addresses, accounts):
            if data is None:
                continue
            invoice = Invoice.decode(address, data)
            if not invoice.is_outstanding:
                logger.debug("Invoice for period %d already settled", invoice.period)
                continue
            invoices.append(invoice)

        logger.info("Found %d outstanding invoices", len(invoices))
        return invoices
