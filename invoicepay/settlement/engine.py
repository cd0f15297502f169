"""
Settlement orchestration: discover → build → confirm → submit.

Library code never exits the process. Every fatal condition is an
InvoicePayError subclass that travels up to the caller (the CLI) intact.
"""

import logging
from typing import Callable, List, Optional, Sequence

from solders.pubkey import Pubkey

from invoicepay.core.addresses import find_issuer_address
from invoicepay.core.config import THE_VAULT, DeploymentConfig, SettlementSettings
from invoicepay.core.crypto import PayerKeypair
from invoicepay.core.models import Invoice, PoolState, SettlementPlan, SubmissionResult
from invoicepay.invoices.repository import InvoiceRepository
from invoicepay.settlement.builder import SettlementBuilder
from invoicepay.settlement.submitter import ConfirmedFn, SettlementSubmitter


logger = logging.getLogger(__name__)

ConfirmFn = Callable[[SettlementPlan], bool]


def auto_confirm(plan: SettlementPlan) -> bool:
    """Confirmation policy for unattended runs."""
    return True


class InvoicePayer:
    """
    Settles a validator's outstanding invoices for one deployment.

        payer    = InvoicePayer(rpc)
        invoices = payer.discover(vote_account)
        results  = payer.settle(invoices, keypair, confirm=auto_confirm)

    settle() returns None when confirm declines the plan. on_confirmed, if
    given, sees each batch result the moment it confirms.
    """

    def __init__(
        self,
        rpc,
        deployment: DeploymentConfig = THE_VAULT,
        settings:   SettlementSettings = None,
    ):
        self.rpc = rpc
        self.deployment = deployment
        self.settings = settings or SettlementSettings()

        self.repository = InvoiceRepository(rpc, deployment, self.settings.lookback_periods)
        self.builder    = SettlementBuilder(rpc, deployment)
        self.submitter  = SettlementSubmitter(
            rpc,
            batch_size=           self.settings.batch_size,
            blockhash_commitment= self.settings.blockhash_commitment,
        )

    @property
    def issuer(self) -> Pubkey:
        return find_issuer_address(self.deployment)

    def discover(self, validator: Pubkey) -> List[Invoice]:
        return self.repository.fetch_outstanding(self.issuer, validator)

    def fetch_pool_state(self) -> PoolState:
        return PoolState.decode(self.rpc.get_account_data(self.deployment.pool))

    def prepare(self, invoices: Sequence[Invoice], payer: Pubkey) -> SettlementPlan:
        pool = self.fetch_pool_state()
        derivative_account = self.builder.derivative_account_for(payer)
        return self.builder.build(invoices, payer, derivative_account, pool)

    def settle(
        self,
        invoices:     Sequence[Invoice],
        keypair:      PayerKeypair,
        confirm:      ConfirmFn = auto_confirm,
        on_confirmed: Optional[ConfirmedFn] = None,
    ) -> Optional[List[SubmissionResult]]:
        plan = self.prepare(invoices, keypair.pubkey)
        if not confirm(plan):
            logger.info("Settlement declined; nothing submitted")
            return None
        return self.submitter.submit(
            plan, keypair, self.settings.commitment, on_confirmed=on_confirmed
        )
