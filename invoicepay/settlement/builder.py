"""
Settlement plan assembly.

Order of instructions in a plan:
    1. create payer vSOL account    (only if it does not exist)
    2. deposit SOL for vSOL         (only if the balance is short)
    3. pay invoice                  (one per invoice, in discovery order)

The conversion target is the sum of ORIGINAL invoice amounts while each
payment carries the OUTSTANDING balance. A partially paid invoice therefore
over-converts. Kept as observed on-chain behaviour; see DESIGN.md.
"""

import logging
from typing import List, Sequence, Tuple

from solders.instruction import Instruction
from solders.pubkey import Pubkey

from invoicepay.core.addresses import get_associated_token_address
from invoicepay.core.config import DeploymentConfig
from invoicepay.core.exceptions import IntegrityError, RpcResponseError, SettlementError
from invoicepay.core.models import Invoice, PoolState, SettlementPlan, format_amount
from invoicepay.settlement import instructions
from invoicepay.settlement.conversion import U64_MAX, required_primary_amount


logger = logging.getLogger(__name__)


class SettlementBuilder:
    """
    Builds an immutable SettlementPlan for one payer.

    Reads the payer's vSOL balance through rpc; everything else is computed
    locally from the invoices and the pool snapshot.
    """

    def __init__(self, rpc, deployment: DeploymentConfig):
        self.rpc = rpc
        self.deployment = deployment

    def derivative_account_for(self, owner: Pubkey) -> Pubkey:
        return get_associated_token_address(
            owner, self.deployment.derivative_mint, self.deployment.asset_program
        )

    def fetch_derivative_balance(self, account: Pubkey) -> Tuple[int, bool]:
        """
        Return (balance, exists) for a vSOL token account.

        A JSON-RPC error from getTokenAccountBalance means the account does
        not exist yet. Connection failures still propagate.
        """
        try:
            value = self.rpc.get_token_account_balance(account)
        except RpcResponseError as exc:
            logger.info("vSOL account %s not found (%s); will create it", account, exc.message)
            return 0, False

        try:
            balance = int(value["amount"])
        except (KeyError, TypeError, ValueError) as exc:
            raise IntegrityError(
                "Malformed token balance", {"account": account}
            ) from exc
        logger.info("vSOL balance: %s", value.get("uiAmountString", format_amount(balance)))
        return balance, True

    def build(
        self,
        invoices:           Sequence[Invoice],
        payer:              Pubkey,
        derivative_account: Pubkey,
        pool:               PoolState,
    ) -> SettlementPlan:
        if not invoices:
            raise SettlementError("No invoices to settle")

        target = sum(invoice.original_amount for invoice in invoices)
        if target > U64_MAX:
            raise IntegrityError("Billed total exceeds u64", {"target": target})

        ixs: List[Instruction] = []

        balance, exists = self.fetch_derivative_balance(derivative_account)
        if not exists:
            ixs.append(
                instructions.create_associated_token_account(self.deployment, payer, payer)
            )

        primary_amount, shortfall = required_primary_amount(pool, balance, target)
        if shortfall > 0:
            ixs.append(
                instructions.deposit_sol(
                    self.deployment, pool, payer, derivative_account, primary_amount
                )
            )
            logger.info(
                "Will deposit %s SOL to get %s vSOL",
                format_amount(primary_amount), format_amount(shortfall),
            )

        derivative_reserve = get_associated_token_address(
            invoices[0].issuer_address,
            self.deployment.derivative_mint,
            self.deployment.asset_program,
        )
        for invoice in invoices:
            ixs.append(
                instructions.pay_invoice(
                    self.deployment, invoice, payer, derivative_account, derivative_reserve
                )
            )

        return SettlementPlan(
            instructions=       tuple(ixs),
            invoices=           tuple(invoices),
            payer=              payer,
            derivative_account= derivative_account,
            target_amount=      target,
            current_balance=    balance,
            primary_amount=     primary_amount,
            shortfall=          shortfall,
            creates_account=    not exists,
        )
