"""
Batch submission of a settlement plan.

Instructions are cut into fixed-size batches in plan order. Each batch is a
single atomic transaction, signed by the payer and confirmed before the next
one is sent. The first failure stops the run: confirmed batches stay applied,
nothing is retried, and re-running settles whatever is still outstanding.
"""

import logging
from typing import Callable, List, Optional, Sequence, TypeVar

from solders.hash import Hash
from solders.instruction import Instruction
from solders.message import Message
from solders.transaction import Transaction

from invoicepay.core.crypto import PayerKeypair
from invoicepay.core.exceptions import InvoicePayError, SubmissionError
from invoicepay.core.models import SettlementPlan, SubmissionResult


logger = logging.getLogger(__name__)

T = TypeVar("T")

ConfirmedFn = Callable[[SubmissionResult], None]


def partition(items: Sequence[T], size: int) -> List[List[T]]:
    """Split items into consecutive groups of at most size, order preserved."""
    if size < 1:
        raise ValueError(f"batch size must be >= 1, got {size}")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def sign_transaction(
    instructions: Sequence[Instruction],
    payer:        PayerKeypair,
    blockhash:    Hash,
) -> Transaction:
    """Legacy transaction with payer as fee payer and sole signer."""
    message = Message.new_with_blockhash(list(instructions), payer.pubkey, blockhash)
    return Transaction.populate(message, [payer.sign_message(message)])


class SettlementSubmitter:

    def __init__(self, rpc, batch_size: int = 5, blockhash_commitment: str = "finalized"):
        self.rpc = rpc
        self.batch_size = batch_size
        self.blockhash_commitment = blockhash_commitment

    def submit(
        self,
        plan:         SettlementPlan,
        payer:        PayerKeypair,
        commitment:   str = "confirmed",
        on_confirmed: Optional[ConfirmedFn] = None,
    ) -> List[SubmissionResult]:
        """
        Send every batch of plan in order and return one result per batch.

        Raises SubmissionError on the first failing batch, carrying its
        signature (when one was produced) and the results confirmed so far.

        on_confirmed is called with each result as soon as its batch
        confirms, before the next batch is sent.
        """
        if payer.pubkey != plan.payer:
            raise SubmissionError(
                "Signing key does not match plan payer",
                details={"payer": plan.payer, "key": payer.pubkey},
            )

        batches = partition(plan.instructions, self.batch_size)
        results: List[SubmissionResult] = []

        for index, batch in enumerate(batches):
            signature = None
            try:
                blockhash = self.rpc.get_latest_blockhash(self.blockhash_commitment)
                transaction = sign_transaction(batch, payer, blockhash)
                signature = str(transaction.signatures[0])
                logger.info(
                    "Submitting batch %d/%d (%d instructions) %s",
                    index + 1, len(batches), len(batch), signature,
                )
                self.rpc.send_and_confirm_transaction(transaction, commitment)
            except InvoicePayError as exc:
                logger.error("Batch %d failed: %s", index + 1, exc)
                raise SubmissionError(
                    f"Tx {signature} failed: {exc}",
                    signature=   signature,
                    batch_index= index,
                    submitted=   results,
                ) from exc

            result = SubmissionResult(
                batch_index=       index,
                signature=         signature,
                instruction_count= len(batch),
            )
            results.append(result)
            if on_confirmed is not None:
                on_confirmed(result)

        return results
