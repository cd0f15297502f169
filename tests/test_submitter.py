"""
tests/test_submitter.py

Batching, signing and fail-fast submission.
"""

import math

import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey
from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey

from invoicepay.core.crypto import PayerKeypair
from invoicepay.core.exceptions import SubmissionError, TransportError
from invoicepay.core.models import SettlementPlan
from invoicepay.settlement.submitter import SettlementSubmitter, partition


PROGRAM = Pubkey.new_unique()


def make_plan(payer: Pubkey, count: int) -> SettlementPlan:
    instructions = tuple(
        Instruction(PROGRAM, bytes([i]), [AccountMeta(payer, True, False)])
        for i in range(count)
    )
    return SettlementPlan(
        instructions=       instructions,
        invoices=           (),
        payer=              payer,
        derivative_account= Pubkey.new_unique(),
        target_amount=      0,
        current_balance=    0,
        primary_amount=     0,
        shortfall=          0,
        creates_account=    False,
    )


def sent_instruction_data(rpc):
    return [bytes(ix.data) for tx in rpc.sent for ix in tx.message.instructions]


class TestPartition:

    def test_thirteen_into_fives(self):
        assert [len(b) for b in partition(list(range(13)), 5)] == [5, 5, 3]

    def test_preserves_order_and_elements(self):
        for n in range(0, 23):
            items = list(range(n))
            batches = partition(items, 5)
            assert len(batches) == math.ceil(n / 5)
            assert all(len(b) <= 5 for b in batches)
            assert [x for b in batches for x in b] == items

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            partition([1, 2], 0)


class TestSubmit:

    def test_batches_sent_in_order(self, rpc, keypair):
        plan = make_plan(keypair.pubkey, 13)

        results = SettlementSubmitter(rpc).submit(plan, keypair)

        assert [r.instruction_count for r in results] == [5, 5, 3]
        assert [r.batch_index for r in results] == [0, 1, 2]
        assert sent_instruction_data(rpc) == [bytes([i]) for i in range(13)]

    def test_each_batch_signed_by_payer(self, rpc, keypair):
        SettlementSubmitter(rpc).submit(make_plan(keypair.pubkey, 7), keypair)

        public = Ed25519PublicKey.from_public_bytes(bytes(keypair.pubkey))
        for tx in rpc.sent:
            assert tx.message.account_keys[0] == keypair.pubkey
            assert tx.message.header.num_required_signatures == 1
            public.verify(bytes(tx.signatures[0]), bytes(tx.message))

    def test_results_report_signatures(self, rpc, keypair):
        results = SettlementSubmitter(rpc).submit(make_plan(keypair.pubkey, 6), keypair)
        assert [r.signature for r in results] == [str(tx.signatures[0]) for tx in rpc.sent]

    def test_fresh_finalized_blockhash_per_batch(self, rpc, keypair):
        SettlementSubmitter(rpc).submit(make_plan(keypair.pubkey, 11), keypair, "finalized")

        assert rpc.blockhash_commitments == ["finalized"] * 3
        assert rpc.confirm_commitments == ["finalized"] * 3
        assert len({tx.message.recent_blockhash for tx in rpc.sent}) == 3

    def test_configurable_batch_size(self, rpc, keypair):
        results = SettlementSubmitter(rpc, batch_size=2).submit(make_plan(keypair.pubkey, 5), keypair)
        assert [r.instruction_count for r in results] == [2, 2, 1]


class TestFailFast:

    def test_failure_stops_remaining_batches(self, rpc, keypair):
        rpc.fail_on_send = 1
        plan = make_plan(keypair.pubkey, 13)

        with pytest.raises(SubmissionError) as info:
            SettlementSubmitter(rpc).submit(plan, keypair)

        err = info.value
        assert err.batch_index == 1
        assert err.signature is not None
        assert err.signature in str(err)
        assert [r.batch_index for r in err.submitted] == [0]
        assert len(rpc.sent) == 1, "no batch may be sent after a failure"
        assert rpc.blockhash_commitments == ["finalized", "finalized"]

    def test_blockhash_failure_has_no_signature(self, rpc, keypair):
        rpc.errors["get_latest_blockhash"] = TransportError("unreachable")
        with pytest.raises(SubmissionError) as info:
            SettlementSubmitter(rpc).submit(make_plan(keypair.pubkey, 3), keypair)
        assert info.value.signature is None
        assert info.value.submitted == []

    def test_wrong_key_rejected_before_sending(self, rpc, keypair):
        plan = make_plan(keypair.pubkey, 3)
        with pytest.raises(SubmissionError, match="does not match"):
            SettlementSubmitter(rpc).submit(plan, PayerKeypair.generate())
        assert rpc.sent == []


class TestConfirmedCallback:

    def test_called_per_batch_in_order(self, rpc, keypair):
        seen = []
        results = SettlementSubmitter(rpc).submit(
            make_plan(keypair.pubkey, 13), keypair, on_confirmed=seen.append
        )
        assert seen == results
        assert [r.signature for r in seen] == [str(tx.signatures[0]) for tx in rpc.sent]

    def test_confirmed_batches_reported_before_unexpected_error(self, rpc, keypair):
        """A non-library error on batch 2 still leaves batch 1 reported."""
        rpc.fail_on_send = 1
        rpc.send_error = RuntimeError("socket closed")
        seen = []

        with pytest.raises(RuntimeError):
            SettlementSubmitter(rpc).submit(
                make_plan(keypair.pubkey, 13), keypair, on_confirmed=seen.append
            )

        assert [r.batch_index for r in seen] == [0]
        assert seen[0].signature == str(rpc.sent[0].signatures[0])
