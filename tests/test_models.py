"""
tests/test_models.py

Binary decoding of invoice and stake pool accounts. Short or inconsistent
buffers must fail loudly, never decode as zeros.
"""

import pytest
from solders.pubkey import Pubkey

from invoicepay.core.exceptions import IntegrityError
from invoicepay.core.models import (
    Invoice,
    PoolState,
    SettlementPlan,
    format_amount,
)

from helpers.accounts import encode_invoice, encode_pool


class TestInvoiceDecode:

    def test_decodes_well_formed_buffer(self, issuer, validator):
        address = Pubkey.new_unique()
        data = encode_invoice(
            issuer, validator, period=612,
            original=2**63 + 5, outstanding=17,
            discriminator=b"\xff" * 8,
        )
        assert len(data) == 96

        invoice = Invoice.decode(address, data)

        assert invoice.issuer_address == issuer
        assert invoice.invoice_address == address
        assert invoice.period == 612
        assert invoice.original_amount == 2**63 + 5
        assert invoice.outstanding_balance == 17

    def test_trailing_bytes_ignored(self, issuer, validator):
        data = encode_invoice(issuer, validator, 1, 10, 4) + b"\x00" * 32
        assert Invoice.decode(Pubkey.new_unique(), data).outstanding_balance == 4

    @pytest.mark.parametrize("length", [0, 8, 88, 95])
    def test_short_buffer_rejected(self, issuer, validator, length):
        data = encode_invoice(issuer, validator, 1, 10, 4)[:length]
        with pytest.raises(IntegrityError, match="too short"):
            Invoice.decode(Pubkey.new_unique(), data)

    def test_outstanding_above_original_rejected(self, issuer, validator):
        data = encode_invoice(issuer, validator, 1, original=3, outstanding=4)
        with pytest.raises(IntegrityError, match="exceeds"):
            Invoice.decode(Pubkey.new_unique(), data)

    def test_settled_invoice_not_outstanding(self, issuer, validator):
        invoice = Invoice.decode(
            Pubkey.new_unique(), encode_invoice(issuer, validator, 1, 10, 0)
        )
        assert not invoice.is_outstanding


class TestPoolStateDecode:

    def test_decodes_reserve_supply_and_accounts(self):
        reserve_stake, mint, fee = Pubkey.new_unique(), Pubkey.new_unique(), Pubkey.new_unique()
        pool = PoolState.decode(
            encode_pool(1_000_000, 900_000, reserve_stake, mint, fee)
        )
        assert pool.total_reserve == 1_000_000
        assert pool.derivative_supply == 900_000
        assert pool.reserve_stake == reserve_stake
        assert pool.pool_mint == mint
        assert pool.manager_fee_account == fee

    def test_short_buffer_rejected(self):
        with pytest.raises(IntegrityError):
            PoolState.decode(encode_pool(1, 1)[:273])

    def test_wrong_account_type_rejected(self):
        with pytest.raises(IntegrityError, match="not a stake pool"):
            PoolState.decode(encode_pool(1, 1, account_type=2))


class TestFormatting:

    @pytest.mark.parametrize("units, text", [
        (0, "0"),
        (5, "0.000000005"),
        (1_500_000_000, "1.5"),
        (2_000_000_000, "2"),
        (1_112, "0.000001112"),
    ])
    def test_format_amount(self, units, text):
        assert format_amount(units) == text

    def test_plan_summary_lines(self, issuer):
        invoices = tuple(
            Invoice(issuer, Pubkey.new_unique(), period, 10, balance)
            for period, balance in ((100, 5), (102, 3))
        )
        plan = SettlementPlan(
            instructions=       (),
            invoices=           invoices,
            payer=              Pubkey.new_unique(),
            derivative_account= Pubkey.new_unique(),
            target_amount=      20,
            current_balance=    0,
            primary_amount=     23,
            shortfall=          20,
            creates_account=    True,
        )
        lines = plan.summary_lines()

        assert lines[0].startswith("Create vSOL token account")
        assert lines[1] == "Will deposit 0.000000023 SOL to get 0.00000002 vSOL"
        assert lines[2:] == [
            "Pay epoch 100: 0.000000005 vSOL",
            "Pay epoch 102: 0.000000003 vSOL",
        ]
        assert plan.payment_total == 8
