"""
invoicepay/core/models.py

Data model for one settlement run.

═══════════════════════════════════════════════════════════════════
ACCOUNT LAYOUTS — fixed by the on-chain programs, all little-endian
═══════════════════════════════════════════════════════════════════

Invoice (96 bytes used):
    0..8    discriminator        (ignored)
    8..40   issuer address
    40..72  validator identity   (ignored)
    72..80  period               u64
    80..88  original_amount      u64
    88..96  outstanding_balance  u64

SPL stake pool (274-byte prefix used):
    0       account_type         u8, 1 = StakePool
    130..162  reserve_stake
    162..194  pool_mint
    194..226  manager_fee_account
    258..266  total_lamports     u64
    266..274  pool_token_supply  u64

Short buffers are rejected with IntegrityError. Decoding never zero-fills.
═══════════════════════════════════════════════════════════════════
"""

from dataclasses import dataclass
from typing import List, Tuple

from solders.instruction import Instruction
from solders.pubkey import Pubkey

from invoicepay.core.config import DECIMALS_FACTOR
from invoicepay.core.exceptions import IntegrityError


INVOICE_ACCOUNT_SIZE   = 96
STAKE_POOL_PREFIX_SIZE = 274
STAKE_POOL_ACCOUNT_TYPE = 1


def _read_u64(data: bytes, offset: int) -> int:
    return int.from_bytes(data[offset:offset + 8], "little")


def _read_pubkey(data: bytes, offset: int) -> Pubkey:
    return Pubkey(bytes(data[offset:offset + 32]))


def format_amount(units: int) -> str:
    """Render 9-decimal base units as a human amount, e.g. 1500000000 → '1.5'."""
    whole, frac = divmod(units, DECIMALS_FACTOR)
    if frac == 0:
        return str(whole)
    return f"{whole}.{frac:09d}".rstrip("0")


# ─────────────────────────────────────────────────────────────
# Invoice
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Invoice:
    """One period's claim against a validator, in vSOL base units."""

    issuer_address:      Pubkey
    invoice_address:     Pubkey
    period:              int
    original_amount:     int
    outstanding_balance: int

    @classmethod
    def decode(cls, address: Pubkey, data: bytes) -> "Invoice":
        """
        Decode raw invoice account data.

        Raises IntegrityError if data is shorter than 96 bytes or if the
        outstanding balance exceeds the billed amount.
        """
        if len(data) < INVOICE_ACCOUNT_SIZE:
            raise IntegrityError(
                "Invoice account data too short",
                {"address": address, "expected": INVOICE_ACCOUNT_SIZE, "got": len(data)},
            )
        invoice = cls(
            issuer_address=      _read_pubkey(data, 8),
            invoice_address=     address,
            period=              _read_u64(data, 72),
            original_amount=     _read_u64(data, 80),
            outstanding_balance= _read_u64(data, 88),
        )
        if invoice.outstanding_balance > invoice.original_amount:
            raise IntegrityError(
                "Invoice outstanding balance exceeds billed amount",
                {
                    "address":     address,
                    "original":    invoice.original_amount,
                    "outstanding": invoice.outstanding_balance,
                },
            )
        return invoice

    @property
    def is_outstanding(self) -> bool:
        return self.outstanding_balance > 0


# ─────────────────────────────────────────────────────────────
# PoolState
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class PoolState:
    """
    Stake pool snapshot. Conversion rate is total_reserve / derivative_supply.

    Read fresh for every run; the rate moves every epoch.
    """

    total_reserve:       int
    derivative_supply:   int
    reserve_stake:       Pubkey = Pubkey.default()
    pool_mint:           Pubkey = Pubkey.default()
    manager_fee_account: Pubkey = Pubkey.default()

    @classmethod
    def decode(cls, data: bytes) -> "PoolState":
        if len(data) < STAKE_POOL_PREFIX_SIZE:
            raise IntegrityError(
                "Stake pool account data too short",
                {"expected": STAKE_POOL_PREFIX_SIZE, "got": len(data)},
            )
        if data[0] != STAKE_POOL_ACCOUNT_TYPE:
            raise IntegrityError(
                "Account is not a stake pool", {"account_type": data[0]}
            )
        return cls(
            total_reserve=       _read_u64(data, 258),
            derivative_supply=   _read_u64(data, 266),
            reserve_stake=       _read_pubkey(data, 130),
            pool_mint=           _read_pubkey(data, 162),
            manager_fee_account= _read_pubkey(data, 194),
        )


# ─────────────────────────────────────────────────────────────
# SettlementPlan
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SettlementPlan:
    """
    Ordered instructions for one run: optional token-account creation,
    at most one conversion, then one payment per invoice.

    Built once by SettlementBuilder, consumed by SettlementSubmitter.
    """

    instructions:       Tuple[Instruction, ...]
    invoices:           Tuple[Invoice, ...]
    payer:              Pubkey
    derivative_account: Pubkey
    target_amount:      int
    current_balance:    int
    primary_amount:     int
    shortfall:          int
    creates_account:    bool

    @property
    def needs_conversion(self) -> bool:
        return self.shortfall > 0

    @property
    def payment_total(self) -> int:
        return sum(i.outstanding_balance for i in self.invoices)

    def summary_lines(self) -> List[str]:
        """Human-readable description, one line per planned action."""
        lines: List[str] = []
        if self.creates_account:
            lines.append(f"Create vSOL token account {self.derivative_account}")
        if self.needs_conversion:
            lines.append(
                f"Will deposit {format_amount(self.primary_amount)} SOL "
                f"to get {format_amount(self.shortfall)} vSOL"
            )
        for invoice in self.invoices:
            lines.append(
                f"Pay epoch {invoice.period}: "
                f"{format_amount(invoice.outstanding_balance)} vSOL"
            )
        return lines


# ─────────────────────────────────────────────────────────────
# SubmissionResult
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SubmissionResult:
    batch_index:       int
    signature:         str
    instruction_count: int
