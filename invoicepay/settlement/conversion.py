"""
SOL → vSOL conversion sizing.

    shortfall      = target - balance
    primary_amount = ceil(total_reserve * shortfall / derivative_supply)

Rounding is always up: a deposit one lamport short leaves the last payment
unfunded and the whole transaction is rejected. Python integers are
arbitrary precision, so the product never overflows before the division.
"""

from typing import Tuple

from invoicepay.core.exceptions import IntegrityError
from invoicepay.core.models import PoolState


U64_MAX = 2**64 - 1


def ceil_div(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


def required_primary_amount(
    pool:            PoolState,
    current_balance: int,
    target:          int,
) -> Tuple[int, int]:
    """
    Return (primary_amount, shortfall) needed to hold target vSOL.

    (0, 0) when current_balance already covers target.
    Raises IntegrityError on zero pool supply or a result beyond u64.
    """
    if current_balance >= target:
        return 0, 0

    if pool.derivative_supply == 0:
        raise IntegrityError(
            "Stake pool has zero token supply", {"total_reserve": pool.total_reserve}
        )

    shortfall = target - current_balance
    primary_amount = ceil_div(pool.total_reserve * shortfall, pool.derivative_supply)
    if primary_amount > U64_MAX:
        raise IntegrityError(
            "Deposit amount exceeds u64",
            {"shortfall": shortfall, "primary_amount": primary_amount},
        )
    return primary_amount, shortfall
