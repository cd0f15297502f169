"""
Instruction encoders for the three programs a settlement touches.

    pay_invoice                     — invoicing program, one per invoice
    deposit_sol                     — SPL stake pool, SOL → vSOL
    create_associated_token_account — associated-token program

Account order is fixed by each program and must not be rearranged.
"""

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey

from invoicepay.core.addresses import (
    find_withdraw_authority_address,
    get_associated_token_address,
)
from invoicepay.core.config import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    SYSTEM_PROGRAM_ID,
    DeploymentConfig,
)
from invoicepay.core.models import Invoice, PoolState


PAY_INVOICE_DISCRIMINATOR = bytes([104, 6, 62, 239, 197, 206, 208, 220])
DEPOSIT_SOL_TAG           = 14
CREATE_ATA_TAG            = 0


def _u64(value: int) -> bytes:
    return value.to_bytes(8, "little")


def pay_invoice(
    deployment:         DeploymentConfig,
    invoice:            Invoice,
    payer:              Pubkey,
    derivative_account: Pubkey,
    derivative_reserve: Pubkey,
) -> Instruction:
    """Pay invoice.outstanding_balance vSOL from derivative_account."""
    accounts = [
        AccountMeta(invoice.issuer_address,  is_signer=False, is_writable=False),
        AccountMeta(invoice.invoice_address, is_signer=False, is_writable=True),
        AccountMeta(derivative_account,      is_signer=False, is_writable=True),
        AccountMeta(payer,                   is_signer=True,  is_writable=False),
        AccountMeta(derivative_reserve,      is_signer=False, is_writable=True),
        AccountMeta(deployment.asset_program, is_signer=False, is_writable=False),
    ]
    data = PAY_INVOICE_DISCRIMINATOR + _u64(invoice.outstanding_balance)
    return Instruction(deployment.program, data, accounts)


def deposit_sol(
    deployment:         DeploymentConfig,
    pool:               PoolState,
    payer:              Pubkey,
    derivative_account: Pubkey,
    lamports:           int,
) -> Instruction:
    """Deposit lamports into the stake pool, minting vSOL to derivative_account."""
    withdraw_authority = find_withdraw_authority_address(deployment)
    accounts = [
        AccountMeta(deployment.pool,          is_signer=False, is_writable=True),
        AccountMeta(withdraw_authority,       is_signer=False, is_writable=False),
        AccountMeta(pool.reserve_stake,       is_signer=False, is_writable=True),
        AccountMeta(payer,                    is_signer=True,  is_writable=True),
        AccountMeta(derivative_account,       is_signer=False, is_writable=True),
        AccountMeta(pool.manager_fee_account, is_signer=False, is_writable=True),
        # referrer fees go back to the depositor
        AccountMeta(derivative_account,       is_signer=False, is_writable=True),
        AccountMeta(pool.pool_mint,           is_signer=False, is_writable=True),
        AccountMeta(SYSTEM_PROGRAM_ID,        is_signer=False, is_writable=False),
        AccountMeta(deployment.asset_program, is_signer=False, is_writable=False),
    ]
    data = bytes([DEPOSIT_SOL_TAG]) + _u64(lamports)
    return Instruction(deployment.pool_program, data, accounts)


def create_associated_token_account(
    deployment: DeploymentConfig,
    payer:      Pubkey,
    wallet:     Pubkey,
) -> Instruction:
    associated = get_associated_token_address(
        wallet, deployment.derivative_mint, deployment.asset_program
    )
    accounts = [
        AccountMeta(payer,                      is_signer=True,  is_writable=True),
        AccountMeta(associated,                 is_signer=False, is_writable=True),
        AccountMeta(wallet,                     is_signer=False, is_writable=False),
        AccountMeta(deployment.derivative_mint, is_signer=False, is_writable=False),
        AccountMeta(SYSTEM_PROGRAM_ID,          is_signer=False, is_writable=False),
        AccountMeta(deployment.asset_program,   is_signer=False, is_writable=False),
    ]
    return Instruction(ASSOCIATED_TOKEN_PROGRAM_ID, bytes([CREATE_ATA_TAG]), accounts)
