"""
invoicepay/core/addresses.py

Program-derived addresses. Pure functions: same seeds, same address.

    issuer registry : [b"invoicer", issuer_base]                 @ invoicing program
    invoice         : [b"invoice", issuer, validator, period_le] @ invoicing program
    token account   : [wallet, token_program, mint]              @ associated-token program
    pool authority  : [pool, b"withdraw"]                        @ stake-pool program
"""

from solders.pubkey import Pubkey

from invoicepay.core.config import ASSOCIATED_TOKEN_PROGRAM_ID, DeploymentConfig


ISSUER_SEED   = b"invoicer"
INVOICE_SEED  = b"invoice"
WITHDRAW_SEED = b"withdraw"


def encode_period(period: int) -> bytes:
    """Period as an unsigned 64-bit little-endian seed."""
    return period.to_bytes(8, "little")


def find_issuer_address(deployment: DeploymentConfig) -> Pubkey:
    address, _ = Pubkey.find_program_address(
        [ISSUER_SEED, bytes(deployment.issuer_base)],
        deployment.program,
    )
    return address


def find_invoice_address(
    deployment: DeploymentConfig,
    issuer:     Pubkey,
    validator:  Pubkey,
    period:     int,
) -> Pubkey:
    address, _ = Pubkey.find_program_address(
        [INVOICE_SEED, bytes(issuer), bytes(validator), encode_period(period)],
        deployment.program,
    )
    return address


def get_associated_token_address(
    wallet:        Pubkey,
    mint:          Pubkey,
    token_program: Pubkey,
) -> Pubkey:
    address, _ = Pubkey.find_program_address(
        [bytes(wallet), bytes(token_program), bytes(mint)],
        ASSOCIATED_TOKEN_PROGRAM_ID,
    )
    return address


def find_withdraw_authority_address(deployment: DeploymentConfig) -> Pubkey:
    address, _ = Pubkey.find_program_address(
        [bytes(deployment.pool), WITHDRAW_SEED],
        deployment.pool_program,
    )
    return address
