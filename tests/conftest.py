"""Shared fixtures: deployment, keys, and a FakeRpc pre-loaded with a stake pool."""

import pytest
from solders.pubkey import Pubkey

from invoicepay.core.addresses import find_issuer_address
from invoicepay.core.config import DeploymentConfig
from invoicepay.core.crypto import PayerKeypair

from helpers.accounts import FakeRpc, encode_pool


@pytest.fixture
def deployment():
    """An isolated deployment so tests never depend on mainnet addresses."""
    return DeploymentConfig(
        issuer_base=     Pubkey.new_unique(),
        program=         Pubkey.new_unique(),
        pool=            Pubkey.new_unique(),
        derivative_mint= Pubkey.new_unique(),
    )


@pytest.fixture
def issuer(deployment):
    return find_issuer_address(deployment)


@pytest.fixture
def validator():
    return Pubkey.new_unique()


@pytest.fixture
def keypair():
    return PayerKeypair.generate()


@pytest.fixture
def rpc(deployment):
    """FakeRpc at epoch 103 with a 1,000,000 / 900,000 stake pool."""
    fake = FakeRpc(epoch=103)
    fake.accounts[deployment.pool] = encode_pool(1_000_000, 900_000)
    return fake
