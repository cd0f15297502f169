"""
Synthetic on-chain account buffers and an in-memory RPC double.

FakeRpc implements the subset of RpcClient used by the repository, the
builder and the submitter. State is plain attributes so tests can arrange
and inspect it directly.
"""

from typing import Dict, List, Optional

from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from invoicepay.core.addresses import find_invoice_address
from invoicepay.core.exceptions import (
    AccountNotFoundError,
    RpcResponseError,
    TransactionFailedError,
)


def encode_invoice(
    issuer:      Pubkey,
    validator:   Pubkey,
    period:      int,
    original:    int,
    outstanding: int,
    discriminator: bytes = bytes(8),
) -> bytes:
    """96-byte invoice account as written by the invoicing program."""
    return (
        discriminator
        + bytes(issuer)
        + bytes(validator)
        + period.to_bytes(8, "little")
        + original.to_bytes(8, "little")
        + outstanding.to_bytes(8, "little")
    )


def encode_pool(
    total_reserve:       int,
    supply:              int,
    reserve_stake:       Pubkey = None,
    pool_mint:           Pubkey = None,
    manager_fee_account: Pubkey = None,
    account_type:        int = 1,
) -> bytes:
    """SPL stake pool account; fields after pool_token_supply are zero padding."""
    data = bytearray(611)
    data[0] = account_type
    data[130:162] = bytes(reserve_stake or Pubkey.new_unique())
    data[162:194] = bytes(pool_mint or Pubkey.new_unique())
    data[194:226] = bytes(manager_fee_account or Pubkey.new_unique())
    data[258:266] = total_reserve.to_bytes(8, "little")
    data[266:274] = supply.to_bytes(8, "little")
    return bytes(data)


class FakeRpc:

    def __init__(self, epoch: int = 103):
        self.epoch = epoch
        self.accounts:  Dict[Pubkey, bytes] = {}
        self.balances:  Dict[Pubkey, int]   = {}
        self.sent:      List[Transaction]   = []
        self.requested: List[List[Pubkey]]  = []
        self.blockhash_commitments: List[str] = []
        self.confirm_commitments:   List[str] = []
        self.account_reads: List[Pubkey] = []
        self.fail_on_send: Optional[int] = None
        self.send_error:   Optional[BaseException] = None
        self.drop_results: int = 0
        self.errors: Dict[str, Exception] = {}

    def __enter__(self) -> "FakeRpc":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        pass

    def _maybe_fail(self, method: str) -> None:
        if method in self.errors:
            raise self.errors[method]

    def get_epoch_info(self):
        self._maybe_fail("get_epoch_info")
        return {"epoch": self.epoch, "slotIndex": 0, "slotsInEpoch": 432000}

    def get_multiple_accounts(self, pubkeys):
        self._maybe_fail("get_multiple_accounts")
        self.requested.append(list(pubkeys))
        result = [self.accounts.get(pk) for pk in pubkeys]
        if self.drop_results:
            result = result[:-self.drop_results]
        return result

    def get_account_data(self, pubkey):
        self._maybe_fail("get_account_data")
        self.account_reads.append(pubkey)
        if pubkey not in self.accounts:
            raise AccountNotFoundError("Account not found", {"account": pubkey})
        return self.accounts[pubkey]

    def get_token_account_balance(self, pubkey):
        self._maybe_fail("get_token_account_balance")
        if pubkey not in self.balances:
            raise RpcResponseError(
                "Invalid param: could not find account", code=-32602
            )
        amount = self.balances[pubkey]
        return {
            "amount": str(amount),
            "decimals": 9,
            "uiAmountString": str(amount / 1e9),
        }

    def get_latest_blockhash(self, commitment="finalized"):
        self._maybe_fail("get_latest_blockhash")
        self.blockhash_commitments.append(commitment)
        return Hash(bytes([len(self.blockhash_commitments)] * 32))

    def send_and_confirm_transaction(self, transaction, commitment="confirmed"):
        if self.fail_on_send is not None and len(self.sent) == self.fail_on_send:
            if self.send_error is not None:
                raise self.send_error
            raise TransactionFailedError(
                "Transaction failed",
                {"signature": str(transaction.signatures[0]), "err": "InstructionError"},
            )
        self.sent.append(transaction)
        self.confirm_commitments.append(commitment)
        return str(transaction.signatures[0])


def add_invoice(rpc, deployment, issuer, validator, period, original, outstanding):
    """Store an invoice account where the invoicing program would put it."""
    address = find_invoice_address(deployment, issuer, validator, period)
    rpc.accounts[address] = encode_invoice(issuer, validator, period, original, outstanding)
    return address
