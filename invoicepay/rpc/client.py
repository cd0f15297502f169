"""
Synchronous Solana JSON-RPC client.

Only the calls a settlement run needs. Every call blocks until the endpoint
answers; nothing is retried. Failures are classified once, here:

    httpx errors, non-JSON bodies   → TransportError
    JSON-RPC "error" object         → RpcResponseError (carries .code)
    undecodable account payloads    → IntegrityError
"""

import base64
import binascii
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

import httpx
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from invoicepay.core.config import COMMITMENT_LEVELS, DEFAULT_RPC_URL
from invoicepay.core.exceptions import (
    AccountNotFoundError,
    ConfirmationTimeoutError,
    IntegrityError,
    RpcResponseError,
    TransactionFailedError,
    TransportError,
)


logger = logging.getLogger(__name__)


def _decode_account_data(pubkey: Optional[Pubkey], info: Dict[str, Any]) -> bytes:
    try:
        encoded, encoding = info["data"]
    except (KeyError, TypeError, ValueError) as exc:
        raise IntegrityError(
            "Malformed account payload", {"account": pubkey}
        ) from exc
    if encoding != "base64":
        raise IntegrityError(
            "Unexpected account encoding", {"account": pubkey, "encoding": encoding}
        )
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, TypeError) as exc:
        raise IntegrityError(
            "Account data is not valid base64", {"account": pubkey}
        ) from exc


def _commitment_rank(level: str) -> int:
    if level not in COMMITMENT_LEVELS:
        raise TransportError("Unknown commitment level", {"level": level})
    return COMMITMENT_LEVELS.index(level)


class RpcClient:
    """
    Blocking JSON-RPC 2.0 client over httpx.

    Use as a context manager so the underlying connection pool is closed:

        with RpcClient(url) as rpc:
            epoch = rpc.get_epoch_info()["epoch"]
    """

    def __init__(
        self,
        url:             str = DEFAULT_RPC_URL,
        timeout:         float = 30.0,
        confirm_timeout: float = 60.0,
        poll_interval:   float = 0.5,
        transport:       Optional[httpx.BaseTransport] = None,
        sleep:           Callable[[float], None] = time.sleep,
        clock:           Callable[[], float] = time.monotonic,
    ) -> None:
        self.url             = url
        self.confirm_timeout = confirm_timeout
        self.poll_interval   = poll_interval
        self._sleep          = sleep
        self._clock          = clock
        self._request_id     = 0
        self._client         = httpx.Client(timeout=timeout, transport=transport)

    def __enter__(self) -> "RpcClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _next_id(self) -> int:
        self._request_id += 1
        return self._request_id

    # ── Raw request ───────────────────────────────────────────

    def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id":      self._next_id(),
            "method":  method,
            "params":  params or [],
        }
        logger.debug("RPC request -> method=%s id=%s", method, payload["id"])
        try:
            response = self._client.post(self.url, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            raise TransportError(
                f"HTTP error on {method}",
                {"status": exc.response.status_code, "url": self.url},
            ) from exc
        except httpx.RequestError as exc:
            raise TransportError(
                f"Request error on {method}: {exc}", {"url": self.url}
            ) from exc
        except ValueError as exc:
            raise TransportError(
                f"Invalid JSON returned for {method}", {"url": self.url}
            ) from exc

        if not isinstance(data, dict):
            raise TransportError(f"Unexpected RPC response shape for {method}")
        if data.get("error") is not None:
            error = data["error"]
            message = error.get("message", "Unknown RPC error") if isinstance(error, dict) else str(error)
            code = error.get("code") if isinstance(error, dict) else None
            logger.debug("RPC error <- method=%s code=%s message=%s", method, code, message)
            raise RpcResponseError(message, code=code, details={"method": method})
        if "result" not in data:
            raise TransportError(f"RPC response for {method} has no result")
        return data["result"]

    # ── Reads ─────────────────────────────────────────────────

    def get_epoch_info(self) -> Dict[str, Any]:
        return self.request("getEpochInfo")

    def get_multiple_accounts(self, pubkeys: Sequence[Pubkey]) -> List[Optional[bytes]]:
        """
        Fetch raw data for several accounts in one round trip.
        Missing accounts come back as None, in request order.
        """
        result = self.request(
            "getMultipleAccounts",
            [[str(pk) for pk in pubkeys], {"encoding": "base64"}],
        )
        try:
            values = result["value"]
        except (KeyError, TypeError) as exc:
            raise TransportError("getMultipleAccounts returned no value") from exc
        if not isinstance(values, list):
            raise TransportError("getMultipleAccounts value is not a list")
        keys: List[Optional[Pubkey]] = list(pubkeys)
        if len(values) != len(keys):
            # Returned as-is; the caller decides how fatal a mismatch is.
            logger.warning(
                "getMultipleAccounts returned %d entries for %d keys",
                len(values), len(keys),
            )
            keys += [None] * max(0, len(values) - len(keys))
        return [
            None if info is None else _decode_account_data(key, info)
            for key, info in zip(keys, values)
        ]

    def get_account_data(self, pubkey: Pubkey) -> bytes:
        result = self.request("getAccountInfo", [str(pubkey), {"encoding": "base64"}])
        info = result.get("value") if isinstance(result, dict) else None
        if info is None:
            raise AccountNotFoundError("Account not found", {"account": pubkey})
        return _decode_account_data(pubkey, info)

    def get_token_account_balance(self, pubkey: Pubkey) -> Dict[str, Any]:
        """
        Returns the balance value object: amount (string, base units),
        decimals, uiAmountString. A missing account surfaces as
        RpcResponseError from the node.
        """
        result = self.request("getTokenAccountBalance", [str(pubkey)])
        try:
            return result["value"]
        except (KeyError, TypeError) as exc:
            raise TransportError("getTokenAccountBalance returned no value") from exc

    def get_latest_blockhash(self, commitment: str = "finalized") -> Hash:
        result = self.request("getLatestBlockhash", [{"commitment": commitment}])
        try:
            return Hash.from_string(result["value"]["blockhash"])
        except Exception as exc:
            raise TransportError("getLatestBlockhash returned no blockhash") from exc

    # ── Writes ────────────────────────────────────────────────

    def send_transaction(self, transaction: Transaction, commitment: str = "confirmed") -> str:
        encoded = base64.b64encode(bytes(transaction)).decode("ascii")
        signature = self.request(
            "sendTransaction",
            [encoded, {"encoding": "base64", "preflightCommitment": commitment}],
        )
        if not isinstance(signature, str):
            raise TransportError("sendTransaction did not return a signature")
        return signature

    def confirm_transaction(self, signature: str, commitment: str = "confirmed") -> None:
        """
        Block until signature reaches commitment.

        Raises TransactionFailedError if the ledger reports an error and
        ConfirmationTimeoutError once confirm_timeout elapses.
        """
        wanted = _commitment_rank(commitment)
        deadline = self._clock() + self.confirm_timeout
        while True:
            result = self.request(
                "getSignatureStatuses",
                [[signature], {"searchTransactionHistory": False}],
            )
            try:
                status = result["value"][0]
            except (KeyError, TypeError, IndexError) as exc:
                raise TransportError("getSignatureStatuses returned no value") from exc

            if status is not None:
                if status.get("err") is not None:
                    raise TransactionFailedError(
                        "Transaction failed", {"signature": signature, "err": status["err"]}
                    )
                level = status.get("confirmationStatus")
                if level is None:
                    # Nodes omit confirmationStatus for rooted slots.
                    level = "finalized" if status.get("confirmations") is None else "processed"
                if _commitment_rank(level) >= wanted:
                    logger.debug("Signature %s reached %s", signature, level)
                    return

            if self._clock() >= deadline:
                raise ConfirmationTimeoutError(
                    "Transaction not confirmed in time",
                    {"signature": signature, "timeout": self.confirm_timeout},
                )
            self._sleep(self.poll_interval)

    def send_and_confirm_transaction(self, transaction: Transaction, commitment: str = "confirmed") -> str:
        signature = self.send_transaction(transaction, commitment)
        logger.info("Sent transaction %s, waiting for %s", signature, commitment)
        self.confirm_transaction(signature, commitment)
        return signature
