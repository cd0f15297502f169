"""
invoicepay Exception Hierarchy

All exceptions inherit from InvoicePayError for easy catching.
"""


class InvoicePayError(Exception):
    """Base exception for all invoicepay errors"""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigError(InvoicePayError):
    """Raised when configuration is missing or invalid"""
    pass


class TransportError(InvoicePayError):
    """Raised when the RPC endpoint cannot be reached or answers garbage"""
    pass


class RpcResponseError(TransportError):
    """Raised when the RPC endpoint returns a JSON-RPC error object"""

    def __init__(self, message: str, code: int = None, details: dict = None):
        super().__init__(message, details)
        self.code = code


class TransactionFailedError(TransportError):
    """Raised when a submitted transaction is rejected by the ledger"""
    pass


class ConfirmationTimeoutError(TransportError):
    """Raised when a transaction does not confirm in time"""
    pass


class IntegrityError(InvoicePayError):
    """Raised when on-chain data is malformed or inconsistent"""
    pass


class AccountNotFoundError(InvoicePayError):
    """Raised when a required account does not exist"""
    pass


class SettlementError(InvoicePayError):
    """Raised when a settlement plan cannot be built"""
    pass


class SubmissionError(SettlementError):
    """Raised when a settlement batch fails; earlier batches stay applied"""

    def __init__(
        self,
        message: str,
        signature: str = None,
        batch_index: int = None,
        submitted: list = None,
        details: dict = None,
    ):
        super().__init__(message, details)
        self.signature = signature
        self.batch_index = batch_index
        self.submitted = list(submitted or [])
