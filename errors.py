from decimal import Decimal
from typing import Optional


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class AccountNotFound(LedgerError):
    """Raised by account stores that do not create accounts lazily."""

    def __init__(self, client_id: int):
        self.client_id = client_id
        super().__init__(f"Account not found for client id: {client_id}")


class TransactionNotFound(LedgerError):
    """Referenced transaction is not in the transaction store."""

    def __init__(self, tx_id: int):
        self.tx_id = tx_id
        super().__init__(f"Transaction not found for id: {tx_id}")


class InsufficientFunds(LedgerError):
    def __init__(self, client_id: int, requested: Decimal, available: Decimal):
        self.client_id = client_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient funds in account {client_id}: "
            f"requested {requested}, available {available}"
        )


class InvariantViolation(LedgerError):
    """Account balances no longer add up."""
    pass


class InputError(LedgerError):
    """Malformed transaction record in the input stream."""

    def __init__(self, message: str, line: Optional[int] = None):
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)
