from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from enum import Enum
from typing import Dict, Optional
from decimal import Decimal

from errors import InsufficientFunds, InvariantViolation

MAX_CLIENT_ID = 2**16 - 1
MAX_TRANSACTION_ID = 2**32 - 1

# Fits the default 28-digit decimal context with room for sums
MAX_AMOUNT_DIGITS = 20
AMOUNT_DECIMAL_PLACES = 4

# Tolerance for the debug-only balance check
EPSILON = Decimal("1e-9")

OUTPUT_FIELDS = ("client", "available", "held", "total", "locked")


class TransactionType(str, Enum):
    chargeback = "chargeback"
    deposit = "deposit"
    dispute = "dispute"
    resolve = "resolve"
    withdrawal = "withdrawal"

    @property
    def is_monetary(self) -> bool:
        """Deposits and withdrawals carry their own amount."""
        return self in (TransactionType.deposit, TransactionType.withdrawal)


class Transaction(BaseModel):
    """
    A requested ledger operation.

    Deposits and withdrawals are stored by id so later disputes can find them.
    Disputes, resolves and chargebacks only reference a stored transaction and
    reuse its amount.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    type: TransactionType = Field(..., description="Transaction type")
    client_id: int = Field(
        ...,
        ge=0,
        le=MAX_CLIENT_ID,
        description="Client identifier"
    )
    id: int = Field(
        ...,
        ge=0,
        le=MAX_TRANSACTION_ID,
        description="Transaction identifier"
    )
    amount: Optional[Decimal] = Field(
        default=None,
        ge=0,
        max_digits=MAX_AMOUNT_DIGITS,
        decimal_places=AMOUNT_DECIMAL_PLACES,
        description="Amount, present only for deposits and withdrawals"
    )
    disputed: bool = Field(default=False, exclude=True)

    @field_validator('type', mode='before')
    @classmethod
    def normalize_type(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator('amount', mode='before')
    @classmethod
    def empty_amount_is_missing(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode='after')
    def validate_amount_presence(self):
        if self.type.is_monetary and self.amount is None:
            raise ValueError(f'{self.type.value} transactions require an amount')
        return self

    def mark_as_disputed(self) -> None:
        self.disputed = True

    def is_disputed(self) -> bool:
        return self.disputed

    def resolve_dispute(self) -> None:
        self.disputed = False


class Account(BaseModel):
    """
    Per-client balances.

    Every mutator keeps ``total == available + held``. ``available`` may go
    negative when an already spent deposit is disputed.
    """
    client_id: int = Field(..., ge=0, le=MAX_CLIENT_ID)
    available: Decimal = Decimal("0")
    held: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    locked: bool = False

    @classmethod
    def new(cls, client_id: int) -> "Account":
        return cls(client_id=client_id)

    def deposit(self, amount: Decimal) -> None:
        self.available += amount
        self.total += amount

    def withdraw(self, amount: Decimal) -> None:
        """Withdraw funds. Nothing changes when the funds are not available."""
        if amount > self.available:
            raise InsufficientFunds(self.client_id, amount, self.available)
        self.available -= amount
        self.total -= amount

    def dispute(self, amount: Decimal) -> None:
        self.held += amount
        self.available -= amount

    def resolve(self, amount: Decimal) -> None:
        self.held -= amount
        self.available += amount

    def chargeback(self, amount: Decimal) -> None:
        self.held -= amount
        self.total -= amount
        self.locked = True

    def is_frozen(self) -> bool:
        return self.locked

    def check_invariants(self) -> None:
        """
        Debug aid for well-formed sequences.

        ``total >= available`` does not hold once a chargeback follows a
        spent dispute, so this must never run unconditionally.
        """
        if self.total < self.available:
            raise InvariantViolation(
                f"Account {self.client_id}: total {self.total} below available {self.available}"
            )
        if abs(self.total - (self.available + self.held)) >= EPSILON:
            raise InvariantViolation(
                f"Account {self.client_id}: total {self.total} != "
                f"available {self.available} + held {self.held}"
            )

    def to_row(self) -> Dict[str, str]:
        return {
            "client": str(self.client_id),
            "available": f"{self.available:.4f}",
            "held": f"{self.held:.4f}",
            "total": f"{self.total:.4f}",
            "locked": "true" if self.locked else "false",
        }
