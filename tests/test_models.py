import pytest
from decimal import Decimal
from pydantic import ValidationError

from errors import InsufficientFunds, InvariantViolation
from models import Account, Transaction, TransactionType


class TestAccount:
    """Balance arithmetic on a single account."""

    def test_new_account_is_empty(self):
        account = Account.new(3)

        assert account.client_id == 3
        assert account.available == Decimal("0")
        assert account.held == Decimal("0")
        assert account.total == Decimal("0")
        assert account.is_frozen() is False

    def test_deposit(self):
        account = Account.new(1)
        account.deposit(Decimal("1.77"))

        assert account.available == Decimal("1.77")
        assert account.total == Decimal("1.77")

    def test_withdraw_insufficient_funds_leaves_account_unchanged(self):
        account = Account.new(1)
        account.deposit(Decimal("2"))

        with pytest.raises(InsufficientFunds) as exc_info:
            account.withdraw(Decimal("3"))

        assert exc_info.value.requested == Decimal("3")
        assert exc_info.value.available == Decimal("2")
        assert account.available == Decimal("2")
        assert account.total == Decimal("2")

    def test_withdraw_exact_balance(self):
        account = Account.new(1)
        account.deposit(Decimal("2"))
        account.withdraw(Decimal("2"))

        assert account.available == Decimal("0")
        assert account.total == Decimal("0")

    def test_dispute_resolve_round_trip(self):
        account = Account.new(1)
        account.deposit(Decimal("5"))
        account.dispute(Decimal("5"))

        assert account.available == Decimal("0")
        assert account.held == Decimal("5")
        assert account.total == Decimal("5")

        account.resolve(Decimal("5"))

        assert account.available == Decimal("5")
        assert account.held == Decimal("0")

    def test_dispute_after_spending(self):
        account = Account.new(1)
        account.deposit(Decimal("1"))
        account.withdraw(Decimal("1"))
        account.dispute(Decimal("1"))

        assert account.available == Decimal("-1")
        assert account.total == Decimal("0")

    def test_chargeback_locks(self):
        account = Account.new(1)
        account.deposit(Decimal("4"))
        account.dispute(Decimal("4"))
        account.chargeback(Decimal("4"))

        assert account.held == Decimal("0")
        assert account.total == Decimal("0")
        assert account.is_frozen() is True

    def test_check_invariants(self):
        account = Account.new(1)
        account.deposit(Decimal("4"))
        account.dispute(Decimal("1"))
        account.check_invariants()

        account.total = Decimal("10")
        with pytest.raises(InvariantViolation):
            account.check_invariants()

    def test_check_invariants_after_double_chargeback(self):
        account = Account.new(1)
        account.deposit(Decimal("4"))
        account.dispute(Decimal("4"))
        account.chargeback(Decimal("4"))
        account.chargeback(Decimal("4"))

        with pytest.raises(InvariantViolation):
            account.check_invariants()

    def test_to_row_formats_four_places(self):
        account = Account(client_id=1, available=Decimal("-0.5"), held=Decimal("2"), total=Decimal("1.5"))

        assert account.to_row() == {
            "client": "1",
            "available": "-0.5000",
            "held": "2.0000",
            "total": "1.5000",
            "locked": "false",
        }


class TestTransaction:
    """Transaction record validation."""

    def test_type_is_case_insensitive(self):
        t = Transaction(type=" Deposit ", client_id=1, id=1, amount="1.0")

        assert t.type == TransactionType.deposit
        assert t.amount == Decimal("1.0")

    def test_monetary_types(self):
        assert TransactionType.deposit.is_monetary
        assert TransactionType.withdrawal.is_monetary
        assert not TransactionType.dispute.is_monetary
        assert not TransactionType.resolve.is_monetary
        assert not TransactionType.chargeback.is_monetary

    @pytest.mark.parametrize("type_", ["deposit", "withdrawal"])
    def test_monetary_transaction_requires_amount(self, type_):
        with pytest.raises(ValidationError):
            Transaction(type=type_, client_id=1, id=1)

    def test_dispute_without_amount(self):
        t = Transaction(type="dispute", client_id=1, id=1, amount="")

        assert t.amount is None

    def test_negative_amount_rejected(self):
        with pytest.raises(ValidationError):
            Transaction(type="deposit", client_id=1, id=1, amount="-1")

    @pytest.mark.parametrize("amount", ["1e200000", "123456789012345678901", "1.00001"])
    def test_amount_precision_bounded(self, amount):
        with pytest.raises(ValidationError):
            Transaction(type="deposit", client_id=1, id=1, amount=amount)

    def test_amount_at_precision_limit(self):
        t = Transaction(type="deposit", client_id=1, id=1, amount="9999999999999999.9999")

        assert t.amount == Decimal("9999999999999999.9999")

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            Transaction(type="transfer", client_id=1, id=1, amount="1")

    @pytest.mark.parametrize("client_id,tx_id", [(65536, 1), (-1, 1), (1, 2**32)])
    def test_id_ranges(self, client_id, tx_id):
        with pytest.raises(ValidationError):
            Transaction(type="dispute", client_id=client_id, id=tx_id)

    def test_dispute_flag(self):
        t = Transaction(type="deposit", client_id=1, id=1, amount="1")

        assert not t.is_disputed()
        t.mark_as_disputed()
        assert t.is_disputed()
        t.resolve_dispute()
        assert not t.is_disputed()

    def test_dispute_flag_not_serialized(self):
        t = Transaction(type="deposit", client_id=1, id=1, amount="1")
        t.mark_as_disputed()

        assert "disputed" not in t.model_dump()
