from abc import ABC, abstractmethod
from typing import Dict, Generic, Iterator, TypeVar

from errors import TransactionNotFound
from models import Account, Transaction

Id = TypeVar("Id")
Item = TypeVar("Item")


class Store(ABC, Generic[Id, Item]):
    """Key-value storage keyed by an entity id. Iteration order is unspecified."""

    @abstractmethod
    def create(self, item: Item) -> None:
        """Store a new item."""
        pass

    @abstractmethod
    def get(self, id: Id) -> Item:
        """Get an item by id. Raises if the store cannot produce it."""
        pass

    @abstractmethod
    def update(self, item: Item) -> None:
        """Write an item back under its own id."""
        pass

    @abstractmethod
    def delete(self, id: Id) -> None:
        """Delete an item by id."""
        pass

    @abstractmethod
    def iter(self) -> Iterator[Item]:
        """Iterate over all stored items."""
        pass

    @abstractmethod
    def __len__(self) -> int:
        pass


class AccountRepository(Store[int, Account]):
    """Accounts keyed by client id."""
    pass


class TransactionRepository(Store[int, Transaction]):
    """Deposits and withdrawals keyed by transaction id."""
    pass


class InMemoryAccountRepository(AccountRepository):
    def __init__(self):
        self.accounts: Dict[int, Account] = {}

    def create(self, item: Account) -> None:
        self.update(item)

    def get(self, id: int) -> Account:
        # Unknown clients get a fresh account on first reference
        if id not in self.accounts:
            self.accounts[id] = Account.new(id)
        return self.accounts[id].model_copy()

    def update(self, item: Account) -> None:
        self.accounts[item.client_id] = item.model_copy()

    def delete(self, id: int) -> None:
        self.accounts.pop(id, None)

    def iter(self) -> Iterator[Account]:
        for account in list(self.accounts.values()):
            yield account.model_copy()

    def __len__(self) -> int:
        return len(self.accounts)

    def clear(self) -> None:
        """Remove all accounts (for testing)."""
        self.accounts.clear()


class InMemoryTransactionRepository(TransactionRepository):
    def __init__(self):
        self.transactions: Dict[int, Transaction] = {}

    def create(self, item: Transaction) -> None:
        self.update(item)

    def get(self, id: int) -> Transaction:
        transaction = self.transactions.get(id)
        if transaction is None:
            raise TransactionNotFound(id)
        return transaction.model_copy()

    def update(self, item: Transaction) -> None:
        self.transactions[item.id] = item.model_copy()

    def delete(self, id: int) -> None:
        self.transactions.pop(id, None)

    def iter(self) -> Iterator[Transaction]:
        for transaction in list(self.transactions.values()):
            yield transaction.model_copy()

    def __len__(self) -> int:
        return len(self.transactions)

    def clear(self) -> None:
        """Remove all transactions (for testing)."""
        self.transactions.clear()


_account_repo = InMemoryAccountRepository()
_transaction_repo = InMemoryTransactionRepository()


def get_account_repository() -> AccountRepository:
    return _account_repo


def get_transaction_repository() -> TransactionRepository:
    return _transaction_repo


def reset_repositories():
    """Reset all repositories to an empty state (for testing only)."""
    global _account_repo, _transaction_repo
    _account_repo = InMemoryAccountRepository()
    _transaction_repo = InMemoryTransactionRepository()
