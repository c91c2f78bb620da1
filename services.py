from typing import Iterable, Iterator, Optional
import structlog

from config import Settings, get_settings
from errors import InsufficientFunds, InvariantViolation, TransactionNotFound
from models import Account, Transaction, TransactionType
from repositories import (
    AccountRepository,
    TransactionRepository,
    get_account_repository,
    get_transaction_repository,
)

logger = structlog.get_logger()


class LedgerEngine:
    """
    Replays transactions against client accounts.

    Records are processed one at a time, in arrival order. Each handler
    fetches what it needs from the stores, mutates the copies and writes
    them back. A reference to an unknown transaction and a withdrawal
    without enough funds are both recorded as no-ops; every other error
    propagates to the caller and stops the run.
    """

    def __init__(
        self,
        accounts: AccountRepository,
        transactions: TransactionRepository,
        settings: Optional[Settings] = None,
    ):
        self.accounts_repo = accounts
        self.transactions_repo = transactions
        self.settings = settings or get_settings()
        self._handlers = {
            TransactionType.chargeback: self._chargeback,
            TransactionType.deposit: self._deposit,
            TransactionType.dispute: self._dispute,
            TransactionType.resolve: self._resolve,
            TransactionType.withdrawal: self._withdrawal,
        }

    def execute_transaction(self, txn: Transaction) -> None:
        """Apply a single transaction."""
        logger.debug(
            "Processing transaction",
            tx_id=txn.id,
            client_id=txn.client_id,
            type=txn.type.value,
            amount=None if txn.amount is None else str(txn.amount)
        )
        self._handlers[txn.type](txn)

    def process(self, transactions: Iterable[Transaction]) -> int:
        """Apply transactions in order. Returns how many were applied."""
        count = 0
        for txn in transactions:
            self.execute_transaction(txn)
            count += 1

        logger.info(
            "Transaction stream processed",
            transactions=count,
            accounts=len(self.accounts_repo)
        )
        return count

    def accounts(self) -> Iterator[Account]:
        """Lazy snapshot of every account, in store order."""
        return self.accounts_repo.iter()

    def _save_account(self, account: Account) -> None:
        if self.settings.check_invariants:
            try:
                account.check_invariants()
            except InvariantViolation as e:
                logger.warning(
                    "Account invariant violated",
                    client_id=account.client_id,
                    error=str(e)
                )
        self.accounts_repo.update(account)

    def _is_blocked(self, account: Account, txn: Transaction) -> bool:
        if self.settings.enforce_account_lock and account.is_frozen():
            logger.info(
                "Ignoring transaction on locked account",
                tx_id=txn.id,
                client_id=txn.client_id,
                type=txn.type.value
            )
            return True
        return False

    def _lookup_referenced(self, txn: Transaction) -> Optional[Transaction]:
        try:
            return self.transactions_repo.get(txn.id)
        except TransactionNotFound:
            logger.info(
                "Referenced transaction not found",
                tx_id=txn.id,
                client_id=txn.client_id,
                type=txn.type.value
            )
            return None

    def _deposit(self, txn: Transaction) -> None:
        """Credit available and total funds."""
        account = self.accounts_repo.get(txn.client_id)
        if not self._is_blocked(account, txn):
            account.deposit(txn.amount)
        self._save_account(account)
        self.transactions_repo.create(txn)

    def _withdrawal(self, txn: Transaction) -> None:
        """
        Debit available and total funds.

        A withdrawal larger than the available funds leaves the account as it
        was, but is still recorded so it can be disputed later.
        """
        account = self.accounts_repo.get(txn.client_id)
        if not self._is_blocked(account, txn):
            try:
                account.withdraw(txn.amount)
            except InsufficientFunds as e:
                logger.warning(
                    "Insufficient funds for withdrawal",
                    tx_id=txn.id,
                    client_id=txn.client_id,
                    requested_amount=str(e.requested),
                    available=str(e.available)
                )
        self._save_account(account)
        self.transactions_repo.create(txn)

    def _dispute(self, txn: Transaction) -> None:
        """
        Hold the referenced amount: available decreases, held increases,
        total stays the same.

        Neither the owner of the referenced transaction nor its current
        dispute status is checked, so disputing twice holds the amount twice.
        """
        referenced = self._lookup_referenced(txn)
        if referenced is None:
            return

        account = self.accounts_repo.get(txn.client_id)
        account.dispute(referenced.amount)
        self._save_account(account)

        referenced.mark_as_disputed()
        self.transactions_repo.update(referenced)

    def _resolve(self, txn: Transaction) -> None:
        """Release held funds of a disputed transaction back to available."""
        referenced = self._lookup_referenced(txn)
        if referenced is None:
            return
        if not referenced.is_disputed():
            logger.info("Resolve of undisputed transaction ignored", tx_id=txn.id, client_id=txn.client_id)
            return

        account = self.accounts_repo.get(txn.client_id)
        account.resolve(referenced.amount)
        self._save_account(account)

        referenced.resolve_dispute()
        self.transactions_repo.update(referenced)

    def _chargeback(self, txn: Transaction) -> None:
        """
        Reverse a disputed transaction: held and total decrease and the
        account is locked.

        The referenced transaction stays flagged as disputed.
        """
        referenced = self._lookup_referenced(txn)
        if referenced is None:
            return
        if not referenced.is_disputed():
            logger.info("Chargeback of undisputed transaction ignored", tx_id=txn.id, client_id=txn.client_id)
            return

        account = self.accounts_repo.get(txn.client_id)
        account.chargeback(referenced.amount)
        self._save_account(account)

        logger.info(
            "Account locked after chargeback",
            client_id=txn.client_id,
            tx_id=txn.id,
            amount=str(referenced.amount)
        )


# Factory function for dependency injection
def get_ledger_engine(
    account_repo: Optional[AccountRepository] = None,
    transaction_repo: Optional[TransactionRepository] = None,
    settings: Optional[Settings] = None,
) -> LedgerEngine:
    return LedgerEngine(
        account_repo if account_repo is not None else get_account_repository(),
        transaction_repo if transaction_repo is not None else get_transaction_repository(),
        settings,
    )
