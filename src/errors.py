"""
Error types for the ledger.

AccountError values are returned by ClientAccount operations and never raised.
LedgerError subclasses are returned by Ledger.apply; they are exceptions so the
caller can raise them when the run has to stop:

    TransactionError: bad input, the record was not applied. Log and continue.
    IntegrityError: the in-memory model contradicts itself. Abort the run.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING

from money import Money

if TYPE_CHECKING:
    from models import Transaction, TransactionState


class AccountError:
    """Failure of a single balance operation on a ClientAccount."""


@dataclass(frozen=True)
class AccountLocked(AccountError):
    pass


@dataclass(frozen=True)
class NotEnoughFunds(AccountError):
    available: Money
    required: Money


@dataclass(frozen=True)
class NegativeAmount(AccountError):
    amount: Money


class LedgerError(Exception):
    """Base for errors returned by Ledger.apply. Carries the offending transaction."""

    def __init__(self, transaction: "Transaction", message: str):
        super().__init__(message)
        self.transaction = transaction
        self.message = message

    def __str__(self) -> str:
        return f"{self.message} ({self.transaction!r})"


class TransactionError(LedgerError):
    """Input-level failure. The transaction was not applied; processing continues."""


class IntegrityError(LedgerError):
    """Broken internal invariant. Processing must stop."""


class AccountLockedError(TransactionError):
    def __init__(self, transaction: "Transaction", client_id: int):
        super().__init__(transaction, f"account {client_id} is locked")
        self.client_id = client_id


class AmountNotProvidedError(TransactionError):
    def __init__(self, transaction: "Transaction"):
        super().__init__(transaction, "amount not provided")


class NegativeAmountProvidedError(TransactionError):
    def __init__(self, transaction: "Transaction", amount: Money):
        super().__init__(transaction, f"negative amount provided: {amount}")
        self.amount = amount


class UnknownAccountError(TransactionError):
    def __init__(self, transaction: "Transaction", client_id: int):
        super().__init__(transaction, f"unknown account: {client_id}")
        self.client_id = client_id


class NotEnoughFundsError(TransactionError):
    def __init__(self, transaction: "Transaction", available: Money, required: Money):
        super().__init__(transaction, f"not enough funds, available: {available}, required: {required}")
        self.available = available
        self.required = required


class TransactionNotFoundError(TransactionError):
    def __init__(self, transaction: "Transaction", transaction_id: int):
        super().__init__(transaction, f"referenced transaction {transaction_id} not found")
        self.transaction_id = transaction_id


class TransactionInvalidStateError(TransactionError):
    def __init__(self, transaction: "Transaction", state: "TransactionState"):
        super().__init__(transaction, f"referenced transaction is {state.value}")
        self.state = state


class TransactionClientMismatchError(TransactionError):
    def __init__(self, transaction: "Transaction", expected_client_id: int):
        super().__init__(
            transaction,
            f"referenced transaction belongs to client {expected_client_id}, got {transaction.client_id}",
        )
        self.expected_client_id = expected_client_id


class DuplicateTransactionError(TransactionError):
    def __init__(self, transaction: "Transaction"):
        super().__init__(transaction, f"transaction {transaction.transaction_id} already processed")


class StateMissingForTransactionError(IntegrityError):
    def __init__(self, transaction: "Transaction"):
        super().__init__(transaction, f"state unavailable for transaction {transaction.transaction_id}")


class AmountMissingForTransactionError(IntegrityError):
    def __init__(self, transaction: "Transaction"):
        super().__init__(transaction, f"amount unavailable for transaction {transaction.transaction_id}")


class AccountMissingForTransactionError(IntegrityError):
    def __init__(self, transaction: "Transaction"):
        super().__init__(transaction, f"account unavailable for client {transaction.client_id}")


class FundsNotLockedError(IntegrityError):
    def __init__(self, transaction: "Transaction", available: Money, required: Money):
        super().__init__(transaction, f"required funds are not held, held: {available}, required: {required}")
        self.available = available
        self.required = required


class UnexpectedAccountError(IntegrityError):
    def __init__(self, transaction: "Transaction", error: AccountError):
        super().__init__(transaction, f"unexpected account error: {error!r}")
        self.error = error
