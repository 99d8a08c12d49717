from typing import TYPE_CHECKING, Optional

from errors import (
    AccountLocked,
    NegativeAmount,
    NotEnoughFunds,
    LedgerError,
    AccountLockedError,
    AmountNotProvidedError,
    NegativeAmountProvidedError,
    UnknownAccountError,
    NotEnoughFundsError,
    TransactionNotFoundError,
    TransactionInvalidStateError,
    TransactionClientMismatchError,
    DuplicateTransactionError,
    StateMissingForTransactionError,
    AmountMissingForTransactionError,
    AccountMissingForTransactionError,
    FundsNotLockedError,
    UnexpectedAccountError,
)
from models import Transaction, TransactionType, TransactionState

if TYPE_CHECKING:
    from ledger import Ledger


# Dispute workflow: record type -> (required state of referenced transaction, state after success).
# RESOLVED and CHARGEBACKED appear on no left-hand side, so they are terminal.
STATE_TRANSITIONS = {
    TransactionType.DISPUTE: (TransactionState.DEPOSITED, TransactionState.DISPUTED),
    TransactionType.RESOLVE: (TransactionState.DISPUTED, TransactionState.RESOLVED),
    TransactionType.CHARGEBACK: (TransactionState.DISPUTED, TransactionState.CHARGEBACKED),
}


class TransactionProcessor:
    """
    Routes transactions to their handler and validates them against the ledger.
    Account errors are mapped to ledger errors at this boundary, deciding
    for each one whether it is bad input or a broken invariant.
    """

    def __init__(self, ledger: "Ledger"):
        self._ledger = ledger

    def process_transaction(self, transaction: Transaction) -> Optional[LedgerError]:
        match transaction.transaction_type:
            case TransactionType.DEPOSIT:
                return self._handle_deposit(transaction)
            case TransactionType.WITHDRAWAL:
                return self._handle_withdrawal(transaction)
            case TransactionType.DISPUTE:
                return self._handle_dispute(transaction)
            case TransactionType.RESOLVE:
                return self._handle_resolve(transaction)
            case TransactionType.CHARGEBACK:
                return self._handle_chargeback(transaction)
            case _:
                raise ValueError(f"Unknown transaction type: {transaction.transaction_type}")

    def _handle_deposit(self, transaction: Transaction) -> Optional[LedgerError]:
        account = self._ledger.get_or_create_account(transaction.client_id)

        if transaction.amount is None:
            return AmountNotProvidedError(transaction)

        # a locked account reports AccountLocked even for a reused id
        if account.locked:
            return AccountLockedError(transaction, transaction.client_id)

        if self._ledger.get_transaction(transaction.transaction_id) is not None:
            return DuplicateTransactionError(transaction)

        match account.deposit(transaction.amount):
            case None:
                pass
            case AccountLocked():
                return AccountLockedError(transaction, transaction.client_id)
            case NegativeAmount(amount=amount):
                return NegativeAmountProvidedError(transaction, amount)
            case unexpected:
                return UnexpectedAccountError(transaction, unexpected)

        self._ledger.record_transaction(transaction, TransactionState.DEPOSITED)
        return None

    def _handle_withdrawal(self, transaction: Transaction) -> Optional[LedgerError]:
        account = self._ledger.get_account(transaction.client_id)
        if account is None:
            return UnknownAccountError(transaction, transaction.client_id)

        if transaction.amount is None:
            return AmountNotProvidedError(transaction)

        # a locked account reports AccountLocked even for a reused id
        if account.locked:
            return AccountLockedError(transaction, transaction.client_id)

        if self._ledger.get_transaction(transaction.transaction_id) is not None:
            return DuplicateTransactionError(transaction)

        match account.withdraw(transaction.amount):
            case None:
                pass
            case AccountLocked():
                return AccountLockedError(transaction, transaction.client_id)
            case NegativeAmount(amount=amount):
                return NegativeAmountProvidedError(transaction, amount)
            case NotEnoughFunds(available=available, required=required):
                return NotEnoughFundsError(transaction, available, required)
            case unexpected:
                return UnexpectedAccountError(transaction, unexpected)

        self._ledger.record_transaction(transaction, TransactionState.WITHDRAWN)
        return None

    def _handle_dispute(self, transaction: Transaction) -> Optional[LedgerError]:
        error = self._check_referenced(transaction)
        if error is not None:
            return error

        original = self._ledger.get_transaction(transaction.transaction_id)
        account = self._ledger.get_account(transaction.client_id)

        match account.lock_funds(original.amount):
            case None:
                pass
            case AccountLocked():
                return AccountLockedError(transaction, transaction.client_id)
            case NotEnoughFunds(available=available, required=required):
                return NotEnoughFundsError(transaction, available, required)
            case unexpected:
                return UnexpectedAccountError(transaction, unexpected)

        self._advance_state(transaction)
        return None

    def _handle_resolve(self, transaction: Transaction) -> Optional[LedgerError]:
        error = self._check_referenced(transaction)
        if error is not None:
            return error

        original = self._ledger.get_transaction(transaction.transaction_id)
        account = self._ledger.get_account(transaction.client_id)

        match account.release_funds(original.amount):
            case None:
                pass
            case AccountLocked():
                return AccountLockedError(transaction, transaction.client_id)
            case NotEnoughFunds(available=available, required=required):
                # held funds always cover an open dispute
                return FundsNotLockedError(transaction, available, required)
            case unexpected:
                return UnexpectedAccountError(transaction, unexpected)

        self._advance_state(transaction)
        return None

    def _handle_chargeback(self, transaction: Transaction) -> Optional[LedgerError]:
        error = self._check_referenced(transaction)
        if error is not None:
            return error

        original = self._ledger.get_transaction(transaction.transaction_id)
        account = self._ledger.get_account(transaction.client_id)

        match account.chargeback_funds(original.amount):
            case None:
                pass
            case AccountLocked():
                return AccountLockedError(transaction, transaction.client_id)
            case NotEnoughFunds(available=available, required=required):
                return FundsNotLockedError(transaction, available, required)
            case unexpected:
                return UnexpectedAccountError(transaction, unexpected)

        self._advance_state(transaction)
        return None

    def _check_referenced(self, transaction: Transaction) -> Optional[LedgerError]:
        """
        Validate a dispute/resolve/chargeback against the transaction it references.

        On success the referenced transaction, its account and its amount
        are all guaranteed to exist.
        """
        original = self._ledger.get_transaction(transaction.transaction_id)
        if original is None:
            return TransactionNotFoundError(transaction, transaction.transaction_id)

        state = self._ledger.get_transaction_state(transaction.transaction_id)
        if state is None:
            return StateMissingForTransactionError(transaction)

        required_state, _ = STATE_TRANSITIONS[transaction.transaction_type]
        if state is not required_state:
            return TransactionInvalidStateError(transaction, state)

        if original.client_id != transaction.client_id:
            return TransactionClientMismatchError(transaction, original.client_id)

        if self._ledger.get_account(transaction.client_id) is None:
            return AccountMissingForTransactionError(transaction)

        if original.amount is None:
            return AmountMissingForTransactionError(transaction)

        return None

    def _advance_state(self, transaction: Transaction) -> None:
        _, next_state = STATE_TRANSITIONS[transaction.transaction_type]
        self._ledger.set_transaction_state(transaction.transaction_id, next_state)
