from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from errors import AccountError, AccountLocked, NegativeAmount, NotEnoughFunds
from money import Money


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"


class TransactionState(Enum):
    """Dispute lifecycle of an applied deposit or withdrawal."""

    WITHDRAWN = "withdrawn"
    DEPOSITED = "deposited"
    DISPUTED = "disputed"
    RESOLVED = "resolved"
    CHARGEBACKED = "chargebacked"


@dataclass(frozen=True)
class Transaction:
    transaction_type: TransactionType
    client_id: int
    transaction_id: int
    amount: Optional[Money] = None

    def __repr__(self) -> str:
        return f"Transaction({self.transaction_type.value}, client={self.client_id}, tx={self.transaction_id}, amount={self.amount})"


@dataclass
class ClientAccount:
    """
    Balances of a single client.
    Every mutation goes through one of the operations below, which return
    None on success or an AccountError describing why nothing changed.
    """

    client_id: int
    available: Money = field(default_factory=Money.zero)
    held: Money = field(default_factory=Money.zero)
    locked: bool = False

    @property
    def total(self) -> Money:
        return self.available + self.held

    def _check_lock(self) -> Optional[AccountError]:
        if self.locked:
            return AccountLocked()
        return None

    def deposit(self, amount: Money) -> Optional[AccountError]:
        error = self._check_lock()
        if error is not None:
            return error
        if amount.is_negative():
            return NegativeAmount(amount)

        self.available += amount
        return None

    def withdraw(self, amount: Money) -> Optional[AccountError]:
        error = self._check_lock()
        if error is not None:
            return error
        if amount.is_negative():
            return NegativeAmount(amount)
        if amount > self.available:
            return NotEnoughFunds(available=self.available, required=amount)

        self.available -= amount
        return None

    def lock_funds(self, amount: Money) -> Optional[AccountError]:
        """Move funds from available to held for a dispute."""
        error = self._check_lock()
        if error is not None:
            return error
        if amount > self.available:
            return NotEnoughFunds(available=self.available, required=amount)

        self.available -= amount
        self.held += amount
        return None

    def release_funds(self, amount: Money) -> Optional[AccountError]:
        """Move held funds back to available when a dispute is resolved."""
        error = self._check_lock()
        if error is not None:
            return error
        if amount > self.held:
            return NotEnoughFunds(available=self.held, required=amount)

        self.held -= amount
        self.available += amount
        return None

    def chargeback_funds(self, amount: Money) -> Optional[AccountError]:
        """Remove held funds and lock the account for good."""
        error = self._check_lock()
        if error is not None:
            return error
        if amount > self.held:
            return NotEnoughFunds(available=self.held, required=amount)

        self.held -= amount
        self.locked = True
        return None


class ProcessingStats:
    """Counters for a single run."""

    def __init__(self):
        self.processed = 0
        self.rejected = 0
        self.malformed = 0

    def record_success(self):
        self.processed += 1

    def record_rejection(self):
        self.rejected += 1

    def record_malformed(self):
        self.malformed += 1
