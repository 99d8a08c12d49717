import logging
from typing import Dict, Optional

from errors import LedgerError
from models import Transaction, TransactionState, ClientAccount
from transaction_processor import TransactionProcessor

logger = logging.getLogger(__name__)


class Ledger:
    """
    In-memory state of a run: client accounts, applied deposits/withdrawals
    and the dispute lifecycle state of each of them.
    Not thread-safe. Transactions must be applied one at a time, in input order.
    """

    def __init__(self):
        self._accounts: Dict[int, ClientAccount] = {}
        self._transactions: Dict[int, Transaction] = {}
        self._transaction_states: Dict[int, TransactionState] = {}

        self._processor = TransactionProcessor(self)

    def apply(self, transaction: Transaction) -> Optional[LedgerError]:
        """
        Apply a single transaction.

        Returns None if it was applied. Otherwise returns the error:
            TransactionError: invalid input, safe to skip
            IntegrityError: internal invariant broken, stop processing

        On error, balances and transaction states are left untouched. A
        rejected deposit still creates the client's empty account if it had none.
        """
        error = self._processor.process_transaction(transaction)
        if error is None:
            logger.debug(f"Applied {transaction}")
        return error

    def get_account(self, client_id: int) -> Optional[ClientAccount]:
        return self._accounts.get(client_id)

    def get_or_create_account(self, client_id: int) -> ClientAccount:
        """Get existing account or create new one."""
        if client_id not in self._accounts:
            self._accounts[client_id] = ClientAccount(client_id=client_id)
        return self._accounts[client_id]

    def record_transaction(self, transaction: Transaction, state: TransactionState) -> None:
        """Store an applied deposit/withdrawal for future dispute lookups."""
        self._transactions[transaction.transaction_id] = transaction
        self._transaction_states[transaction.transaction_id] = state

    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        return self._transactions.get(transaction_id)

    def get_transaction_state(self, transaction_id: int) -> Optional[TransactionState]:
        return self._transaction_states.get(transaction_id)

    def set_transaction_state(self, transaction_id: int, state: TransactionState) -> None:
        self._transaction_states[transaction_id] = state

    def get_all_accounts(self) -> Dict[int, ClientAccount]:
        """Return all accounts (for final output)."""
        return dict(self._accounts)
