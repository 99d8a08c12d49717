import csv
import logging
from typing import Dict, Iterable, Iterator, Optional, TextIO

from errors import IntegrityError, TransactionError
from ledger import Ledger
from models import Transaction, TransactionType, ClientAccount, ProcessingStats
from money import Money

logger = logging.getLogger(__name__)

MAX_CLIENT_ID = 2**16 - 1
MAX_TRANSACTION_ID = 2**32 - 1


class PaymentsEngine:
    """
    Feeds transactions into a Ledger strictly in input order.

    Transaction errors are logged and skipped. An integrity error stops the
    run: it is logged and raised to the caller.
    """

    def __init__(self):
        self._ledger = Ledger()
        self._stats = ProcessingStats()

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    def process_file(self, filepath: str) -> Dict[int, ClientAccount]:
        """Process CSV file and return final account states."""
        # undecodable bytes become U+FFFD so the damaged row fails to parse on its own
        with open(filepath, "r", newline="", encoding="utf-8", errors="replace") as f:
            return self.process_stream(f)

    def process_stream(self, stream: TextIO) -> Dict[int, ClientAccount]:
        logger.info("Starting processing")

        self.process_transactions(self._read_transactions(stream))

        logger.info(
            f"Processing complete. Processed: {self._stats.processed}, "
            f"Rejected: {self._stats.rejected}, "
            f"Malformed: {self._stats.malformed}"
        )
        return self._ledger.get_all_accounts()

    def process_transactions(self, transactions: Iterable[Transaction]) -> Dict[int, ClientAccount]:
        for transaction in transactions:
            self.process_transaction(transaction)
        return self._ledger.get_all_accounts()

    def process_transaction(self, transaction: Transaction) -> Optional[TransactionError]:
        """
        Apply one transaction.

        Returns the TransactionError if it was skipped, None if it was applied.
        Raises IntegrityError if the ledger reports a broken invariant.
        """
        error = self._ledger.apply(transaction)

        if error is None:
            self._stats.record_success()
            return None

        if isinstance(error, IntegrityError):
            logger.error(f"Integrity error, aborting: {error}")
            raise error

        self._stats.record_rejection()
        logger.warning(f"Skipping transaction: {error}")
        return error

    def _read_transactions(self, stream: TextIO) -> Iterator[Transaction]:
        """Read CSV rows, dropping the ones that fail to parse."""
        reader = csv.DictReader(stream, skipinitialspace=True)
        while True:
            try:
                row = next(reader)
            except StopIteration:
                break
            except csv.Error as e:
                logger.warning(f"Failed to read row at line {reader.reader.line_num}: {e}")
                self._stats.record_malformed()
                continue

            transaction = self._parse_csv_row(row)
            if transaction:
                yield transaction
            else:
                self._stats.record_malformed()

    def _parse_csv_row(self, row: Dict[Optional[str], Optional[str]]) -> Optional[Transaction]:
        """Parse CSV row into Transaction."""
        try:
            # short rows carry None values, long rows an extra None key
            normalized = {k.strip(): (v or "").strip() for k, v in row.items() if isinstance(k, str)}

            transaction_type_str = normalized["type"].lower()
            client_id = _parse_id(normalized["client"], "client")
            transaction_id = _parse_id(normalized["tx"], "tx")

            if not 0 <= client_id <= MAX_CLIENT_ID:
                raise ValueError(f"client id out of range: {client_id}")
            if not 0 <= transaction_id <= MAX_TRANSACTION_ID:
                raise ValueError(f"transaction id out of range: {transaction_id}")

            amount = None
            amount_str = normalized.get("amount", "")
            if amount_str:
                amount = Money.parse(amount_str)

            return Transaction(
                transaction_type=TransactionType(transaction_type_str),
                client_id=client_id,
                transaction_id=transaction_id,
                amount=amount,
            )
        except (KeyError, ValueError) as e:
            logger.warning(f"Failed to parse row {row}: {e}")
            return None


def _parse_id(text: str, name: str) -> int:
    # int() would also take "1_0", "+1" and non-ASCII digits
    if not (text.isascii() and text.isdigit()):
        raise ValueError(f"invalid {name} id: {text!r}")
    return int(text)
