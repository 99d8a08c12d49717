import sys
import os
import io

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from errors import IntegrityError, NotEnoughFundsError
from models import Transaction, TransactionType
from money import Money
from payments_engine import PaymentsEngine


def write_csv(tmp_path, *rows):
    csv_file = tmp_path / "test.csv"
    csv_file.write_text('\n'.join(("type, client, tx, amount",) + rows), encoding="utf-8")
    return str(csv_file)


class TestPaymentsEngine:
    def test_basic_transactions(self, tmp_path):
        csv_file = write_csv(
            tmp_path,
            "deposit, 1, 1, 1.0",
            "deposit, 2, 2, 2.0",
            "deposit, 1, 3, 2.0",
            "withdrawal, 1, 4, 1.5",
            "withdrawal, 2, 5, 3.0",
        )

        engine = PaymentsEngine()
        accounts = engine.process_file(csv_file)

        assert accounts[1].available == Money("1.5")
        assert accounts[1].held == Money.zero()
        assert accounts[1].total == Money("1.5")

        assert accounts[2].available == Money("2.0")
        assert accounts[2].held == Money.zero()
        assert accounts[2].total == Money("2.0")

        assert engine.stats.processed == 4
        assert engine.stats.rejected == 1

    def test_dispute_resolve(self, tmp_path):
        csv_file = write_csv(
            tmp_path,
            "deposit, 1, 1, 100.0",
            "dispute, 1, 1,",
            "resolve, 1, 1,",
        )

        accounts = PaymentsEngine().process_file(csv_file)

        assert accounts[1].available == Money("100")
        assert accounts[1].held == Money.zero()
        assert accounts[1].locked is False

    def test_chargeback(self, tmp_path):
        csv_file = write_csv(
            tmp_path,
            "deposit, 1, 1, 100.0",
            "dispute, 1, 1,",
            "chargeback, 1, 1,",
        )

        accounts = PaymentsEngine().process_file(csv_file)

        assert accounts[1].available == Money.zero()
        assert accounts[1].held == Money.zero()
        assert accounts[1].total == Money.zero()
        assert accounts[1].locked is True

    def test_dispute_before_deposit_not_retried(self, tmp_path):
        """Records apply strictly in input order, a dispute of a future deposit is dropped."""
        csv_file = write_csv(
            tmp_path,
            "dispute, 1, 1,",
            "deposit, 1, 1, 100.0",
        )

        engine = PaymentsEngine()
        accounts = engine.process_file(csv_file)

        assert accounts[1].available == Money("100")
        assert accounts[1].held == Money.zero()
        assert engine.stats.rejected == 1

    def test_decimal_precision(self, tmp_path):
        csv_file = write_csv(
            tmp_path,
            "deposit, 1, 1, 1.2345",
            "deposit, 1, 2, 0.0001",
            "withdrawal, 1, 3, 0.2346",
        )

        accounts = PaymentsEngine().process_file(csv_file)

        # 1.2345 + 0.0001 - 0.2346 = 1.0000
        assert accounts[1].available == Money("1.0000")

    def test_frozen_account_rejects_operations(self, tmp_path):
        csv_file = write_csv(
            tmp_path,
            "deposit, 1, 1, 100.0",
            "dispute, 1, 1,",
            "chargeback, 1, 1,",
            "deposit, 1, 2, 50.0",
            "withdrawal, 1, 3, 10.0",
        )

        engine = PaymentsEngine()
        accounts = engine.process_file(csv_file)

        assert accounts[1].available == Money.zero()
        assert accounts[1].total == Money.zero()
        assert accounts[1].locked is True
        assert engine.stats.rejected == 2

    def test_redispute_after_resolve_rejected(self, tmp_path):
        csv_file = write_csv(
            tmp_path,
            "deposit, 1, 1, 100.0",
            "dispute, 1, 1,",
            "resolve, 1, 1,",
            "dispute, 1, 1,",
            "chargeback, 1, 1,",
        )

        accounts = PaymentsEngine().process_file(csv_file)

        assert accounts[1].available == Money("100")
        assert accounts[1].held == Money.zero()
        assert accounts[1].locked is False

    def test_zero_deposit_accepted(self, tmp_path):
        csv_file = write_csv(
            tmp_path,
            "deposit, 1, 1, 0",
            "deposit, 1, 2, 100.0",
        )

        engine = PaymentsEngine()
        accounts = engine.process_file(csv_file)

        assert accounts[1].available == Money("100")
        assert engine.stats.processed == 2

    def test_malformed_rows_dropped(self, tmp_path):
        csv_file = write_csv(
            tmp_path,
            "deposit, 1, 1, 10",
            "transfer, 1, 2, 5",
            "deposit, x, 3, 5",
            "deposit, 70000, 4, 5",
            "deposit, 1, -5, 5",
            "deposit, 1, 6, abc",
            "deposit, 1, 7, NaN",
            "dispute, 1, 1",
            "withdrawal, 1, 8, 2.5",
        )

        engine = PaymentsEngine()
        accounts = engine.process_file(csv_file)

        # the dispute row without a trailing comma is still well formed
        assert list(accounts) == [1]
        assert accounts[1].available == Money.zero()
        assert accounts[1].held == Money("10")
        assert engine.stats.malformed == 6
        assert engine.stats.processed == 2
        assert engine.stats.rejected == 1

    def test_malformed_row_logged(self, tmp_path, caplog):
        csv_file = write_csv(tmp_path, "deposit, 1, 1, nope")

        with caplog.at_level("WARNING"):
            PaymentsEngine().process_file(csv_file)

        assert "Failed to parse row" in caplog.text

    def test_rejected_transaction_logged(self, caplog):
        engine = PaymentsEngine()
        withdrawal = Transaction(TransactionType.WITHDRAWAL, 1, 1, Money("5"))
        engine.process_transaction(Transaction(TransactionType.DEPOSIT, 1, 2, Money("1")))

        with caplog.at_level("WARNING"):
            error = engine.process_transaction(withdrawal)

        assert isinstance(error, NotEnoughFundsError)
        assert error.transaction is withdrawal
        assert "not enough funds" in caplog.text

    def test_process_stream(self):
        stream = io.StringIO("type,client,tx,amount\ndeposit,3,1,2.75\n")

        accounts = PaymentsEngine().process_stream(stream)

        assert accounts[3].available == Money("2.75")

    def test_integrity_error_aborts_run(self):
        engine = PaymentsEngine()
        engine.process_transaction(Transaction(TransactionType.DEPOSIT, 1, 1, Money("10")))
        engine.process_transaction(Transaction(TransactionType.DISPUTE, 1, 1))
        engine._ledger.get_account(1).held = Money.zero()

        remaining = [
            Transaction(TransactionType.RESOLVE, 1, 1),
            Transaction(TransactionType.DEPOSIT, 1, 2, Money("5")),
        ]
        with pytest.raises(IntegrityError):
            engine.process_transactions(remaining)

        assert engine._ledger.get_transaction(2) is None
        assert engine.stats.processed == 2

    def test_undecodable_row_dropped(self, tmp_path):
        csv_file = tmp_path / "test.csv"
        csv_file.write_bytes(b"\n".join([
            b"type, client, tx, amount",
            b"deposit, 1, 1, 10",
            b"deposit, 1, 2, \xff\xfe",
            b"withdrawal, 1, 3, 4",
        ]))

        engine = PaymentsEngine()
        accounts = engine.process_file(str(csv_file))

        assert accounts[1].available == Money("6")
        assert engine.stats.processed == 2
        assert engine.stats.malformed == 1

    def test_oversized_field_dropped(self, tmp_path):
        csv_file = write_csv(
            tmp_path,
            "deposit, 1, 1, 10",
            "deposit, 1, 2, " + "9" * 200000,
            "withdrawal, 1, 3, 4",
        )

        engine = PaymentsEngine()
        accounts = engine.process_file(csv_file)

        assert accounts[1].available == Money("6")
        assert engine.stats.processed == 2
        assert engine.stats.malformed == 1

    def test_ids_and_amounts_must_be_plain_digits(self, tmp_path):
        csv_file = write_csv(
            tmp_path,
            "deposit, 1_0, 1, 5",
            "deposit, 1, 2_0, 5",
            "deposit, 1, +3, 5",
            "deposit, ١, 4, 5",
            "deposit, 1, 5, 1_0",
            "deposit, 1, 6, 2",
        )

        engine = PaymentsEngine()
        accounts = engine.process_file(csv_file)

        assert list(accounts) == [1]
        assert accounts[1].available == Money("2")
        assert engine.stats.malformed == 5
