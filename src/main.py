import os
import sys
import logging
from typing import Dict, TextIO

from errors import IntegrityError
from models import ClientAccount
from payments_engine import PaymentsEngine

LOG_LEVEL_ENV = "PAYMENTS_LOG_LEVEL"

logger = logging.getLogger(__name__)


def configure_logging() -> int:
    """Configure root logging from PAYMENTS_LOG_LEVEL and return the level in use."""
    level_name = os.environ.get(LOG_LEVEL_ENV, "WARNING").upper()
    level = logging.getLevelName(level_name)
    known = isinstance(level, int)

    logging.basicConfig(
        level=level if known else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )
    if not known:
        logger.warning(f"Unknown log level {level_name!r} in {LOG_LEVEL_ENV}, using WARNING")
        return logging.WARNING
    return level


def write_accounts(accounts: Dict[int, ClientAccount], out: TextIO) -> None:
    """Write final account states as CSV, ordered by client id."""
    print("client,available,held,total,locked", file=out)
    for client_id in sorted(accounts.keys()):
        account = accounts[client_id]
        print(
            f"{client_id},"
            f"{account.available.format()},"
            f"{account.held.format()},"
            f"{account.total.format()},"
            f"{str(account.locked).lower()}",
            file=out,
        )


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if len(argv) != 1:
        print("Usage: payments-engine <input.csv>", file=sys.stderr)
        return 1

    configure_logging()

    engine = PaymentsEngine()
    try:
        accounts = engine.process_file(argv[0])
    except IntegrityError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"error: cannot read {argv[0]}: {e.strerror}", file=sys.stderr)
        return 1

    write_accounts(accounts, sys.stdout)
    return 0


if __name__ == "__main__":
    sys.exit(main())
