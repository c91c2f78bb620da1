"""
CSV boundary of the ledger.

Input rows look like ``type,client,tx,amount``; the amount column may be
empty or missing entirely for disputes, resolves and chargebacks. Output is
one row per account with balances fixed to four decimal places.
"""

import csv
from typing import IO, Iterable, Iterator, List, Optional

from pydantic import ValidationError

from errors import InputError
from models import OUTPUT_FIELDS, Account, Transaction

REQUIRED_COLUMNS = ("type", "client", "tx")


class CsvTransactionReader:
    """Iterates over the transactions of a CSV file, validating each row."""

    def __init__(self, path: str):
        self.path = path
        self._file: Optional[IO[str]] = None

    def __enter__(self) -> "CsvTransactionReader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

    def __iter__(self) -> Iterator[Transaction]:
        if self._file is not None:
            raise RuntimeError(f"{self.path} is already being read")
        self._file = open(self.path, newline="", encoding="utf-8")
        reader = csv.reader(self._file, skipinitialspace=True)
        try:
            header = self._read_header(reader)
            for row in reader:
                fields = [field.strip() for field in row]
                if not any(fields):
                    continue
                yield self._parse_row(header, fields, reader.line_num)
        except csv.Error as e:
            raise InputError(f"Invalid CSV data: {e}", reader.line_num) from e
        except UnicodeDecodeError as e:
            # the decoder works on whole chunks, so no reliable line number
            raise InputError(f"Input is not valid UTF-8: {e}") from e
        finally:
            self.close()

    @staticmethod
    def _read_header(reader) -> List[str]:
        try:
            header = [name.strip().lower() for name in next(reader)]
        except StopIteration:
            raise InputError("Missing header row", 1)

        missing = [name for name in REQUIRED_COLUMNS if name not in header]
        if missing:
            raise InputError(f"Header is missing columns: {', '.join(missing)}", 1)
        return header

    @staticmethod
    def _parse_row(header: List[str], fields: List[str], line: int) -> Transaction:
        record = dict(zip(header, fields))
        try:
            return Transaction(
                type=record.get("type"),
                client_id=record.get("client"),
                id=record.get("tx"),
                amount=record.get("amount") or None,
            )
        except ValidationError as e:
            errors = "; ".join(
                f"{'.'.join(str(part) for part in err['loc']) or 'record'}: {err['msg']}"
                for err in e.errors()
            )
            raise InputError(f"Invalid transaction record: {errors}", line) from e


def write_accounts(accounts: Iterable[Account], out: IO[str], sort: bool = True) -> int:
    """Write an account snapshot. Returns the number of rows written."""
    if sort:
        accounts = sorted(accounts, key=lambda account: account.client_id)

    writer = csv.DictWriter(out, fieldnames=OUTPUT_FIELDS, lineterminator="\n")
    writer.writeheader()
    rows = 0
    for account in accounts:
        writer.writerow(account.to_row())
        rows += 1
    out.flush()
    return rows
