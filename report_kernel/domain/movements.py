"""
Movements -- Read-only ledger row collection.

Responsibility:
    The tabular "movements" dataset every report renders against: one row
    per ledger movement with its account hierarchy codes, names, statement
    type, fiscal year/period and amount.  ``MovementsTable`` exposes exactly
    what the engines need: filter-by-predicate, row count, column
    extraction, distinct values, and materialization to plain dicts.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Built in memory by
    callers or by ``MovementSelector`` from the database.

Invariants enforced:
    MOVEMENTS_READ_ONLY -- rows are frozen dataclasses held in a tuple;
    ``filter`` returns a new table and never reorders rows.

Failure modes:
    - ``UnknownColumnError`` for column names outside ``COLUMNS``.
    - ``TypeError``/``ValueError`` from ``from_records`` for non-numeric
      amounts or years.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import asdict, dataclass, fields
from decimal import Decimal
from typing import Any

from report_kernel.domain.values import to_decimal
from report_kernel.exceptions import UnknownColumnError


@dataclass(frozen=True, slots=True)
class MovementRow:
    """A single ledger movement."""

    code1: str | None = None
    code2: str | None = None
    code3: str | None = None
    name1: str | None = None
    name2: str | None = None
    name3: str | None = None
    statement_type: str | None = None
    account_code: str | None = None
    year: int | None = None
    period: str | None = None
    movement_amount: Decimal | None = None

    def value(self, column: str) -> Any:
        """Return the value of a named column."""
        if column not in COLUMNS:
            raise UnknownColumnError(column, COLUMNS)
        return getattr(self, column)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> MovementRow:
        """Build a row from a mapping, ignoring unknown keys."""
        year = data.get("year")
        period = data.get("period")
        return cls(
            code1=_text(data.get("code1")),
            code2=_text(data.get("code2")),
            code3=_text(data.get("code3")),
            name1=_text(data.get("name1")),
            name2=_text(data.get("name2")),
            name3=_text(data.get("name3")),
            statement_type=_text(data.get("statement_type")),
            account_code=_text(data.get("account_code")),
            year=int(year) if year not in (None, "") else None,
            period=str(period) if period not in (None, "") else None,
            movement_amount=to_decimal(data.get("movement_amount")),
        )


COLUMNS: tuple[str, ...] = tuple(f.name for f in fields(MovementRow))


def _text(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


class MovementsTable:
    """
    Immutable, ordered collection of movement rows.

    Contract:
        Row order is the order the rows were supplied in; "first" and
        "last" aggregates depend on it.

    Guarantees:
        - ``filter`` never returns more rows than the table holds.
        - The table itself is never mutated.
    """

    __slots__ = ("_rows",)

    def __init__(self, rows: Iterable[MovementRow] = ()):
        self._rows: tuple[MovementRow, ...] = tuple(rows)

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> MovementsTable:
        """Build a table from plain mappings (CSV rows, JSON objects, ...)."""
        return cls(MovementRow.from_mapping(record) for record in records)

    @classmethod
    def empty(cls) -> MovementsTable:
        return cls()

    def filter(self, predicate: Callable[[MovementRow], bool]) -> MovementsTable:
        """Return a new table with the rows for which predicate is true."""
        return MovementsTable(row for row in self._rows if predicate(row))

    def num_rows(self) -> int:
        return len(self._rows)

    def column(self, name: str) -> list[Any]:
        """Return every value of one column, in row order."""
        if name not in COLUMNS:
            raise UnknownColumnError(name, COLUMNS)
        return [getattr(row, name) for row in self._rows]

    def unique(self, name: str) -> list[Any]:
        """Distinct values of one column in first-seen order."""
        return list(dict.fromkeys(self.column(name)))

    def to_dicts(self) -> list[dict[str, Any]]:
        return [asdict(row) for row in self._rows]

    @property
    def rows(self) -> tuple[MovementRow, ...]:
        return self._rows

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[MovementRow]:
        return iter(self._rows)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MovementsTable):
            return NotImplemented
        return self._rows == other._rows

    def __hash__(self) -> int:
        return hash(self._rows)

    def __repr__(self) -> str:
        return f"MovementsTable(num_rows={len(self._rows)})"
