"""
Module: report_kernel.selectors.movement_selector
Responsibility: Load movements from the database into an in-memory
    ``MovementsTable``.  Optionally narrows the query by year and by an
    extra SQL clause (a compiled filter rendered against ``columns()``).
Architecture position: Kernel > Selectors.  May import from models/,
    domain/ and selectors/base.py.  MUST NOT import from report_config,
    report_engines or report_modules.

Invariants enforced:
    MOVEMENTS_READ_ONLY -- queries only; no session mutation.
    Rows are returned in insertion (``id``) order.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.sql.elements import ColumnElement

from report_kernel.domain.movements import COLUMNS, MovementRow, MovementsTable
from report_kernel.domain.values import normalize_amount
from report_kernel.logging_config import get_logger
from report_kernel.models.movement import Movement
from report_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.movement")


class MovementSelector(BaseSelector[Movement]):
    """
    Selector producing ``MovementsTable`` snapshots.

    Guarantees:
        - Returned tables are detached from the session.
        - Amounts come back as Decimal without the column's trailing zeros.
    """

    @staticmethod
    def columns() -> Mapping[str, Any]:
        """Column objects by movement column name, for building clauses."""
        return {name: getattr(Movement, name) for name in COLUMNS}

    def load_table(
        self,
        years: Iterable[int] | None = None,
        where: ColumnElement[bool] | None = None,
    ) -> MovementsTable:
        """
        Load movements, optionally restricted to ``years`` and ``where``.

        Args:
            years: Fiscal years to load; None loads every year.
            where: Additional SQLAlchemy boolean clause.

        Returns:
            MovementsTable in insertion order.
        """
        stmt = select(Movement)
        year_list = list(years) if years is not None else None
        if year_list is not None:
            stmt = stmt.where(Movement.year.in_(year_list))
        if where is not None:
            stmt = stmt.where(where)
        stmt = stmt.order_by(Movement.id)

        rows = [self._to_row(m) for m in self.session.scalars(stmt)]
        logger.info(
            "movements_loaded",
            extra={
                "row_count": len(rows),
                "years": year_list,
                "filtered": where is not None,
            },
        )
        return MovementsTable(rows)

    def count(self) -> int:
        """Total number of stored movements."""
        return self.session.scalar(select(func.count()).select_from(Movement)) or 0

    @staticmethod
    def _to_row(movement: Movement) -> MovementRow:
        return MovementRow(
            code1=movement.code1,
            code2=movement.code2,
            code3=movement.code3,
            name1=movement.name1,
            name2=movement.name2,
            name3=movement.name3,
            statement_type=movement.statement_type,
            account_code=movement.account_code,
            year=movement.year,
            period=movement.period,
            movement_amount=normalize_amount(movement.movement_amount),
        )
