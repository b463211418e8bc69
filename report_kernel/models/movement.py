"""
Module: report_kernel.models.movement
Responsibility: ORM model for ledger movements, the source rows every
    financial statement aggregates.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - movement_amount is Numeric(38, 9) via the Base type map (never float).
    - Rows are read in ``id`` order; ``first``/``last`` aggregates depend on it.
"""

from decimal import Decimal

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from report_kernel.db.base import Base


class Movement(Base):
    """One ledger movement: account hierarchy, period and signed amount."""

    __tablename__ = "movements"

    __table_args__ = (
        Index("idx_movement_year", "year"),
        Index("idx_movement_codes", "code1", "code2", "code3"),
    )

    code1: Mapped[str | None] = mapped_column(String(50), nullable=True)
    code2: Mapped[str | None] = mapped_column(String(50), nullable=True)
    code3: Mapped[str | None] = mapped_column(String(50), nullable=True)
    name1: Mapped[str | None] = mapped_column(String(200), nullable=True)
    name2: Mapped[str | None] = mapped_column(String(200), nullable=True)
    name3: Mapped[str | None] = mapped_column(String(200), nullable=True)
    statement_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    account_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    year: Mapped[int | None] = mapped_column(nullable=True)
    period: Mapped[str | None] = mapped_column(String(20), nullable=True)
    movement_amount: Mapped[Decimal | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return (
            f"<Movement {self.id} {self.account_code} "
            f"{self.year}/{self.period} {self.movement_amount}>"
        )
