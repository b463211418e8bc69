"""
Declarative base for the tables the report engine reads.

Amounts are mapped to ``Numeric(38, 9)`` and come back as ``Decimal``, never
float.  Every table gets an integer ``id`` so movement insertion order can
be recovered on any backend.
"""

from decimal import Decimal
from typing import ClassVar

from sqlalchemy import Integer, Numeric
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
    }

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
