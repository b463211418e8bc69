"""
Pure domain layer.

This module contains immutable value objects and the movements table
with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Time/clock (except the injectable Clock itself)
- I/O
"""

from report_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from report_kernel.domain.movements import COLUMNS, MovementRow, MovementsTable
from report_kernel.domain.values import ZERO, amount_or_zero, normalize_amount, to_decimal

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "COLUMNS",
    "MovementRow",
    "MovementsTable",
    "ZERO",
    "amount_or_zero",
    "normalize_amount",
    "to_decimal",
]
