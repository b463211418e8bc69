"""ORM models read by the report engine."""

from report_kernel.models.movement import Movement

__all__ = ["Movement"]
