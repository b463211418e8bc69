"""
Kernel Invariants Contract.

These invariants are structural law for every component that renders or
validates a report definition. They are not configurable.

This module exists solely to declare these invariants explicitly. The
enforcement is distributed across MovementsTable, ExpressionEvaluator,
VariableResolver, ReportRenderer and ReportValidator.
"""

from enum import Enum, unique


@unique
class KernelInvariant(str, Enum):
    """Non-configurable invariants enforced by the engine.

    Each value names one structural guarantee. Report definitions influence
    *what* gets rendered, but never *whether* these rules apply.
    """

    MOVEMENTS_READ_ONLY = "movements_read_only"
    """The movements table is never mutated. MovementsTable is an immutable
    tuple of frozen rows; filtering always returns a new table."""

    UNIQUE_LAYOUT_ORDER = "unique_layout_order"
    """Layout order values are unique within a report definition. Enforced
    by ReportValidator.validate_business_rules."""

    BACKWARD_ORDER_REFERENCES = "backward_order_references"
    """Expressions and subtotals only see rows rendered earlier (lower
    order). Enforced by the ReportRenderer row map threading."""

    DETERMINISTIC_RENDERING = "deterministic_rendering"
    """Identical inputs produce identical outputs, regardless of cache
    state. Caches are instance-owned and keyed by exact input text."""

    DIVISION_BY_ZERO_IS_BLANK = "division_by_zero_is_blank"
    """Division by zero yields no value (None), never an exception."""


# All invariants as a frozenset for programmatic checks.
ALL_KERNEL_INVARIANTS: frozenset[KernelInvariant] = frozenset(KernelInvariant)

# The kernel package may not import from these packages.
# This is enforced by tests/architecture/test_import_boundaries.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "report_config",
    "report_engines",
    "report_modules",
)
