"""
Typed Exception Hierarchy for the Report Engine.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Report authors and callers must be able to tell a broken definition from a
broken input from a broken ledger. Generic exceptions like ValueError force
callers to parse error messages, which is fragile and hard to test.

Every error therefore has:
  1. A TYPED exception class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA attributes (not just a message string)

Example - WRONG way to handle errors:
    try:
        renderer.render_statement(report, table, periods)
    except Exception as e:
        if "Undefined variable" in str(e):  # FRAGILE
            ...

Example - RIGHT way:
    try:
        renderer.render_statement(report, table, periods)
    except LayoutProcessingError as e:
        log.warning("row %s failed", e.layout_order)
        if isinstance(e.__cause__, ExpressionEvaluationError):
            show_expression_error(e.__cause__.expression)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ReportEngineError (base)
    |
    +-- InvalidInputError                      caller bug, never retried
    |   +-- InvalidExpressionError
    |   +-- InvalidContextError
    |   +-- TableRequiredError
    |   +-- InvalidFilterSpecificationError
    |   +-- VariablesMustBeObjectError
    |   +-- MovementsDataRequiredError
    |   +-- InvalidVariableDefinitionError
    |   +-- MissingFieldError
    |   +-- InvalidLayoutItemError
    |   +-- InvalidPeriodOptionsError
    |   +-- UnknownColumnError
    |
    +-- ExpressionSyntaxError                  surfaced verbatim to authors
    |
    +-- UndefinedReferenceError
    |   +-- UndefinedVariableError
    |   +-- UndefinedOrderReferenceError
    |   +-- VariableNotFoundError
    |
    +-- UnsupportedOperationError
    |   +-- UnsupportedAggregateFunctionError
    |
    +-- CircularDependencyError
    |
    +-- RangeViolationError
    |   +-- InvalidSubtotalRangeError
    |
    +-- ReportRenderingError                   wraps a cause (raise ... from)
    |   +-- FilterApplicationError
    |   +-- VariableResolutionError
    |   +-- ExpressionEvaluationError
    |   +-- LayoutProcessingError
    |
    +-- ReportDefinitionError
        +-- InvalidReportDefinitionError
        +-- ReportNotFoundError

===============================================================================
DESIGN DECISIONS
===============================================================================

1. Division by zero is NOT an exception anywhere in this hierarchy. It is
   modelled as "no value" (None) by the expression evaluator.

2. The validator never raises. It collects every problem into a
   ValidationResult; InvalidReportDefinitionError only exists so that
   callers who refuse invalid definitions can carry that result upward.

3. Wrapping errors keep the original as ``__cause__`` and embed its message,
   so ``pytest.raises(..., match=...)`` works on the outermost error.
"""


class ReportEngineError(Exception):
    """
    Base exception for all report engine errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "REPORT_ENGINE_ERROR"


# Invalid input (caller bug)


class InvalidInputError(ReportEngineError):
    """Base exception for malformed inputs."""

    code: str = "INVALID_INPUT"


class InvalidExpressionError(InvalidInputError):
    """Expression argument is not a non-empty string."""

    code: str = "INVALID_EXPRESSION"

    def __init__(self, expression: object):
        self.expression = expression
        super().__init__("Expression must be a non-empty string")


class InvalidContextError(InvalidInputError):
    """Evaluation context is not a mapping."""

    code: str = "INVALID_CONTEXT"

    def __init__(self, context_type: str):
        self.context_type = context_type
        super().__init__(f"Context must be an object, got {context_type}")


class TableRequiredError(InvalidInputError):
    """A movements table was required but None was supplied."""

    code: str = "TABLE_REQUIRED"

    def __init__(self) -> None:
        super().__init__("Table is required")


class InvalidFilterSpecificationError(InvalidInputError):
    """Filter specification failed validation."""

    code: str = "INVALID_FILTER_SPECIFICATION"

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__(f"Invalid filter specification: {', '.join(self.errors)}")


class VariablesMustBeObjectError(InvalidInputError):
    """Variable definitions were not supplied as a mapping."""

    code: str = "VARIABLES_MUST_BE_OBJECT"

    def __init__(self) -> None:
        super().__init__("Variables must be an object")


class MovementsDataRequiredError(InvalidInputError):
    """Variable resolution was attempted without a movements table."""

    code: str = "MOVEMENTS_DATA_REQUIRED"

    def __init__(self) -> None:
        super().__init__("Movements data is required")


class InvalidVariableDefinitionError(InvalidInputError):
    """A variable definition failed validation."""

    code: str = "INVALID_VARIABLE_DEFINITION"

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__(f"Invalid variable definition: {', '.join(self.errors)}")


class MissingFieldError(InvalidInputError):
    """A required field is absent."""

    code: str = "MISSING_FIELD"

    def __init__(self, field: str, context: str, message: str | None = None):
        self.field = field
        self.context = context
        super().__init__(message or f"Missing required field '{field}' in {context}")


class InvalidLayoutItemError(InvalidInputError):
    """A layout item has an unusable type or field value."""

    code: str = "INVALID_LAYOUT_ITEM"

    def __init__(self, field: str, value: object, expected: str):
        self.field = field
        self.value = value
        self.expected = expected
        super().__init__(
            f"Invalid layout item {field}: {value!r} (expected {expected})"
        )


class InvalidPeriodOptionsError(InvalidInputError):
    """Period options are malformed (no years, non-integer years)."""

    code: str = "INVALID_PERIOD_OPTIONS"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid period options: {reason}")


class UnknownColumnError(InvalidInputError):
    """A movements table column does not exist."""

    code: str = "UNKNOWN_COLUMN"

    def __init__(self, column: str, available: tuple[str, ...]):
        self.column = column
        self.available = available
        super().__init__(
            f"Column '{column}' not found. Available columns: {', '.join(available)}"
        )


# Syntax


class ExpressionSyntaxError(ReportEngineError):
    """Expression text cannot be tokenized or parsed."""

    code: str = "EXPRESSION_SYNTAX"

    def __init__(self, message: str, expression: str = "", position: int | None = None):
        self.expression = expression
        self.position = position
        super().__init__(message)


# Undefined references


class UndefinedReferenceError(ReportEngineError):
    """Base exception for unknown variable or order references."""

    code: str = "UNDEFINED_REFERENCE"


class UndefinedVariableError(UndefinedReferenceError):
    """An identifier in an expression is not in the evaluation context."""

    code: str = "UNDEFINED_VARIABLE"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Undefined variable: {name}")


class UndefinedOrderReferenceError(UndefinedReferenceError):
    """An @N reference in an expression has no rendered row."""

    code: str = "UNDEFINED_ORDER_REFERENCE"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Undefined order reference: {name}")


class VariableNotFoundError(UndefinedReferenceError):
    """A variable layout item names a variable that was not resolved."""

    code: str = "VARIABLE_NOT_FOUND"

    def __init__(self, variable_name: str, report_id: str = "unknown"):
        self.variable_name = variable_name
        self.report_id = report_id
        super().__init__(f"Variable not found: {variable_name}")


# Unsupported operations


class UnsupportedOperationError(ReportEngineError):
    """Base exception for operations the engine does not implement."""

    code: str = "UNSUPPORTED_OPERATION"


class UnsupportedAggregateFunctionError(UnsupportedOperationError):
    """Aggregate name outside the supported set."""

    code: str = "UNSUPPORTED_AGGREGATE_FUNCTION"

    def __init__(self, aggregate: object):
        self.aggregate = aggregate
        super().__init__(f"Unsupported aggregate function: {aggregate}")


# Cycles


class CircularDependencyError(ReportEngineError):
    """A variable was re-entered while already being resolved."""

    code: str = "CIRCULAR_DEPENDENCY"

    def __init__(self, chain: list[str]):
        self.chain = tuple(chain)
        super().__init__(f"Circular dependency detected: {' -> '.join(chain)}")


# Range violations


class RangeViolationError(ReportEngineError):
    """Base exception for ordering/range rule violations."""

    code: str = "RANGE_VIOLATION"


class InvalidSubtotalRangeError(RangeViolationError):
    """Subtotal range with from > to."""

    code: str = "INVALID_SUBTOTAL_RANGE"

    def __init__(self, from_order: int, to_order: int):
        self.from_order = from_order
        self.to_order = to_order
        super().__init__(
            f"Invalid subtotal range: {from_order}-{to_order} (from must be <= to)"
        )


# Rendering (wrapping errors)


class ReportRenderingError(ReportEngineError):
    """Base exception for render-time failures that wrap a cause."""

    code: str = "REPORT_RENDERING_ERROR"


class FilterApplicationError(ReportRenderingError):
    """Applying a compiled filter to the movements table failed."""

    code: str = "FILTER_APPLICATION_FAILED"

    def __init__(self, filter_source: str, reason: str):
        self.filter_source = filter_source
        self.reason = reason
        super().__init__(f"Failed to apply filter: {reason}. Filter: {filter_source}")


class VariableResolutionError(ReportRenderingError):
    """Resolving a named variable failed."""

    code: str = "VARIABLE_RESOLUTION_FAILED"

    def __init__(self, variable_name: str, reason: str):
        self.variable_name = variable_name
        self.reason = reason
        super().__init__(f"Failed to resolve variable '{variable_name}': {reason}")


class ExpressionEvaluationError(ReportRenderingError):
    """Evaluating a calculated row's expression failed."""

    code: str = "EXPRESSION_EVALUATION_FAILED"

    def __init__(self, expression: str, reason: str):
        self.expression = expression
        self.reason = reason
        super().__init__(f"Failed to evaluate expression: {reason} (expression: {expression})")


class LayoutProcessingError(ReportRenderingError):
    """Processing one layout item failed."""

    code: str = "LAYOUT_PROCESSING_FAILED"

    def __init__(self, layout_order: object, layout_type: str, reason: str):
        self.layout_order = layout_order
        self.layout_type = layout_type
        self.reason = reason
        super().__init__(
            f"Failed to process layout item {layout_order} ({layout_type}): {reason}"
        )


# Report definitions


class ReportDefinitionError(ReportEngineError):
    """A report definition document cannot be turned into a typed definition."""

    code: str = "REPORT_DEFINITION_ERROR"

    def __init__(self, report_id: str, reason: str):
        self.report_id = report_id
        self.reason = reason
        super().__init__(f"Invalid report definition '{report_id}': {reason}")


class InvalidReportDefinitionError(ReportDefinitionError):
    """A report definition failed validation.

    Carries the full ValidationResult so callers can show every problem.
    """

    code: str = "INVALID_REPORT_DEFINITION"

    def __init__(self, report_id: str, validation_result: object):
        self.validation_result = validation_result
        errors = getattr(validation_result, "errors", [])
        super().__init__(report_id, f"{len(errors)} validation error(s)")


class ReportNotFoundError(ReportDefinitionError):
    """No report definition exists for the requested identifier."""

    code: str = "REPORT_NOT_FOUND"

    def __init__(self, report_id: str):
        super().__init__(report_id, "report not found")
