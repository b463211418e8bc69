"""
Validation result containers.

``CheckResult`` is the lightweight ``{is_valid, errors}`` shape returned by
single-item checks (expression syntax, filter specification, variable
definition). ``ValidationResult`` is the field-tagged, multi-severity result
the report validator accumulates across its passes.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class CheckResult:
    """Outcome of a single-item check. Valid iff ``errors`` is empty."""

    errors: tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    @classmethod
    def of(cls, errors: Iterable[str]) -> CheckResult:
        return cls(tuple(errors))


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class ValidationMessage:
    """One diagnostic, tagged with the field path it concerns."""

    field: str
    message: str
    severity: Severity = Severity.ERROR

    def __str__(self) -> str:
        return f"{self.field}: {self.message}" if self.field else self.message

    def to_dict(self) -> dict[str, str]:
        return {
            "field": self.field,
            "message": self.message,
            "severity": self.severity.value,
        }


@dataclass
class ValidationResult:
    """
    Accumulated diagnostics for a report definition.

    Contract
    --------
    * ``is_valid`` returns ``True`` only when ``errors`` is empty.
    * Warnings and info messages never affect validity.
    * Message order is the order in which they were added.
    """

    errors: list[ValidationMessage] = field(default_factory=list)
    warnings: list[ValidationMessage] = field(default_factory=list)
    info: list[ValidationMessage] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, field_path: str, message: str) -> None:
        self.errors.append(ValidationMessage(field_path, message, Severity.ERROR))

    def add_warning(self, field_path: str, message: str) -> None:
        self.warnings.append(ValidationMessage(field_path, message, Severity.WARNING))

    def add_info(self, field_path: str, message: str) -> None:
        self.info.append(ValidationMessage(field_path, message, Severity.INFO))

    def merge(self, other: ValidationResult) -> ValidationResult:
        """Append another result's messages to this one, in place."""
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        self.info.extend(other.info)
        return self

    @classmethod
    def combine(cls, results: Iterable[ValidationResult]) -> ValidationResult:
        combined = cls()
        for result in results:
            combined.merge(result)
        return combined

    def has_warnings(self) -> bool:
        return len(self.warnings) > 0

    def errors_for_field(self, field_path: str) -> list[ValidationMessage]:
        """Errors whose field is ``field_path`` or nested beneath it."""
        return [
            e for e in self.errors
            if e.field == field_path
            or e.field.startswith(f"{field_path}.")
            or e.field.startswith(f"{field_path}[")
        ]

    def error_messages(self) -> list[str]:
        return [e.message for e in self.errors]

    def format_messages(self) -> str:
        """Human-readable multi-line summary, errors first."""
        lines: list[str] = []
        if self.errors:
            lines.append(f"Errors ({len(self.errors)}):")
            lines.extend(f"  - {e}" for e in self.errors)
        if self.warnings:
            lines.append(f"Warnings ({len(self.warnings)}):")
            lines.extend(f"  - {w}" for w in self.warnings)
        if self.info:
            lines.append(f"Info ({len(self.info)}):")
            lines.extend(f"  - {i}" for i in self.info)
        if not lines:
            lines.append("Report definition is valid")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "info": [i.to_dict() for i in self.info],
        }
