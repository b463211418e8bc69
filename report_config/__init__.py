"""
report_config -- report definition schema, loading and validation.

Responsibility:
    Turns authored report definition documents (YAML/JSON) into validated,
    typed ``ReportDefinition`` objects.  Also owns the two small languages
    those documents embed: calculated-row expressions and filter
    specifications.

Architecture position:
    Configuration -- sits above ``report_kernel`` and below
    ``report_engines`` / ``report_modules``.  The kernel never imports from
    this package.

Invariants enforced:
    - ``load_report_definition`` only returns definitions that passed all
      four validator passes.
    - Same document always produces the same checksum.

Failure modes:
    - ``FileNotFoundError`` -- definition file or bundled report missing.
    - ``InvalidReportDefinitionError`` -- validation errors; carries the
      full ``ValidationResult``.

Audit relevance:
    Every successful load emits a ``REPORT_DEFINITION_TRACE`` log entry with
    report_id, version, statement_type and checksum, tying every rendered
    statement to the exact definition that produced it.
"""

from __future__ import annotations

from pathlib import Path

from report_config.loader import load_report_file, parse_report_definition
from report_config.schema import ReportDefinition
from report_config.validator import ReportValidator
from report_kernel.exceptions import InvalidReportDefinitionError, ReportNotFoundError
from report_kernel.logging_config import get_logger

_logger = get_logger("config")

_DEFAULT_SETS_DIR = Path(__file__).parent / "sets"


def load_report_definition(path: Path | str) -> ReportDefinition:
    """Load, validate and parse a report definition file.

    Raises:
        FileNotFoundError: if ``path`` does not exist.
        InvalidReportDefinitionError: if the validator reports errors.
    """
    path = Path(path)
    data = load_report_file(path)

    validation = ReportValidator().validate(data)
    if not validation.is_valid:
        raise InvalidReportDefinitionError(str(data.get("reportId", path.stem)), validation)

    definition = parse_report_definition(data)

    _logger.info(
        "REPORT_DEFINITION_TRACE",
        extra={
            "trace_type": "REPORT_DEFINITION_TRACE",
            "report_id": definition.report_id,
            "version": definition.version,
            "statement_type": definition.statement_type.value,
            "checksum": definition.checksum,
            "layout_item_count": len(definition.layout),
            "variable_count": len(definition.variables),
            "warning_count": len(validation.warnings),
            "source": str(path),
        },
    )
    return definition


def list_bundled_reports(sets_dir: Path | None = None) -> list[str]:
    """Report ids of the bundled definitions, sorted."""
    directory = sets_dir or _DEFAULT_SETS_DIR
    if not directory.is_dir():
        return []
    return sorted(
        p.stem for p in directory.iterdir() if p.suffix in (".yaml", ".yml", ".json")
    )


def load_bundled_report(report_id: str, sets_dir: Path | None = None) -> ReportDefinition:
    """Load one bundled definition by id.

    Raises:
        ReportNotFoundError: if no bundled file has that id.
    """
    directory = sets_dir or _DEFAULT_SETS_DIR
    for suffix in (".yaml", ".yml", ".json"):
        candidate = directory / f"{report_id}{suffix}"
        if candidate.exists():
            return load_report_definition(candidate)
    raise ReportNotFoundError(report_id)


__all__ = [
    "ReportDefinition",
    "ReportValidator",
    "list_bundled_reports",
    "load_bundled_report",
    "load_report_definition",
]
