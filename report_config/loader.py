"""
Report Definition Loader (``report_config.loader``).

Responsibility
--------------
Reads report definition documents (YAML or JSON) and parses them into the
typed ``report_config.schema`` dataclasses.  Parsing is strict about
shape: a document that cannot become a ``ReportDefinition`` raises a typed
error naming the offending field.  Business rules, expression syntax and
cross-references are the validator's job, not the loader's.

Architecture position
---------------------
**Config layer**.  Depends on ``report_kernel.exceptions`` and
``report_config.schema`` only.  Never imports engines or modules.

Failure modes
-------------
* Missing file  -> ``FileNotFoundError`` propagates.
* Malformed YAML/JSON  -> ``yaml.YAMLError`` propagates.
* Document is not a mapping  -> ``ReportDefinitionError``.
* Missing required keys  -> ``MissingFieldError``.
* Enum or range violations  -> ``InvalidLayoutItemError``.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from report_config.schema import (
    LAYOUT_ITEM_CLASSES,
    AggregateFunction,
    CalculatedItem,
    CategoryItem,
    FormatOptions,
    FormatType,
    LayoutItem,
    LayoutType,
    ReportDefinition,
    StatementType,
    StyleType,
    SubtotalItem,
    VariableDefinition,
    VariableItem,
)
from report_kernel.exceptions import (
    InvalidLayoutItemError,
    MissingFieldError,
    ReportDefinitionError,
)

REQUIRED_REPORT_FIELDS: tuple[str, ...] = (
    "reportId",
    "name",
    "version",
    "statementType",
    "layout",
)


def load_report_file(path: Path) -> dict[str, Any]:
    """
    Load a YAML or JSON report definition document.

    JSON is read through the YAML parser (JSON is a YAML subset).

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file is not valid YAML/JSON.
        ReportDefinitionError: if the document is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ReportDefinitionError(
            Path(path).stem, f"document must be a mapping, got {type(data).__name__}"
        )
    return data


def _enum(enum_cls: type, value: Any, field_name: str) -> Any:
    try:
        return enum_cls(value)
    except ValueError:
        expected = "one of: " + ", ".join(m.value for m in enum_cls)
        raise InvalidLayoutItemError(field_name, value, expected) from None


def parse_variable(name: str, data: Mapping[str, Any]) -> VariableDefinition:
    """Parse one entry of the ``variables`` section."""
    if not isinstance(data, Mapping):
        raise ReportDefinitionError(name, "variable definition must be a mapping")
    if "filter" not in data:
        raise MissingFieldError("filter", f"variable '{name}'")
    aggregate_raw = data.get("aggregate", "sum")
    try:
        aggregate = AggregateFunction.parse(aggregate_raw)
    except ValueError:
        raise InvalidLayoutItemError(
            "aggregate",
            aggregate_raw,
            "one of: " + ", ".join(a.value for a in AggregateFunction),
        ) from None
    return VariableDefinition(
        filter=dict(data["filter"] or {}),
        aggregate=aggregate,
        description=data.get("description", ""),
    )


def parse_layout_item(data: Mapping[str, Any]) -> LayoutItem:
    """Parse one layout item, dispatching on its ``type``."""
    if not isinstance(data, Mapping):
        raise InvalidLayoutItemError("item", data, "a mapping")
    if "type" not in data:
        raise MissingFieldError("type", f"layout item {data.get('order')}")
    if "order" not in data:
        raise MissingFieldError("order", "layout item")

    layout_type = _enum(LayoutType, data["type"], "type")
    cls = LAYOUT_ITEM_CLASSES[layout_type]

    common: dict[str, Any] = {
        "order": data["order"],
        "label": data.get("label") or "",
        "format": _enum(FormatType, data["format"], "format") if data.get("format") else None,
        "style": _enum(StyleType, data["style"], "style") if data.get("style") else StyleType.NORMAL,
        "indent": data.get("indent", 0),
    }

    if cls is VariableItem:
        return VariableItem(**common, variable=data.get("variable") or "")
    if cls is CalculatedItem:
        return CalculatedItem(**common, expression=data.get("expression") or "")
    if cls is CategoryItem:
        raw_filter = data.get("filter")
        return CategoryItem(
            **common, filter=dict(raw_filter) if raw_filter is not None else None
        )
    if cls is SubtotalItem:
        return SubtotalItem(**common, from_order=data.get("from"), to_order=data.get("to"))
    return cls(**common)


def parse_formatting(data: Mapping[str, Any] | None) -> dict[FormatType, FormatOptions]:
    """Parse the optional ``formatting`` block into per-type options."""
    if not data:
        return {}
    return {
        _enum(FormatType, key, "formatting"): FormatOptions.from_dict(value)
        for key, value in data.items()
    }


def parse_report_definition(data: Mapping[str, Any]) -> ReportDefinition:
    """
    Parse a raw report definition mapping.

    Postconditions:
        - Returns a frozen ``ReportDefinition`` whose ``checksum`` is the
          SHA-256 of the canonical JSON form of ``data``.

    Raises:
        MissingFieldError: a required top-level field is absent.
        InvalidLayoutItemError: an enum value or range is invalid.
    """
    if not isinstance(data, Mapping):
        raise ReportDefinitionError("unknown", "report definition must be a mapping")
    for field_name in REQUIRED_REPORT_FIELDS:
        if field_name not in data or data[field_name] in (None, ""):
            raise MissingFieldError(field_name, "report definition")

    variables_raw = data.get("variables") or {}
    if not isinstance(variables_raw, Mapping):
        raise ReportDefinitionError(str(data["reportId"]), "variables must be a mapping")
    layout_raw = data["layout"]
    if not isinstance(layout_raw, list):
        raise ReportDefinitionError(str(data["reportId"]), "layout must be a list")

    return ReportDefinition(
        report_id=str(data["reportId"]),
        name=str(data["name"]),
        version=str(data["version"]),
        statement_type=_enum(StatementType, data["statementType"], "statementType"),
        layout=tuple(parse_layout_item(item) for item in layout_raw),
        variables={name: parse_variable(name, v) for name, v in variables_raw.items()},
        formatting=parse_formatting(data.get("formatting")),
        description=data.get("description") or "",
        metadata=dict(data.get("metadata") or {}),
        checksum=compute_checksum(dict(data)),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Postconditions:
        - Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def dump_layout_item(item: LayoutItem) -> dict[str, Any]:
    """Serialize a layout item back to its document form."""
    data: dict[str, Any] = {"order": item.order, "type": item.type.value}
    if item.label:
        data["label"] = item.label
    if item.format is not None:
        data["format"] = item.format.value
    data["style"] = item.style.value
    data["indent"] = item.indent
    if isinstance(item, VariableItem):
        data["variable"] = item.variable
    elif isinstance(item, CalculatedItem):
        data["expression"] = item.expression
    elif isinstance(item, CategoryItem):
        data["filter"] = dict(item.filter or {})
    elif isinstance(item, SubtotalItem):
        data["from"] = item.from_order
        data["to"] = item.to_order
    return data


def dump_report_definition(definition: ReportDefinition) -> dict[str, Any]:
    """Serialize a typed definition back to its document form (camelCase keys)."""
    data: dict[str, Any] = {
        "reportId": definition.report_id,
        "name": definition.name,
        "version": definition.version,
        "statementType": definition.statement_type.value,
        "variables": {
            name: {
                "filter": dict(var.filter),
                "aggregate": var.aggregate.value,
                **({"description": var.description} if var.description else {}),
            }
            for name, var in definition.variables.items()
        },
        "layout": [dump_layout_item(item) for item in definition.layout],
    }
    if definition.formatting:
        data["formatting"] = {
            fmt.value: options.to_dict() for fmt, options in definition.formatting.items()
        }
    if definition.description:
        data["description"] = definition.description
    if definition.metadata:
        data["metadata"] = dict(definition.metadata)
    return data
