"""Value formatting for labels and template variables."""

from __future__ import annotations

from typing import Any

from sysdig_datasource.core.errors import TemplateError

NULL_LABEL = "<NA>"


def format_label_value(value: Any) -> str:
    """Display text for a label value in a variable drop-down."""
    if value is None:
        return NULL_LABEL
    return str(value)


def _quote(value: Any) -> str:
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def format_template_value(value: Any) -> str:
    """Render a variable value inside a scope filter.

    Multi-values become a comma-separated list of quoted strings, ready for
    ``label in ($var)``; single values are inserted as-is.
    """
    if isinstance(value, (list, tuple)):
        return ", ".join(_quote(v) for v in value)
    return str(value)


def format_single_value(value: Any) -> str:
    """Render a variable value where exactly one value is allowed."""
    if isinstance(value, (list, tuple)):
        if len(value) != 1:
            raise TemplateError(
                "Variable resolves to multiple values where a single value is required",
                {"values": list(value)},
            )
        return str(value[0])
    return str(value)
