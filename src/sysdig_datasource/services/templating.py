"""
Template variable substitution.

The host owns variable resolution; this module defines the contract it
must satisfy (``TemplateSrv``) plus ``VariableTemplateSrv``, a minimal
implementation backed by a mapping of dashboard variables.
"""

from __future__ import annotations

import re
from typing import Any, Callable, Mapping, Protocol

from sysdig_datasource.models import ScopedVars
from sysdig_datasource.services import formatter

ValueFormatter = Callable[[Any], str]


class TemplateSrv(Protocol):
    def replace(
        self,
        target: str,
        scoped_vars: ScopedVars | None = None,
        fmt: ValueFormatter | None = None,
    ) -> str:
        ...


# $var, ${var} and [[var]]
_VARIABLE_PATTERN = re.compile(r"\$(\w+)|\$\{(\w+)\}|\[\[(\w+)\]\]")


def _unwrap(binding: Any) -> Any:
    if isinstance(binding, Mapping) and "value" in binding:
        return binding["value"]
    return binding


class VariableTemplateSrv:
    """Resolves variables from scoped vars first, then dashboard variables."""

    def __init__(self, variables: Mapping[str, Any] | None = None) -> None:
        self._variables = dict(variables or {})

    def replace(
        self,
        target: str,
        scoped_vars: ScopedVars | None = None,
        fmt: ValueFormatter | None = None,
    ) -> str:
        scoped_vars = scoped_vars or {}
        fmt = fmt or formatter.format_template_value

        def _substitute(match: re.Match[str]) -> str:
            name = match.group(1) or match.group(2) or match.group(3)
            if name in scoped_vars:
                return fmt(_unwrap(scoped_vars[name]))
            if name in self._variables:
                return fmt(_unwrap(self._variables[name]))
            return match.group(0)

        return _VARIABLE_PATTERN.sub(_substitute, target)


def replace(
    template_srv: TemplateSrv,
    raw: str | None,
    scoped_vars: ScopedVars | None = None,
) -> str | None:
    """Substitute variables, allowing multi-value expansion into a list."""
    if raw is None:
        return None
    return template_srv.replace(raw, scoped_vars, formatter.format_template_value)


def replace_single_match(
    template_srv: TemplateSrv,
    raw: str | None,
    scoped_vars: ScopedVars | None = None,
) -> str | None:
    """Substitute variables that must resolve to one value each.

    Raises ``TemplateError`` when a variable expands to several values.
    """
    if raw is None:
        return None
    return template_srv.replace(raw, scoped_vars, formatter.format_single_value)
