"""
Metrics catalog: metric/label discovery and template-variable queries.

Variable queries use a small function syntax::

    metrics(<regex>)
    label_names(<regex>)
    label_values(<label>, scope="<scope expression>", limit=<n>)
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

import structlog

from sysdig_datasource.clients.base import ApiRequest
from sysdig_datasource.config.backend import BackendConfiguration
from sysdig_datasource.core.errors import ValidationError
from sysdig_datasource.models import MetricDescriptor, UserTimeRange
from sysdig_datasource.services import api, templating
from sysdig_datasource.services.templating import TemplateSrv

logger = structlog.get_logger()

METRICS_URL = "api/data/metrics"
METADATA_URL = "api/data/entity/metadata"
DEFAULT_LABEL_VALUES_LIMIT = 100
MICROS = 1_000_000

_FUNCTION_PATTERN = re.compile(r"^\s*(\w+)\s*\((.*)\)\s*$", re.DOTALL)
_KEYWORD_PATTERN = re.compile(r"^\s*(\w+)\s*=\s*(.*)$", re.DOTALL)


@dataclass
class CatalogQuery:
    """A parsed variable query."""

    function: str
    args: list[str] = field(default_factory=list)
    kwargs: dict[str, str] = field(default_factory=dict)


def _split_args(text: str) -> list[str]:
    parts: list[str] = []
    current: list[str] = []
    quote: str | None = None
    for char in text:
        if quote:
            current.append(char)
            if char == quote:
                quote = None
        elif char in ("'", '"'):
            quote = char
            current.append(char)
        elif char == ",":
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    if quote:
        raise ValidationError("Unterminated string in query", {"query": text})
    parts.append("".join(current))
    return [part.strip() for part in parts if part.strip()]


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def parse_query(query: str) -> CatalogQuery:
    match = _FUNCTION_PATTERN.match(query)
    if not match:
        raise ValidationError("Invalid variable query", {"query": query})

    parsed = CatalogQuery(function=match.group(1))
    for part in _split_args(match.group(2)):
        keyword = _KEYWORD_PATTERN.match(part)
        if keyword and not part.startswith(("'", '"')):
            parsed.kwargs[keyword.group(1)] = _unquote(keyword.group(2))
        else:
            parsed.args.append(_unquote(part))
    return parsed


def _descriptor(entry: dict[str, Any]) -> MetricDescriptor:
    metric_type = entry.get("type")
    return MetricDescriptor(
        name=entry["id"],
        metric_type=metric_type,
        is_numeric=metric_type != "string",
    )


async def find_metrics(config: BackendConfiguration) -> list[MetricDescriptor]:
    """List the metric catalog, sorted by name."""
    body = await api.send_json(
        config, ApiRequest(url=METRICS_URL, params={"light": "true"})
    )
    entries = body.values() if isinstance(body, dict) else body
    return sorted((_descriptor(entry) for entry in entries), key=lambda m: m.name)


async def find_segmentations(config: BackendConfiguration, metric: str | None) -> list[str]:
    """Labels usable to segment ``metric``, or every label when no metric is given."""
    if metric is None:
        return [m.name for m in await find_metrics(config) if not m.is_numeric]

    body = await api.send_json(config, ApiRequest(url=f"{METRICS_URL}/{metric}/groupByMetrics"))
    names = [entry["id"] if isinstance(entry, dict) else entry for entry in body or []]
    return sorted(names)


def _filter_names(metrics: list[MetricDescriptor], pattern: str | None) -> list[str]:
    if not pattern:
        return [m.name for m in metrics]
    try:
        regex = re.compile(pattern)
    except re.error as exc:
        raise ValidationError("Invalid metric pattern", {"pattern": pattern}) from exc
    return [m.name for m in metrics if regex.search(m.name)]


async def _label_values(
    config: BackendConfiguration,
    query: CatalogQuery,
    user_time: UserTimeRange | None,
) -> list[str | None]:
    if not query.args:
        raise ValidationError("label_values requires a label name")
    label = query.args[0]

    try:
        limit = int(query.kwargs.get("limit", DEFAULT_LABEL_VALUES_LIMIT))
    except ValueError as exc:
        raise ValidationError("Invalid limit", {"limit": query.kwargs["limit"]}) from exc

    payload: dict[str, Any] = {
        "metrics": [label],
        "paging": {"from": 0, "to": max(limit, 1) - 1},
    }
    if query.kwargs.get("scope"):
        payload["filter"] = query.kwargs["scope"]
    if user_time is not None:
        payload["time"] = {"from": user_time.from_ * MICROS, "to": user_time.to * MICROS}

    body = await api.send_json(config, ApiRequest(url=METADATA_URL, method="POST", data=payload))
    return [row.get(label) for row in body.get("data") or []]


async def query_metrics(
    config: BackendConfiguration,
    template_srv: TemplateSrv,
    query: str,
    *,
    user_time: UserTimeRange | None = None,
) -> list[str | None]:
    """Evaluate a variable query. Label values may include None."""
    resolved = templating.replace(template_srv, query) or ""
    parsed = parse_query(resolved)
    logger.debug("catalog_query", function=parsed.function, args=parsed.args)

    if parsed.function == "metrics":
        metrics = [m for m in await find_metrics(config) if m.is_numeric]
        return _filter_names(metrics, parsed.args[0] if parsed.args else None)
    if parsed.function == "label_names":
        labels = [m for m in await find_metrics(config) if not m.is_numeric]
        return _filter_names(labels, parsed.args[0] if parsed.args else None)
    if parsed.function == "label_values":
        return await _label_values(config, parsed, user_time)

    raise ValidationError("Unsupported variable query function", {"function": parsed.function})
