"""
Query parameter reconciliation.

A panel sends one target per query row. Before dispatch the targets are
normalized in a single pass:

- placeholder rows ("select metric") are dropped
- blank rows get a default metric query
- pagination and single-data-point settings come from the first target
- segmentation and filter come from the first target unless it is
  explicitly non-tabular
- template variables are substituted
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, replace
from typing import Any

import structlog

from sysdig_datasource.models import (
    PLACEHOLDER_TARGET,
    QueryOptions,
    QueryTarget,
    ScopedVars,
    TimeRange,
    UserTimeRange,
)
from sysdig_datasource.services import templating
from sysdig_datasource.services.templating import TemplateSrv

logger = structlog.get_logger()

DEFAULT_PAGE_LIMIT = 10
DEFAULT_METRIC = "net.bytes.total"
DEFAULT_TIME_AGGREGATION = "timeAvg"
DEFAULT_GROUP_AGGREGATION = "avg"

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


@dataclass(frozen=True)
class _PanelSettings:
    """Snapshot of the first target's panel-wide fields."""

    is_tabular_format: bool | None
    segment_by: str | None
    filter: str | None
    page_limit: Any
    sort_direction: str | None
    is_single_data_point: bool | None

    @classmethod
    def from_target(cls, target: QueryTarget) -> "_PanelSettings":
        return cls(
            is_tabular_format=target.is_tabular_format,
            segment_by=target.segment_by,
            filter=target.filter,
            page_limit=target.page_limit,
            sort_direction=target.sort_direction,
            is_single_data_point=target.is_single_data_point,
        )


def parse_page_limit(value: Any) -> int:
    """Leading-integer parse; anything unparseable or zero falls back to the default."""
    if value is None or isinstance(value, bool):
        return DEFAULT_PAGE_LIMIT
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return DEFAULT_PAGE_LIMIT
        return math.trunc(value) or DEFAULT_PAGE_LIMIT
    if isinstance(value, int):
        return value or DEFAULT_PAGE_LIMIT
    match = _LEADING_INT.match(str(value))
    if not match:
        return DEFAULT_PAGE_LIMIT
    return int(match.group(1)) or DEFAULT_PAGE_LIMIT


def default_target(target: QueryTarget) -> QueryTarget:
    """Query for a row the user has not configured yet."""
    return replace(
        target,
        target=DEFAULT_METRIC,
        time_aggregation=DEFAULT_TIME_AGGREGATION,
        group_aggregation=DEFAULT_GROUP_AGGREGATION,
        filter=None,
        page_limit=DEFAULT_PAGE_LIMIT,
    )


def _reconcile_target(
    target: QueryTarget,
    panel: _PanelSettings,
    template_srv: TemplateSrv,
    scoped_vars: ScopedVars,
) -> QueryTarget:
    if target.target is None:
        return default_target(target)

    per_target = panel.is_tabular_format is False
    segment_by = target.segment_by if per_target else panel.segment_by
    filter_ = target.filter if per_target else panel.filter

    return replace(
        target,
        target=templating.replace_single_match(template_srv, target.target, scoped_vars),
        segment_by=templating.replace_single_match(template_srv, segment_by, scoped_vars),
        filter=templating.replace(template_srv, filter_, scoped_vars),
        page_limit=parse_page_limit(panel.page_limit),
        sort_direction=panel.sort_direction,
        is_tabular_format=panel.is_tabular_format,
        is_single_data_point=bool(panel.is_tabular_format or panel.is_single_data_point),
    )


def build_query_parameters(options: QueryOptions, template_srv: TemplateSrv) -> QueryOptions:
    """Normalize ``options.targets`` in place and return ``options``."""
    targets = [t for t in options.targets if t.target != PLACEHOLDER_TARGET]

    if targets:
        panel = _PanelSettings.from_target(targets[0])
        targets = [
            _reconcile_target(target, panel, template_srv, options.scoped_vars)
            for target in targets
        ]

    options.targets = targets
    logger.debug("query_reconciled", targets=len(targets))
    return options


def convert_range_to_user_time(
    time_range: TimeRange | None,
    interval_ms: int | float | None = None,
) -> UserTimeRange | None:
    """Convert a millisecond host range to whole seconds, truncating toward zero."""
    if time_range is None:
        return None

    sampling = math.trunc(interval_ms / 1000) if interval_ms else None
    return UserTimeRange(
        from_=math.trunc(time_range.from_ms / 1000),
        to=math.trunc(time_range.to_ms / 1000),
        sampling=sampling,
    )
