"""
Data models for panel queries.

Hosts send camelCase JSON; ``from_dict`` reads that shape into the snake_case
dataclasses used throughout the adapter and ``to_dict`` writes host-facing
results back out.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping

PLACEHOLDER_TARGET = "select metric"

ScopedVars = Mapping[str, Any]


@dataclass
class QueryTarget:
    """One metric query row configured in a panel."""

    target: str | None = None
    time_aggregation: str | None = None
    group_aggregation: str | None = None
    segment_by: str | None = None
    filter: str | None = None
    page_limit: Any = 10
    sort_direction: str | None = None
    is_single_data_point: bool | None = None
    # None means "not set"; only an explicit False opts out of tabular mode
    is_tabular_format: bool | None = None
    hide: bool = False
    ref_id: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "QueryTarget":
        return cls(
            target=data.get("target"),
            time_aggregation=data.get("timeAggregation"),
            group_aggregation=data.get("groupAggregation"),
            segment_by=data.get("segmentBy"),
            filter=data.get("filter"),
            page_limit=data.get("pageLimit", 10),
            sort_direction=data.get("sortDirection"),
            is_single_data_point=data.get("isSingleDataPoint"),
            is_tabular_format=data.get("isTabularFormat"),
            hide=bool(data.get("hide", False)),
            ref_id=data.get("refId"),
        )


@dataclass(frozen=True)
class TimeRange:
    """Host time range. Bounds are epoch milliseconds or datetimes."""

    from_: int | float | datetime
    to: int | float | datetime

    @staticmethod
    def _millis(value: int | float | datetime) -> float:
        if isinstance(value, datetime):
            return value.timestamp() * 1000
        return value

    @property
    def from_ms(self) -> float:
        return self._millis(self.from_)

    @property
    def to_ms(self) -> float:
        return self._millis(self.to)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "TimeRange | None":
        if not data:
            return None
        return cls(from_=data["from"], to=data["to"])


@dataclass(frozen=True)
class UserTimeRange:
    """Time window sent to the backend, in epoch seconds."""

    from_: int
    to: int
    sampling: int | None = None

    def to_dict(self) -> dict[str, int]:
        result = {"from": self.from_, "to": self.to}
        if self.sampling is not None:
            result["sampling"] = self.sampling
        return result


@dataclass
class QueryOptions:
    """A panel query: ordered targets plus the shared time context."""

    targets: list[QueryTarget] = field(default_factory=list)
    range: TimeRange | None = None
    interval_ms: int | float | None = None
    scoped_vars: ScopedVars = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "QueryOptions":
        return cls(
            targets=[QueryTarget.from_dict(t) for t in data.get("targets") or []],
            range=TimeRange.from_dict(data.get("range")),
            interval_ms=data.get("intervalMs"),
            scoped_vars=data.get("scopedVars") or {},
        )


@dataclass(frozen=True)
class MetricDescriptor:
    """Catalog entry for a metric or label."""

    name: str
    metric_type: str | None = None
    is_numeric: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"text": self.name, "type": self.metric_type, "isNumeric": self.is_numeric}


@dataclass(frozen=True)
class LabelVariable:
    """The dashboard variable a metric-find query is populating."""

    name: str | None = None
    sort: int = 0
