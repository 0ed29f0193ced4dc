"""
Metric data queries.

Every reconciled target becomes one request of a single
``POST api/data/batch`` call. Responses come back in the same order and
are reshaped into time series (one per segment value) or, for tabular
panels, into a single table merged on the segment value.
"""

from __future__ import annotations

from typing import Any

import structlog

from sysdig_datasource.clients.base import ApiRequest
from sysdig_datasource.config.backend import BackendConfiguration
from sysdig_datasource.core.errors import ProviderError
from sysdig_datasource.models import QueryOptions, QueryTarget, UserTimeRange
from sysdig_datasource.services import api
from sysdig_datasource.services.formatter import format_label_value

logger = structlog.get_logger()

BATCH_URL = "api/data/batch"
DEFAULT_SORT_DIRECTION = "desc"
DEFAULT_DATAPOINTS = 100
MICROS = 1_000_000


def _sampling(target: QueryTarget, user_time: UserTimeRange) -> int:
    window = max(user_time.to - user_time.from_, 1)
    if target.is_single_data_point:
        return window
    if user_time.sampling:
        return max(user_time.sampling, 1)
    return max(window // DEFAULT_DATAPOINTS, 1)


def build_time(target: QueryTarget, user_time: UserTimeRange | None) -> dict[str, int] | None:
    if user_time is None:
        return None
    return {
        "from": user_time.from_ * MICROS,
        "to": user_time.to * MICROS,
        "sampling": _sampling(target, user_time) * MICROS,
    }


def _keys(target: QueryTarget) -> list[str]:
    keys = [] if target.is_single_data_point else ["timestamp"]
    if target.segment_by:
        keys.append(target.segment_by)
    return keys


def build_request(target: QueryTarget, user_time: UserTimeRange | None) -> dict[str, Any]:
    """Translate one reconciled target into a batch request entry."""
    keys = _keys(target)
    metrics: dict[str, str | None] = {f"k{i}": key for i, key in enumerate(keys)}
    metrics["v0"] = target.target

    page_limit = max(int(target.page_limit), 1)
    request: dict[str, Any] = {
        "format": {"type": "data"},
        "metrics": metrics,
        "sort": [{"v0": target.sort_direction or DEFAULT_SORT_DIRECTION}],
        "paging": {"from": 0, "to": page_limit - 1},
        "group": {
            "aggregations": {"v0": target.time_aggregation},
            "groupAggregations": {"v0": target.group_aggregation},
            "by": [{"metric": key} for key in keys],
            "configuration": {"groups": []},
        },
    }

    time = build_time(target, user_time)
    if time is not None:
        request["time"] = time
    if target.filter:
        request["scope"] = target.filter
    return request


def _check_errors(response: dict[str, Any], target: QueryTarget) -> None:
    errors = response.get("errors")
    if errors:
        raise ProviderError(
            "Sysdig API returned an error",
            {"target": target.target, "errors": errors},
        )


def _series_name(target: QueryTarget, row: dict[str, Any]) -> str:
    if target.segment_by:
        return format_label_value(row["d"][0])
    return target.target or ""


def to_time_series(
    target: QueryTarget,
    response: dict[str, Any],
    user_time: UserTimeRange | None,
) -> list[dict[str, Any]]:
    """Group rows into one series per segment value, datapoints ascending by time.

    Rows without a timestamp are dropped when there is no range to fall back on.
    """
    series: dict[str, list[list[Any]]] = {}
    fallback_t = user_time.to if user_time else None

    for row in response.get("data") or []:
        t = row.get("t")
        if t is None:
            t = fallback_t
        if t is None:
            logger.debug("datapoint_without_timestamp", ref_id=target.ref_id)
            continue
        series.setdefault(_series_name(target, row), []).append([row["d"][-1], t * 1000])

    return [
        {
            "refId": target.ref_id,
            "target": name,
            "datapoints": sorted(points, key=lambda p: p[1]),
        }
        for name, points in series.items()
    ]


def to_table(targets: list[QueryTarget], responses: list[dict[str, Any]]) -> dict[str, Any]:
    """Merge responses of a tabular panel into one table keyed by segment value."""
    segment_by = targets[0].segment_by
    columns = [{"text": segment_by}] if segment_by else []
    columns.extend({"text": target.target} for target in targets)

    rows: dict[Any, list[Any]] = {}
    for index, response in enumerate(responses):
        for row in response.get("data") or []:
            key = row["d"][0] if segment_by else None
            if key not in rows:
                prefix = [format_label_value(key)] if segment_by else []
                rows[key] = prefix + [None] * len(targets)
            offset = 1 if segment_by else 0
            rows[key][offset + index] = row["d"][-1]

    return {"type": "table", "columns": columns, "rows": list(rows.values())}


async def fetch(
    config: BackendConfiguration,
    options: QueryOptions,
    user_time: UserTimeRange | None,
) -> dict[str, Any]:
    """Run all targets of ``options`` in one batch and shape the result for the panel."""
    targets = options.targets
    requests = [build_request(target, user_time) for target in targets]

    body = await api.send_json(
        config,
        ApiRequest(url=BATCH_URL, method="POST", data={"requests": requests}),
    )
    responses = body.get("responses") or []
    logger.debug("data_fetched", requests=len(requests), responses=len(responses))

    if len(responses) != len(targets):
        raise ProviderError(
            "Sysdig API returned an unexpected number of responses",
            {"expected": len(targets), "received": len(responses)},
        )
    for target, response in zip(targets, responses):
        _check_errors(response, target)

    if targets and targets[0].is_tabular_format:
        return {"data": [to_table(targets, responses)]}

    data: list[dict[str, Any]] = []
    for target, response in zip(targets, responses):
        data.extend(to_time_series(target, response, user_time))
    return {"data": data}
