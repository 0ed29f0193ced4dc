"""
Sysdig datasource.

Entry points called by the dashboard host: connection test, panel
queries, variable (metric-find) queries, segmentation lookup and
annotations.
"""

from __future__ import annotations

import functools
from typing import Any, Mapping

import httpx

from sysdig_datasource.clients.base import ApiRequest
from sysdig_datasource.config.backend import BackendConfiguration
from sysdig_datasource.logging import bind_context
from sysdig_datasource.models import (
    PLACEHOLDER_TARGET,
    LabelVariable,
    QueryOptions,
    TimeRange,
)
from sysdig_datasource.reconciler import build_query_parameters, convert_range_to_user_time
from sysdig_datasource.services import api, data, formatter, metrics, templating
from sysdig_datasource.services.templating import TemplateSrv, VariableTemplateSrv
from sysdig_datasource.sorting import get_label_values_sorter

LOGIN_URL = "api/login"


class SysdigDatasource:
    """Datasource adapter bound to one Sysdig backend."""

    def __init__(
        self,
        config: BackendConfiguration,
        template_srv: TemplateSrv | None = None,
    ) -> None:
        self.config = config
        self.name = config.name
        self.template_srv = template_srv or VariableTemplateSrv()
        self._log = bind_context(datasource=config.name)

    @classmethod
    def from_instance_settings(
        cls,
        instance_settings: Mapping[str, Any],
        template_srv: TemplateSrv | None = None,
    ) -> "SysdigDatasource":
        return cls(BackendConfiguration.from_instance_settings(instance_settings), template_srv)

    async def test_datasource(self) -> dict[str, str] | None:
        response = await api.send(self.config, ApiRequest(url=LOGIN_URL))
        if response.status_code == 200:
            return {"status": "success", "message": "Data source is working", "title": "Success"}
        return None

    def build_query_parameters(self, options: QueryOptions) -> QueryOptions:
        return build_query_parameters(options, self.template_srv)

    async def query(self, options: QueryOptions | Mapping[str, Any]) -> dict[str, Any]:
        """Run a panel query and return ``{"data": [...]}``."""
        if not isinstance(options, QueryOptions):
            options = QueryOptions.from_dict(options)

        query = self.build_query_parameters(options)
        query.targets = [t for t in query.targets if not t.hide]

        if not query.targets:
            self._log.debug("query_skipped_no_targets")
            return {"data": []}

        return await data.fetch(
            self.config,
            query,
            convert_range_to_user_time(query.range, query.interval_ms),
        )

    async def metric_find_query(
        self,
        query: str | None,
        *,
        are_labels_included: bool = False,
        time_range: TimeRange | None = None,
        variable: LabelVariable | None = None,
    ) -> list[dict[str, Any]]:
        """Populate a template variable.

        With a query, returns ``{"text": ...}`` entries for the label values it
        yields, sorted per the variable's sort mode. Without one, returns the
        metric catalog as ``{"text", "type", "isNumeric"}`` entries, numeric
        metrics only unless labels are requested.
        """
        if query:
            values = await metrics.query_metrics(
                self.config,
                self.template_srv,
                query,
                user_time=convert_range_to_user_time(time_range),
            )
            # The backend can't express scope filters over null values
            values = [v for v in values if v is not None]

            sorter = get_label_values_sorter((variable or LabelVariable()).sort)
            if sorter is None:
                values.sort(key=str)
            else:
                values.sort(key=functools.cmp_to_key(sorter))

            return [{"text": formatter.format_label_value(v)} for v in values]

        catalog = await metrics.find_metrics(self.config)
        return [
            metric.to_dict() for metric in catalog if are_labels_included or metric.is_numeric
        ]

    async def find_segment_by(self, target: str | None) -> list[str]:
        if target is None or target == PLACEHOLDER_TARGET:
            return await metrics.find_segmentations(self.config, None)
        return await metrics.find_segmentations(
            self.config,
            templating.replace_single_match(self.template_srv, target),
        )

    async def annotation_query(self, options: Any = None) -> list[Any]:
        # Annotations are not supported
        return []

    async def do_request(self, request: ApiRequest | Mapping[str, Any]) -> httpx.Response:
        return await api.send(self.config, request)
