"""Tests for the datasource entry points."""

from unittest.mock import AsyncMock

import pytest
import respx
from httpx import Response

from sysdig_datasource.clients.base import PermanentHTTPError
from sysdig_datasource.datasource import SysdigDatasource
from sysdig_datasource.models import (
    LabelVariable,
    MetricDescriptor,
    QueryOptions,
    QueryTarget,
    TimeRange,
    UserTimeRange,
)
from sysdig_datasource.services import data, metrics

BASE_URL = "https://sysdig.example.com"


@pytest.fixture
def datasource(backend_config, template_srv):
    return SysdigDatasource(backend_config, template_srv)


class TestTestDatasource:
    @pytest.mark.asyncio
    async def test_success(self, datasource):
        with respx.mock:
            respx.get(f"{BASE_URL}/api/login").mock(return_value=Response(200, json={}))

            result = await datasource.test_datasource()

        assert result == {
            "status": "success",
            "message": "Data source is working",
            "title": "Success",
        }

    @pytest.mark.asyncio
    async def test_non_200_success_status(self, datasource):
        with respx.mock:
            respx.get(f"{BASE_URL}/api/login").mock(return_value=Response(204))

            assert await datasource.test_datasource() is None

    @pytest.mark.asyncio
    async def test_auth_failure_propagates(self, datasource):
        with respx.mock:
            respx.get(f"{BASE_URL}/api/login").mock(return_value=Response(401))

            with pytest.raises(PermanentHTTPError):
                await datasource.test_datasource()


class TestQuery:
    @pytest.mark.asyncio
    async def test_all_hidden_short_circuits(self, datasource, monkeypatch):
        fetch = AsyncMock()
        monkeypatch.setattr(data, "fetch", fetch)

        result = await datasource.query(
            QueryOptions(
                targets=[
                    QueryTarget(target="cpu.used.percent", hide=True),
                    QueryTarget(target=None, hide=True),
                ]
            )
        )

        assert result == {"data": []}
        fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_only_placeholders_short_circuits(self, datasource, monkeypatch):
        fetch = AsyncMock()
        monkeypatch.setattr(data, "fetch", fetch)

        result = await datasource.query(QueryOptions(targets=[QueryTarget(target="select metric")]))

        assert result == {"data": []}
        fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_dispatches_visible_targets_with_user_time(self, datasource, monkeypatch):
        fetch = AsyncMock(return_value={"data": ["series"]})
        monkeypatch.setattr(data, "fetch", fetch)

        result = await datasource.query(
            {
                "range": {"from": 1_600_000_000_500, "to": 1_600_003_600_999},
                "intervalMs": 15000,
                "targets": [
                    {"refId": "A", "target": "$metric", "pageLimit": "25", "isTabularFormat": False},
                    {"refId": "B", "target": "net.bytes.total", "hide": True},
                    {"refId": "C", "target": "select metric"},
                ],
            }
        )

        assert result == {"data": ["series"]}
        config, query, user_time = fetch.await_args.args
        assert config is datasource.config
        assert [t.ref_id for t in query.targets] == ["A"]
        assert query.targets[0].target == "cpu.used.percent"
        assert query.targets[0].page_limit == 25
        assert user_time == UserTimeRange(from_=1600000000, to=1600003600, sampling=15)

    @pytest.mark.asyncio
    async def test_no_range_sends_no_time(self, datasource, monkeypatch):
        fetch = AsyncMock(return_value={"data": []})
        monkeypatch.setattr(data, "fetch", fetch)

        await datasource.query(QueryOptions(targets=[QueryTarget(target="a")]))

        assert fetch.await_args.args[2] is None

    @pytest.mark.asyncio
    async def test_hidden_tabular_first_target_still_returns_table(self, datasource):
        with respx.mock:
            respx.post(f"{BASE_URL}/api/data/batch").mock(
                return_value=Response(200, json={"responses": [{"data": [{"d": ["h1", 1.0]}]}]})
            )

            result = await datasource.query(
                QueryOptions(
                    targets=[
                        QueryTarget(
                            target="a", is_tabular_format=True, segment_by="host", hide=True
                        ),
                        QueryTarget(target="b", ref_id="B"),
                    ]
                )
            )

        assert result == {
            "data": [
                {
                    "type": "table",
                    "columns": [{"text": "host"}, {"text": "b"}],
                    "rows": [["h1", 1.0]],
                }
            ]
        }

    @pytest.mark.asyncio
    async def test_end_to_end_batch(self, datasource):
        with respx.mock:
            respx.post(f"{BASE_URL}/api/data/batch").mock(
                return_value=Response(
                    200, json={"responses": [{"data": [{"t": 1600000000, "d": [0.5]}]}]}
                )
            )

            result = await datasource.query(
                QueryOptions(
                    targets=[QueryTarget(target=None, ref_id="A")],
                    range=TimeRange(from_=1_600_000_000_000, to=1_600_003_600_000),
                    interval_ms=60_000,
                )
            )

        assert result == {
            "data": [
                {
                    "refId": "A",
                    "target": "net.bytes.total",
                    "datapoints": [[0.5, 1_600_000_000_000]],
                }
            ]
        }

    @pytest.mark.asyncio
    async def test_transport_failure_propagates(self, datasource, monkeypatch):
        monkeypatch.setattr(data, "fetch", AsyncMock(side_effect=PermanentHTTPError("boom", 400)))

        with pytest.raises(PermanentHTTPError):
            await datasource.query(QueryOptions(targets=[QueryTarget(target="a")]))


class TestMetricFindQuery:
    @pytest.mark.asyncio
    async def test_query_values_filtered_sorted_and_formatted(self, datasource, monkeypatch):
        query_metrics = AsyncMock(return_value=["Beta", None, "alpha"])
        monkeypatch.setattr(metrics, "query_metrics", query_metrics)

        result = await datasource.metric_find_query(
            "label_values(host.hostName)",
            time_range=TimeRange(from_=1_000, to=5_500),
            variable=LabelVariable(name="host", sort=6),
        )

        assert result == [{"text": "alpha"}, {"text": "Beta"}]
        assert query_metrics.await_args.kwargs["user_time"] == UserTimeRange(from_=1, to=5)

    @pytest.mark.asyncio
    async def test_descending_mode_is_ascending(self, datasource, monkeypatch):
        monkeypatch.setattr(metrics, "query_metrics", AsyncMock(return_value=["b", "c", "a"]))

        result = await datasource.metric_find_query("x()", variable=LabelVariable(sort=2))

        assert [r["text"] for r in result] == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_unknown_sort_mode_falls_back_to_string_order(self, datasource, monkeypatch):
        monkeypatch.setattr(metrics, "query_metrics", AsyncMock(return_value=["10", "9", "1"]))

        result = await datasource.metric_find_query("x()", variable=LabelVariable(sort=42))

        assert [r["text"] for r in result] == ["1", "10", "9"]

    @pytest.mark.asyncio
    async def test_without_query_returns_numeric_metrics(self, datasource, monkeypatch):
        catalog = [
            MetricDescriptor("cpu.used.percent", "double", True),
            MetricDescriptor("host.hostName", "string", False),
        ]
        monkeypatch.setattr(metrics, "find_metrics", AsyncMock(return_value=catalog))

        cpu = {"text": "cpu.used.percent", "type": "double", "isNumeric": True}
        host = {"text": "host.hostName", "type": "string", "isNumeric": False}

        assert await datasource.metric_find_query(None) == [cpu]
        assert await datasource.metric_find_query("", are_labels_included=True) == [cpu, host]


class TestFindSegmentBy:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("target", [None, "select metric"])
    async def test_unconfigured_target_lists_all(self, datasource, monkeypatch, target):
        find = AsyncMock(return_value=["host.hostName"])
        monkeypatch.setattr(metrics, "find_segmentations", find)

        assert await datasource.find_segment_by(target) == ["host.hostName"]
        find.assert_awaited_once_with(datasource.config, None)

    @pytest.mark.asyncio
    async def test_target_is_substituted(self, datasource, monkeypatch):
        find = AsyncMock(return_value=[])
        monkeypatch.setattr(metrics, "find_segmentations", find)

        await datasource.find_segment_by("$metric")

        find.assert_awaited_once_with(datasource.config, "cpu.used.percent")


@pytest.mark.asyncio
async def test_annotation_query_is_empty(datasource):
    assert await datasource.annotation_query({"annotation": {}}) == []


@pytest.mark.asyncio
async def test_do_request_forwards_descriptor(datasource):
    with respx.mock:
        route = respx.get(f"{BASE_URL}/api/alerts").mock(return_value=Response(200, json=[]))

        response = await datasource.do_request({"url": "api/alerts"})

    assert response.status_code == 200
    assert route.called


def test_from_instance_settings(template_srv):
    ds = SysdigDatasource.from_instance_settings(
        {"name": "prod", "url": "https://x", "jsonData": {"apiToken": "abc"}}, template_srv
    )

    assert ds.name == "prod"
    assert ds.config.headers["Authorization"] == "Bearer abc"
