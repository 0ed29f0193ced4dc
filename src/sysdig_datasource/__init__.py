"""Sysdig metrics datasource adapter for dashboard panels."""

from sysdig_datasource.config.backend import BackendConfiguration
from sysdig_datasource.datasource import SysdigDatasource
from sysdig_datasource.models import QueryOptions, QueryTarget, TimeRange, UserTimeRange

__all__ = [
    "BackendConfiguration",
    "QueryOptions",
    "QueryTarget",
    "SysdigDatasource",
    "TimeRange",
    "UserTimeRange",
]

__version__ = "0.1.0"
