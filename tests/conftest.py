"""Root test configuration."""

import logging

import pytest
import structlog

from sysdig_datasource.clients.base import reset_circuit_breakers
from sysdig_datasource.config.backend import BackendConfiguration
from sysdig_datasource.services.templating import VariableTemplateSrv

BASE_URL = "https://sysdig.example.com"


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


@pytest.fixture(autouse=True)
def _fresh_circuit_breakers():
    """Breakers are per backend URL and outlive a single test."""
    reset_circuit_breakers()
    yield
    reset_circuit_breakers()


@pytest.fixture
def backend_config():
    return BackendConfiguration(url=BASE_URL, api_token="test-token", name="sysdig-test")


@pytest.fixture
def template_srv():
    return VariableTemplateSrv(
        {
            "metric": "cpu.used.percent",
            "segment": "host.hostName",
            "hosts": {"text": "All", "value": ["web-1", "web-2"]},
            "host": {"text": "web-1", "value": "web-1"},
        }
    )
