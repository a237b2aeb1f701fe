"""
Pytest configuration and fixtures.
"""

import asyncio

import httpx
import pytest
import pytest_asyncio
from prometheus_client import CollectorRegistry

from iss_exporter.position import PositionPoller, create_position_gauges

POSITION_URL = "http://position.test/v1/satellites/25544"

ISS_PAYLOAD = {
    "name": "iss",
    "id": 25544,
    "latitude": 51.5,
    "longitude": -0.1,
    "altitude": 408.2,
    "velocity": 27600.5,
    "visibility": "daylight",
    "footprint": 4500.1,
    "timestamp": 1700000000,
    "daynum": 2460263.5,
    "solar_lat": -19.2,
    "solar_lon": 150.3,
    "units": "kilometers",
}

CONFIG_VARS = (
    "POSITION_API_URL",
    "POSITION_UPDATE_FREQUENCY",
    "POSITION_REQUEST_TIMEOUT",
    "METRICS_PREFIX",
    "LOG_LEVEL",
    "HOST",
    "PORT",
)


async def wait_until(predicate, timeout: float = 2.0) -> None:
    """Spin the event loop until ``predicate()`` is truthy."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.005)


class FakeUpstream:
    """Scripted position API: serves queued responses, then repeats the last one."""

    def __init__(self, *responses):
        self.responses = list(responses) or [httpx.Response(200, json=ISS_PAYLOAD)]
        self.requests: list[httpx.Request] = []

    def respond(self, *responses) -> None:
        self.responses = list(responses)

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        if callable(item):
            return await item(request)
        return httpx.Response(item.status_code, headers=item.headers, content=item.content)


@pytest.fixture
def registry():
    return CollectorRegistry()


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest_asyncio.fixture
async def client(upstream):
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as c:
        yield c


@pytest.fixture
def poller(registry, client):
    latitude, longitude, altitude = create_position_gauges("iss_", registry)
    return PositionPoller(POSITION_URL, latitude, longitude, altitude, client)


@pytest.fixture
def read_gauges(registry):
    def _read():
        return (
            registry.get_sample_value("iss_position_latitude"),
            registry.get_sample_value("iss_position_longitude"),
            registry.get_sample_value("iss_altitude"),
        )
    return _read


@pytest.fixture
def clean_env(monkeypatch):
    # setenv first so monkeypatch restores the original (possibly unset) value
    for name in CONFIG_VARS:
        monkeypatch.setenv(name, "placeholder")
        monkeypatch.delenv(name)
    return monkeypatch
