"""ISS position polling: fetches the current subsatellite point and publishes it as gauges."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine

import httpx
from prometheus_client import CollectorRegistry, Gauge

from iss_exporter.config import Config
from iss_exporter.models import (
    FailureKind,
    FetchResult,
    PositionPayload,
    PositionReading,
    PositionValidationError,
)
from iss_exporter.scheduler import ScheduleHandle, schedule

logger = logging.getLogger(__name__)


class RequestAborted(Exception):
    """The per-invocation cancellation signal fired before the response arrived."""


async def _abortable(request: Coroutine[Any, Any, httpx.Response], cancel: asyncio.Event | None) -> httpx.Response:
    if cancel is None:
        return await request
    if cancel.is_set():
        request.close()
        raise RequestAborted("The operation was aborted")

    pending = asyncio.ensure_future(request)
    waiter = asyncio.ensure_future(cancel.wait())
    try:
        await asyncio.wait({pending, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        pending.cancel()
        await asyncio.gather(pending, return_exceptions=True)
        raise
    finally:
        waiter.cancel()

    if not pending.done():
        pending.cancel()
        await asyncio.gather(pending, return_exceptions=True)
        raise RequestAborted("The operation was aborted")
    return pending.result()


def parse_position(data: Any) -> PositionReading:
    """Validate a decoded payload into a reading.

    All three coordinates have to be present and truthy, so an exact 0 for
    any of them is rejected along with missing values.
    """
    try:
        payload = PositionPayload.model_validate(data)
    except ValueError:
        raise PositionValidationError(data) from None

    if not payload.altitude or not payload.latitude or not payload.longitude:
        raise PositionValidationError(data)

    try:
        return PositionReading(
            latitude=float(payload.latitude),
            longitude=float(payload.longitude),
            altitude=float(payload.altitude),
        )
    except (TypeError, ValueError):
        raise PositionValidationError(data) from None


class PositionPoller:
    """Polls a position API and writes latitude/longitude/altitude gauges."""

    def __init__(
        self,
        url: str,
        latitude: Gauge,
        longitude: Gauge,
        altitude: Gauge,
        client: httpx.AsyncClient,
    ):
        self.url = url
        self.latitude = latitude
        self.longitude = longitude
        self.altitude = altitude
        self._client = client
        self.last_reading: PositionReading | None = None

    async def fetch(self, cancel: asyncio.Event | None = None) -> FetchResult:
        """GET the position document and decode it. Never raises for I/O or decode errors."""
        try:
            response = await _abortable(self._client.get(self.url), cancel)
        except (httpx.HTTPError, httpx.InvalidURL, RequestAborted) as exc:
            return FetchResult.failed(FailureKind.TRANSPORT, str(exc) or type(exc).__name__)

        try:
            data = response.json()
        except ValueError as exc:
            return FetchResult.failed(FailureKind.PARSE, str(exc), response)

        if not response.is_success:
            return FetchResult.failed(FailureKind.STATUS, response.reason_phrase, response)
        return FetchResult.success(data, response)

    async def poll(self, cancel: asyncio.Event | None = None) -> None:
        result = await self.fetch(cancel)

        if result.failure in (FailureKind.TRANSPORT, FailureKind.PARSE):
            logger.error(
                "Failed to fetch ISS position data: %s",
                result.message,
                extra={"error": result.message, "failure": result.failure.value},
            )
            return
        if result.failure is FailureKind.STATUS:
            logger.error(
                "Failed to fetch ISS position data: %s %r",
                result.message,
                result.response,
                extra={"response": result.response, "failure": result.failure.value},
            )
            return

        try:
            reading = parse_position(result.data)
        except PositionValidationError as exc:
            logger.error(
                "Failed to parse ISS position data: Unexpected payload %r",
                exc.data,
                extra={"data": exc.data, "failure": FailureKind.VALIDATION.value},
            )
            return

        self.latitude.set(reading.latitude)
        self.longitude.set(reading.longitude)
        self.altitude.set(reading.altitude)
        self.last_reading = reading
        logger.debug(
            "ISS position: lat=%.4f lon=%.4f alt=%.1f",
            reading.latitude, reading.longitude, reading.altitude,
        )


def create_position_gauges(prefix: str, registry: CollectorRegistry) -> tuple[Gauge, Gauge, Gauge]:
    latitude = Gauge(f"{prefix}position_latitude", "ISS current latitude", registry=registry)
    longitude = Gauge(f"{prefix}position_longitude", "ISS current longitude", registry=registry)
    altitude = Gauge(f"{prefix}altitude", "ISS current altitude", registry=registry)
    return latitude, longitude, altitude


def setup_position_tracking(
    config: Config,
    registry: CollectorRegistry,
    client: httpx.AsyncClient,
) -> tuple[PositionPoller, ScheduleHandle]:
    """Register the position gauges and start polling the position API.

    Must be called from within a running event loop.
    """
    latitude, longitude, altitude = create_position_gauges(config.metrics_prefix, registry)
    poller = PositionPoller(config.position_api_url, latitude, longitude, altitude, client)

    def on_error(error: BaseException) -> None:
        logger.error("Could not fetch ISS position data: %s", error, extra={"error": error})

    handle = schedule(
        poller.poll,
        config.position_update_frequency,
        on_error,
        name="iss-position",
    )
    logger.info(
        "Tracking ISS position from %s every %d ms",
        config.position_api_url, config.position_update_frequency,
    )
    return poller, handle
