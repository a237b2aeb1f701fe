from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field


# --- Upstream payload (wheretheiss.at satellite position) ---

class PositionPayload(BaseModel):
    """Raw position document; coordinates stay unvalidated until checked."""

    model_config = ConfigDict(extra="ignore")

    latitude: Any = None
    longitude: Any = None
    altitude: Any = None
    name: Any = None
    id: Any = None
    velocity: Any = None
    visibility: Any = None
    footprint: Any = None
    timestamp: Any = None
    daynum: Any = None
    solar_lat: Any = None
    solar_lon: Any = None
    units: Any = None


class PositionReading(BaseModel):
    latitude: float = Field(description="Degrees north")
    longitude: float = Field(description="Degrees east")
    altitude: float = Field(description="Altitude above the surface, in payload units")


class PositionValidationError(ValueError):
    """Payload was well-formed JSON but lacked usable coordinates."""

    def __init__(self, data: Any):
        super().__init__("Unexpected payload")
        self.data = data


# --- Fetch outcome ---

class FailureKind(str, Enum):
    TRANSPORT = "transport"
    PARSE = "parse"
    STATUS = "status"
    VALIDATION = "validation"


@dataclass(frozen=True)
class FetchResult:
    """Outcome of a GET + JSON decode: either ``data`` or a tagged failure."""

    data: Any = None
    response: httpx.Response | None = None
    failure: FailureKind | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, data: Any, response: httpx.Response) -> FetchResult:
        return cls(data=data, response=response)

    @classmethod
    def failed(cls, kind: FailureKind, message: str, response: httpx.Response | None = None) -> FetchResult:
        return cls(response=response, failure=kind, message=message)


# --- API responses ---

class HealthResponse(BaseModel):
    status: str = "ok"
    polling: bool = False
