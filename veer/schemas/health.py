"""Liveness and readiness payloads."""

from typing import Literal

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str = "ok"
    service: str = Field(default="veer", description="APP_NAME of the running instance")


class ReadinessResponse(BaseModel):
    """Ready as long as the process serves requests; Redis is optional."""

    status: str = "ok"
    cache: Literal["connected", "unavailable", "disabled"] = "disabled"
