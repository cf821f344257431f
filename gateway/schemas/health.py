"""Pydantic schema for the health endpoint."""

from __future__ import annotations

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str = Field(..., description="Always 'ok' while the process serves requests.")
    timestamp: str = Field(..., description="Current UTC time, ISO 8601.")
    uptime_seconds: float = Field(..., description="Seconds since the process started.")
    environment: str = Field(..., description="Deployment environment name.")
    cache_backend: str = Field(..., description="'redis' or 'memory'.")
