"""Pydantic schemas for the compute-routes proxy."""

from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field


class ComputeRoutesRequest(BaseModel):
    """Body forwarded to the routing upstream.

    Only the fields the gateway relies on are declared; every other field
    (``intermediates``, ``departureTime``, ``transitPreferences`` ...) is
    passed through untouched.
    """

    model_config = ConfigDict(extra="allow")

    origin: Dict[str, Any] = Field(..., description="Waypoint the route starts from.")
    destination: Dict[str, Any] = Field(..., description="Waypoint the route ends at.")
    travelMode: str = Field(
        default="DRIVE",
        description="DRIVE, WALK, BICYCLE, TRANSIT or TWO_WHEELER.",
    )
    fieldMask: str | None = Field(
        default=None,
        description="Response field mask; overrides the gateway default when set.",
    )

    def upstream_body(self) -> dict[str, Any]:
        """Return the body to forward, without the gateway-only ``fieldMask``."""
        return self.model_dump(exclude={"fieldMask"}, exclude_none=True)
