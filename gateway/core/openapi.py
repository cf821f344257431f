"""OpenAPI metadata and customization utilities.

Enriches the generated schema with:
- Tags metadata for each upstream group
- The shared error envelope as a reusable component
- Documented 429/502/503/504 responses on every rate-limited ``/api`` path

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

TAGS_METADATA = [
    {"name": "Campus shuttle", "description": "NUS NextBus shuttle data."},
    {"name": "Public transit", "description": "LTA DataMall bus stops, routes and arrivals."},
    {"name": "Routing", "description": "Google Routes route computation."},
    {"name": "Places", "description": "Google Places search and details."},
    {"name": "Directions", "description": "Google Directions."},
    {"name": "Health", "description": "Liveness check; exempt from rate limiting."},
]

_ERROR_SCHEMA = {
    "type": "object",
    "properties": {
        "error": {
            "type": "object",
            "properties": {
                "code": {"type": "string"},
                "message": {"type": "string"},
                "request_id": {"type": "string", "nullable": True},
                "details": {"type": "object"},
            },
            "required": ["code", "message"],
        }
    },
}

_API_ERROR_RESPONSES = {
    "429": "Rate limit exceeded; see the Retry-After header.",
    "502": "Upstream service failed or returned an unreadable response.",
    "503": "Upstream service could not be reached.",
    "504": "Upstream service timed out.",
}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tags and error responses."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema
        schema = original_openapi()

        components = schema.setdefault("components", {})
        components.setdefault("schemas", {}).setdefault("ErrorResponse", _ERROR_SCHEMA)
        error_ref = {"$ref": "#/components/schemas/ErrorResponse"}

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in TAGS_METADATA:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for path, methods in schema.get("paths", {}).items():
            if not path.startswith("/api/"):
                continue
            for method_obj in methods.values():
                if not isinstance(method_obj, dict):
                    continue
                responses = method_obj.setdefault("responses", {})
                for status, description in _API_ERROR_RESPONSES.items():
                    responses.setdefault(
                        status,
                        {
                            "description": description,
                            "content": {"application/json": {"schema": error_ref}},
                        },
                    )

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
