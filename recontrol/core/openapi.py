"""OpenAPI customization for the admin API.

Adds the two header security schemes every admin route expects
(``X-API-Key`` and the operator identity header) and tag descriptions.
Health endpoints are exempt from both.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

from recontrol.core.config import settings

_TAGS = [
    {
        "name": "Admin",
        "description": "Workspace entitlements, usage, audit log and dashboard anomalies.",
    },
    {
        "name": "Sense",
        "description": "Market catalogue, market requests and bootstrap pipeline triggers.",
    },
    {
        "name": "Health",
        "description": "Liveness and readiness checks.",
    },
]


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add security schemes and tags."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        security_schemes = schema.setdefault("components", {}).setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "ApiKeyAuth",
            {
                "type": "apiKey",
                "in": "header",
                "name": "X-API-Key",
                "description": "Provide your API key via the X-API-Key header.",
            },
        )
        security_schemes.setdefault(
            "AdminIdentity",
            {
                "type": "apiKey",
                "in": "header",
                "name": settings.app.admin_identity_header,
                "description": "Id of the operator performing the request (rate limit and audit key).",
            },
        )

        # Both headers are required together
        schema.setdefault("security", [{"ApiKeyAuth": [], "AdminIdentity": []}])

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        tags.extend(tag for tag in _TAGS if tag["name"] not in existing_tag_names)

        for path, methods in schema.get("paths", {}).items():
            if path.startswith("/health"):
                for method_obj in methods.values():
                    if isinstance(method_obj, dict):
                        method_obj["security"] = []

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
