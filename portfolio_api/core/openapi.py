"""OpenAPI metadata and customization utilities.

Provides a helper to enrich the generated OpenAPI schema with:
- Tags metadata
- API key security schemes (``X-API-Key`` header or ``Authorization: Bearer``)
  attached only to the operations that enforce them

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

_SECURITY_REQUIREMENT = [{"ApiKeyAuth": []}, {"BearerAuth": []}]

# (method, path prefix) pairs that require an API key
_PROTECTED_OPERATIONS = (
    ("put", "/api/v1/content"),
    ("get", "/api/v1/content/history/"),
    ("post", "/api/v1/github/sync/"),
    ("*", "/api/v1/admin/"),
)

_TAGS = [
    {"name": "Info", "description": "API metadata and active rate limits."},
    {"name": "Content", "description": "Versioned portfolio content documents."},
    {"name": "GitHub", "description": "Cached GitHub profile data (stricter rate limit)."},
    {"name": "Analytics", "description": "Portfolio summary, cache and rate limiter statistics."},
    {"name": "Admin", "description": "Cache maintenance. Requires an API key."},
    {"name": "Health", "description": "Liveness and readiness checks."},
]


def _is_protected(method: str, path: str) -> bool:
    return any(
        (m == "*" or m == method) and (path == prefix or path.startswith(prefix))
        for m, prefix in _PROTECTED_OPERATIONS
    )


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tags and security.

    Every response documents the X-Rate-Limit-* headers implicitly; only the
    write, history and admin operations carry a security requirement.
    """

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        components = schema.setdefault("components", {})
        security_schemes = components.setdefault("securitySchemes", {})
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
            "BearerAuth",
            {
                "type": "http",
                "scheme": "bearer",
                "description": "Alternatively send the API key as a bearer token.",
            },
        )

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in _TAGS:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for path, methods in schema.get("paths", {}).items():
            for method, operation in methods.items():
                if isinstance(operation, dict) and _is_protected(method, path):
                    operation["security"] = _SECURITY_REQUIREMENT

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
