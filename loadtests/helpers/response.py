"""Response error extraction for load test observability.

Turns Storefront API error bodies into one-line messages:

- Pydantic validation (422): {"detail": [{"loc": [...], "msg": "..."}]}
- Domain errors (400/404/409/503): {"error": "msg"} or {"error": {"field": ["msg", ...]}}
- Rejected payment (402): a checkout body whose order status is payment_failed
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from requests import Response


def _join_messages(value) -> str:
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return str(value)


def extract_error_detail(response: Response) -> str:
    """Extract a compact, human-readable error message from an API response."""
    try:
        body = response.json()
    except ValueError:
        text = getattr(response, "text", "") or ""
        return text[:300] or "(empty response body)"

    if isinstance(body, dict) and isinstance(body.get("detail"), list):
        parts = []
        for err in body["detail"]:
            loc = ".".join(str(p) for p in err.get("loc", []))
            msg = err.get("msg", str(err))
            parts.append(f"{loc}: {msg}" if loc else msg)
        return " | ".join(parts)

    if isinstance(body, dict) and "error" in body:
        error = body["error"]
        if isinstance(error, dict):
            return " | ".join(f"{k}: {_join_messages(v)}" for k, v in error.items())
        return str(error)

    if isinstance(body, dict) and isinstance(body.get("order"), dict):
        return f"order {body['order'].get('id')} is {body['order'].get('status')}"

    return str(body)[:300]
