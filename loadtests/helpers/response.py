"""Response error extraction for load test observability.

Parses Dispatch API error responses into human-readable messages.
Handles three response shapes:

- Pydantic validation (422): {"detail": [{"loc": [...], "msg": "...", "type": "..."}]}
- Lifecycle errors (403/404/409/503): {"error": "conflict", "reason": "..."}
- Domain validation (400): {"error": "validation", "messages": {"field": ["msg"]}}
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from requests import Response


def extract_error_detail(response: Response) -> str:
    """Extract a human-readable error message from an API error response.

    Returns a compact string suitable for Locust failure messages and log lines.
    """
    try:
        body = response.json()
    except Exception:
        text = getattr(response, "text", "") or ""
        return text[:300] or "(empty response body)"

    if "detail" in body and isinstance(body["detail"], list):
        parts = []
        for err in body["detail"]:
            loc = ".".join(str(p) for p in err.get("loc", []))
            msg = err.get("msg", str(err))
            parts.append(f"{loc}: {msg}" if loc else msg)
        return " | ".join(parts)

    if "messages" in body and isinstance(body["messages"], dict):
        return " | ".join(f"{k}: {', '.join(map(str, v)) if isinstance(v, list) else v}" for k, v in body["messages"].items())

    if "reason" in body:
        return f"{body.get('error', 'error')}: {body['reason']}"

    return str(body)[:300]
