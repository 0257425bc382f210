"""Outbound HTTP calls to webhooks, the email relay, and the AI provider."""

from __future__ import annotations

from typing import Any

import httpx


class ExternalAPIError(Exception):
    """Raised when an external endpoint rejects a call or returns an unusable body."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


async def post_json(
    url: str,
    payload: Any,
    *,
    headers: dict[str, str] | None = None,
    timeout: float | None = 30.0,
) -> httpx.Response:
    """POST a JSON body and return the response without raising on status."""
    async with httpx.AsyncClient(timeout=timeout) as client:
        return await client.post(url, json=payload, headers=headers)


def response_error_message(response: httpx.Response) -> str:
    """Prefer a JSON `message` field, else fall back to the status code."""
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return f"HTTP {response.status_code}"
