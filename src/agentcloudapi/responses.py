"""Responses for form submissions made either by the web client or a browser."""

from typing import Any, Optional

from fastapi import Request
from fastapi.responses import JSONResponse, RedirectResponse


def wants_json(request: Request) -> bool:
    """Whether the caller sent or asked for JSON rather than posting a plain form."""
    accept = request.headers.get("accept", "")
    content_type = request.headers.get("content-type", "")
    return "application/json" in accept or content_type.startswith("application/json")


def dynamic_response(
    request: Request, status_code: int, data: Optional[dict[str, Any]] = None
):
    """Answer a form submission.

    JSON clients receive the payload; a 302 becomes a 200 carrying the redirect
    target so the client can navigate itself. Browser form posts follow the
    redirect, or on error are sent back to the referring page.
    """
    data = data or {}
    if wants_json(request):
        return JSONResponse(
            status_code=200 if status_code == 302 else status_code, content=data
        )
    if status_code == 302:
        return RedirectResponse(
            url=data.get("redirect") or request.headers.get("referer", "/"),
            status_code=302,
        )
    return JSONResponse(status_code=status_code, content=data)


def form_error(request: Request, message: str, status_code: int = 400):
    """Reject a form submission with a human readable message."""
    return dynamic_response(request, status_code, {"error": message})
