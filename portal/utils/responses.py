# portal/utils/responses.py
from typing import Any, Dict, Optional

from fastapi import Request


def ok(message: str, data: Any = None) -> Dict[str, Any]:
    return {"success": True, "message": message, "data": data}


def error_body(message: str, errors: Optional[Any] = None) -> Dict[str, Any]:
    body = {"success": False, "message": message}
    if errors is not None:
        body["errors"] = errors
    return body


def client_meta(request: Request, place: Optional[str] = None) -> Dict[str, Any]:
    """Client details stored with declarations and payment orders."""
    forwarded = request.headers.get("x-forwarded-for")
    ip_address = forwarded.split(",")[0].strip() if forwarded else (request.client.host if request.client else None)
    return {
        "ip_address": ip_address,
        "user_agent": request.headers.get("user-agent"),
        "place": place,
    }
