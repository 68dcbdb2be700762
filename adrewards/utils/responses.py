# utils/responses.py
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder


def ok(data: Any = None, message: Optional[str] = None) -> dict:
    """Success envelope: {"success": true, "message"?: str, "data": ...}"""
    body = {"success": True}
    if message:
        body["message"] = message
    body["data"] = jsonable_encoder(data)
    return body


def fail(error: str) -> dict:
    return {"success": False, "error": error}
