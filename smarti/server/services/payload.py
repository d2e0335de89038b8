"""Helpers for request bodies that are validated by hand."""

import json
from typing import Any, Dict

from fastapi import Request

from smarti.core.errors import MalformedPayloadError


async def read_json_object(request: Request) -> Dict[str, Any]:
    """Parse the body as a JSON object.

    Raises:
        MalformedPayloadError: The body is not JSON or not an object
    """
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise MalformedPayloadError("Invalid JSON body") from exc
    if not isinstance(body, dict):
        raise MalformedPayloadError("Request body must be a JSON object")
    return body
