"""HTTP response handling shared by every network operation.

Converts non-2xx responses into one uniform error message regardless
of the shape of the remote error body, and wraps transport failures.
"""

from __future__ import annotations

import json
from typing import Any

import httpx

from drive_json_sync.exceptions import ProtocolError, TransportError
from drive_json_sync.logging_config import get_logger

logger = get_logger(__name__)


def normalize_error_message(prefix: str, text: str | None) -> str:
    """Build the uniform error message for a failed response.

    Rules:
    - unreadable (``None``) or empty body: the bare prefix
    - JSON body with a non-empty ``error.message``: prefix plus that message
    - anything else: prefix plus the raw body text

    Args:
        prefix: Operation-specific message prefix
        text: Response body text, or None if it could not be read

    Returns:
        Normalized error message
    """
    if not text:
        return prefix

    try:
        payload = json.loads(text)
    except ValueError:
        return f"{prefix}: {text}"

    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict):
            message = error.get("message")
            if isinstance(message, str) and message:
                return f"{prefix}: {message}"

    return f"{prefix}: {text}"


async def read_body_text(response: httpx.Response) -> str | None:
    """Read a response body as text, returning None if reading fails."""
    try:
        await response.aread()
        return response.text
    except (httpx.HTTPError, httpx.StreamError, UnicodeDecodeError) as e:
        logger.debug("Could not read response body: %s", e)
        await response.aclose()
        return None


async def raise_for_response(
    response: httpx.Response,
    error_class: type[ProtocolError],
) -> None:
    """Raise ``error_class`` with a normalized message on non-2xx responses.

    Args:
        response: HTTP response (body may still be unread)
        error_class: ProtocolError subclass for the calling operation

    Raises:
        ProtocolError: If the response status is not 2xx
    """
    if response.is_success:
        return

    text = await read_body_text(response)
    message = normalize_error_message(error_class.prefix, text)
    logger.error("%s (HTTP %s)", message, response.status_code)
    raise error_class(message, response.status_code, text or None)


async def read_text(response: httpx.Response, error_class: type[ProtocolError]) -> str:
    """Read a successful response body as text.

    Raises:
        TransportError: If the body cannot be read
    """
    try:
        await response.aread()
    except httpx.HTTPError as e:
        await response.aclose()
        raise TransportError(f"{error_class.prefix}: {e}") from e
    return response.text


async def read_json(response: httpx.Response, error_class: type[ProtocolError]) -> Any:
    """Read and decode a successful JSON response body.

    Raises:
        TransportError: If the body cannot be read
        ProtocolError: If the body is not valid JSON
    """
    text = await read_text(response, error_class)
    try:
        return json.loads(text)
    except ValueError as e:
        message = f"{error_class.prefix}: invalid JSON response"
        raise error_class(message, response_body=text) from e


async def send(
    client: httpx.AsyncClient,
    request: httpx.Request,
    error_class: type[ProtocolError],
) -> httpx.Response:
    """Send a single request without retrying.

    The response is returned unread so that body read failures can be
    told apart from connection failures.

    Raises:
        TransportError: If the request could not be completed
    """
    try:
        return await client.send(request, stream=True)
    except httpx.TransportError as e:
        logger.error("%s: %s", error_class.prefix, e)
        raise TransportError(f"{error_class.prefix}: {e}") from e
