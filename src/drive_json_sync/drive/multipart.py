"""multipart/related body construction for Drive uploads."""

from __future__ import annotations

import json
from dataclasses import dataclass

from drive_json_sync.security import RandomBytes, random_string

BOUNDARY_PREFIX = "lifecycleinsights-"
BOUNDARY_RANDOM_LENGTH = 12

JSON_MIME_TYPE = "application/json"


@dataclass(frozen=True)
class MultipartBody:
    """Encoded multipart body and its boundary."""

    boundary: str
    body: str

    @property
    def content_type(self) -> str:
        """Value for the request's Content-Type header."""
        return f"multipart/related; boundary={self.boundary}"

    def encode(self) -> bytes:
        return self.body.encode("utf-8")


def generate_boundary(random_bytes: RandomBytes | None = None) -> str:
    """Generate a boundary token for a multipart body."""
    return f"{BOUNDARY_PREFIX}{random_string(BOUNDARY_RANDOM_LENGTH, random_bytes)}"


def build_json_upload(
    name: str,
    json_text: str,
    boundary: str,
) -> MultipartBody:
    """Build a metadata + content body for creating a JSON file.

    Part one holds the file metadata, part two the JSON text verbatim.

    Args:
        name: File name to create
        json_text: File content
        boundary: Boundary token

    Returns:
        MultipartBody ready to send
    """
    metadata = json.dumps({"name": name, "mimeType": JSON_MIME_TYPE}, separators=(",", ":"))
    body = (
        f"--{boundary}\r\n"
        f"Content-Type: {JSON_MIME_TYPE}; charset=UTF-8\r\n\r\n"
        f"{metadata}\r\n"
        f"--{boundary}\r\n"
        f"Content-Type: {JSON_MIME_TYPE}\r\n\r\n"
        f"{json_text}\r\n"
        f"--{boundary}--"
    )
    return MultipartBody(boundary=boundary, body=body)
