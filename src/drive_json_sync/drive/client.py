"""Google Drive API client for single JSON documents.

Provides async operations to find, create, update and download one
JSON file identified by exact name.
"""

from __future__ import annotations

import urllib.parse
from dataclasses import dataclass
from typing import Any

import httpx

from drive_json_sync.drive.multipart import JSON_MIME_TYPE, build_json_upload, generate_boundary
from drive_json_sync.exceptions import (
    FileCreateError,
    FileDownloadError,
    FileLookupError,
    FileUpdateError,
    ProtocolError,
)
from drive_json_sync.logging_config import get_logger
from drive_json_sync.responses import raise_for_response, read_json, read_text, send
from drive_json_sync.security import RandomBytes

logger = get_logger(__name__)

DRIVE_FILES_ENDPOINT = "https://www.googleapis.com/drive/v3/files"
DRIVE_UPLOAD_ENDPOINT = "https://www.googleapis.com/upload/drive/v3/files"

# Fields returned by uploads
FILE_FIELDS = "id,name,modifiedTime"

# Default timeout for API requests (seconds)
DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class RemoteFileRef:
    """Reference to one Drive file.

    Attributes:
        id: Drive file ID
        name: File name
        modified_time: RFC 3339 modification timestamp (if requested)
        size_bytes: Size in bytes as returned by Drive, a decimal string
    """

    id: str
    name: str
    modified_time: str | None = None
    size_bytes: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> RemoteFileRef:
        """Create a RemoteFileRef from a Drive file resource."""
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            modified_time=data.get("modifiedTime"),
            size_bytes=data.get("size"),
        )


def _file_from_payload(payload: Any, error_class: type[ProtocolError]) -> RemoteFileRef:
    try:
        return RemoteFileRef.from_api(payload)
    except (KeyError, TypeError, AttributeError) as e:
        message = f"{error_class.prefix}: unexpected response shape"
        raise error_class(message) from e


def escape_query_value(value: str) -> str:
    """Escape a string literal for a Drive ``q`` search expression."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def build_name_query(name: str) -> str:
    """Search expression matching a non-trashed file with exactly ``name``."""
    return f"name='{escape_query_value(name)}' and trashed=false"


class DriveClient:
    """Async client for the Google Drive v3 files API.

    Every call takes the access token explicitly; the client itself
    only holds the HTTP connection pool.

    Example:
        ```python
        async with DriveClient() as drive:
            ref = await drive.find_file_by_name(access_token, "data.json")
            if ref is None:
                ref = await drive.create_json_file(access_token, "data.json", text)
            else:
                ref = await drive.update_json_file(access_token, ref.id, text)
        ```
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        random_bytes: RandomBytes | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize the Drive client.

        Args:
            http_client: Optional custom HTTP client
            random_bytes: Optional randomness source for multipart boundaries
            timeout: Timeout for the HTTP client created when none is given
        """
        self._http_client = http_client
        self._owns_client = http_client is None
        self._random_bytes = random_bytes
        self._timeout = timeout

    async def __aenter__(self) -> DriveClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    @staticmethod
    def _encode_file_id(file_id: str) -> str:
        return urllib.parse.quote(file_id, safe="")

    async def _request(
        self,
        method: str,
        url: str,
        access_token: str,
        error_class: type[ProtocolError],
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
        content: str | bytes | None = None,
    ) -> httpx.Response:
        """Send one authorized request and check its status.

        Returns:
            Successful response with the body still unread

        Raises:
            ProtocolError: On non-2xx responses (as ``error_class``)
            TransportError: If the request could not be completed
        """
        client = await self._get_client()
        request_headers = {"Authorization": f"Bearer {access_token}"}
        if headers:
            request_headers.update(headers)

        request = client.build_request(
            method,
            url,
            params=params,
            headers=request_headers,
            content=content,
        )

        logger.debug("Drive API request: %s %s", method, request.url.path)

        response = await send(client, request, error_class)
        await raise_for_response(response, error_class)
        return response

    async def find_file_by_name(self, access_token: str, name: str) -> RemoteFileRef | None:
        """Find a non-trashed file by exact name.

        If several files share the name, whichever Drive lists first is
        returned.

        Args:
            access_token: OAuth access token
            name: Exact file name

        Returns:
            The first matching file, or None if there is none

        Raises:
            FileLookupError: On non-2xx responses or an unexpected response shape
            TransportError: If the request could not be completed
        """
        params = {
            "q": build_name_query(name),
            "fields": "files(id,name,modifiedTime,size)",
            "pageSize": "1",
        }
        response = await self._request(
            "GET", DRIVE_FILES_ENDPOINT, access_token, FileLookupError, params=params
        )
        payload = await read_json(response, FileLookupError)

        files = payload.get("files", []) if isinstance(payload, dict) else None
        if not isinstance(files, list):
            message = f"{FileLookupError.prefix}: unexpected response shape"
            raise FileLookupError(message)
        if not files:
            logger.debug("No Drive file named %r", name)
            return None

        ref = _file_from_payload(files[0], FileLookupError)
        logger.debug("Found Drive file %s for %r", ref.id, name)
        return ref

    async def create_json_file(
        self,
        access_token: str,
        name: str,
        json_text: str,
    ) -> RemoteFileRef:
        """Create a new JSON file with a multipart upload.

        No deduplication is done: calling this twice with the same name
        creates two files.

        Args:
            access_token: OAuth access token
            name: File name
            json_text: File content, uploaded verbatim

        Returns:
            The created file

        Raises:
            FileCreateError: On non-2xx responses
            TransportError: If the request could not be completed
        """
        upload = build_json_upload(name, json_text, generate_boundary(self._random_bytes))
        response = await self._request(
            "POST",
            DRIVE_UPLOAD_ENDPOINT,
            access_token,
            FileCreateError,
            params={"uploadType": "multipart", "fields": FILE_FIELDS},
            headers={"Content-Type": upload.content_type},
            content=upload.encode(),
        )
        ref = _file_from_payload(await read_json(response, FileCreateError), FileCreateError)
        logger.info("Created Drive file %s (%s)", ref.id, ref.name)
        return ref

    async def update_json_file(
        self,
        access_token: str,
        file_id: str,
        json_text: str,
    ) -> RemoteFileRef:
        """Replace the content of an existing file.

        Metadata such as the name is left untouched.

        Args:
            access_token: OAuth access token
            file_id: ID of an existing file
            json_text: New content, uploaded verbatim

        Returns:
            The updated file

        Raises:
            FileUpdateError: On non-2xx responses, including unknown IDs
            TransportError: If the request could not be completed
        """
        response = await self._request(
            "PATCH",
            f"{DRIVE_UPLOAD_ENDPOINT}/{self._encode_file_id(file_id)}",
            access_token,
            FileUpdateError,
            params={"uploadType": "media", "fields": FILE_FIELDS},
            headers={"Content-Type": JSON_MIME_TYPE},
            content=json_text.encode("utf-8"),
        )
        ref = _file_from_payload(await read_json(response, FileUpdateError), FileUpdateError)
        logger.info("Updated Drive file %s", ref.id)
        return ref

    async def download_json_text(self, access_token: str, file_id: str) -> str:
        """Download a file's raw content.

        The text is returned as-is; parsing it is up to the caller.

        Args:
            access_token: OAuth access token
            file_id: ID of an existing file

        Returns:
            Response body text

        Raises:
            FileDownloadError: On non-2xx responses
            TransportError: If the request could not be completed
        """
        response = await self._request(
            "GET",
            f"{DRIVE_FILES_ENDPOINT}/{self._encode_file_id(file_id)}",
            access_token,
            FileDownloadError,
            params={"alt": "media"},
        )
        text = await read_text(response, FileDownloadError)
        logger.debug("Downloaded %d characters from Drive file %s", len(text), file_id)
        return text
