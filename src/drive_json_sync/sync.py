"""Find-then-write and find-then-read helpers for one synced document.

These compose the Drive operations the way a sync caller would. The
lookup and the write are separate requests: two writers running
``push_json`` at the same time can both see "no file" and both create
one. Single-writer use is assumed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from drive_json_sync.logging_config import get_logger

if TYPE_CHECKING:
    from drive_json_sync.drive.client import DriveClient, RemoteFileRef

logger = get_logger(__name__)


async def push_json(
    drive: DriveClient,
    access_token: str,
    name: str,
    json_text: str,
) -> RemoteFileRef:
    """Upload ``json_text`` to the file called ``name``, creating it if needed.

    Returns:
        The created or updated file
    """
    existing = await drive.find_file_by_name(access_token, name)
    if existing is None:
        logger.debug("No remote copy of %r, creating one", name)
        return await drive.create_json_file(access_token, name, json_text)

    return await drive.update_json_file(access_token, existing.id, json_text)


async def pull_json(drive: DriveClient, access_token: str, name: str) -> str | None:
    """Download the content of the file called ``name``.

    Returns:
        The raw text, or None if no such file exists
    """
    existing = await drive.find_file_by_name(access_token, name)
    if existing is None:
        return None

    return await drive.download_json_text(access_token, existing.id)
