"""Google Drive API client and utilities."""

from drive_json_sync.drive.client import DriveClient, RemoteFileRef
from drive_json_sync.drive.multipart import MultipartBody, build_json_upload

__all__ = [
    "DriveClient",
    "MultipartBody",
    "RemoteFileRef",
    "build_json_upload",
]
