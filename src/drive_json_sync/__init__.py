"""Drive JSON Sync.

Google OAuth 2.0 (Authorization Code with PKCE) and single-document
JSON sync over the Google Drive v3 API.
"""

__version__ = "0.1.0"

from drive_json_sync.drive.client import DriveClient, RemoteFileRef
from drive_json_sync.exceptions import (
    AuthExchangeError,
    AuthRefreshError,
    DriveSyncError,
    FileCreateError,
    FileDownloadError,
    FileLookupError,
    FileUpdateError,
    ProtocolError,
    TransportError,
)
from drive_json_sync.oauth.flows import GoogleOAuthFlow, TokenSet
from drive_json_sync.oauth.pkce import PKCEPair, create_pkce_pair

__all__ = [
    "AuthExchangeError",
    "AuthRefreshError",
    "DriveClient",
    "DriveSyncError",
    "FileCreateError",
    "FileDownloadError",
    "FileLookupError",
    "FileUpdateError",
    "GoogleOAuthFlow",
    "PKCEPair",
    "ProtocolError",
    "RemoteFileRef",
    "TokenSet",
    "TransportError",
    "__version__",
    "create_pkce_pair",
]
