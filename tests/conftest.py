"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import os
from collections.abc import AsyncIterator, Iterator

import httpx
import pytest

from drive_json_sync.config import ENV_MAPPING, ENV_PREFIX
from drive_json_sync.drive.client import DriveClient
from drive_json_sync.oauth.flows import GoogleOAuthFlow
from drive_json_sync.security import RandomBytes, Sha256Hasher


class CountingRandomBytes(RandomBytes):
    """Deterministic randomness: returns 0, 1, 2, ... for each call."""

    def __init__(self) -> None:
        self.calls: list[int] = []

    def __call__(self, n: int) -> bytes:
        self.calls.append(n)
        return bytes(i % 256 for i in range(n))


class FailingStream(httpx.AsyncByteStream):
    """Response body that fails as soon as it is read."""

    async def __aiter__(self) -> AsyncIterator[bytes]:
        raise httpx.ReadError("connection reset while reading body")
        yield b""  # pragma: no cover


class ConstantSha256(Sha256Hasher):
    """Hash capability that ignores its input."""

    def __init__(self, digest: bytes) -> None:
        self.digest = digest
        self.inputs: list[bytes] = []

    def __call__(self, data: bytes) -> bytes:
        self.inputs.append(data)
        return self.digest


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep DRIVE_SYNC_* variables out of tests, including ones .env files set."""
    suffixes = (*ENV_MAPPING.values(), "ACCESS_TOKEN", "REFRESH_TOKEN")
    names = [f"{ENV_PREFIX}{suffix}" for suffix in suffixes]
    for name in names:
        monkeypatch.delenv(name, raising=False)
    yield
    for name in names:
        os.environ.pop(name, None)


@pytest.fixture
def random_bytes() -> CountingRandomBytes:
    """Deterministic randomness source."""
    return CountingRandomBytes()


@pytest.fixture
def constant_sha256() -> type[ConstantSha256]:
    """Factory for hash capabilities with a fixed digest."""
    return ConstantSha256


@pytest.fixture
def failing_stream() -> FailingStream:
    """Response body stream that raises on read."""
    return FailingStream()


@pytest.fixture
async def oauth_flow() -> AsyncIterator[GoogleOAuthFlow]:
    """OAuth flow with its own HTTP client."""
    flow = GoogleOAuthFlow()
    yield flow
    await flow.close()


@pytest.fixture
async def drive(random_bytes: CountingRandomBytes) -> AsyncIterator[DriveClient]:
    """Drive client with deterministic multipart boundaries."""
    client = DriveClient(random_bytes=random_bytes)
    yield client
    await client.close()

