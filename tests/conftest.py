"""
Pytest configuration and fixtures
"""
import asyncio
import time
from typing import AsyncIterator, Dict, List, Optional

import httpx
import jwt
import pytest
from fastapi.testclient import TestClient

from diskgate.auth.security import get_password_hash
from diskgate.config import Settings
from diskgate.main import create_app
from diskgate.schemas.storage import DiskStatus, DirEntry
from diskgate.storage.provider import StorageProvider, StorageError, StorageNotFound


JWT_SECRET = "test-secret"
BROWSE_USER = "admin"
BROWSE_PASSWORD = "s3cret"
FILE_HOST = "https://downloader.disk.test"


class FakeStorage(StorageProvider):
    """In-memory storage backend recording every call the gateway makes."""

    def __init__(self) -> None:
        self.files: Dict[str, str] = {}
        self.dirs: Dict[str, List[DirEntry]] = {}
        self.uploads: List[dict] = []
        self.upload_attempts = 0
        self.fail_upload = False
        self.fail_file_link = False
        self.dir_list_calls = 0
        self.upload_delay = 0.0

    async def get_status(self) -> DiskStatus:
        return DiskStatus(total_space=100, used_space=40, free_space=60)

    async def get_file_link(self, path: str) -> str:
        if self.fail_file_link:
            raise StorageError("backend down")
        if path not in self.files:
            raise StorageNotFound(path)
        return self.files[path]

    async def get_dir_list(self, path: str) -> List[DirEntry]:
        self.dir_list_calls += 1
        if path not in self.dirs:
            raise StorageNotFound(path)
        return self.dirs[path]

    async def upload_file(self, stream: AsyncIterator[bytes], extension: str, size: Optional[int] = None) -> str:
        self.upload_attempts += 1
        if self.upload_delay:
            await asyncio.sleep(self.upload_delay)
        if self.fail_upload:
            raise StorageError("disk refused the upload")
        body = b"".join([chunk async for chunk in stream])
        path = f"/disk0/uploads/{len(self.uploads)}.{extension}"
        self.uploads.append({"path": path, "extension": extension, "body": body, "size": size})
        return path


def make_token(claims: Optional[dict] = None, secret: str = JWT_SECRET, ttl: Optional[int] = 300) -> str:
    payload = dict(claims or {"target": "avatar", "user": "42"})
    if ttl is not None:
        payload.setdefault("exp", int(time.time()) + ttl)
    return jwt.encode(payload, secret, algorithm="HS256")


class ChunkedBody(httpx.AsyncByteStream):
    """Response body delivered in chunks, the way a real download arrives."""

    def __init__(self, *chunks: bytes) -> None:
        self._chunks = chunks

    async def __aiter__(self):
        for chunk in self._chunks:
            yield chunk


def _file_host(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/missing":
        return httpx.Response(404)
    return httpx.Response(
        200,
        stream=ChunkedBody(b"file-bytes:", request.url.path.encode()),
        headers={"Content-Type": "image/png", "Last-Modified": "Tue, 01 Oct 2024 10:00:00 GMT"},
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        JWT_SECRET=JWT_SECRET,
        TOKEN_LIST="[]",
        BROWSE_USERNAME=BROWSE_USER,
        BROWSE_PASSWORD_HASH=get_password_hash(BROWSE_PASSWORD),
        RATE_LIMIT="10000/minute",
    )


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def app(settings, storage):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(_file_host))
    return create_app(settings, disk_manager=storage, http_client=http_client)


@pytest.fixture
def client(app):
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


@pytest.fixture
def auth():
    return (BROWSE_USER, BROWSE_PASSWORD)
