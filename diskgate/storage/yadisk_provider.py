"""
Yandex Disk storage provider.
Talks to the Yandex Disk REST API for a single account (one OAuth token).
"""
import uuid
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx
import structlog

from ..config import settings
from ..schemas.storage import DiskStatus, DirEntry
from .provider import StorageProvider, StorageError, StorageNotFound


logger = structlog.get_logger(__name__)


class YandexDiskProvider(StorageProvider):
    """One Yandex Disk account behind the StorageProvider interface."""

    def __init__(
        self,
        token: str,
        client: httpx.AsyncClient,
        api_url: Optional[str] = None,
        upload_dir: Optional[str] = None,
        page_size: Optional[int] = None,
    ):
        if not token:
            raise ValueError("Yandex Disk OAuth token is required")
        self.token = token
        self.api_url = (api_url or settings.yadisk_api_url).rstrip("/")
        self.upload_dir = "/" + (upload_dir or settings.upload_dir).strip("/")
        self.page_size = page_size or settings.listing_page_size
        self._client = client
        self._upload_dir_ready = False

    def _get_auth_header(self) -> Dict[str, str]:
        return {"Authorization": f"OAuth {self.token}", "Accept": "application/json"}

    async def _request(self, method: str, endpoint: str, **kwargs) -> httpx.Response:
        url = f"{self.api_url}/{endpoint.lstrip('/')}" if endpoint else self.api_url
        headers = self._get_auth_header()
        headers.update(kwargs.pop("headers", {}))
        try:
            return await self._client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("disk_request_failed", method=method, endpoint=endpoint, error=str(e))
            raise StorageError(f"Yandex Disk request failed: {e}") from e

    def _check(self, response: httpx.Response, path: Optional[str] = None, not_found: bool = True) -> Dict[str, Any]:
        if response.status_code == 404 and not_found:
            raise StorageNotFound(path or "")
        if response.status_code >= 400:
            logger.warning(
                "disk_request_failed",
                url=str(response.request.url),
                status=response.status_code,
                path=path,
            )
            raise StorageError(f"Yandex Disk responded with {response.status_code}")
        try:
            return response.json()
        except ValueError as e:
            raise StorageError("Yandex Disk returned a non-JSON body") from e

    async def get_status(self) -> DiskStatus:
        data = self._check(await self._request("GET", ""), not_found=False)
        total = int(data.get("total_space") or 0)
        used = int(data.get("used_space") or 0)
        return DiskStatus(total_space=total, used_space=used, free_space=max(total - used, 0))

    async def get_file_link(self, path: str) -> str:
        resp = await self._request("GET", "resources", params={"path": path, "fields": "type,file"})
        data = self._check(resp, path)
        if data.get("type") != "file":
            raise StorageNotFound(path)
        link = data.get("file")
        if link:
            return link
        # Some resources come back without an inline link; ask for one explicitly
        resp = await self._request("GET", "resources/download", params={"path": path})
        return self._check(resp, path)["href"]

    async def get_dir_list(self, path: str) -> List[DirEntry]:
        entries: List[DirEntry] = []
        offset = 0
        while True:
            resp = await self._request(
                "GET",
                "resources",
                params={"path": path, "limit": self.page_size, "offset": offset},
            )
            data = self._check(resp, path)
            if data.get("type") != "dir":
                raise StorageNotFound(path)
            embedded = data.get("_embedded") or {}
            page = embedded.get("items") or []
            for item in page:
                entries.append(
                    DirEntry(
                        name=item["name"],
                        type=item.get("type", "file"),
                        size=item.get("size"),
                        mime_type=item.get("mime_type"),
                        modified=item.get("modified"),
                    )
                )
            offset += len(page)
            if not page or offset >= int(embedded.get("total") or 0):
                return entries

    async def _ensure_upload_dir(self) -> None:
        if self._upload_dir_ready:
            return
        current = ""
        for part in self.upload_dir.strip("/").split("/"):
            if not part:
                continue
            current = f"{current}/{part}"
            resp = await self._request("PUT", "resources", params={"path": current})
            # 409: directory already exists
            if resp.status_code not in (201, 409):
                self._check(resp, current, not_found=False)
        self._upload_dir_ready = True

    async def upload_file(self, stream: AsyncIterator[bytes], extension: str, size: Optional[int] = None) -> str:
        await self._ensure_upload_dir()
        path = f"{self.upload_dir.rstrip('/')}/{uuid.uuid4().hex}.{extension}"

        resp = await self._request("GET", "resources/upload", params={"path": path, "overwrite": "false"})
        target = self._check(resp, path, not_found=False)
        if not target.get("href"):
            raise StorageError("Yandex Disk returned no upload link")

        headers = {}
        if size is not None:
            headers["Content-Length"] = str(size)
        try:
            put = await self._client.request(
                target.get("method", "PUT"), target["href"], content=stream, headers=headers
            )
        except httpx.HTTPError as e:
            logger.warning("disk_upload_failed", path=path, error=str(e))
            raise StorageError(f"Upload to Yandex Disk failed: {e}") from e
        if put.status_code not in (201, 202):
            logger.warning("disk_upload_failed", path=path, status=put.status_code)
            raise StorageError(f"Yandex Disk rejected the upload with {put.status_code}")
        return path
