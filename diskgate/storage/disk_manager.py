import asyncio
from typing import AsyncIterator, Dict, List, Optional, Tuple

import httpx
import structlog

from ..config import Settings
from ..schemas.storage import DiskInfo, DiskStatus, DirEntry
from .provider import StorageProvider, StorageError, StorageNotFound
from .yadisk_provider import YandexDiskProvider


logger = structlog.get_logger(__name__)


class DiskManager(StorageProvider):
    """Presents several disks as one tree.

    Public paths look like ``/<disk id>/<path on that disk>``; the root lists
    the disks themselves. Uploads go to whichever disk has the most room.
    """

    def __init__(self, disks: Dict[str, StorageProvider]):
        self.disks = dict(disks)

    @classmethod
    def from_settings(cls, settings: Settings, client: httpx.AsyncClient) -> "DiskManager":
        disks = {
            disk_id: YandexDiskProvider(
                token,
                client,
                api_url=settings.yadisk_api_url,
                upload_dir=settings.upload_dir,
                page_size=settings.listing_page_size,
            )
            for disk_id, token in settings.disk_tokens.items()
        }
        return cls(disks)

    def _resolve(self, path: str) -> Tuple[str, StorageProvider, str]:
        disk_id, _, rest = path.strip("/").partition("/")
        provider = self.disks.get(disk_id)
        if provider is None:
            raise StorageNotFound(path)
        return disk_id, provider, "/" + rest

    async def _statuses(self) -> List[Tuple[str, DiskStatus]]:
        ids = list(self.disks)
        results = await asyncio.gather(*(self.disks[i].get_status() for i in ids))
        return list(zip(ids, results))

    async def get_status(self) -> DiskStatus:
        statuses = await self._statuses()
        disks = [
            DiskInfo(id=disk_id, total_space=s.total_space, used_space=s.used_space, free_space=s.free_space)
            for disk_id, s in statuses
        ]
        return DiskStatus(
            total_space=sum(d.total_space for d in disks),
            used_space=sum(d.used_space for d in disks),
            free_space=sum(d.free_space for d in disks),
            disks=disks,
        )

    async def get_file_link(self, path: str) -> str:
        if not path.strip("/"):
            raise StorageNotFound(path)
        _, provider, inner = self._resolve(path)
        return await provider.get_file_link(inner)

    async def get_dir_list(self, path: str) -> List[DirEntry]:
        if not path.strip("/"):
            return [DirEntry(name=disk_id, type="dir") for disk_id in self.disks]
        _, provider, inner = self._resolve(path)
        return await provider.get_dir_list(inner)

    async def upload_file(self, stream: AsyncIterator[bytes], extension: str, size: Optional[int] = None) -> str:
        if not self.disks:
            raise StorageError("No disks configured")
        statuses = await self._statuses()
        disk_id, status = max(statuses, key=lambda item: item[1].free_space)
        if size is not None and status.free_space < size:
            logger.warning("disk_space_exhausted", size=size, free_space=status.free_space)
            raise StorageError("No disk has enough free space")
        stored = await self.disks[disk_id].upload_file(stream, extension, size=size)
        return f"/{disk_id}{stored}"
