from typing import AsyncIterator, List, Optional

from ..schemas.storage import DiskStatus, DirEntry


class StorageError(Exception):
    """The storage backend failed to serve a request."""


class StorageNotFound(StorageError):
    """The requested resource does not exist (or is not of the requested kind)."""


class StorageProvider:
    async def get_status(self) -> DiskStatus:
        raise NotImplementedError

    async def get_file_link(self, path: str) -> str:
        raise NotImplementedError

    async def get_dir_list(self, path: str) -> List[DirEntry]:
        raise NotImplementedError

    async def upload_file(self, stream: AsyncIterator[bytes], extension: str, size: Optional[int] = None) -> str:
        raise NotImplementedError
