from pydantic import BaseModel
from typing import Optional, List


class DiskInfo(BaseModel):
    id: str
    total_space: int
    used_space: int
    free_space: int


class DiskStatus(BaseModel):
    total_space: int
    used_space: int
    free_space: int
    disks: List[DiskInfo] = []


class DirEntry(BaseModel):
    name: str
    type: str  # "dir" | "file"
    size: Optional[int] = None
    mime_type: Optional[str] = None
    modified: Optional[str] = None
