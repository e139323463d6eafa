import posixpath
from pathlib import Path
from urllib.parse import quote

import httpx
import structlog
from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse
from fastapi.templating import Jinja2Templates
from starlette.background import BackgroundTask

from ..auth.security import check_browse_auth
from ..deps import HttpClientDep, SettingsDep, StorageDep
from ..errors import NotAuthorized, NotFound
from ..schemas.storage import DiskStatus
from ..storage.provider import StorageError, StorageNotFound


logger = structlog.get_logger(__name__)

router = APIRouter(tags=["browse"])

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))

# Upstream headers worth handing to the client when proxying a file
PASSTHROUGH_HEADERS = (
    "content-type",
    "content-length",
    "content-encoding",
    "content-disposition",
    "last-modified",
    "etag",
)


def human_filesize(num) -> str:
    if num is None:
        return "N/A"
    if num < 1024:
        return f"{num} B"
    for unit in ["KB", "MB", "GB", "TB"]:
        num /= 1024.0
        if abs(num) < 1024.0:
            return f"{num:.2f} {unit}"
    return f"{num:.2f} PB"


async def stream_remote_file(client: httpx.AsyncClient, uri: str) -> StreamingResponse:
    try:
        upstream = await client.send(client.build_request("GET", uri), stream=True)
    except httpx.HTTPError as e:
        raise StorageError(f"Fetching file bytes failed: {e}") from e
    if upstream.status_code >= 400:
        await upstream.aclose()
        raise StorageError(f"File link responded with {upstream.status_code}")
    headers = {k: upstream.headers[k] for k in PASSTHROUGH_HEADERS if k in upstream.headers}
    return StreamingResponse(
        upstream.aiter_raw(),
        status_code=200,
        headers=headers,
        background=BackgroundTask(upstream.aclose),
    )


@router.get("/status.json", response_model=DiskStatus)
async def status_json(storage: StorageDep):
    return await storage.get_status()


@router.get("/{path:path}")
async def browse(path: str, request: Request, settings: SettingsDep, storage: StorageDep, client: HttpClientDep):
    path = "/" + path.lstrip("/")

    # Only a missing file falls through to a listing; other backend errors propagate
    try:
        uri = await storage.get_file_link(path)
    except StorageNotFound:
        pass
    else:
        return await stream_remote_file(client, uri)

    try:
        await check_browse_auth(request, settings)
    except NotAuthorized:
        logger.info("browse_unauthorized", path=path)
        raise

    try:
        entries = await storage.get_dir_list(path)
    except StorageNotFound:
        raise NotFound()

    base = path if path.endswith("/") else f"{path}/"
    dir_list = [
        {
            "name": entry.name,
            "type": entry.type,
            "size": human_filesize(entry.size),
            "link": quote(f"{base}{entry.name}"),
        }
        for entry in entries
    ]
    parent = quote(posixpath.dirname(path.rstrip("/")) or "/")
    return templates.TemplateResponse(
        request, "dir_list.html", {"path": path, "parent": parent, "dir_list": dir_list}
    )
