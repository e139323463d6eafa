from typing import Optional

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from ..auth.tokens import verify_upload_token
from ..deps import AdmissionDep, SettingsDep, StorageDep
from ..errors import AlreadyUsed, InvalidToken, MissingContentType
from ..services.content_types import resolve_extension
from ..storage.provider import StorageError


logger = structlog.get_logger(__name__)

router = APIRouter(tags=["upload"])


def _content_length(request: Request) -> Optional[int]:
    raw = request.headers.get("content-length")
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


@router.put("/upload-target/{token}", status_code=201, response_class=PlainTextResponse)
async def upload_target(
    token: str,
    request: Request,
    settings: SettingsDep,
    registry: AdmissionDep,
    storage: StorageDep,
):
    try:
        claims = verify_upload_token(
            token,
            secret=settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            leeway=settings.jwt_leeway,
            require_exp=settings.upload_token_require_exp,
        )
    except InvalidToken as e:
        logger.info("upload_token_rejected", reason=e.reason)
        raise

    if registry.has_been_admitted(claims):
        logger.info("upload_replay_rejected")
        raise AlreadyUsed()

    content_type = request.headers.get("content-type")
    if not content_type:
        raise MissingContentType()
    extension = resolve_extension(content_type)

    # The token is burned from here on, whatever happens to the transfer.
    # try_admit also catches a concurrent request that passed the check above.
    if not registry.try_admit(claims):
        logger.info("upload_replay_rejected", concurrent=True)
        raise AlreadyUsed()
    logger.info("upload_admitted", content_type=content_type, extension=extension)

    try:
        path = await storage.upload_file(request.stream(), extension, size=_content_length(request))
    except StorageError as e:
        logger.warning("upload_failed", extension=extension, error=str(e))
        raise

    logger.info("upload_completed", path=path)
    return PlainTextResponse(path, status_code=201)
