from typing import Dict, FrozenSet

from ..errors import UnsupportedContentType


# Exact MIME type -> extension of the stored file.
CONTENT_TYPE_EXTENSIONS: Dict[str, str] = {
    # Images
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/bmp": "bmp",
    "image/tiff": "tiff",
    "image/heic": "heic",
    "image/svg+xml": "svg",
    # Audio
    "audio/mpeg": "mp3",
    "audio/ogg": "ogg",
    "audio/wav": "wav",
    "audio/webm": "weba",
    "audio/aac": "aac",
    "audio/flac": "flac",
    # Video
    "video/mp4": "mp4",
    "video/webm": "webm",
    "video/ogg": "ogv",
    "video/quicktime": "mov",
    "video/x-matroska": "mkv",
    # Documents
    "application/pdf": "pdf",
    "application/msword": "doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
    "application/vnd.ms-excel": "xls",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": "xlsx",
    "text/plain": "txt",
    "text/csv": "csv",
    "application/json": "json",
    # Archives
    "application/zip": "zip",
    "application/gzip": "gz",
    "application/x-7z-compressed": "7z",
    "application/x-tar": "tar",
}


def supported_content_types() -> FrozenSet[str]:
    return frozenset(CONTENT_TYPE_EXTENSIONS)


def resolve_extension(content_type: str) -> str:
    """Map a Content-Type header value to a file extension.

    Only exact, parameter-free MIME types are recognized; anything else is
    rejected instead of guessed.
    """
    # MIME types are case-insensitive; beyond case and surrounding blanks the match is exact
    extension = CONTENT_TYPE_EXTENSIONS.get(content_type.strip().lower())
    if extension is None:
        raise UnsupportedContentType(f"Unsupported `Content-Type`: {content_type}.")
    return extension
