"""Static path resolution and MIME lookup shared across server modules."""

import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import unquote

from config import DEFAULT_CONTENT_TYPE, INDEX_FILE, MIME_TYPES


@dataclass(slots=True)
class RequestOutcome:
    resolved_path: Path
    exists: bool
    is_regular_file: bool
    extension: str
    content_type: str
    contained: bool = True
    readable: bool = False


def get_content_type(file_path: Path) -> str:
    return MIME_TYPES.get(file_path.suffix.lower(), DEFAULT_CONTENT_TYPE)


def normalize_request_path(raw_target: str) -> str:
    """Drop the query string, percent-decode, and map ``/`` to the index file.

    The target is always an origin-form path, so a leading ``//`` is part of
    the path rather than an authority.
    """
    request_path = unquote(raw_target.partition("?")[0]) or "/"
    if request_path == "/":
        request_path = f"/{INDEX_FILE}"
    return request_path


def resolve_request_path(raw_target: str, root_dir: Path) -> RequestOutcome:
    """Translate a request target into a filesystem outcome under ``root_dir``.

    Paths that resolve outside the root (``..`` segments, encoded dot segments,
    symlinks pointing elsewhere) come back with ``contained=False`` and
    ``exists=False`` whether or not the target is there.
    """
    request_path = normalize_request_path(raw_target)
    root = root_dir.resolve()
    joined = root / request_path.lstrip("/")
    extension = joined.suffix.lower()
    content_type = get_content_type(joined)

    try:
        candidate = joined.resolve()
        candidate.relative_to(root)
    except (ValueError, OSError):
        return RequestOutcome(
            resolved_path=joined,
            exists=False,
            is_regular_file=False,
            extension=extension,
            content_type=content_type,
            contained=False,
        )

    try:
        exists = candidate.exists()
        is_regular_file = exists and candidate.is_file()
    except OSError:
        exists = False
        is_regular_file = False

    return RequestOutcome(
        resolved_path=candidate,
        exists=exists,
        is_regular_file=is_regular_file,
        extension=extension,
        content_type=content_type,
        readable=is_regular_file and os.access(candidate, os.R_OK),
    )
