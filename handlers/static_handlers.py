"""Route handlers for static files and the health endpoint."""

import json
from pathlib import Path

from request import HTTPRequest
from response import HTTPResponse
from utils import resolve_request_path


def serve_static(request: HTTPRequest, root_dir: Path) -> HTTPResponse:
    outcome = resolve_request_path(request.raw_target, root_dir)
    if not outcome.contained:
        return HTTPResponse(status_code=403, body="Forbidden")

    if not outcome.exists or not outcome.is_regular_file:
        return HTTPResponse(status_code=404, body="Not Found")

    if not outcome.readable:
        return HTTPResponse(status_code=403, body="Forbidden")

    return HTTPResponse(
        status_code=200,
        headers={"Content-Type": outcome.content_type},
        file_path=outcome.resolved_path,
    )


def health(request: HTTPRequest, root_dir: Path) -> HTTPResponse:
    _ = request
    payload = {"status": "ok", "root": str(root_dir)}
    return HTTPResponse(
        status_code=200,
        headers={"Content-Type": "application/json"},
        body=json.dumps(payload, sort_keys=True),
    )
