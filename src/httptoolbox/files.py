"""
=============================================================================
FILES
=============================================================================

Filesystem helpers: creating directories and handing a file on disk to
the client as a download.

=============================================================================
DOWNLOAD vs DISPLAY
=============================================================================

Browsers decide what to do with a response from its Content-Disposition
header:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  Content-Disposition: inline                                        │
    │      → show it in the tab (images, PDFs, text)                      │
    │                                                                      │
    │  Content-Disposition: attachment; filename="report.pdf"             │
    │      → open the "save as" dialog, suggesting report.pdf             │
    └─────────────────────────────────────────────────────────────────────┘

download_static_file() always sends "attachment", with a display name
that may differ from the name on disk (store "a8f3k2.pdf", offer
"invoice-2026-10.pdf").

=============================================================================
PATH TRAVERSAL
=============================================================================

The file name usually comes from the request. It is resolved against the
directory and must still be inside it afterwards:

    directory = /var/app/downloads
    file      = ../../etc/passwd
    resolved  = /etc/passwd            → outside directory → 403 Forbidden

=============================================================================
"""

import os
import logging
from datetime import datetime, timezone
from http import HTTPStatus
from pathlib import Path

from .errors import FilesystemError
from .http.content_types import get_content_type
from .http.request import HTTPRequest
from .http.response import HTTPResponse, ResponseBuilder, format_http_date, forbidden, not_found


logger = logging.getLogger(__name__)


DEFAULT_DIR_MODE = 0o755


def create_dir_if_not_exist(path: str | os.PathLike, mode: int = DEFAULT_DIR_MODE) -> None:
    """
    Create `path`, and any missing parents, if it does not exist yet.

    Calling it again for an existing directory does nothing.

    Raises:
        FilesystemError: the directory could not be created, or `path`
            exists and is not a directory.
    """
    try:
        os.makedirs(path, mode=mode, exist_ok=True)
    except OSError as e:
        raise FilesystemError(f"unable to create directory {os.fspath(path)!r}: {e}") from e


def download_static_file(
    request: HTTPRequest,
    directory: str | os.PathLike,
    file: str,
    display_name: str,
) -> HTTPResponse:
    """
    Send `directory/file` to the client as an attachment named `display_name`.

    =========================================================================
    RESPONSES
    =========================================================================

        200  file body, Content-Type from the extension, Content-Length,
             ETag and Last-Modified
        304  If-None-Match equals the file's current ETag (no body)
        403  `file` resolves outside `directory`, or cannot be read
        404  no such file

    Every response carries the Content-Disposition header.

    =========================================================================
    """
    disposition = f'attachment; filename="{display_name}"'
    root = Path(directory).resolve()
    full_path = (root / file).resolve()

    try:
        full_path.relative_to(root)
    except ValueError:
        logger.warning("Path traversal attempt: %s", file)
        return forbidden("Access denied").set_header("Content-Disposition", disposition)

    if not full_path.is_file():
        return not_found(f"File not found: {file}").set_header("Content-Disposition", disposition)

    return _serve_file(full_path, request, disposition)


def _serve_file(path: Path, request: HTTPRequest, disposition: str) -> HTTPResponse:
    try:
        stat = path.stat()
        # mtime-size is enough to notice a replaced file
        etag = f'"{int(stat.st_mtime)}-{stat.st_size}"'

        if request.get_header("If-None-Match") == etag:
            return (ResponseBuilder()
                .status(HTTPStatus.NOT_MODIFIED)
                .header("ETag", etag)
                .header("Content-Disposition", disposition)
                .build())

        content = path.read_bytes()
    except PermissionError:
        return forbidden("Permission denied").set_header("Content-Disposition", disposition)
    except OSError as e:
        raise FilesystemError(f"unable to read {path.name!r}: {e}") from e

    mtime = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
    return (ResponseBuilder()
        .status(HTTPStatus.OK)
        .header("Content-Type", get_content_type(path))
        .header("Content-Length", str(len(content)))
        .header("ETag", etag)
        .header("Last-Modified", format_http_date(mtime))
        .header("Content-Disposition", disposition)
        .body(content)
        .build())
