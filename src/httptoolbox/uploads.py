"""
=============================================================================
FILE UPLOADS
=============================================================================

Stores the files of a multipart/form-data request in a directory.

=============================================================================
MULTIPART FORMS
=============================================================================

A browser sends <input type="file"> fields as parts of one body, split by
a boundary string announced in the Content-Type header:

    Content-Type: multipart/form-data; boundary=XyZ

    --XyZ
    Content-Disposition: form-data; name="avatar"; filename="me.png"
    Content-Type: image/png

    <PNG bytes>
    --XyZ
    Content-Disposition: form-data; name="title"

    Holiday
    --XyZ--

python-multipart turns the body into File objects (parts with a filename)
and Field objects (everything else). Only files are stored here.

=============================================================================
PER-FILE PIPELINE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  part ─► size check ─► sniff 512 bytes ─► name ─► stream to disk    │
    │              │               │                         │            │
    │         FileTooLarge  FileTypeNotPermitted      FilesystemError     │
    └─────────────────────────────────────────────────────────────────────┘

The type check uses the file's bytes, never the filename or the part's
Content-Type: both are whatever the client chose to send.

File parts sent with an empty filename (a file input left blank) are
skipped.

The first failing file aborts the whole call. Files stored earlier in the
same call are deleted when config.rollback_partial_uploads is on (the
default) and left in place otherwise.

=============================================================================
"""

import os
import logging
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import List, Optional

import python_multipart
from python_multipart.exceptions import FormParserError

from .body import LimitedReader
from .config import ToolboxConfig
from .errors import (
    FilesystemError,
    FileTooLarge,
    FileTypeNotPermitted,
    InvalidContentType,
    MalformedSyntax,
    NoFileUploaded,
    ToolboxError,
)
from .files import create_dir_if_not_exist
from .http.content_types import SNIFF_LEN, detect_content_type
from .http.request import HTTPRequest
from .text import random_string


logger = logging.getLogger(__name__)


FORM_CONTENT_TYPE = "multipart/form-data"
RANDOM_NAME_LENGTH = 25
CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class UploadedFile:
    """
    One stored upload.

    new_file_name:      name of the file inside the upload directory
    original_file_name: name the client sent
    file_size:          bytes written to disk
    """

    new_file_name: str
    original_file_name: str
    file_size: int


# =============================================================================
# PARSING
# =============================================================================

def _parse_form(request: HTTPRequest, config: ToolboxConfig) -> list:
    """Run the multipart parser over the body and collect its file parts."""
    header = request.get_header("Content-Type")
    if request.content_type != FORM_CONTENT_TYPE or "boundary=" not in header.lower():
        raise InvalidContentType(f"Content-Type header is not {FORM_CONTENT_TYPE} with a boundary")

    reader = LimitedReader(request.stream, config.form_limit)
    files: list = []

    try:
        parser = python_multipart.create_form_parser(
            {"Content-Type": header},
            on_field=None,
            on_file=files.append,
        )
        while True:
            chunk = reader.read(CHUNK_SIZE)
            if not chunk:
                break
            parser.write(chunk)
        parser.finalize()
    except FormParserError as e:
        _close_all(files)
        raise MalformedSyntax(f"error parsing form data: {e}") from e
    except ToolboxError:
        _close_all(files)
        raise
    return files


def _close_all(parts: list) -> None:
    for part in parts:
        part.close()


# =============================================================================
# STORING
# =============================================================================

def _original_name(part) -> str:
    raw = part.file_name or b""
    name = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    # keep only the last path segment, whichever separator the client used
    return PurePosixPath(name.replace("\\", "/")).name


def _is_permitted(content_type: str, allowed: tuple) -> bool:
    media_type = content_type.split(";")[0].strip()
    for entry in allowed:
        if entry.lower() in (content_type.lower(), media_type.lower()):
            return True
    return False


def _remove(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Could not remove %s: %s", path, e)


def _store(part, upload_dir: str, config: ToolboxConfig, rename: bool) -> UploadedFile:
    limit = config.upload_limit
    if part.size > limit:
        raise FileTooLarge(limit)

    source = part.file_object
    source.seek(0)
    content_type = detect_content_type(source.read(SNIFF_LEN))
    if config.allowed_upload_types and not _is_permitted(content_type, config.allowed_upload_types):
        raise FileTypeNotPermitted(content_type)
    source.seek(0)

    original = _original_name(part)
    if rename:
        new_name = random_string(RANDOM_NAME_LENGTH) + PurePosixPath(original).suffix
    else:
        new_name = original

    destination = os.path.join(upload_dir, new_name)
    written = 0
    try:
        with open(destination, "wb") as out:
            for chunk in iter(lambda: source.read(CHUNK_SIZE), b""):
                out.write(chunk)
                written += len(chunk)
    except OSError as e:
        if new_name:
            _remove(destination)
        raise FilesystemError(f"unable to store uploaded file {original!r}: {e}") from e

    logger.debug("Stored upload %r as %s (%d bytes, %s)", original, destination, written, content_type)
    return UploadedFile(new_file_name=new_name, original_file_name=original, file_size=written)


def upload_files(
    request: HTTPRequest,
    upload_dir: str | os.PathLike,
    config: Optional[ToolboxConfig] = None,
    rename: bool = True,
) -> List[UploadedFile]:
    """
    Store every file in a multipart request under `upload_dir`.

    Args:
        request: Request whose body is a multipart/form-data form.
        upload_dir: Destination directory, created (0o755) when missing.
        config: Size limit, type allow-list and rollback policy.
        rename: Store under a random 25 character name that keeps the
                original extension. With False the client's file name is
                used as-is.

    Returns:
        One UploadedFile per stored file, in the order they were sent.

    Raises:
        InvalidContentType, PayloadTooLarge, MalformedSyntax, FileTooLarge,
        FileTypeNotPermitted, FilesystemError
    """
    config = config or ToolboxConfig()
    upload_dir = os.fspath(upload_dir)
    create_dir_if_not_exist(upload_dir)

    parts = _parse_form(request, config)
    stored: List[UploadedFile] = []
    try:
        for part in parts:
            if not _original_name(part):
                # an optional file input left blank
                logger.debug("Skipping file part %r with no file name", part.field_name)
                continue
            stored.append(_store(part, upload_dir, config, rename))
    except ToolboxError:
        if stored and config.rollback_partial_uploads:
            logger.warning("Upload failed, removing %d file(s) stored by this request", len(stored))
            for uploaded in stored:
                _remove(os.path.join(upload_dir, uploaded.new_file_name))
        raise
    finally:
        _close_all(parts)
    return stored


def upload_one_file(
    request: HTTPRequest,
    upload_dir: str | os.PathLike,
    config: Optional[ToolboxConfig] = None,
    rename: bool = True,
) -> UploadedFile:
    """
    Like upload_files(), for forms expected to carry a single file.

    Every file in the form is still processed; the first one is returned.

    Raises:
        NoFileUploaded: the form held no file parts.
    """
    uploaded = upload_files(request, upload_dir, config, rename)
    if not uploaded:
        raise NoFileUploaded()
    return uploaded[0]
