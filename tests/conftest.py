"""
pytest configuration and fixtures.
"""

import struct
import zlib
from typing import Callable, Iterable, Tuple

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from httptoolbox import Toolbox, ToolboxConfig
from httptoolbox.http import HTTPRequest


BOUNDARY = "----httptoolboxTestBoundary7MA4YWxk"


def _png_chunk(kind: bytes, data: bytes) -> bytes:
    crc = zlib.crc32(kind + data) & 0xFFFFFFFF
    return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", crc)


def make_png(width: int = 2, height: int = 2) -> bytes:
    """A small but valid grayscale PNG."""
    header = struct.pack(">IIBBBBB", width, height, 8, 0, 0, 0, 0)
    rows = b"".join(b"\x00" + b"\x80" * width for _ in range(height))
    return (
        b"\x89PNG\r\n\x1a\n"
        + _png_chunk(b"IHDR", header)
        + _png_chunk(b"IDAT", zlib.compress(rows))
        + _png_chunk(b"IEND", b"")
    )


def multipart_body(
    files: Iterable[Tuple[str, str, bytes]],
    fields: Iterable[Tuple[str, str]] = (),
    boundary: str = BOUNDARY,
) -> bytes:
    """
    Encode a multipart/form-data body.

    files:  (field name, file name, content)
    fields: (field name, value)
    """
    out = b""
    for name, value in fields:
        out += (
            f"--{boundary}\r\n"
            f'Content-Disposition: form-data; name="{name}"\r\n'
            f"\r\n"
            f"{value}\r\n"
        ).encode()
    for name, filename, content in files:
        out += (
            f"--{boundary}\r\n"
            f'Content-Disposition: form-data; name="{name}"; filename="{filename}"\r\n'
            f"Content-Type: application/octet-stream\r\n"
            f"\r\n"
        ).encode() + content + b"\r\n"
    return out + f"--{boundary}--\r\n".encode()


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def config() -> ToolboxConfig:
    """Default configuration, fresh for every test."""
    return ToolboxConfig()


@pytest.fixture
def tools(config: ToolboxConfig) -> Toolbox:
    return Toolbox(config)


@pytest.fixture
def json_request() -> Callable[..., HTTPRequest]:
    """Build a POST request with a JSON body."""
    def build(body, content_type: str = "application/json") -> HTTPRequest:
        headers = {"Content-Type": content_type} if content_type else {}
        return HTTPRequest.build("POST", "/api", headers=headers, body=body)
    return build


@pytest.fixture
def upload_request() -> Callable[..., HTTPRequest]:
    """Build a multipart upload request from (field, filename, content) tuples."""
    def build(*files: Tuple[str, str, bytes], fields: Iterable[Tuple[str, str]] = ()) -> HTTPRequest:
        return HTTPRequest.build(
            "POST", "/upload",
            headers={"Content-Type": f"multipart/form-data; boundary={BOUNDARY}"},
            body=multipart_body(files, fields),
        )
    return build
