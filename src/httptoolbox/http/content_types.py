"""
=============================================================================
CONTENT TYPES
=============================================================================

Two ways of answering "what kind of file is this?":

    ┌─────────────────────────────────────────────────────────────────────┐
    │ BY NAME (get_mime_type)          │ BY CONTENT (detect_content_type) │
    ├─────────────────────────────────────────────────────────────────────┤
    │ Looks at the file extension      │ Looks at the first 512 bytes     │
    │ "photo.png" → image/png          │ b"\\x89PNG..." → image/png        │
    │                                  │                                  │
    │ Used when WE serve a file from   │ Used when a CLIENT sends a file: │
    │ disk (download_static_file).     │ the filename and the part's      │
    │ We trust our own filenames.      │ Content-Type are whatever the    │
    │                                  │ client claims, the bytes are not │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
CONTENT SNIFFING
=============================================================================

detect_content_type() follows the WHATWG MIME Sniffing Standard
(https://mimesniff.spec.whatwg.org/): a fixed, ordered list of byte
signatures is tried against the start of the data; the first match wins.
If nothing matches, data without "binary" control bytes is plain text and
anything else is application/octet-stream.

It always returns a valid MIME type, possibly with a charset parameter:

    detect_content_type(b"\\x89PNG\\r\\n\\x1a\\n...")   → "image/png"
    detect_content_type(b"<html><body>")            → "text/html; charset=utf-8"
    detect_content_type(b"hello")                   → "text/plain; charset=utf-8"
    detect_content_type(b"\\x00\\x01\\x02")            → "application/octet-stream"

=============================================================================
"""

import struct
from pathlib import Path
from typing import Callable, Optional


# =============================================================================
# MIME TYPE DATABASE (by extension)
# =============================================================================

MIME_TYPES = {
    # Text
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".json": "application/json",
    ".xml": "application/xml",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",
    ".sql": "application/sql",

    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    ".avif": "image/avif",
    ".bmp": "image/bmp",

    # Fonts
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",

    # Audio / video
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".avi": "video/x-msvideo",

    # Documents and archives
    ".pdf": "application/pdf",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".zip": "application/zip",
    ".tar": "application/x-tar",
    ".gz": "application/gzip",
    ".wasm": "application/wasm",
}

DEFAULT_MIME_TYPE = "application/octet-stream"

TEXT_APPLICATION_TYPES = {
    "application/json",
    "application/xml",
    "application/javascript",
    "application/sql",
    "image/svg+xml",
}


def get_mime_type(path: str | Path, default: Optional[str] = None) -> str:
    """
    Get the MIME type for a file based on its extension.

    Examples:
        >>> get_mime_type("style.css")
        'text/css'
        >>> get_mime_type("unknown.xyz")
        'application/octet-stream'
    """
    extension = Path(path).suffix.lower()
    return MIME_TYPES.get(extension, default or DEFAULT_MIME_TYPE)


def is_text_type(mime_type: str) -> bool:
    return mime_type.startswith("text/") or mime_type in TEXT_APPLICATION_TYPES


def get_content_type(path: str | Path, charset: str = "utf-8") -> str:
    """
    Get the full Content-Type header value for a file.

    Text types get a charset parameter: "page.html" → "text/html; charset=utf-8".
    """
    mime_type = get_mime_type(path)
    if is_text_type(mime_type):
        return f"{mime_type}; charset={charset}"
    return mime_type


# =============================================================================
# CONTENT SNIFFING (by leading bytes)
# =============================================================================

SNIFF_LEN = 512
"""Only this many leading bytes are ever looked at."""

# Whitespace bytes skipped before HTML/XML signatures: TAB LF FF CR SPACE.
_WHITESPACE = b"\t\n\x0c\r "

# Bytes that never appear in text (WHATWG "binary data byte").
_BINARY_BYTES = frozenset(
    list(range(0x00, 0x09)) + [0x0B] + list(range(0x0E, 0x1B)) + list(range(0x1C, 0x20))
)

Matcher = Callable[[bytes, int], Optional[str]]


def _exact(prefix: bytes, content_type: str) -> Matcher:
    """Data starts with `prefix`."""
    def match(data: bytes, first_non_ws: int) -> Optional[str]:
        return content_type if data.startswith(prefix) else None
    return match


def _masked(mask: bytes, pattern: bytes, content_type: str, skip_ws: bool = False) -> Matcher:
    """(data & mask) == pattern, optionally after leading whitespace."""
    def match(data: bytes, first_non_ws: int) -> Optional[str]:
        if skip_ws:
            data = data[first_non_ws:]
        if len(data) < len(pattern):
            return None
        for i, (m, p) in enumerate(zip(mask, pattern)):
            if data[i] & m != p:
                return None
        return content_type
    return match


def _html(tag: bytes) -> Matcher:
    """
    Case-insensitive HTML tag, after whitespace, followed by a
    tag-terminating byte (space or '>').
    """
    def match(data: bytes, first_non_ws: int) -> Optional[str]:
        data = data[first_non_ws:]
        if len(data) < len(tag) + 1:
            return None
        if data[:len(tag)].upper() != tag:
            return None
        if data[len(tag)] not in b" >":
            return None
        return "text/html; charset=utf-8"
    return match


def _mp4(data: bytes, first_non_ws: int) -> Optional[str]:
    """ISO base media file: an 'ftyp' box listing an 'mp4' brand."""
    if len(data) < 12:
        return None
    box_size = struct.unpack(">I", data[:4])[0]
    if len(data) < box_size or box_size % 4 != 0:
        return None
    if data[4:8] != b"ftyp":
        return None
    for start in range(8, box_size, 4):
        if start == 12:
            continue  # minor version number, not a brand
        if data[start:start + 3] == b"mp4":
            return "video/mp4"
    return None


def _eot(data: bytes, first_non_ws: int) -> Optional[str]:
    """Embedded OpenType: 'LP' magic at offset 34."""
    if len(data) >= 36 and data[34:36] == b"LP":
        return "application/vnd.ms-fontobject"
    return None


def _text(data: bytes, first_non_ws: int) -> Optional[str]:
    for b in data[first_non_ws:]:
        if b in _BINARY_BYTES:
            return None
    return "text/plain; charset=utf-8"


_RIFF_MASK = b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff"

# Order matters: the first matching signature wins.
SIGNATURES: list[Matcher] = [
    # HTML
    *(_html(tag) for tag in (
        b"<!DOCTYPE HTML", b"<HTML", b"<HEAD", b"<SCRIPT", b"<IFRAME", b"<H1",
        b"<DIV", b"<FONT", b"<TABLE", b"<A", b"<STYLE", b"<TITLE", b"<B",
        b"<BODY", b"<BR", b"<P", b"<!--",
    )),
    _masked(b"\xff\xff\xff\xff\xff", b"<?xml", "text/xml; charset=utf-8", skip_ws=True),

    # Documents
    _exact(b"%PDF-", "application/pdf"),
    _exact(b"%!PS-Adobe-", "application/postscript"),

    # Byte order marks
    _masked(b"\xff\xff\x00\x00", b"\xfe\xff\x00\x00", "text/plain; charset=utf-16be"),
    _masked(b"\xff\xff\x00\x00", b"\xff\xfe\x00\x00", "text/plain; charset=utf-16le"),
    _exact(b"\xef\xbb\xbf", "text/plain; charset=utf-8"),

    # Images
    _exact(b"\x00\x00\x01\x00", "image/x-icon"),
    _exact(b"\x00\x00\x02\x00", "image/x-icon"),
    _exact(b"BM", "image/bmp"),
    _exact(b"GIF87a", "image/gif"),
    _exact(b"GIF89a", "image/gif"),
    _masked(_RIFF_MASK + b"\xff\xff", b"RIFF\x00\x00\x00\x00WEBPVP", "image/webp"),
    _exact(b"\x89PNG\x0d\x0a\x1a\x0a", "image/png"),
    _exact(b"\xff\xd8\xff", "image/jpeg"),

    # Audio and video
    _masked(_RIFF_MASK, b"FORM\x00\x00\x00\x00AIFF", "audio/aiff"),
    _masked(b"\xff\xff\xff", b"ID3", "audio/mpeg"),
    _masked(b"\xff\xff\xff\xff\xff", b"OggS\x00", "application/ogg"),
    _masked(b"\xff" * 8, b"MThd\x00\x00\x00\x06", "audio/midi"),
    _masked(_RIFF_MASK, b"RIFF\x00\x00\x00\x00AVI ", "video/avi"),
    _masked(_RIFF_MASK, b"RIFF\x00\x00\x00\x00WAVE", "audio/wave"),
    _mp4,
    _exact(b"\x1a\x45\xdf\xa3", "video/webm"),

    # Fonts
    _eot,
    _exact(b"\x00\x01\x00\x00", "font/ttf"),
    _exact(b"OTTO", "font/otf"),
    _exact(b"ttcf", "font/collection"),
    _exact(b"wOFF", "font/woff"),
    _exact(b"wOF2", "font/woff2"),

    # Archives
    _exact(b"\x1f\x8b\x08", "application/x-gzip"),
    _exact(b"PK\x03\x04", "application/zip"),
    _exact(b"Rar!\x1a\x07\x00", "application/x-rar-compressed"),
    _exact(b"Rar!\x1a\x07\x01\x00", "application/x-rar-compressed"),
    _exact(b"\x00\x61\x73\x6d", "application/wasm"),

    # Fallback for anything that looks like text
    _text,
]


def detect_content_type(data: bytes) -> str:
    """
    Sniff the content type of `data` from its first 512 bytes.

    Never raises; unknown binary data is "application/octet-stream".
    """
    data = data[:SNIFF_LEN]

    first_non_ws = 0
    while first_non_ws < len(data) and data[first_non_ws] in _WHITESPACE:
        first_non_ws += 1

    for matcher in SIGNATURES:
        content_type = matcher(data, first_non_ws)
        if content_type:
            return content_type

    return DEFAULT_MIME_TYPE
