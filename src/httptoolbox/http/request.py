"""
=============================================================================
HTTP REQUEST
=============================================================================

The inbound side of the toolbox: a plain dataclass holding the pieces of
an HTTP request the helpers need.

=============================================================================
WHAT THE HELPERS READ
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTPRequest → helper                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   headers["content-type"]  ──►  read_json / read_xml / upload_files │
    │   body (via .stream)       ──►  decoded document or multipart form  │
    │   headers["if-none-match"] ──►  download_static_file (304 check)    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Whatever web layer receives the request (a raw socket server, a WSGI app,
a test) builds an HTTPRequest and hands it over. Header names are stored
lower-case, as HTTP header names are case-insensitive (RFC 7230).

=============================================================================
"""

import io
from dataclasses import dataclass, field
from typing import BinaryIO, Dict, Optional
from urllib.parse import parse_qs, urlparse, unquote


@dataclass
class HTTPRequest:
    """
    Represents an HTTP request handed to the toolbox.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:         The HTTP method (GET, POST, PUT, DELETE, etc.)

        path:           Request path WITHOUT query string

        headers:        Dictionary of headers with LOWERCASE keys
                        {"content-type": "application/json", ...}

        query_params:   Parsed query string as dict of lists
                        "?a=1&a=2&b=3" → {"a": ["1", "2"], "b": ["3"]}

        body:           Raw request body as bytes

    =========================================================================
    """

    method: str = "GET"
    path: str = "/"
    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, list[str]] = field(default_factory=dict)
    body: bytes = b""

    def __post_init__(self):
        # Normalize once so every lookup can assume lower-case names.
        self.headers = {name.lower(): value for name, value in self.headers.items()}

    @classmethod
    def build(
        cls,
        method: str,
        target: str,
        headers: Optional[Dict[str, str]] = None,
        body: bytes | str = b"",
    ) -> "HTTPRequest":
        """
        Build a request from a request target such as "/users?page=1".

        Example:
            request = HTTPRequest.build(
                "POST", "/users",
                headers={"Content-Type": "application/json"},
                body='{"name": "Ada"}',
            )
        """
        parsed = urlparse(target)
        if isinstance(body, str):
            body = body.encode("utf-8")
        return cls(
            method=method.upper(),
            path=unquote(parsed.path) or "/",
            headers=dict(headers or {}),
            query_params=parse_qs(parsed.query, keep_blank_values=True),
            body=body,
        )

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def content_type(self) -> Optional[str]:
        """
        Get the media type of the Content-Type header (without parameters).

        "application/json; charset=utf-8" → "application/json"
        Returns None when the header is absent or empty.
        """
        ct = self.headers.get("content-type", "")
        return ct.split(";")[0].strip().lower() or None

    @property
    def content_length(self) -> int:
        """
        Get the Content-Length header value as integer.

        Falls back to the size of the body when the header is missing or
        invalid.
        """
        try:
            return int(self.headers["content-length"])
        except (KeyError, ValueError):
            return len(self.body)

    @property
    def stream(self) -> BinaryIO:
        """A fresh readable stream positioned at the start of the body."""
        return io.BytesIO(self.body)

    # =========================================================================
    # ACCESSOR METHODS
    # =========================================================================

    def get_header(self, name: str, default: str = "") -> str:
        """
        Get a header value (case-insensitive lookup).

        Example:
            content_type = request.get_header("Content-Type")
        """
        return self.headers.get(name.lower(), default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get the first value of a query parameter."""
        values = self.query_params.get(name, [])
        return values[0] if values else default
