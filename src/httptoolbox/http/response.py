"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

The outbound side of the toolbox: an HTTPResponse container plus a fluent
ResponseBuilder. write_json(), write_xml(), error_json() and
download_static_file() all produce an HTTPResponse.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    HTTP/1.1 200 OK\r\n                        ← status line          │
    │    Content-Type: application/json\r\n        ← headers              │
    │    Content-Length: 27\r\n                                           │
    │    \r\n                                       ← blank line           │
    │    {"error":false,"message":"ok"}             ← body                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Status codes come from the standard library's http.HTTPStatus, which
already carries the reason phrase for every registered code.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import format_datetime
from http import HTTPStatus
from typing import Any, Dict, Union

from pydantic_core import to_json, to_jsonable_python

from .. import xml_codec


@dataclass
class HTTPResponse:
    """
    Represents an HTTP response to be sent to the client.

    Use ResponseBuilder for a more convenient way to construct responses.
    Headers keep the case they were set with; setting a header that is
    already present replaces its value.
    """

    status: int = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """
        Get the HTTP status line, e.g. "HTTP/1.1 200 OK".

        Unregistered codes get an empty reason phrase, which HTTP/1.1 allows.
        """
        try:
            phrase = HTTPStatus(self.status).phrase
        except ValueError:
            phrase = ""
        return f"{self.version} {int(self.status)} {phrase}".rstrip()

    def set_status(self, status: int) -> "HTTPResponse":
        self.status = status
        return self

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """
        Set a response header, replacing any previous value for `name`.

        Returns self for method chaining:
            response.set_header("X-One", "1").set_header("X-Two", "2")
        """
        self.headers[name] = value
        return self

    def set_content_type(self, content_type: str) -> "HTTPResponse":
        """Set the Content-Type header."""
        return self.set_header("Content-Type", content_type)

    def set_body(self, body: Union[str, bytes]) -> "HTTPResponse":
        """Set the response body, encoding strings as UTF-8."""
        if isinstance(body, str):
            self.body = body.encode("utf-8")
        else:
            self.body = body
        return self

    def to_bytes(self, server_name: str = "httptoolbox") -> bytes:
        """
        Serialize the response to bytes for sending over a socket.

        Content-Length, Date and Server are added when not already set.
        """
        response_headers = dict(self.headers)

        if "Content-Length" not in response_headers:
            response_headers["Content-Length"] = str(len(self.body))

        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))

        if "Server" not in response_headers:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return header_bytes + self.body


class ResponseBuilder:
    """
    Fluent builder for constructing HTTP responses.

    Each method returns `self`, enabling chaining:

        response = (ResponseBuilder()
            .status(HTTPStatus.CREATED)
            .header("Location", "/users/1")
            .json({"id": 1})
            .build())
    """

    def __init__(self):
        self._status: int = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: int) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers: Dict[str, str]) -> "ResponseBuilder":
        """Add several headers at once; existing names are overwritten."""
        self._headers.update(headers)
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        if isinstance(body, str):
            self._body = body.encode("utf-8")
        else:
            self._body = body
        return self

    def text(self, text: str, content_type: str = "text/plain; charset=utf-8") -> "ResponseBuilder":
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = content_type
        return self

    def json(self, data: Any) -> "ResponseBuilder":
        """
        Set a JSON response body.

        Anything pydantic can serialize is accepted: dicts, lists, models,
        dataclasses, datetimes.
        """
        self._body = to_json(data)
        self._headers["Content-Type"] = "application/json"
        return self

    def xml(self, data: Any, root: str = "response") -> "ResponseBuilder":
        """Set an XML response body: the declaration plus <root>...</root>."""
        self._body = xml_codec.dumps(to_jsonable_python(data), root)
        self._headers["Content-Type"] = "application/xml"
        return self

    def attachment(self, filename: str) -> "ResponseBuilder":
        """Ask the browser to save the body as `filename` instead of showing it."""
        return self.header("Content-Disposition", f'attachment; filename="{filename}"')

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
        )


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231).

    Example: Wed, 01 Jan 2026 12:00:00 GMT
    Naive datetimes are taken to be UTC.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return format_datetime(dt.astimezone(timezone.utc), usegmt=True)


def not_found(message: str = "Not Found") -> HTTPResponse:
    return ResponseBuilder().status(HTTPStatus.NOT_FOUND).json({"error": True, "message": message}).build()


def forbidden(message: str = "Forbidden") -> HTTPResponse:
    return ResponseBuilder().status(HTTPStatus.FORBIDDEN).json({"error": True, "message": message}).build()
