"""
=============================================================================
HTTP MODULE
=============================================================================

The request and response types the toolbox helpers consume and produce,
plus content type detection.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   request.py        HTTPRequest       what came in                  │
    │   response.py       HTTPResponse      what goes out                 │
    │                     ResponseBuilder   fluent way to build one       │
    │   content_types.py  by extension      get_mime_type("a.css")        │
    │                     by content        detect_content_type(data)     │
    └─────────────────────────────────────────────────────────────────────┘

Status codes are the standard library's http.HTTPStatus, re-exported here.

=============================================================================
"""

from http import HTTPStatus

from .request import HTTPRequest
from .response import (
    HTTPResponse,
    ResponseBuilder,
    format_http_date,
    forbidden,
    not_found,
)
from .content_types import (
    detect_content_type,
    get_content_type,
    get_mime_type,
)

__all__ = [
    "HTTPRequest",
    "HTTPResponse",
    "ResponseBuilder",
    "format_http_date",
    "forbidden",
    "not_found",
    "HTTPStatus",
    "detect_content_type",
    "get_content_type",
    "get_mime_type",
]
