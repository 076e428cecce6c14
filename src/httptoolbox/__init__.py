"""
=============================================================================
HTTPTOOLBOX - Request/Response Helpers for HTTP Services
=============================================================================

The chores every JSON API handler repeats, done once and done strictly:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       WHAT'S IN THE BOX                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   BODIES            read_json / read_xml      body → typed value    │
    │                     write_json / write_xml    value → response      │
    │                     error_json / error_xml    exception → envelope  │
    │                                                                      │
    │   FILES             upload_files / upload_one_file                  │
    │                     download_static_file                            │
    │                     create_dir_if_not_exist                         │
    │                                                                      │
    │   TEXT              random_string, slugify                          │
    │                                                                      │
    │   NETWORK           push_json_to_remote                             │
    │                                                                      │
    │   SQL               load_sql_queries  (-- NAME blocks in .sql)      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The library does not run a server. Whatever receives the request builds an
HTTPRequest, calls the helpers, and sends the HTTPResponse they return
(HTTPResponse.to_bytes() gives the wire form).

=============================================================================
QUICK START
=============================================================================

    from pydantic import BaseModel
    from httptoolbox import Envelope, HTTPRequest, Toolbox, ToolboxError

    class Signup(BaseModel):
        email: str
        name: str

    tools = Toolbox()

    def signup(request: HTTPRequest):
        try:
            form = tools.read_json(request, Signup)
        except ToolboxError as e:
            return tools.error_json(e, status=e.status_code)
        return tools.write_json(201, Envelope(message=f"welcome {form.name}"))

=============================================================================
ERRORS
=============================================================================

Every failure is a ToolboxError subclass (see errors.py) with a message fit
for the client and the HTTP status to answer with. Nothing is retried, and
nothing is logged above DEBUG except path traversal attempts and upload
rollbacks.

=============================================================================
"""

__version__ = "1.0.0"

from .body import Envelope, LimitedReader
from .config import DEFAULT_MAX_SIZE, ToolboxConfig
from .errors import (
    DestinationInvalid,
    EmptyBody,
    EmptyInput,
    FilesystemError,
    FileTooLarge,
    FileTypeNotPermitted,
    InvalidContentType,
    MalformedSyntax,
    MultipleDocuments,
    NetworkError,
    NoFileUploaded,
    Other,
    PayloadTooLarge,
    SerializationError,
    SlugEmptyResult,
    ToolboxError,
    TruncatedInput,
    TypeMismatch,
    UnknownField,
    UnterminatedQuery,
)
from .http import HTTPRequest, HTTPResponse, ResponseBuilder
from .toolbox import Toolbox
from .uploads import UploadedFile

__all__ = [
    "__version__",
    "Toolbox",
    "ToolboxConfig",
    "DEFAULT_MAX_SIZE",
    "Envelope",
    "LimitedReader",
    "UploadedFile",
    "HTTPRequest",
    "HTTPResponse",
    "ResponseBuilder",
    # errors
    "ToolboxError",
    "InvalidContentType",
    "PayloadTooLarge",
    "MalformedSyntax",
    "TruncatedInput",
    "TypeMismatch",
    "EmptyBody",
    "UnknownField",
    "DestinationInvalid",
    "MultipleDocuments",
    "SerializationError",
    "FileTooLarge",
    "FileTypeNotPermitted",
    "NoFileUploaded",
    "FilesystemError",
    "NetworkError",
    "EmptyInput",
    "SlugEmptyResult",
    "UnterminatedQuery",
    "Other",
]
