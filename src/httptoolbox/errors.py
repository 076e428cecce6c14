"""
=============================================================================
TOOLBOX ERRORS
=============================================================================

Every helper in this package reports failure by raising a subclass of
ToolboxError. The class is the discriminator; the message is the
human-readable text a client gets back from error_json()/error_xml().

=============================================================================
ERROR FAMILIES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │ Family            │ Errors                                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │ Request body      │ InvalidContentType, PayloadTooLarge,            │
    │ decoding          │ MalformedSyntax, TruncatedInput, TypeMismatch,  │
    │                   │ EmptyBody, UnknownField, DestinationInvalid,    │
    │                   │ MultipleDocuments                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │ Response encoding │ SerializationError                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │ Uploads           │ FileTooLarge, FileTypeNotPermitted,             │
    │                   │ NoFileUploaded                                  │
    ├─────────────────────────────────────────────────────────────────────┤
    │ Environment       │ FilesystemError, NetworkError                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │ Text helpers      │ EmptyInput, SlugEmptyResult                     │
    ├─────────────────────────────────────────────────────────────────────┤
    │ SQL loader        │ UnterminatedQuery                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │ Anything else     │ Other                                           │
    └─────────────────────────────────────────────────────────────────────┘

Each error carries the HTTP status a handler would normally answer with,
so a handler can do:

    try:
        payload = toolbox.read_json(request, CreateUser)
    except ToolboxError as e:
        return toolbox.error_json(e, status=e.status_code)

=============================================================================
"""

from typing import Optional


class ToolboxError(Exception):
    """
    Base class for all toolbox failures.

    Carries an HTTP status code alongside the message:

        400 Bad Request             - the client sent something unusable
        413 Payload Too Large       - size limits exceeded
        415 Unsupported Media Type  - wrong Content-Type / file type
        500 Internal Server Error   - server side problem (disk, encoder)
        502 Bad Gateway             - a remote service could not be reached
    """

    status_code: int = 400

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


# =============================================================================
# REQUEST BODY DECODING
# =============================================================================

class InvalidContentType(ToolboxError):
    """The Content-Type header does not match what the reader expects."""

    status_code = 415


class PayloadTooLarge(ToolboxError):
    """The body exceeded the configured limit."""

    status_code = 413

    def __init__(self, limit: int, message: Optional[str] = None):
        super().__init__(message or f"body must not be larger than {limit} bytes")
        self.limit = limit


class MalformedSyntax(ToolboxError):
    """The body is not well-formed JSON/XML."""

    def __init__(self, message: str, offset: Optional[int] = None):
        super().__init__(message)
        self.offset = offset


class TruncatedInput(ToolboxError):
    """The body ended in the middle of a document."""


class TypeMismatch(ToolboxError):
    """
    A value is present but has the wrong type for the target field.

    `field` is the dotted path of the field. No character offset is
    carried: validation runs on the decoded value, after positions are gone.
    """

    def __init__(self, message: str, field: str = ""):
        super().__init__(message)
        self.field = field


class EmptyBody(ToolboxError):
    """The body held no document at all."""


class UnknownField(ToolboxError):
    """The body contains a key the target does not declare."""

    def __init__(self, field: str):
        super().__init__(f"body contains unknown key {field!r}")
        self.field = field


class DestinationInvalid(ToolboxError):
    """The decode target is not something a body can be decoded into."""

    status_code = 500


class MultipleDocuments(ToolboxError):
    """The body carried more than one JSON/XML value."""


# =============================================================================
# RESPONSE ENCODING
# =============================================================================

class SerializationError(ToolboxError):
    """A payload could not be serialized."""

    status_code = 500


# =============================================================================
# UPLOADS
# =============================================================================

class FileTooLarge(ToolboxError):
    """An uploaded file exceeded the configured limit."""

    status_code = 413

    def __init__(self, limit: int):
        super().__init__(f"the uploaded file is too big, and must be less than {limit} bytes")
        self.limit = limit


class FileTypeNotPermitted(ToolboxError):
    """The sniffed content type of an upload is not on the allow-list."""

    status_code = 415

    def __init__(self, content_type: str):
        super().__init__("the uploaded file type is not permitted")
        self.content_type = content_type


class NoFileUploaded(ToolboxError):
    """A single file was expected but the form contained none."""

    def __init__(self, message: str = "no file was uploaded"):
        super().__init__(message)


# =============================================================================
# ENVIRONMENT
# =============================================================================

class FilesystemError(ToolboxError):
    """Creating a directory, or reading/writing a file, failed."""

    status_code = 500


class NetworkError(ToolboxError):
    """An outbound request could not be completed."""

    status_code = 502


# =============================================================================
# TEXT HELPERS
# =============================================================================

class EmptyInput(ToolboxError):
    """slugify() was given an empty string."""

    def __init__(self, message: str = "empty string not permitted"):
        super().__init__(message)


class SlugEmptyResult(ToolboxError):
    """Nothing was left after stripping a string down to a slug."""

    def __init__(self, message: str = "after removing characters, slug is zero length"):
        super().__init__(message)


# =============================================================================
# SQL LOADER
# =============================================================================

class UnterminatedQuery(ToolboxError):
    """A named SQL block reached end of file without a closing ';'."""

    status_code = 500

    def __init__(self, key: str):
        super().__init__(f"query {key!r} is not terminated with ';'")
        self.key = key


class Other(ToolboxError):
    """
    Opaque passthrough for failures no other class describes.

    The original exception is chained as __cause__ by the code raising it.
    """
