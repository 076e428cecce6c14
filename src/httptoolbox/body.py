"""
=============================================================================
REQUEST AND RESPONSE BODIES
=============================================================================

Three jobs live here:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ BODY DECODER    read_json / read_xml                                │
    │                 request body ──► typed Python value                 │
    │                                                                      │
    │ BODY ENCODER    write_json / write_xml                              │
    │                 Python value ──► HTTPResponse                       │
    │                                                                      │
    │ ERROR RESPONDER error_json / error_xml                              │
    │                 exception ──► {"error": true, "message": "..."}     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
DECODING IN TWO PASSES
=============================================================================

A JSON body is checked twice, so each failure gets its own error class:

    1. SYNTAX   The standard json decoder finds the first value and where
                it ends. Broken syntax, a body cut short, or a second
                value after the first are reported here.

    2. TYPES    pydantic validates that one value against the target type
                in strict mode: "7" is not an int, an unknown key is not
                silently dropped.

    request.stream ─► LimitedReader ─► json.raw_decode ─► pydantic ─► value
                          │                   │               │
                    PayloadTooLarge    MalformedSyntax    TypeMismatch
                                       TruncatedInput     UnknownField
                                       MultipleDocuments

XML follows the same shape, with expat for the syntax pass and pydantic
in lax mode for the type pass (XML text carries no types).

=============================================================================
"""

import dataclasses
import json
import logging
import re
import types
from collections import abc
from functools import lru_cache
from http import HTTPStatus
from typing import (
    Annotated,
    Any,
    BinaryIO,
    ClassVar,
    Mapping,
    Optional,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)
from xml.etree import ElementTree as ET
from xml.parsers.expat import errors as expat_errors

from pydantic import BaseModel, TypeAdapter, ValidationError, model_serializer
from pydantic.errors import PydanticSchemaGenerationError, PydanticUserError
from pydantic_core import PydanticSerializationError, to_json, to_jsonable_python

from . import xml_codec
from .config import ToolboxConfig
from .errors import (
    DestinationInvalid,
    EmptyBody,
    InvalidContentType,
    MalformedSyntax,
    MultipleDocuments,
    Other,
    PayloadTooLarge,
    SerializationError,
    ToolboxError,
    TruncatedInput,
    TypeMismatch,
    UnknownField,
)
from .http.request import HTTPRequest
from .http.response import HTTPResponse


logger = logging.getLogger(__name__)


JSON_CONTENT_TYPE = "application/json"
XML_CONTENT_TYPE = "application/xml"

_XML_MEDIA_TYPES = {"application/xml", "text/xml"}

# JSON insignificant whitespace (RFC 8259): space, tab, LF, CR.
_JSON_WS = re.compile(r"[ \t\n\r]*")

_EXPAT_JUNK = expat_errors.codes[expat_errors.XML_ERROR_JUNK_AFTER_DOC_ELEMENT]
_EXPAT_TRUNCATED = {
    expat_errors.codes[expat_errors.XML_ERROR_NO_ELEMENTS],
    expat_errors.codes[expat_errors.XML_ERROR_UNCLOSED_TOKEN],
    expat_errors.codes[expat_errors.XML_ERROR_PARTIAL_CHAR],
}


# =============================================================================
# RESPONSE ENVELOPE
# =============================================================================

class Envelope(BaseModel):
    """
    Standard response wrapper.

        {"error": false, "message": "saved", "data": {...}}

    `data` is left out of the serialized form when it is None.
    """

    xml_root: ClassVar[str] = "response"

    error: bool = False
    message: str = ""
    data: Any = None

    @model_serializer(mode="wrap")
    def omit_empty_data(self, handler):
        serialized = handler(self)
        if self.data is None:
            serialized.pop("data", None)
        return serialized


# =============================================================================
# SIZE-LIMITED READING
# =============================================================================

class LimitedReader:
    """
    Wraps a binary stream and refuses to hand out more than `limit` bytes.

    One byte past the limit is enough to know the body is too large, so the
    reader never pulls more than limit + 1 bytes from the underlying stream.
    """

    CHUNK_SIZE = 64 * 1024

    def __init__(self, stream: BinaryIO, limit: int):
        self.stream = stream
        self.limit = limit
        self.consumed = 0

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            chunks = []
            while True:
                chunk = self.read(self.CHUNK_SIZE)
                if not chunk:
                    return b"".join(chunks)
                chunks.append(chunk)

        want = min(size, self.limit - self.consumed + 1)
        chunk = self.stream.read(want) if want > 0 else b""
        self.consumed += len(chunk)
        if self.consumed > self.limit:
            raise PayloadTooLarge(self.limit)
        return chunk


def _read_body(request: HTTPRequest, limit: int) -> bytes:
    return LimitedReader(request.stream, limit).read()


# =============================================================================
# TYPE ADAPTERS
# =============================================================================

@lru_cache(maxsize=256)
def _cached_adapter(target: Any) -> TypeAdapter:
    return TypeAdapter(target)


def _adapter(target: Any) -> TypeAdapter:
    """Get a (cached) pydantic TypeAdapter for `target`."""
    if target is None:
        raise DestinationInvalid("decode target must be a type, got None")
    try:
        return _cached_adapter(target)
    except (PydanticSchemaGenerationError, PydanticUserError, TypeError) as e:
        raise DestinationInvalid(f"cannot decode into {target!r}: {e}") from e


def _is_model(target: Any) -> bool:
    return isinstance(target, type) and issubclass(target, BaseModel)


_SEQUENCE_ORIGINS = {
    list, tuple, set, frozenset,
    abc.Sequence, abc.MutableSequence, abc.Set, abc.MutableSet,
}
_MAPPING_ORIGINS = {dict, abc.Mapping, abc.MutableMapping}


def _type_hints(target: type) -> dict:
    try:
        return get_type_hints(target)
    except (NameError, TypeError):
        return dict(getattr(target, "__annotations__", {}))


def _record_fields(target: Any) -> Optional[dict]:
    """
    Map every key a record type accepts to its annotation.

    Returns None for types that are not records (scalars, Any, ...) and for
    records that accept extra keys themselves (extra="allow").
    """
    if _is_model(target):
        if target.model_config.get("extra") == "allow":
            return None
        fields = {}
        for name, info in target.model_fields.items():
            for key in (name, info.alias, info.validation_alias):
                if isinstance(key, str):
                    fields[key] = info.annotation
        return fields

    if not isinstance(target, type):
        return None
    if (getattr(target, "__pydantic_config__", None) or {}).get("extra") == "allow":
        return None

    if dataclasses.is_dataclass(target):
        hints = _type_hints(target)
        return {f.name: hints.get(f.name, f.type) for f in dataclasses.fields(target)}
    # TypedDict
    if issubclass(target, dict) and hasattr(target, "__total__"):
        return _type_hints(target)
    return None


def _find_unknown_key(target: Any, data: Any, path: tuple = ()) -> Optional[str]:
    """
    Return the dotted path of the first key `target` does not declare.

    Walks the decoded value alongside its annotation: models, dataclasses
    and TypedDicts are checked key by key, and the walk continues through
    Optional/Union members, list and tuple items, and dict values.
    """
    origin = get_origin(target)
    args = get_args(target)

    if origin is Annotated:
        return _find_unknown_key(args[0], data, path)

    if origin is Union or origin is types.UnionType:
        found = None
        for member in args:
            if member is type(None):
                continue
            member_found = _find_unknown_key(member, data, path)
            if member_found is None:
                return None
            found = found or member_found
        return found

    if origin in _SEQUENCE_ORIGINS:
        if not isinstance(data, list) or not args:
            return None
        if origin is tuple and not (len(args) == 2 and args[1] is Ellipsis):
            pairs = zip(args, data)
        else:
            pairs = ((args[0], item) for item in data)
        for index, (item_type, item) in enumerate(pairs):
            found = _find_unknown_key(item_type, item, path + (str(index),))
            if found:
                return found
        return None

    if origin in _MAPPING_ORIGINS:
        if not isinstance(data, dict) or len(args) != 2:
            return None
        for key, item in data.items():
            found = _find_unknown_key(args[1], item, path + (key,))
            if found:
                return found
        return None

    if not isinstance(data, dict):
        return None
    fields = _record_fields(target)
    if fields is None:
        return None

    for key, value in data.items():
        if key not in fields:
            return ".".join(path + (key,))
        found = _find_unknown_key(fields[key], value, path + (key,))
        if found:
            return found
    return None


def _validation_failure(error: ValidationError, kind: str) -> ToolboxError:
    """Translate the first pydantic error into a toolbox error."""
    details = error.errors()
    if not details:
        return Other(str(error))

    first = details[0]
    field = ".".join(str(part) for part in first.get("loc", ()))

    if first["type"] == "extra_forbidden":
        return UnknownField(field)
    if first["type"] == "missing":
        return TypeMismatch(f"body is missing required field {field!r}", field=field)
    return TypeMismatch(
        f"body contains incorrect {kind} type for field {field!r}: {first['msg']}",
        field=field,
    )


# =============================================================================
# BODY DECODER
# =============================================================================

def _reject_constant(name: str):
    raise ValueError(f"{name} is not valid JSON")


_JSON_DECODER = json.JSONDecoder(parse_constant=_reject_constant)


def read_json(request: HTTPRequest, target: Any, config: Optional[ToolboxConfig] = None) -> Any:
    """
    Decode a JSON request body into an instance of `target`.

    `target` is any type pydantic can validate: a BaseModel subclass, a
    dataclass, a TypedDict, or a plain annotation such as dict[str, int].

    Example:
        class CreateUser(BaseModel):
            name: str
            age: int

        user = read_json(request, CreateUser)

    Raises:
        InvalidContentType, PayloadTooLarge, EmptyBody, MalformedSyntax,
        TruncatedInput, MultipleDocuments, UnknownField, TypeMismatch,
        DestinationInvalid
    """
    config = config or ToolboxConfig()

    content_type = request.content_type
    if content_type is not None and content_type != JSON_CONTENT_TYPE:
        raise InvalidContentType(
            f"Content-Type header is not {JSON_CONTENT_TYPE}, got {content_type!r}"
        )

    adapter = _adapter(target)
    raw = _read_body(request, config.json_limit)

    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedSyntax(
            f"body contains badly-formed JSON (invalid UTF-8 at byte {e.start})",
            offset=e.start,
        ) from e

    start = _JSON_WS.match(text, 0).end()
    if start == len(text):
        raise EmptyBody("body must not be empty")

    # ── Pass 1: syntax ─────────────────────────────────────────────────────
    try:
        value, end = _JSON_DECODER.raw_decode(text, start)
    except json.JSONDecodeError as e:
        if e.pos >= len(text) or e.msg.startswith("Unterminated string"):
            raise TruncatedInput("body contains badly-formed JSON") from e
        raise MalformedSyntax(
            f"body contains badly-formed JSON (at character {e.pos})", offset=e.pos
        ) from e
    except ValueError as e:
        raise MalformedSyntax(f"body contains badly-formed JSON ({e})") from e

    if _JSON_WS.match(text, end).end() != len(text):
        raise MultipleDocuments("body must only contain a single JSON value")

    # ── Pass 2: types ──────────────────────────────────────────────────────
    if not config.allow_unknown_json_fields:
        unknown = _find_unknown_key(target, value)
        if unknown:
            raise UnknownField(unknown)

    try:
        return adapter.validate_json(text[start:end], strict=True)
    except ValidationError as e:
        failure = _validation_failure(e, "JSON")
        logger.debug("JSON body rejected: %s", failure)
        raise failure from e


def read_xml(request: HTTPRequest, target: Any, config: Optional[ToolboxConfig] = None) -> Any:
    """
    Decode an XML request body into an instance of `target`.

    The root element's attributes and children become the fields of the
    target (see xml_codec). Elements the target does not declare are
    ignored.
    """
    config = config or ToolboxConfig()

    content_type = request.content_type
    if (
        content_type is not None
        and content_type not in _XML_MEDIA_TYPES
        and not content_type.endswith("+xml")
    ):
        raise InvalidContentType(f"Content-Type header is not XML, got {content_type!r}")

    adapter = _adapter(target)
    raw = _read_body(request, config.xml_limit)
    if not raw.strip():
        raise EmptyBody("body must not be empty")

    parser = ET.XMLParser()
    try:
        parser.feed(raw)
        root = parser.close()
    except ET.ParseError as e:
        line, column = e.position
        if e.code == _EXPAT_JUNK:
            raise MultipleDocuments("body must only contain a single XML document") from e
        if e.code in _EXPAT_TRUNCATED:
            raise TruncatedInput("body contains badly-formed XML") from e
        raise MalformedSyntax(
            f"body contains badly-formed XML (line {line}, column {column})"
        ) from e

    try:
        return adapter.validate_python(xml_codec.from_element(root))
    except ValidationError as e:
        failure = _validation_failure(e, "XML")
        logger.debug("XML body rejected: %s", failure)
        raise failure from e


# =============================================================================
# BODY ENCODER
# =============================================================================

def _write(
    response: Optional[HTTPResponse],
    status: int,
    headers: Optional[Mapping[str, str]],
    content_type: str,
    body: bytes,
) -> HTTPResponse:
    response = response if response is not None else HTTPResponse()
    for name, value in (headers or {}).items():
        response.set_header(name, value)
    response.set_content_type(content_type)
    response.set_status(status)
    response.set_body(body)
    return response


def write_json(
    status: int,
    data: Any,
    headers: Optional[Mapping[str, str]] = None,
    response: Optional[HTTPResponse] = None,
) -> HTTPResponse:
    """
    Serialize `data` as JSON into a response with the given status.

    Serialization happens before anything is written, so on
    SerializationError the response (if one was passed in) is untouched.
    """
    try:
        body = to_json(data)
    except (PydanticSerializationError, TypeError, ValueError) as e:
        raise SerializationError(f"unable to serialize payload as JSON: {e}") from e
    return _write(response, status, headers, JSON_CONTENT_TYPE, body)


def _xml_root(data: Any) -> str:
    root = getattr(type(data), "xml_root", None)
    if isinstance(root, str):
        return root
    if isinstance(data, BaseModel) or (
        dataclasses.is_dataclass(data) and not isinstance(data, type)
    ):
        return type(data).__name__
    return "response"


def write_xml(
    status: int,
    data: Any,
    headers: Optional[Mapping[str, str]] = None,
    response: Optional[HTTPResponse] = None,
    root: Optional[str] = None,
) -> HTTPResponse:
    """
    Serialize `data` as XML, prefixed with the XML declaration.

    The root element is `root`, else the class name of a model or
    dataclass payload, else "response".
    """
    try:
        value = to_jsonable_python(data)
        body = xml_codec.dumps(value, root or _xml_root(data))
    except (PydanticSerializationError, TypeError, ValueError) as e:
        raise SerializationError(f"unable to serialize payload as XML: {e}") from e
    return _write(response, status, headers, XML_CONTENT_TYPE, body)


# =============================================================================
# ERROR RESPONDER
# =============================================================================

def _error_status(error: BaseException, status: Optional[int]) -> int:
    if status is not None:
        return status
    return getattr(error, "status_code", HTTPStatus.BAD_REQUEST)


def error_json(
    error: BaseException,
    status: Optional[int] = HTTPStatus.BAD_REQUEST,
    response: Optional[HTTPResponse] = None,
) -> HTTPResponse:
    """
    Answer with {"error": true, "message": str(error)}.

    Pass status=None to use the status_code a ToolboxError carries.
    """
    payload = Envelope(error=True, message=str(error))
    return write_json(_error_status(error, status), payload, response=response)


def error_xml(
    error: BaseException,
    status: Optional[int] = HTTPStatus.BAD_REQUEST,
    response: Optional[HTTPResponse] = None,
) -> HTTPResponse:
    """XML twin of error_json(): <response><error>true</error>...</response>."""
    payload = Envelope(error=True, message=str(error))
    return write_xml(_error_status(error, status), payload, response=response)
