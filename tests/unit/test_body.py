"""
Unit tests for body decoding, encoding and error envelopes.
"""

import io
import json
from dataclasses import dataclass
from http import HTTPStatus
from typing import Dict, List, Optional

import pytest
from pydantic import BaseModel, ConfigDict, Field
from typing_extensions import TypedDict

from httptoolbox import ToolboxConfig
from httptoolbox.body import (
    Envelope,
    LimitedReader,
    error_json,
    error_xml,
    read_json,
    read_xml,
    write_json,
    write_xml,
)
from httptoolbox.errors import (
    DestinationInvalid,
    EmptyBody,
    InvalidContentType,
    MalformedSyntax,
    MultipleDocuments,
    PayloadTooLarge,
    SerializationError,
    TruncatedInput,
    TypeMismatch,
    UnknownField,
)
from httptoolbox.http import HTTPRequest, HTTPResponse


XML_DECLARATION = b'<?xml version="1.0" encoding="UTF-8"?>\n'


class Foo(BaseModel):
    foo: str


class Outer(BaseModel):
    name: str
    inner: Foo


class Item(BaseModel):
    id: int
    name: str
    tag: list[str] = []


def xml_request(body, content_type="application/xml") -> HTTPRequest:
    headers = {"Content-Type": content_type} if content_type else {}
    return HTTPRequest.build("POST", "/", headers=headers, body=body)


class TestLimitedReader:
    """Tests for the size-limited reader."""

    def test_reads_up_to_limit(self):
        assert LimitedReader(io.BytesIO(b"x" * 10), 10).read() == b"x" * 10

    def test_one_byte_over_limit(self):
        with pytest.raises(PayloadTooLarge) as exc:
            LimitedReader(io.BytesIO(b"x" * 11), 10).read()
        assert exc.value.limit == 10
        assert "10" in str(exc.value)

    def test_small_reads(self):
        reader = LimitedReader(io.BytesIO(b"abcdef"), 10)
        assert reader.read(4) == b"abcd"
        assert reader.read(4) == b"ef"
        assert reader.read(4) == b""


class TestReadJSON:
    """Tests for read_json()."""

    def test_valid_document(self, json_request, config):
        result = read_json(json_request('{"foo": "bar"}'), Foo, config)
        assert isinstance(result, Foo)
        assert result.foo == "bar"

    def test_surrounding_whitespace(self, json_request, config):
        assert read_json(json_request('  \n{"foo": "bar"}\n  '), Foo, config).foo == "bar"

    @pytest.mark.parametrize("content_type", [
        "application/json",
        "application/json; charset=utf-8",
        "Application/JSON",
        None,
    ])
    def test_accepted_content_types(self, json_request, config, content_type):
        assert read_json(json_request('{"foo": "bar"}', content_type), Foo, config).foo == "bar"

    def test_wrong_content_type(self, json_request, config):
        with pytest.raises(InvalidContentType) as exc:
            read_json(json_request('{"foo": "bar"}', "text/plain"), Foo, config)
        assert exc.value.status_code == HTTPStatus.UNSUPPORTED_MEDIA_TYPE

    def test_plain_types(self, json_request, config):
        assert read_json(json_request('{"a": 1, "b": 2}'), dict[str, int], config) == {"a": 1, "b": 2}
        assert read_json(json_request("[1, 2, 3]"), list[int], config) == [1, 2, 3]

    def test_dataclass_target(self, json_request, config):
        @dataclass
        class Point:
            x: int
            y: int

        assert read_json(json_request('{"x": 1, "y": 2}'), Point, config) == Point(1, 2)

    @pytest.mark.parametrize("body", ["", "   ", "\n\t\r\n"])
    def test_empty_body(self, json_request, config, body):
        with pytest.raises(EmptyBody) as exc:
            read_json(json_request(body), Foo, config)
        assert str(exc.value) == "body must not be empty"

    def test_two_documents(self, json_request, config):
        with pytest.raises(MultipleDocuments) as exc:
            read_json(json_request('{"foo": "bar"}{"alpha": "beta"}'), Foo, config)
        assert str(exc.value) == "body must only contain a single JSON value"

    def test_trailing_garbage(self, json_request, config):
        with pytest.raises(MultipleDocuments):
            read_json(json_request('{"foo": "bar"} x'), Foo, config)

    def test_too_large(self, json_request):
        config = ToolboxConfig(max_json_size=10)
        with pytest.raises(PayloadTooLarge) as exc:
            read_json(json_request('{"foo": "a long value"}'), Foo, config)
        assert str(exc.value) == "body must not be larger than 10 bytes"

    def test_zero_limit_means_default(self, json_request):
        config = ToolboxConfig(max_json_size=0)
        assert read_json(json_request('{"foo": "bar"}'), Foo, config).foo == "bar"

    @pytest.mark.parametrize("body,offset", [
        ('{"foo": "bar",}', 14),
        ('{foo: "bar"}', 1),
    ])
    def test_badly_formed(self, json_request, config, body, offset):
        with pytest.raises(MalformedSyntax) as exc:
            read_json(json_request(body), Foo, config)
        assert exc.value.offset == offset
        assert str(exc.value) == f"body contains badly-formed JSON (at character {offset})"

    def test_invalid_utf8(self, json_request, config):
        with pytest.raises(MalformedSyntax):
            read_json(json_request(b'{"foo": "\xff"}'), Foo, config)

    def test_nan_is_not_json(self, json_request, config):
        with pytest.raises(MalformedSyntax):
            read_json(json_request('{"foo": NaN}'), dict, config)

    @pytest.mark.parametrize("body", ['{"foo": "bar"', '{"foo":', '{"foo": "ba'])
    def test_truncated(self, json_request, config, body):
        with pytest.raises(TruncatedInput) as exc:
            read_json(json_request(body), Foo, config)
        assert str(exc.value) == "body contains badly-formed JSON"

    def test_wrong_type(self, json_request, config):
        with pytest.raises(TypeMismatch) as exc:
            read_json(json_request('{"foo": 1}'), Foo, config)
        assert exc.value.field == "foo"
        assert "foo" in str(exc.value)
        assert not hasattr(exc.value, "offset")

    def test_no_string_to_int_coercion(self, json_request, config):
        with pytest.raises(TypeMismatch):
            read_json(json_request('{"id": "7", "name": "x"}'), Item, config)

    def test_missing_field(self, json_request, config):
        with pytest.raises(TypeMismatch) as exc:
            read_json(json_request("{}"), Foo, config)
        assert exc.value.field == "foo"

    def test_unknown_field(self, json_request, config):
        with pytest.raises(UnknownField) as exc:
            read_json(json_request('{"foo": "bar", "fooo": "baz"}'), Foo, config)
        assert exc.value.field == "fooo"
        assert str(exc.value) == "body contains unknown key 'fooo'"

    def test_unknown_nested_field(self, json_request, config):
        body = '{"name": "n", "inner": {"foo": "x", "zz": 1}}'
        with pytest.raises(UnknownField) as exc:
            read_json(json_request(body), Outer, config)
        assert exc.value.field == "inner.zz"

    def test_unknown_field_in_dataclass(self, json_request, config):
        @dataclass
        class Point:
            x: int

        with pytest.raises(UnknownField) as exc:
            read_json(json_request('{"x": 1, "y": 2}'), Point, config)
        assert exc.value.field == "y"

    def test_unknown_field_in_typed_dict(self, json_request, config):
        class Movie(TypedDict):
            title: str

        with pytest.raises(UnknownField) as exc:
            read_json(json_request('{"title": "Up", "year": 2009}'), Movie, config)
        assert exc.value.field == "year"

    def test_unknown_field_in_list_items(self, json_request, config):
        class Order(BaseModel):
            items: List[Foo]

        body = '{"items": [{"foo": "a"}, {"foo": "b", "bogus": 1}]}'
        with pytest.raises(UnknownField) as exc:
            read_json(json_request(body), Order, config)
        assert exc.value.field == "items.1.bogus"

    @pytest.mark.parametrize("annotation", [Optional[Foo], Foo | None])
    def test_unknown_field_in_optional(self, json_request, config, annotation):
        class Note(BaseModel):
            note: annotation = None

        with pytest.raises(UnknownField) as exc:
            read_json(json_request('{"note": {"foo": "a", "bogus": 1}}'), Note, config)
        assert exc.value.field == "note.bogus"

    def test_optional_field_may_be_null(self, json_request, config):
        class Note(BaseModel):
            note: Optional[Foo] = None

        assert read_json(json_request('{"note": null}'), Note, config).note is None

    def test_unknown_field_in_dict_values(self, json_request, config):
        with pytest.raises(UnknownField) as exc:
            read_json(json_request('{"a": {"foo": "x", "bar": 1}}'), Dict[str, Foo], config)
        assert exc.value.field == "a.bar"

    def test_unknown_field_in_top_level_list(self, json_request, config):
        with pytest.raises(UnknownField):
            read_json(json_request('[{"foo": "x", "bar": 1}]'), list[Foo], config)

    def test_alias_is_a_known_key(self, json_request, config):
        class Aliased(BaseModel):
            user_name: str = Field(alias="userName")

        assert read_json(json_request('{"userName": "ada"}'), Aliased, config).user_name == "ada"

    def test_unknown_fields_allowed(self, json_request):
        config = ToolboxConfig(allow_unknown_json_fields=True)
        result = read_json(json_request('{"foo": "bar", "extra": 1}'), Foo, config)
        assert result.foo == "bar"

    def test_model_forbidding_extras_still_wins(self, json_request):
        class Strict(BaseModel):
            model_config = ConfigDict(extra="forbid")
            foo: str

        config = ToolboxConfig(allow_unknown_json_fields=True)
        with pytest.raises(UnknownField):
            read_json(json_request('{"foo": "bar", "extra": 1}'), Strict, config)

    def test_none_target(self, json_request, config):
        with pytest.raises(DestinationInvalid) as exc:
            read_json(json_request('{"foo": "bar"}'), None, config)
        assert exc.value.status_code == HTTPStatus.INTERNAL_SERVER_ERROR

    def test_content_type_checked_before_target(self, json_request, config):
        with pytest.raises(InvalidContentType):
            read_json(json_request('{"foo": "bar"}', "text/plain"), None, config)

    def test_default_config(self, json_request):
        assert read_json(json_request('{"foo": "bar"}'), Foo).foo == "bar"


class TestReadXML:
    """Tests for read_xml()."""

    def test_valid_document(self, config):
        result = read_xml(xml_request("<Foo><foo>bar</foo></Foo>"), Foo, config)
        assert result.foo == "bar"

    def test_attributes_and_lax_types(self, config):
        body = '<item id="7"><name>widget</name><tag>a</tag><tag>b</tag></item>'
        result = read_xml(xml_request(body), Item, config)
        assert result.id == 7
        assert result.name == "widget"
        assert result.tag == ["a", "b"]

    def test_with_declaration(self, config):
        body = XML_DECLARATION + b"<Foo><foo>bar</foo></Foo>"
        assert read_xml(xml_request(body), Foo, config).foo == "bar"

    def test_unknown_elements_ignored(self, config):
        body = "<Foo><foo>bar</foo><other>1</other></Foo>"
        assert read_xml(xml_request(body), Foo, config).foo == "bar"

    @pytest.mark.parametrize("content_type", ["text/xml", "application/atom+xml", None])
    def test_accepted_content_types(self, config, content_type):
        request = xml_request("<Foo><foo>bar</foo></Foo>", content_type)
        assert read_xml(request, Foo, config).foo == "bar"

    def test_wrong_content_type(self, config):
        with pytest.raises(InvalidContentType):
            read_xml(xml_request("<Foo/>", "application/json"), Foo, config)

    def test_content_type_checked_before_target(self, config):
        with pytest.raises(InvalidContentType):
            read_xml(xml_request("<Foo/>", "application/json"), None, config)

    def test_text_next_to_attributes(self, config):
        class Note(BaseModel):
            lang: str
            text: str = Field(alias="#text")

        result = read_xml(xml_request('<note lang="en">hi</note>'), Note, config)
        assert (result.lang, result.text) == ("en", "hi")

    def test_empty_body(self, config):
        with pytest.raises(EmptyBody):
            read_xml(xml_request("  "), Foo, config)

    def test_two_documents(self, config):
        with pytest.raises(MultipleDocuments):
            read_xml(xml_request("<Foo><foo>a</foo></Foo><Foo><foo>b</foo></Foo>"), Foo, config)

    @pytest.mark.parametrize("body", ["<Foo><foo>bar</foo>", "<Foo><foo"])
    def test_truncated(self, config, body):
        with pytest.raises(TruncatedInput):
            read_xml(xml_request(body), Foo, config)

    def test_badly_formed(self, config):
        with pytest.raises(MalformedSyntax) as exc:
            read_xml(xml_request("<Foo><foo>bar</Foo>"), Foo, config)
        assert "line 1" in str(exc.value)

    def test_too_large(self):
        config = ToolboxConfig(max_xml_size=8)
        with pytest.raises(PayloadTooLarge):
            read_xml(xml_request("<Foo><foo>bar</foo></Foo>"), Foo, config)

    def test_wrong_type(self, config):
        with pytest.raises(TypeMismatch) as exc:
            read_xml(xml_request('<item id="seven"><name>x</name></item>'), Item, config)
        assert exc.value.field == "id"


class TestWriteJSON:
    """Tests for write_json()."""

    def test_writes_status_and_body(self):
        response = write_json(HTTPStatus.CREATED, {"id": 1})

        assert response.status == HTTPStatus.CREATED
        assert response.headers["Content-Type"] == "application/json"
        assert json.loads(response.body) == {"id": 1}

    def test_headers_overwrite(self):
        existing = HTTPResponse(headers={"X-Request-Id": "old", "X-Keep": "1"})
        response = write_json(200, [1, 2], headers={"X-Request-Id": "new"}, response=existing)

        assert response is existing
        assert response.headers["X-Request-Id"] == "new"
        assert response.headers["X-Keep"] == "1"

    def test_envelope_omits_empty_data(self):
        response = write_json(200, Envelope(error=False, message="ok"))
        assert json.loads(response.body) == {"error": False, "message": "ok"}

    def test_envelope_with_data(self):
        response = write_json(200, Envelope(message="ok", data={"id": 3}))
        assert json.loads(response.body) == {"error": False, "message": "ok", "data": {"id": 3}}

    def test_unserializable_payload(self):
        existing = HTTPResponse()
        with pytest.raises(SerializationError):
            write_json(200, {"callback": lambda: None}, response=existing)

        assert existing.body == b""
        assert "Content-Type" not in existing.headers


class TestWriteXML:
    """Tests for write_xml()."""

    def test_declaration_and_root(self):
        response = write_xml(200, {"name": "Ada"}, root="user")

        assert response.headers["Content-Type"] == "application/xml"
        assert response.body == XML_DECLARATION + b"<user><name>Ada</name></user>"

    def test_default_root(self):
        assert write_xml(200, {"a": 1}).body == XML_DECLARATION + b"<response><a>1</a></response>"

    def test_dataclass_root_is_class_name(self):
        @dataclass
        class Point:
            x: int
            y: int

        assert write_xml(200, Point(1, 2)).body == XML_DECLARATION + b"<Point><x>1</x><y>2</y></Point>"

    def test_lists_repeat_elements(self):
        response = write_xml(200, {"tag": ["a", "b"]}, root="tags")
        assert response.body == XML_DECLARATION + b"<tags><tag>a</tag><tag>b</tag></tags>"

    def test_envelope(self):
        response = write_xml(200, Envelope(message="hi"))
        assert response.body == (
            XML_DECLARATION + b"<response><error>false</error><message>hi</message></response>"
        )

    def test_invalid_element_name(self):
        with pytest.raises(SerializationError):
            write_xml(200, {"not a tag": 1})


class TestErrorResponder:
    """Tests for error_json() / error_xml()."""

    def test_error_json_default_status(self):
        response = error_json(ValueError("boom"))

        assert response.status == HTTPStatus.BAD_REQUEST
        assert json.loads(response.body) == {"error": True, "message": "boom"}

    def test_error_json_status_override(self):
        response = error_json(ValueError("down"), status=HTTPStatus.SERVICE_UNAVAILABLE)
        assert response.status == HTTPStatus.SERVICE_UNAVAILABLE

    def test_error_json_uses_error_status(self):
        response = error_json(PayloadTooLarge(10), status=None)

        assert response.status == HTTPStatus.REQUEST_ENTITY_TOO_LARGE
        assert json.loads(response.body)["message"] == "body must not be larger than 10 bytes"

    def test_error_json_plain_exception_without_status(self):
        assert error_json(RuntimeError("x"), status=None).status == HTTPStatus.BAD_REQUEST

    def test_error_xml(self):
        response = error_xml(ValueError("boom"))

        assert response.status == HTTPStatus.BAD_REQUEST
        assert response.headers["Content-Type"] == "application/xml"
        assert response.body == (
            XML_DECLARATION + b"<response><error>true</error><message>boom</message></response>"
        )
