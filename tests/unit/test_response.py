"""
Unit tests for HTTP response building.
"""

import json
from datetime import datetime, timezone
from http import HTTPStatus

import pytest
from pydantic import BaseModel

from httptoolbox.http.response import (
    HTTPResponse,
    ResponseBuilder,
    format_http_date,
    forbidden,
    not_found,
)


class TestHTTPResponse:
    """Tests for HTTPResponse class."""

    def test_status_line(self):
        """Test status line generation."""
        response = HTTPResponse(status=HTTPStatus.OK)
        assert response.status_line == "HTTP/1.1 200 OK"

        response = HTTPResponse(status=HTTPStatus.NOT_FOUND)
        assert response.status_line == "HTTP/1.1 404 Not Found"

    def test_status_line_unregistered_code(self):
        """Test that an unknown code still gives a valid status line."""
        assert HTTPResponse(status=599).status_line == "HTTP/1.1 599"

    def test_to_bytes_includes_headers(self):
        """Test that to_bytes includes all headers."""
        response = HTTPResponse(
            status=HTTPStatus.OK,
            headers={"X-Custom": "value"},
            body=b"test",
        )

        result = response.to_bytes()

        assert result.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"X-Custom: value\r\n" in result
        assert b"Content-Length: 4\r\n" in result
        assert b"Server: httptoolbox\r\n" in result
        assert result.endswith(b"\r\n\r\ntest")

    def test_to_bytes_keeps_explicit_content_length(self):
        response = HTTPResponse(headers={"Content-Length": "99"}, body=b"")
        assert b"Content-Length: 99\r\n" in response.to_bytes()

    def test_set_header_overwrites(self):
        response = HTTPResponse().set_header("X-One", "1").set_header("X-One", "2")
        assert response.headers == {"X-One": "2"}

    def test_set_body_encodes_str(self):
        assert HTTPResponse().set_body("héllo").body == "héllo".encode("utf-8")


class TestResponseBuilder:
    """Tests for ResponseBuilder class."""

    def test_status(self):
        response = ResponseBuilder().status(HTTPStatus.CREATED).build()
        assert response.status == HTTPStatus.CREATED

    def test_json_body(self):
        """Test JSON body encoding."""
        data = {"name": "John", "age": 30}
        response = ResponseBuilder().json(data).build()

        assert response.headers["Content-Type"] == "application/json"
        assert json.loads(response.body) == data

    def test_json_body_from_model(self):
        class User(BaseModel):
            id: int
            joined: datetime

        user = User(id=1, joined=datetime(2026, 1, 2, tzinfo=timezone.utc))
        response = ResponseBuilder().json(user).build()

        assert json.loads(response.body) == {"id": 1, "joined": "2026-01-02T00:00:00Z"}

    def test_xml_body(self):
        response = ResponseBuilder().xml({"name": "Ada"}, root="user").build()

        assert response.headers["Content-Type"] == "application/xml"
        assert response.body == b'<?xml version="1.0" encoding="UTF-8"?>\n<user><name>Ada</name></user>'

    def test_text_body(self):
        response = ResponseBuilder().text("Hello, World!").build()

        assert response.headers["Content-Type"] == "text/plain; charset=utf-8"
        assert response.body == b"Hello, World!"

    def test_attachment(self):
        response = ResponseBuilder().attachment("report.pdf").build()
        assert response.headers["Content-Disposition"] == 'attachment; filename="report.pdf"'

    def test_headers_bulk(self):
        response = ResponseBuilder().header("A", "1").headers({"A": "2", "B": "3"}).build()
        assert response.headers == {"A": "2", "B": "3"}

    def test_method_chaining(self):
        """Test fluent API chaining."""
        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .header("X-Custom", "value")
            .json({"key": "value"})
            .build())

        assert response.status == HTTPStatus.OK
        assert response.headers["X-Custom"] == "value"
        assert b'"key"' in response.body


class TestConvenienceFunctions:
    """Tests for convenience response functions."""

    def test_not_found(self):
        response = not_found("Resource not found")
        assert response.status == HTTPStatus.NOT_FOUND
        assert json.loads(response.body) == {"error": True, "message": "Resource not found"}

    def test_forbidden(self):
        response = forbidden()
        assert response.status == HTTPStatus.FORBIDDEN
        assert json.loads(response.body)["error"] is True

    @pytest.mark.parametrize("dt", [
        datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc),
        datetime(2026, 1, 1, 12, 0, 0),
    ])
    def test_format_http_date(self, dt):
        assert format_http_date(dt) == "Thu, 01 Jan 2026 12:00:00 GMT"
