"""
Unit tests for HTTP methods and status codes.
"""

import pytest

from minihttp.http.methods import HTTPMethod, UnknownMethodError
from minihttp.http.status_codes import HTTPStatus, reason_phrase


class TestHTTPMethod:
    """Tests for method parsing."""

    def test_exactly_six_methods(self):
        """Test the routable method set."""
        assert [m.value for m in HTTPMethod] == ["GET", "DELETE", "POST", "PUT", "UPDATE", "HEAD"]

    @pytest.mark.parametrize("name", ["GET", "get", " Get "])
    def test_parse_any_case(self, name):
        """Test names are matched case-insensitively."""
        assert HTTPMethod.parse(name) is HTTPMethod.GET

    def test_parse_member_passthrough(self):
        """Test parsing a member returns it."""
        assert HTTPMethod.parse(HTTPMethod.UPDATE) is HTTPMethod.UPDATE

    @pytest.mark.parametrize("name", ["PATCH", "OPTIONS", "", "FOO"])
    def test_unknown_method(self, name):
        """Test names outside the enum raise UnknownMethodError."""
        with pytest.raises(UnknownMethodError) as exc_info:
            HTTPMethod.parse(name)

        assert exc_info.value.name == name
        assert isinstance(exc_info.value, ValueError)

    def test_str_is_wire_name(self):
        """Test str() gives the token used on the request line."""
        assert str(HTTPMethod.DELETE) == "DELETE"


class TestHTTPStatus:
    """Tests for status codes and reason phrases."""

    def test_compares_with_int(self):
        """Test IntEnum members equal their codes."""
        assert HTTPStatus.NOT_FOUND == 404
        assert HTTPStatus(405) is HTTPStatus.METHOD_NOT_ALLOWED

    @pytest.mark.parametrize("status,phrase", [
        (200, "OK"),
        (404, "Not Found"),
        (405, "Method Not Allowed"),
        (411, "Length Required"),
        (505, "HTTP Version Not Supported"),
    ])
    def test_phrases(self, status, phrase):
        """Test reason phrases for common codes."""
        assert reason_phrase(status) == phrase

    def test_unknown_code_falls_back_to_class(self):
        """Test codes outside the enum get their class name."""
        assert reason_phrase(299) == "Success"
        assert reason_phrase(499) == "Client Error"
        assert reason_phrase(999) == "Unknown"

    def test_categories(self):
        """Test the category helpers."""
        assert HTTPStatus.OK.is_success
        assert HTTPStatus.FOUND.is_redirect
        assert HTTPStatus.NOT_FOUND.is_client_error
        assert HTTPStatus.INTERNAL_SERVER_ERROR.is_server_error
        assert HTTPStatus.NOT_FOUND.is_error
        assert not HTTPStatus.OK.is_error
