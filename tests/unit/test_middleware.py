"""
Unit tests for middleware.
"""

import gzip as gzip_module
import json
import logging
import re

import pytest

from minihttp.handlers import pong
from minihttp.http.request import HTTPRequest
from minihttp.http.response import HTTPResponse, ResponseBuilder
from minihttp.middleware import (
    ACCESS_LOGGER_NAME,
    AccessLogMiddleware,
    AccessRecord,
    FunctionMiddleware,
    GzipMiddleware,
    MiddlewarePipeline,
    access_log,
    common,
    function_middleware,
    gzip,
)


BIG_TEXT = "minihttp " * 500


def big_text(request: HTTPRequest) -> HTTPResponse:
    return ResponseBuilder().text(BIG_TEXT).build()


def gzip_request(url: str = "/") -> HTTPRequest:
    """Helper: a GET announcing gzip support."""
    return HTTPRequest.get(url).with_header("Accept-Encoding", "gzip, deflate")


def tagger(tag: str, calls: list):
    """Middleware recording the order it runs in."""
    def middleware(request, next):
        calls.append(f"{tag}:before")
        response = next(request)
        calls.append(f"{tag}:after")
        return response
    return FunctionMiddleware(middleware, name=tag)


class TestPipeline:
    """Tests for MiddlewarePipeline and FunctionMiddleware."""

    def test_first_added_is_outermost(self):
        """Test middleware run in the order added, unwinding in reverse."""
        calls = []
        pipeline = MiddlewarePipeline().use(tagger("a", calls), tagger("b", calls))
        handler = pipeline.wrap(pong())

        assert handler(HTTPRequest.get("/")).text() == "pong"
        assert calls == ["a:before", "b:before", "b:after", "a:after"]
        assert len(pipeline) == 2
        assert [mw.name for mw in pipeline] == ["a", "b"]

    def test_short_circuit(self):
        """Test a middleware can answer without calling next."""
        @function_middleware
        def deny(request, next):
            return HTTPResponse.of(403)

        handler = deny.wrap(pong())

        assert handler(HTTPRequest.get("/")).status == 403

    def test_response_rewrite(self):
        """Test a middleware can return a modified copy."""
        @function_middleware
        def versioned(request, next):
            return next(request).with_header("X-Version", "1")

        response = versioned.wrap(pong())(HTTPRequest.get("/"))

        assert response.header("x-version") == "1"
        assert response.text() == "pong"

    def test_wrapped_name(self):
        """Test wrapped handlers carry a descriptive name."""
        handler = GzipMiddleware().wrap(pong())

        assert handler.__name__ == "GzipMiddleware(handle)"


class TestAccessLog:
    """Tests for AccessLogMiddleware."""

    def test_common_log_line(self, caplog):
        """Test one Common Log Format line per request."""
        handler = access_log(pong())
        request = HTTPRequest.get("/ping?x=1").copy().remote(("10.0.0.1", 5000)).build()

        with caplog.at_level(logging.INFO, logger=ACCESS_LOGGER_NAME):
            response = handler(request)

        assert response.status == 200
        records = [r for r in caplog.records if r.name == ACCESS_LOGGER_NAME]
        assert len(records) == 1
        assert re.fullmatch(
            r'10\.0\.0\.1 - - \[\d{2}/\w{3}/\d{4}:\d{2}:\d{2}:\d{2} [+-]\d{4}\] "GET /ping\?x=1 HTTP/1\.1" 200 4',
            records[0].getMessage(),
        )

    def test_missing_remote_and_unknown_length(self):
        """Test "-" placeholders in the common format."""
        record = AccessRecord(
            remote="-",
            timestamp="01/Jan/2026:00:00:00 +0000",
            method="GET",
            uri="/",
            protocol="HTTP/1.1",
            status=200,
            length=None,
            duration_ms=1.0,
        )

        assert record.to_common() == '- - - [01/Jan/2026:00:00:00 +0000] "GET / HTTP/1.1" 200 -'

    def test_json_format(self, caplog):
        """Test JSON access lines."""
        handler = access_log(pong(), log_format="json")

        with caplog.at_level(logging.INFO, logger=ACCESS_LOGGER_NAME):
            handler(HTTPRequest.get("/ping"))

        line = json.loads(caplog.records[-1].getMessage())
        assert line["method"] == "GET"
        assert line["uri"] == "/ping"
        assert line["status"] == 200
        assert line["remote"] == "-"
        assert "request_id" not in line

    def test_request_id(self, caplog):
        """Test include_request_id tags the response and the log line."""
        handler = access_log(pong(), log_format="json", include_request_id=True)

        with caplog.at_level(logging.INFO, logger=ACCESS_LOGGER_NAME):
            response = handler(HTTPRequest.get("/ping"))

        line = json.loads(caplog.records[-1].getMessage())
        assert response.header("x-request-id") == line["request_id"]

    def test_skip_paths(self, caplog):
        """Test skipped paths are served but not logged."""
        handler = access_log(pong(), skip_paths=["/ping"])

        with caplog.at_level(logging.INFO, logger=ACCESS_LOGGER_NAME):
            assert handler(HTTPRequest.get("/ping")).status == 200

        assert not [r for r in caplog.records if r.name == ACCESS_LOGGER_NAME]

    def test_failure_logged_and_reraised(self, caplog):
        """Test handler exceptions are logged at ERROR and propagate."""
        def failing(request):
            raise ValueError("bad")

        handler = access_log(failing)

        with caplog.at_level(logging.INFO, logger=ACCESS_LOGGER_NAME):
            with pytest.raises(ValueError):
                handler(HTTPRequest.get("/boom"))

        assert caplog.records[-1].levelno == logging.ERROR
        assert "/boom" in caplog.records[-1].getMessage()

    def test_invalid_format(self):
        """Test unknown formats are rejected."""
        with pytest.raises(ValueError):
            AccessLogMiddleware(log_format="xml")


class TestGzip:
    """Tests for GzipMiddleware."""

    def test_compresses_when_accepted(self):
        """Test large text bodies are gzipped for gzip clients."""
        response = gzip(big_text)(gzip_request())

        assert response.header("content-encoding") == "gzip"
        assert response.header("vary") == "Accept-Encoding"
        body = response.read_body()
        assert response.length == len(body)
        assert gzip_module.decompress(body).decode() == BIG_TEXT

    def test_untouched_without_accept_encoding(self):
        """Test clients not asking for gzip get the plain body."""
        response = gzip(big_text)(HTTPRequest.get("/"))

        assert "content-encoding" not in response.headers
        assert response.text() == BIG_TEXT

    @pytest.mark.parametrize("accept", ["gzip;q=0", "gzip; q=0.0", "gzip;q=0.00", "*;q=0.000", "gzip;q=bogus"])
    def test_q_zero_refuses(self, accept):
        """Test a zero (or unreadable) quality is a refusal."""
        request = HTTPRequest.get("/").with_header("Accept-Encoding", accept)

        assert "content-encoding" not in gzip(big_text)(request).headers

    def test_partial_quality_accepts(self):
        """Test any positive quality accepts gzip."""
        request = HTTPRequest.get("/").with_header("Accept-Encoding", "br, gzip;q=0.5")

        assert gzip(big_text)(request).header("content-encoding") == "gzip"

    def test_small_body_returned_intact(self):
        """Test bodies under min_size keep their bytes."""
        response = gzip(pong())(gzip_request())

        assert "content-encoding" not in response.headers
        assert response.text() == "pong"

    def test_incompressible_type(self):
        """Test binary content types are skipped."""
        def binary(request):
            return ResponseBuilder().body(b"\x00" * 4096).content_type("image/png").build()

        response = gzip(binary)(gzip_request())

        assert "content-encoding" not in response.headers
        assert response.length == 4096

    def test_always(self):
        """Test always=True compresses regardless of the request."""
        response = gzip(pong(), always=True)(HTTPRequest.get("/"))

        assert response.header("content-encoding") == "gzip"
        assert gzip_module.decompress(response.read_body()) == b"pong"

    def test_already_encoded(self):
        """Test an existing Content-Encoding is respected."""
        def encoded(request):
            return ResponseBuilder().text(BIG_TEXT).set_header("Content-Encoding", "br").build()

        response = gzip(encoded, always=True)(gzip_request())

        assert response.header("content-encoding") == "br"

    def test_no_body_status(self):
        """Test 204 responses pass through."""
        response = gzip(lambda request: HTTPResponse.of(204), always=True)(gzip_request())

        assert "content-encoding" not in response.headers

    def test_invalid_level(self):
        """Test the compression level is validated."""
        with pytest.raises(ValueError):
            GzipMiddleware(level=0)


class TestCommon:
    """Tests for the combined access log + gzip stack."""

    def test_common(self, caplog):
        """Test common() logs once and compresses."""
        handler = common(big_text)

        with caplog.at_level(logging.INFO, logger=ACCESS_LOGGER_NAME):
            response = handler(gzip_request("/big"))

        assert response.header("content-encoding") == "gzip"
        records = [r for r in caplog.records if r.name == ACCESS_LOGGER_NAME]
        assert len(records) == 1
        assert records[0].getMessage().endswith(f"200 {response.length}")
