"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes minihttp produces or is likely to relay, with their reason
phrases (RFC 7231 / RFC 6585).

    ┌────────┬──────────────────────────────────────────────────────────┐
    │  2xx   │ success        200 OK, 201 Created, 204 No Content       │
    │  3xx   │ redirection    301, 302, 303, 304, 307, 308              │
    │  4xx   │ client error   400, 404, 405 (router), 411 (chunked)     │
    │  5xx   │ server error   500 (handler raised), 505 (bad version)   │
    └────────┴──────────────────────────────────────────────────────────┘

A response's status is a plain int: codes missing from this table (say a
relayed 299 from an upstream) are still legal, they just have no phrase of
their own. Use reason_phrase() when writing a status line.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes.

    IntEnum, so members compare equal to ints:

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus(405).phrase
        'Method Not Allowed'
    """

    # 1xx
    CONTINUE = 100
    SWITCHING_PROTOCOLS = 101

    # 2xx
    OK = 200
    CREATED = 201
    ACCEPTED = 202
    NO_CONTENT = 204
    PARTIAL_CONTENT = 206

    # 3xx
    MOVED_PERMANENTLY = 301
    FOUND = 302
    SEE_OTHER = 303
    NOT_MODIFIED = 304
    TEMPORARY_REDIRECT = 307
    PERMANENT_REDIRECT = 308

    # 4xx
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    NOT_ACCEPTABLE = 406
    REQUEST_TIMEOUT = 408
    CONFLICT = 409
    GONE = 410
    LENGTH_REQUIRED = 411
    PAYLOAD_TOO_LARGE = 413
    URI_TOO_LONG = 414
    UNSUPPORTED_MEDIA_TYPE = 415
    UNPROCESSABLE_ENTITY = 422
    TOO_MANY_REQUESTS = 429
    REQUEST_HEADER_FIELDS_TOO_LARGE = 431

    # 5xx
    INTERNAL_SERVER_ERROR = 500
    NOT_IMPLEMENTED = 501
    BAD_GATEWAY = 502
    SERVICE_UNAVAILABLE = 503
    GATEWAY_TIMEOUT = 504
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line, e.g. 'Not Found'."""
        return _PHRASES.get(self, self.name.replace("_", " ").title())

    @property
    def is_informational(self) -> bool:
        return 100 <= self < 200

    @property
    def is_success(self) -> bool:
        return 200 <= self < 300

    @property
    def is_redirect(self) -> bool:
        return 300 <= self < 400

    @property
    def is_client_error(self) -> bool:
        return 400 <= self < 500

    @property
    def is_server_error(self) -> bool:
        return 500 <= self < 600

    @property
    def is_error(self) -> bool:
        return self >= 400


# Phrases that do not follow from the member name
_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.URI_TOO_LONG: "URI Too Long",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
    HTTPStatus.REQUEST_HEADER_FIELDS_TOO_LARGE: "Request Header Fields Too Large",
}


def reason_phrase(status: int) -> str:
    """
    Reason phrase for any integer status.

    Unknown codes fall back to their class ("Client Error" for 499 ...).
    """
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        pass
    return {
        1: "Informational",
        2: "Success",
        3: "Redirection",
        4: "Client Error",
        5: "Server Error",
    }.get(status // 100, "Unknown")
