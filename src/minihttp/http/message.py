"""
Behaviour shared by requests and responses.

Both message types are frozen dataclasses declaring `headers`, `body`,
`length` and `protocol`; this mixin adds the header accessors and body
helpers on top of those fields.
"""

from typing import Any, Optional
import json

from .containers import CaseInsensitiveMultiDict


DEFAULT_PROTOCOL = "HTTP/1.1"


def freeze_headers(headers: Any) -> CaseInsensitiveMultiDict:
    """
    Return a frozen header multidict for a message.

    A multidict that is already frozen is shared by reference; anything
    else (a dict, a list of pairs, a mutable multidict) is copied first so
    the caller's object is never frozen behind its back.
    """
    if isinstance(headers, CaseInsensitiveMultiDict) and headers.frozen:
        return headers
    return CaseInsensitiveMultiDict(headers or ()).freeze()


class HTTPMessage:
    """Mixin for HTTPRequest and HTTPResponse."""

    headers: CaseInsensitiveMultiDict
    length: Optional[int]
    protocol: str

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value of a header (case-insensitive), or `default`."""
        return self.headers.get(name, default)

    def has_header(self, name: str) -> bool:
        return name in self.headers

    @property
    def content_type(self) -> Optional[str]:
        """
        Media type without parameters, lowercased.

        "application/json; charset=utf-8" → "application/json"
        """
        value = self.headers.get("content-type")
        if not value:
            return None
        return value.split(";")[0].strip().lower() or None

    @property
    def has_known_length(self) -> bool:
        return self.length is not None

    # -------------------------------------------------------------------------
    # Body helpers - all of these CONSUME the body
    # -------------------------------------------------------------------------

    def read_body(self) -> bytes:
        """Drain the body. A second call returns b""."""
        return self.body.read_all()

    def text(self, encoding: str = "utf-8") -> str:
        """Drain the body and decode it."""
        return self.read_body().decode(encoding)

    def json(self) -> Any:
        """
        Drain the body and parse it as JSON.

        Raises:
            ValueError: if the body is not valid JSON.
        """
        return json.loads(self.text())


# Sentinel for "length not given": derive it from the body's declared length.
# Distinct from None, which explicitly means "unknown length".
UNSET: Any = object()
