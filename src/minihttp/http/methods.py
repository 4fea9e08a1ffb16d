"""
HTTP request methods understood by the router.

Only these six names are routable. Anything else is rejected where the
method name is parsed - by the transport, before a request object exists.
"""

from enum import Enum


class UnknownMethodError(ValueError):
    """Raised when a method name does not map to an HTTPMethod."""

    def __init__(self, name: str):
        super().__init__(f"No HTTPMethod can be found for {name!r}")
        self.name = name


class HTTPMethod(Enum):
    """
    Enumerated request methods.

    UPDATE is not an RFC 7231 method; it is kept for clients that send it.
    """

    GET = "GET"
    DELETE = "DELETE"
    POST = "POST"
    PUT = "PUT"
    UPDATE = "UPDATE"
    HEAD = "HEAD"

    @classmethod
    def parse(cls, name: str) -> "HTTPMethod":
        """
        Convert a method name (any case) to an HTTPMethod.

        Raises:
            UnknownMethodError: if the name is not one of the members.
        """
        if isinstance(name, cls):
            return name
        if isinstance(name, str):
            member = cls.__members__.get(name.strip().upper())
            if member is not None:
                return member
        raise UnknownMethodError(str(name))

    def __str__(self) -> str:
        return self.value
