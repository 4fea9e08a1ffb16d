"""
=============================================================================
URI TEMPLATES
=============================================================================

A URI template is a path with named variables in braces:

    /echo/{message}
    /users/{user}/posts/{post}

One template serves two directions:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                     │
    │    MATCH     "/users/7/posts/42"  ──►  {"user": "7", "post": "42"}  │
    │                                                                     │
    │    EXPAND    ("7", "42")          ──►  "/users/7/posts/42"          │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
COMPILATION
=============================================================================

The template is split on "/" and each segment is classified:

    "/users/{user}/posts/{post}"
         │
         ▼  split on "/", trim, drop empty segments
    ["users", "{user}", "posts", "{post}"]
         │
         ▼  literal → re.escape(literal),  {name} → (.*)
    ["users", "(.*)", "posts", "(.*)"]
         │
         ▼  join with "/", re-apply the leading / trailing "/"
    r"/users/(.*)/posts/(.*)"          variables = ("user", "post")

Capture group i belongs to variable i. The wildcard is "(.*)": it is not
limited to one segment, so "/files/{name}" also matches "/files/a/b".

A leading "/" in the template is significant: "/ping" matches "/ping"
but not "ping". Likewise for a trailing "/".

=============================================================================
"""

from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote
import re


# Characters left alone by expand(): unreserved plus the sub-delimiters,
# ":", "@", "/" and "?" (what may appear in a URI fragment, RFC 3986 3.5).
SAFE_CHARACTERS = "/:@!$&'()*+,;=?~"

VARIABLE_GROUP = "(.*)"


class UriTemplateError(ValueError):
    """Malformed template, or the wrong number of values for expand()."""


def _split(template: str) -> List[str]:
    """Segments of a template: trimmed, empty ones dropped."""
    return [part.strip() for part in template.split("/") if part.strip()]


def _variable_name(segment: str, template: str) -> Optional[str]:
    """
    Name of a "{name}" segment, None for a literal.

    Raises:
        UriTemplateError: for any other use of braces.
    """
    if segment.startswith("{") and segment.endswith("}") and len(segment) > 1:
        name = segment[1:-1].strip()
        if not name or "{" in name or "}" in name:
            raise UriTemplateError(f"Invalid variable {segment!r} in template {template!r}")
        return name
    if "{" in segment or "}" in segment:
        raise UriTemplateError(f"Unbalanced braces in segment {segment!r} of template {template!r}")
    return None


def _frame(template: str, joined: str) -> str:
    """Re-apply the template's leading and trailing "/" to a joined path."""
    if not joined:
        return "/" if template.startswith("/") or template.endswith("/") else ""
    if template.startswith("/"):
        joined = "/" + joined
    if template.endswith("/"):
        joined += "/"
    return joined


class UriTemplate:
    """
    A compiled path template.

    Immutable and safe to share between threads. Two templates are equal
    when their template strings are equal.

    Example:
        >>> t = UriTemplate.parse("/echo/{message}")
        >>> t.matches("/echo/hello")
        True
        >>> t.match("/echo/hello")
        {'message': 'hello'}
        >>> t.expand("hello world")
        '/echo/hello%20world'
    """

    __slots__ = ("_template", "_segments", "_pattern", "_variables")

    def __init__(self, template: str):
        if not isinstance(template, str):
            raise TypeError(f"template must be a str, not {type(template).__name__}")

        segments: List[Tuple[str, bool]] = []
        regex_parts: List[str] = []
        variables: List[str] = []

        for segment in _split(template):
            name = _variable_name(segment, template)
            if name is None:
                segments.append((segment, False))
                regex_parts.append(re.escape(segment))
            else:
                segments.append((name, True))
                regex_parts.append(VARIABLE_GROUP)
                variables.append(name)

        self._template = template
        self._segments = tuple(segments)
        self._pattern = re.compile(_frame(template, "/".join(regex_parts)))
        self._variables = tuple(variables)

    @classmethod
    def parse(cls, template: str) -> "UriTemplate":
        """Compile a template, e.g. UriTemplate.parse("/echo/{message}")."""
        return cls(template)

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    @property
    def template(self) -> str:
        return self._template

    @property
    def pattern(self) -> "re.Pattern[str]":
        return self._pattern

    @property
    def variables(self) -> Tuple[str, ...]:
        """Variable names in left-to-right order (repeats included)."""
        return self._variables

    # =========================================================================
    # MATCHING
    # =========================================================================

    def matches(self, path: Optional[str]) -> bool:
        """True if the WHOLE path matches. None never matches."""
        if path is None:
            return False
        return self._pattern.fullmatch(path) is not None

    def match(self, path: Optional[str]) -> Dict[str, str]:
        """
        Variable values captured from `path`, in variable order.

        Returns an empty dict when the path does not match (no partial
        results). If a name occurs twice, the right-most capture wins.
        """
        if path is None:
            return {}
        found = self._pattern.fullmatch(path)
        if found is None:
            return {}
        return dict(zip(self._variables, found.groups()))

    # =========================================================================
    # EXPANSION
    # =========================================================================

    def expand(self, *values: Any) -> str:
        """
        Substitute `values` for the variables, by position, and percent-escape.

        Raises:
            UriTemplateError: unless exactly one value per variable is given.
        """
        if len(values) != len(self._variables):
            raise UriTemplateError(
                f"Template {self._template!r} takes {len(self._variables)} "
                f"value(s), got {len(values)}"
            )

        remaining = iter(values)
        parts = [str(next(remaining)) if is_variable else text for text, is_variable in self._segments]
        return quote(_frame(self._template, "/".join(parts)), safe=SAFE_CHARACTERS)

    # =========================================================================
    # VALUE SEMANTICS
    # =========================================================================

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, UriTemplate):
            return NotImplemented
        return self._template == other._template

    def __hash__(self) -> int:
        return hash(self._template)

    def __str__(self) -> str:
        return self._template

    def __repr__(self) -> str:
        return f"UriTemplate({self._template!r})"
