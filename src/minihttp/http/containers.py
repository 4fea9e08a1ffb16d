"""
=============================================================================
CASE-INSENSITIVE CONTAINERS
=============================================================================

Header names and request parameters are looked up without regard to letter
case. "Content-Type", "content-type" and "CONTENT-TYPE" all name the same
header (RFC 7230 section 3.2).

Two containers live here:

    CaseInsensitiveDict        one value per key      (request parameters)
    CaseInsensitiveMultiDict   many values per key    (message headers)

=============================================================================
KEY NORMALIZATION
=============================================================================

Every key-based operation lowercases the key BEFORE touching the
underlying storage:

    headers.add("Set-Cookie", "a=1")
    headers.add("set-cookie", "b=2")
                 │
                 ▼  normalize("Set-Cookie") == normalize("set-cookie")
    ┌──────────────────────────────────────────────┐
    │  "set-cookie" → ["a=1", "b=2"]               │
    └──────────────────────────────────────────────┘

    headers.getall("SET-COOKIE")  →  ["a=1", "b=2"]

The containers wrap a plain dict (composition) instead of subclassing it:
subclassing dict means every inherited method that bypasses __getitem__
(dict.get, dict.update, dict.__contains__ ...) silently skips the
normalization.

=============================================================================
FREEZING
=============================================================================

Messages are immutable, but the containers are handy to build with. So
they start mutable and can be frozen in place:

    params = CaseInsensitiveDict({"page": "1"}).freeze()
    params["page"] = "2"          # TypeError

A frozen container can be shared by reference between a message and all
of its copies. copy() always hands back a fresh, mutable container.

=============================================================================
"""

from typing import (
    Any,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    MutableMapping,
    Optional,
    Tuple,
    TypeVar,
    Union,
)


V = TypeVar("V")


def normalize_key(key: Any) -> str:
    """Canonical form of a header or parameter name."""
    return str(key).lower()


class _Freezable:
    """Read-only switch shared by both containers."""

    _frozen: bool = False

    def freeze(self):
        """Make the container read-only (in place) and return it."""
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _check_mutable(self) -> None:
        if self._frozen:
            raise TypeError(f"{type(self).__name__} is frozen and cannot be modified")


class CaseInsensitiveDict(_Freezable, MutableMapping[str, V]):
    """
    A single-valued mapping with case-insensitive string keys.

    Used for request parameters (query string + path variables).
    Iteration yields the normalized (lowercase) keys in insertion order.

    Example:
        params = CaseInsensitiveDict({"Message": "hello"})
        params["message"]   # "hello"
        "MESSAGE" in params # True
    """

    def __init__(self, data: Optional[Mapping[str, V]] = None, **kwargs: V):
        self._data: Dict[str, V] = {}
        if data is not None:
            for key, value in data.items():
                self._data[normalize_key(key)] = value
        for key, value in kwargs.items():
            self._data[normalize_key(key)] = value

    # -------------------------------------------------------------------------
    # Mapping protocol
    # -------------------------------------------------------------------------

    def __getitem__(self, key: str) -> V:
        return self._data[normalize_key(key)]

    def __setitem__(self, key: str, value: V) -> None:
        self._check_mutable()
        self._data[normalize_key(key)] = value

    def __delitem__(self, key: str) -> None:
        self._check_mutable()
        del self._data[normalize_key(key)]

    def __contains__(self, key: object) -> bool:
        return normalize_key(key) in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, CaseInsensitiveDict):
            return self._data == other._data
        if isinstance(other, Mapping):
            return self._data == {normalize_key(k): v for k, v in other.items()}
        return NotImplemented

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._data!r})"

    # -------------------------------------------------------------------------
    # Convenience
    # -------------------------------------------------------------------------

    def get(self, key: str, default: Optional[V] = None) -> Optional[V]:
        return self._data.get(normalize_key(key), default)

    def replace(self, key: str, value: V) -> Optional[V]:
        """
        Replace the value only if the key is already present.

        Returns the previous value, or None if nothing was replaced.
        """
        self._check_mutable()
        normalized = normalize_key(key)
        if normalized not in self._data:
            return None
        previous = self._data[normalized]
        self._data[normalized] = value
        return previous

    def copy(self) -> "CaseInsensitiveDict[V]":
        """Return a mutable copy, even when this container is frozen."""
        return CaseInsensitiveDict(self._data)

    def to_dict(self) -> Dict[str, V]:
        return dict(self._data)


MultiDictSource = Union[
    "CaseInsensitiveMultiDict",
    Mapping[str, Union[V, Iterable[V]]],
    Iterable[Tuple[str, V]],
]


class CaseInsensitiveMultiDict(_Freezable, MutableMapping[str, V]):
    """
    An ordered multimap with case-insensitive string keys.

    Used for message headers, where a name may legitimately repeat
    (Set-Cookie, Via, Warning ...).

    =========================================================================
    MAPPING VIEW vs ENTRY VIEW
    =========================================================================

    As a Mapping, the container exposes ONE value per key - the first one
    added. That keeps simple lookups simple:

        headers["content-type"]          → "text/plain"

    The full multimap is available through the multi-value API:

        headers.getall("via")            → ["1.0 fred", "1.1 p.example.net"]
        list(headers.entries())          → [("via", "1.0 fred"), ...]

    len() counts distinct keys; entries() yields every (key, value) pair in
    insertion order. Duplicate (key, value) pairs are kept.

    =========================================================================
    """

    def __init__(self, data: Optional[MultiDictSource] = None):
        self._data: Dict[str, List[V]] = {}
        if data is not None:
            self._extend_from(data)

    def _extend_from(self, data: MultiDictSource) -> None:
        if isinstance(data, CaseInsensitiveMultiDict):
            for key, value in data.entries():
                self._data.setdefault(key, []).append(value)
        elif isinstance(data, Mapping):
            for key, value in data.items():
                values = list(value) if isinstance(value, (list, tuple)) else [value]
                self._data.setdefault(normalize_key(key), []).extend(values)
        else:
            for key, value in data:
                self._data.setdefault(normalize_key(key), []).append(value)

    # -------------------------------------------------------------------------
    # Mapping protocol (first value per key)
    # -------------------------------------------------------------------------

    def __getitem__(self, key: str) -> V:
        values = self._data.get(normalize_key(key))
        if not values:
            raise KeyError(key)
        return values[0]

    def __setitem__(self, key: str, value: V) -> None:
        """Replace every value under `key` with the single `value`."""
        self._check_mutable()
        self._data[normalize_key(key)] = [value]

    def __delitem__(self, key: str) -> None:
        self._check_mutable()
        del self._data[normalize_key(key)]

    def __contains__(self, key: object) -> bool:
        return normalize_key(key) in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, CaseInsensitiveMultiDict):
            return self._data == other._data
        return NotImplemented

    def __repr__(self) -> str:
        return f"{type(self).__name__}({list(self.entries())!r})"

    # -------------------------------------------------------------------------
    # Multi-value API
    # -------------------------------------------------------------------------

    def get(self, key: str, default: Optional[V] = None) -> Optional[V]:
        values = self._data.get(normalize_key(key))
        return values[0] if values else default

    def getall(self, key: str) -> List[V]:
        """All values for `key` in insertion order (a copy; [] if absent)."""
        return list(self._data.get(normalize_key(key), ()))

    def add(self, key: str, value: V) -> None:
        """Append one value under `key`."""
        self._check_mutable()
        self._data.setdefault(normalize_key(key), []).append(value)

    def extend(self, key: str, values: Iterable[V]) -> None:
        """Append several values under `key`."""
        self._check_mutable()
        values = list(values)
        if values:
            self._data.setdefault(normalize_key(key), []).extend(values)

    def replace(self, key: str, values: Iterable[V]) -> List[V]:
        """
        Replace all values under `key`, returning the previous ones.

        An empty iterable removes the key altogether.
        """
        self._check_mutable()
        normalized = normalize_key(key)
        previous = self._data.pop(normalized, [])
        values = list(values)
        if values:
            self._data[normalized] = values
        return previous

    def remove(self, key: str, value: V) -> bool:
        """Remove the first matching (key, value) entry. True if removed."""
        self._check_mutable()
        normalized = normalize_key(key)
        values = self._data.get(normalized)
        if not values or value not in values:
            return False
        values.remove(value)
        if not values:
            del self._data[normalized]
        return True

    def removeall(self, key: str) -> List[V]:
        """Remove and return every value under `key`."""
        self._check_mutable()
        return self._data.pop(normalize_key(key), [])

    def contains_entry(self, key: str, value: V) -> bool:
        return value in self._data.get(normalize_key(key), ())

    def entries(self) -> Iterator[Tuple[str, V]]:
        """Every (key, value) pair, keys normalized, in insertion order."""
        for key, values in self._data.items():
            for value in values:
                yield key, value

    def copy(self) -> "CaseInsensitiveMultiDict[V]":
        """Return a mutable copy, even when this container is frozen."""
        return CaseInsensitiveMultiDict(self)

    def to_dict(self) -> Dict[str, List[V]]:
        return {key: list(values) for key, values in self._data.items()}
