"""Query parameter codecs and matchers.

Three independent lookup tables, keyed by Python type, live in a
``QueryCodecs`` registry:

- type -> default query key (``register_key``)
- type -> decode function ``str -> T`` (``register_decoder``)
- type -> encode function ``T -> str`` (``register_encoder``)

Matchers resolve their decoder from the registry when they are built, so
a missing codec is a ``ConfigurationError`` at import time rather than a
surprise at request time::

    class Sort(Enum):
        ASC = "asc"
        DESC = "desc"

    default_codecs.register_key(Sort, "sort")

    search = (
        GET >> Root / "search"
        & QueryParam("q")
        & OptionalQueryParam("page", int)
        & QueryParam.for_type(Sort)
    )

A decoder signals "not this type" by raising ``ValueError`` (or
``TypeError``/``ArithmeticError``). Required matchers turn that into a
non-match; optional matchers bind their default instead.
"""

from __future__ import annotations

import datetime as dt
import functools
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from decimal import Decimal
from enum import Enum
from typing import Any, TypeVar
from urllib.parse import quote_plus
from uuid import UUID

from perch._internal.types import Bindings
from perch.errors import ConfigurationError
from perch.http.query import QueryParams
from perch.routing.path import PARSE_ERRORS, parse_finite_float, parse_int64

T = TypeVar("T")

Decoder = Callable[[str], Any]
Encoder = Callable[[Any], str]

_TRUE = frozenset({"true", "1", "yes", "on"})
_FALSE = frozenset({"false", "0", "no", "off"})


def decode_bool(value: str) -> bool:
    lowered = value.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    msg = f"{value!r} is not a boolean"
    raise ValueError(msg)


def encode_bool(value: bool) -> str:
    return "true" if value else "false"


def _isoformat(value: dt.date) -> str:
    return value.isoformat()


@functools.cache
def _enum_decoder(typ: type[Enum]) -> Decoder:
    def decode(value: str) -> Enum:
        for member in typ:
            if str(member.value) == value:
                return member
        msg = f"{value!r} is not a valid {typ.__qualname__}"
        raise ValueError(msg)

    return decode


def _lookup(table: dict[type, Any], typ: type) -> Any:
    """Walk *typ*'s MRO; enums never fall back to their mixin base (e.g. int)."""
    is_enum = issubclass(typ, Enum)
    for klass in typ.__mro__:
        if is_enum and not issubclass(klass, Enum):
            break
        if klass in table:
            return table[klass]
    return None


class QueryCodecs:
    """Registry of query-parameter keys, decoders and encoders by type.

    Lookups walk the type's MRO, so a codec registered for a base class
    also serves its subclasses unless a more specific one is registered.
    ``Enum`` subclasses decode from the string form of a member value
    without registration.
    """

    __slots__ = ("_decoders", "_encoders", "_keys")

    def __init__(self) -> None:
        self._keys: dict[type, str] = {}
        self._decoders: dict[type, Decoder] = {}
        self._encoders: dict[type, Encoder] = {}

    @classmethod
    def with_defaults(cls) -> QueryCodecs:
        """A registry preloaded with codecs for common scalar types."""
        codecs = cls()
        codecs.register(str, decode=str, encode=str)
        codecs.register(int, decode=parse_int64, encode=str)
        codecs.register(float, decode=parse_finite_float, encode=repr)
        codecs.register(bool, decode=decode_bool, encode=encode_bool)
        codecs.register(Decimal, decode=Decimal, encode=str)
        codecs.register(UUID, decode=UUID, encode=str)
        codecs.register(dt.date, decode=dt.date.fromisoformat, encode=_isoformat)
        codecs.register(dt.datetime, decode=dt.datetime.fromisoformat, encode=_isoformat)
        return codecs

    def copy(self) -> QueryCodecs:
        clone = QueryCodecs()
        clone._keys.update(self._keys)
        clone._decoders.update(self._decoders)
        clone._encoders.update(self._encoders)
        return clone

    # -- Registration --

    def register_key(self, typ: type, key: str) -> None:
        self._keys[typ] = key

    def register_decoder(self, typ: type[T], decoder: Callable[[str], T]) -> None:
        self._decoders[typ] = decoder

    def register_encoder(self, typ: type[T], encoder: Callable[[T], str]) -> None:
        self._encoders[typ] = encoder

    def register(
        self,
        typ: type[T],
        *,
        key: str | None = None,
        decode: Callable[[str], T] | None = None,
        encode: Callable[[T], str] | None = None,
    ) -> None:
        """Register any combination of key, decoder and encoder for *typ*."""
        if key is not None:
            self.register_key(typ, key)
        if decode is not None:
            self.register_decoder(typ, decode)
        if encode is not None:
            self.register_encoder(typ, encode)

    # -- Lookup --

    def key_for(self, typ: type) -> str:
        key = _lookup(self._keys, typ)
        if key is not None:
            return key
        msg = f"No query key registered for {typ.__qualname__}"
        raise ConfigurationError(msg)

    def decoder_for(self, typ: type[T]) -> Callable[[str], T]:
        decoder = _lookup(self._decoders, typ)
        if decoder is not None:
            return decoder
        if issubclass(typ, Enum):
            return _enum_decoder(typ)
        msg = f"No query decoder registered for {typ.__qualname__}"
        raise ConfigurationError(msg)

    def encoder_for(self, typ: type[T]) -> Callable[[T], str]:
        encoder = _lookup(self._encoders, typ)
        if encoder is not None:
            return encoder
        if issubclass(typ, Enum):
            return lambda member: str(member.value)
        return str


default_codecs = QueryCodecs.with_defaults()


def encode_query(params: Mapping[str, Any], codecs: QueryCodecs | None = None) -> str:
    """Encode *params* into a query string using registered encoders.

    ``None`` values are skipped; lists and tuples repeat the key::

        encode_query({"q": "fast cars", "tag": ["a", "b"], "page": 2})
        # 'q=fast+cars&tag=a&tag=b&page=2'
    """
    codecs = codecs or default_codecs
    pairs: list[str] = []
    for key, value in params.items():
        if value is None:
            continue
        values = value if isinstance(value, (list, tuple)) else (value,)
        for item in values:
            encoded = codecs.encoder_for(type(item))(item)
            pairs.append(f"{quote_plus(key)}={quote_plus(encoded)}")
    return "&".join(pairs)


# -- Matchers -----------------------------------------------------------------


class QueryMatcher(ABC):
    """Matches the query string of a request that already matched on path."""

    __slots__ = ("key", "name")

    key: str
    name: str

    @abstractmethod
    def try_match(self, query: QueryParams) -> Bindings | None: ...

    @abstractmethod
    def describe(self) -> str: ...

    @abstractmethod
    def encode(self, value: Any) -> str:
        """Render ``key=value`` for building links to this route."""

    @property
    def names(self) -> tuple[str, ...]:
        return (self.name,)

    def __str__(self) -> str:
        return self.describe()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.describe()!r})"


_FAILED = object()


class _DecodingMatcher(QueryMatcher):
    """Shared plumbing for matchers that decode values into one type."""

    __slots__ = ("decoder", "encoder", "type")

    def __init__(
        self,
        key: str,
        type: type = str,  # noqa: A002
        *,
        name: str | None = None,
        decoder: Decoder | None = None,
        encoder: Encoder | None = None,
        codecs: QueryCodecs | None = None,
    ) -> None:
        codecs = codecs or default_codecs
        self.key = key
        self.name = name or key
        self.type = type
        self.decoder = decoder or codecs.decoder_for(type)
        self.encoder = encoder or codecs.encoder_for(type)

    @classmethod
    def for_type(
        cls,
        typ: type,
        *,
        name: str | None = None,
        codecs: QueryCodecs | None = None,
        **kwargs: Any,
    ) -> Any:
        """Build a matcher whose key comes from the registry's key table."""
        codecs = codecs or default_codecs
        return cls(codecs.key_for(typ), typ, name=name, codecs=codecs, **kwargs)

    def decode(self, raw: str) -> Any:
        """Decode one raw value, or return ``_FAILED``."""
        try:
            return self.decoder(raw)
        except PARSE_ERRORS:
            return _FAILED

    def _label(self) -> str:
        label = self.key if self.type is str else f"{self.key}:{self.type.__name__}"
        if self.name != self.key:
            label = f"{label} as {self.name}"
        return label

    def encode(self, value: Any) -> str:
        return f"{quote_plus(self.key)}={quote_plus(self.encoder(value))}"

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return (self.key, self.name, self.type, self.decoder) == (
            other.key,  # type: ignore[attr-defined]
            other.name,  # type: ignore[attr-defined]
            other.type,  # type: ignore[attr-defined]
            other.decoder,  # type: ignore[attr-defined]
        )

    def __hash__(self) -> int:
        return hash((type(self), self.key, self.name, self.type))


class QueryParam(_DecodingMatcher):
    """Required parameter: binds the decoded first value.

    Absent key or undecodable value -> the route does not match.
    """

    __slots__ = ()

    def try_match(self, query: QueryParams) -> Bindings | None:
        values = query.get_list(self.key)
        if not values:
            return None
        value = self.decode(values[0])
        if value is _FAILED:
            return None
        return {self.name: value}

    def describe(self) -> str:
        return self._label()


class OptionalQueryParam(_DecodingMatcher):
    """Optional parameter: binds ``default`` when absent or undecodable.

    Never causes a non-match.
    """

    __slots__ = ("default",)

    def __init__(self, key: str, type: type = str, *, default: Any = None, **kwargs: Any) -> None:  # noqa: A002
        _DecodingMatcher.__init__(self, key, type, **kwargs)
        self.default = default

    def try_match(self, query: QueryParams) -> Bindings | None:
        values = query.get_list(self.key)
        if not values:
            return {self.name: self.default}
        value = self.decode(values[0])
        return {self.name: self.default if value is _FAILED else value}

    def describe(self) -> str:
        return f"[{self._label()}]"


class MultiQueryParam(_DecodingMatcher):
    """Binds every value sent for the key as a list (possibly empty).

    Any undecodable value -> the route does not match.
    """

    __slots__ = ()

    def try_match(self, query: QueryParams) -> Bindings | None:
        decoded = [self.decode(raw) for raw in query.get_list(self.key)]
        if any(value is _FAILED for value in decoded):
            return None
        return {self.name: decoded}

    def describe(self) -> str:
        return f"{self._label()}*"

    def encode(self, value: Any) -> str:
        return "&".join(_DecodingMatcher.encode(self, item) for item in value)


class FlagQueryParam(QueryMatcher):
    """Binds ``True`` when the key is present (with any value), else ``False``."""

    __slots__ = ()

    def __init__(self, key: str, *, name: str | None = None) -> None:
        self.key = key
        self.name = name or key

    def try_match(self, query: QueryParams) -> Bindings | None:
        return {self.name: self.key in query}

    def describe(self) -> str:
        return f"{self.key}?"

    def encode(self, value: Any) -> str:
        return quote_plus(self.key) if value else ""

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return (self.key, self.name) == (other.key, other.name)  # type: ignore[attr-defined]

    def __hash__(self) -> int:
        return hash((type(self), self.key, self.name))
