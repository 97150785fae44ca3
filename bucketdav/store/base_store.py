# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
Abstract base class and value types for key-prefix object stores.

An object store is a flat key/value blob storage. It has no notion of
directories and no multi-key transactions, and can only list keys by prefix
(optionally folding deeper keys at a delimiter).

The adapter consumes stores through this small capability interface:

    head(key) -> ObjectRecord | None
    get(key, only_if=, byte_range=) -> ObjectRecord (with or without body) | None
    put(key, data, only_if=, http_metadata=, custom_metadata=) -> ObjectRecord | None
    delete(key | [keys])
    list(prefix=, delimiter=, cursor=, limit=) -> ListPage

Records returned by ``get()`` carry a ``body``, unless the ``only_if``
conditions were not met (the record is returned without a body in this
case). ``put()`` returns None if the write precondition failed.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Iterable, Mapping, Optional, Tuple, Union

from bucketdav import util

__docformat__ = "reStructuredText"

# Range Specifiers
reByteRangeSpecifier = re.compile(r"^\s*([0-9]+)-([0-9]*)\s*$")
reSuffixByteRangeSpecifier = re.compile(r"^\s*-([0-9]+)\s*$")


class StoreError(Exception):
    """Raised by store implementations for I/O failures (not for absent keys)."""


# ========================================================================
# HttpMetadata
# ========================================================================
@dataclass(frozen=True)
class HttpMetadata:
    """HTTP headers that are stored along with an object."""

    content_type: Optional[str] = None
    content_disposition: Optional[str] = None
    content_language: Optional[str] = None
    content_encoding: Optional[str] = None
    cache_control: Optional[str] = None
    #: Seconds since the epoch
    cache_expiry: Optional[float] = None

    @classmethod
    def from_environ(cls, environ) -> "HttpMetadata":
        """Collect HTTP metadata from the request headers of a PUT/MKCOL."""
        expires = environ.get("HTTP_EXPIRES")
        return cls(
            content_type=environ.get("CONTENT_TYPE") or None,
            content_disposition=environ.get("HTTP_CONTENT_DISPOSITION"),
            content_language=environ.get("HTTP_CONTENT_LANGUAGE"),
            content_encoding=environ.get("HTTP_CONTENT_ENCODING"),
            cache_control=environ.get("HTTP_CACHE_CONTROL"),
            cache_expiry=util.parse_time_string(expires) if expires else None,
        )

    def to_headers(self):
        """Return a list of (name, value) response headers for defined values."""
        headers = []
        if self.content_disposition:
            headers.append(("Content-Disposition", self.content_disposition))
        if self.content_encoding:
            headers.append(("Content-Encoding", self.content_encoding))
        if self.content_language:
            headers.append(("Content-Language", self.content_language))
        if self.cache_control:
            headers.append(("Cache-Control", self.cache_control))
        if self.cache_expiry is not None:
            expiry = datetime.fromtimestamp(self.cache_expiry, timezone.utc)
            headers.append(("Cache-Expiry", expiry.isoformat()))
        return headers


# ========================================================================
# ByteRange
# ========================================================================
@dataclass(frozen=True)
class ByteRange:
    """A byte range request in one of three shapes.

    - ``ByteRange(offset=10, length=5)``: bytes 10..14
    - ``ByteRange(offset=10)`` or ``ByteRange(length=5)``: offset defaults to 0,
      length defaults to the rest of the object
    - ``ByteRange(suffix=5)``: the last 5 bytes
    """

    offset: Optional[int] = None
    length: Optional[int] = None
    suffix: Optional[int] = None

    def __post_init__(self):
        if self.suffix is not None and (
            self.offset is not None or self.length is not None
        ):
            raise ValueError("ByteRange: suffix excludes offset and length")
        for v in (self.offset, self.length, self.suffix):
            if v is not None and v < 0:
                raise ValueError(f"ByteRange: negative value {self}")

    @classmethod
    def from_header(cls, value) -> Optional["ByteRange"]:
        """Parse a `Range` header (first range only).

        Return None for a missing, malformed, or non-byte range header, so the
        request is served as a full response (RFC 7233, 3.1).
        """
        if not value:
            return None
        unit, _, spec = value.partition("=")
        if unit.strip().lower() != "bytes" or not spec:
            return None
        first = spec.split(",")[0]

        match = reByteRangeSpecifier.match(first)
        if match:
            start = int(match.group(1))
            if match.group(2) == "":
                # "START-"
                return cls(offset=start)
            end = int(match.group(2))
            if end < start:
                return None
            return cls(offset=start, length=end - start + 1)

        match = reSuffixByteRangeSpecifier.match(first)
        if match:
            return cls(suffix=int(match.group(1)))
        return None

    def resolve(self, size) -> Tuple[int, int]:
        """Return (range_offset, range_end) for an object of `size` bytes.

        `range_end` is clamped to ``size - 1``. The range is only satisfiable
        if ``range_offset <= range_end`` (see `is_satisfiable()`).
        """
        if self.suffix is not None:
            offset = max(0, size - self.suffix)
            if self.suffix == 0:
                offset = size
            return offset, size - 1

        offset = self.offset or 0
        length = self.length if self.length is not None else size - offset
        end = min(offset + length - 1, size - 1)
        return offset, end

    def is_satisfiable(self, size) -> bool:
        offset, end = self.resolve(size)
        return 0 <= offset <= end


def calc_content_range(byte_range, size):
    """Return (range_offset, range_end) of the bytes served for a GET.

    A missing range selects the whole object.
    """
    if byte_range is None:
        return 0, size - 1
    return byte_range.resolve(size)


# ========================================================================
# Conditions
# ========================================================================
@dataclass(frozen=True)
class Conditions:
    """Preconditions that are evaluated by the store (If-Match & co.).

    Time values are seconds since the epoch, compared with one second
    resolution (as transported by HTTP dates).
    """

    etag_matches: Tuple[str, ...] = ()
    etag_does_not_match: Tuple[str, ...] = ()
    #: If-Unmodified-Since
    uploaded_before: Optional[float] = None
    #: If-Modified-Since
    uploaded_after: Optional[float] = None

    @classmethod
    def from_environ(cls, environ) -> Optional["Conditions"]:
        """Return Conditions for the request's `If-...` headers (None if there are none)."""
        kwargs = {}
        if "HTTP_IF_MATCH" in environ:
            kwargs["etag_matches"] = tuple(
                util.parse_if_match_header(environ["HTTP_IF_MATCH"])
            )
        if "HTTP_IF_NONE_MATCH" in environ:
            kwargs["etag_does_not_match"] = tuple(
                util.parse_if_match_header(environ["HTTP_IF_NONE_MATCH"])
            )
        if "HTTP_IF_UNMODIFIED_SINCE" in environ:
            kwargs["uploaded_before"] = util.parse_time_string(
                environ["HTTP_IF_UNMODIFIED_SINCE"]
            )
        if "HTTP_IF_MODIFIED_SINCE" in environ:
            kwargs["uploaded_after"] = util.parse_time_string(
                environ["HTTP_IF_MODIFIED_SINCE"]
            )
        if not kwargs:
            return None
        return cls(**kwargs)

    def is_met(self, record) -> bool:
        """Evaluate the conditions against the current record (None: absent).

        See RFC 7232, section 6 for the precedence rules.
        """
        etag = record.etag if record is not None else None

        if self.etag_matches:
            if etag is None:
                return False
            if "*" not in self.etag_matches and etag not in self.etag_matches:
                return False
        elif self.uploaded_before is not None and record is not None:
            if int(record.uploaded) > self.uploaded_before:
                return False

        if self.etag_does_not_match:
            if etag is not None and (
                "*" in self.etag_does_not_match or etag in self.etag_does_not_match
            ):
                return False
        elif self.uploaded_after is not None and record is not None:
            if int(record.uploaded) <= self.uploaded_after:
                return False

        return True


# ========================================================================
# ObjectRecord
# ========================================================================
@dataclass(frozen=True)
class ObjectRecord:
    """Immutable description of a stored object (owned by the store)."""

    key: str
    size: int
    #: Seconds since the epoch
    uploaded: float
    #: Strong entity tag, without quotes
    etag: str
    http_metadata: HttpMetadata = field(default_factory=HttpMetadata)
    custom_metadata: Mapping[str, str] = field(default_factory=dict)
    #: Object data (only set for successful `get()` results)
    body: Optional[bytes] = None
    #: The range that was requested by `get()`
    byte_range: Optional[ByteRange] = None

    def without_body(self) -> "ObjectRecord":
        return replace(self, body=None, byte_range=None)


@dataclass(frozen=True)
class ListPage:
    """One page of a `list()` call."""

    objects: Tuple[ObjectRecord, ...] = ()
    truncated: bool = False
    #: Pass this as `cursor` to fetch the next page
    cursor: Optional[str] = None
    #: Prefixes that were folded at the delimiter
    delimited_prefixes: Tuple[str, ...] = ()


# ========================================================================
# ObjectStore
# ========================================================================
class ObjectStore(ABC):
    """Abstract base class for object store backends."""

    def __repr__(self):
        return f"{self.__class__.__name__}"

    @abstractmethod
    def head(self, key: str) -> Optional[ObjectRecord]:
        """Return the record for `key` (without body), or None."""

    @abstractmethod
    def get(
        self,
        key: str,
        *,
        only_if: Optional[Conditions] = None,
        byte_range: Optional[ByteRange] = None,
    ) -> Optional[ObjectRecord]:
        """Return the record for `key` with body, or None if it does not exist.

        If `only_if` is not met, the record is returned without a body.
        If `byte_range` is given, `body` contains only the requested bytes.
        """

    @abstractmethod
    def put(
        self,
        key: str,
        data: bytes,
        *,
        only_if: Optional[Conditions] = None,
        http_metadata: Optional[HttpMetadata] = None,
        custom_metadata: Optional[Mapping[str, str]] = None,
    ) -> Optional[ObjectRecord]:
        """Create or replace `key`. Return None if `only_if` was not met."""

    @abstractmethod
    def delete(self, keys: Union[str, Iterable[str]]) -> None:
        """Delete one key or a batch of keys (missing keys are ignored)."""

    @abstractmethod
    def list(
        self,
        *,
        prefix: str = "",
        delimiter: Optional[str] = None,
        cursor: Optional[str] = None,
        limit: int = 1000,
    ) -> ListPage:
        """Return one page of records whose key starts with `prefix`.

        If `delimiter` is given, keys that contain the delimiter after the
        prefix are folded into `ListPage.delimited_prefixes` instead of being
        returned as objects.
        """
