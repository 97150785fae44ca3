# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
Map WebDAV resources (files and collections) to object store keys.

A resource key is the URL path without leading slash and without one trailing
slash, e.g. ``/docs/readme.txt`` -> ``docs/readme.txt``, ``/docs/`` -> ``docs``.
The root collection has the key ``""``; it is implicit and never stored.

Stores have no directories, so a collection is encoded as zero-length
*marker object* whose custom metadata contains
``resourcetype: <collection />``. Everything else is a file.

Entries are modelled as sum type::

    Entry = FileEntry | CollectionEntry | RootEntry

See also http://www.webdav.org/specs/rfc4918.html#dav.properties
"""

import time
from urllib.parse import quote, unquote, urlparse

from bucketdav import util
from bucketdav.dav_error import HTTP_NOT_FOUND, DAVError
from bucketdav.store.base_store import HttpMetadata, ObjectRecord
from bucketdav.xml_tools import etree

__docformat__ = "reStructuredText"

_logger = util.get_module_logger(__name__)

#: Custom metadata entry that marks a collection
RESOURCETYPE_KEY = "resourcetype"
COLLECTION_MARKER = "<collection />"

#: Properties that are computed from the object record and can't be changed
#: by PROPPATCH
LIVE_PROPS = (
    "creationdate",
    "displayname",
    "getcontentlanguage",
    "getcontentlength",
    "getcontenttype",
    "getetag",
    "getlastmodified",
    "resourcetype",
)


def resource_path(url):
    """Return the store key for a request path or absolute URL.

    Strips scheme and host, the leading slash, and one trailing slash.
    The path is not unquoted (PATH_INFO already is).
    """
    if "://" in url:
        url = unquote(urlparse(url).path)
    path = url[1:] if url.startswith("/") else url
    if path.endswith("/"):
        path = path[:-1]
    return path


def parent_key(key):
    """Return the key of the parent collection ('' for top-level keys and root)."""
    if "/" not in key:
        return ""
    return key.rsplit("/", 1)[0]


def child_prefix(key):
    """Return the listing prefix for members of collection `key`."""
    return key + "/" if key else ""


def is_collection(record):
    """Return True if `record` is a collection marker."""
    return (
        record is not None
        and record.custom_metadata.get(RESOURCETYPE_KEY) == COLLECTION_MARKER
    )


def collection_metadata(custom_metadata=None):
    """Return custom metadata for a new collection marker."""
    res = dict(custom_metadata or {})
    res[RESOURCETYPE_KEY] = COLLECTION_MARKER
    return res


# ========================================================================
# Entry
# ========================================================================
class Entry:
    """A file or collection, backed by an object record."""

    is_collection = False

    def __init__(self, record):
        assert isinstance(record, ObjectRecord)
        self.record = record
        self.key = record.key

    def __repr__(self):
        return f"{self.__class__.__name__}({self.key!r})"

    @property
    def name(self):
        """Last path segment (unquoted)."""
        return self.key.rsplit("/", 1)[-1]

    def get_display_name(self):
        return self.record.http_metadata.content_disposition or self.name

    def get_href(self, script_name=""):
        """Return the quoted URL of this resource (collections with trailing '/')."""
        href = "/" + self.key
        if self.is_collection and self.key:
            href += "/"
        return quote(script_name.rstrip("/") + href)

    def get_resource_type(self):
        return None

    def get_property_list(self):
        """Return a list of (clark_name, value) tuples for all defined properties.

        Absent values are omitted; `value` is a string or an etree.Element.
        """
        record = self.record
        hm = record.http_metadata
        props = [
            ("{DAV:}creationdate", util.get_rfc3339_time(record.uploaded)),
            ("{DAV:}displayname", hm.content_disposition),
            ("{DAV:}getcontentlanguage", hm.content_language),
            ("{DAV:}getcontentlength", str(record.size)),
            ("{DAV:}getcontenttype", hm.content_type),
            ("{DAV:}getetag", f'"{record.etag}"' if record.etag else None),
            ("{DAV:}getlastmodified", util.get_rfc1123_time(record.uploaded)),
            ("{DAV:}resourcetype", self.get_resource_type()),
        ]
        res = [(name, value) for name, value in props if value is not None]
        # Dead properties
        for name, value in sorted(record.custom_metadata.items()):
            if name == RESOURCETYPE_KEY:
                continue
            res.append((f"{{DAV:}}{name}", value))
        return res

    def get_properties(self, mode, *, name_list=None):
        """Return properties as list of 2-tuples (name, value).

        mode:
            "name": return [(name, None), ...]
            "allprop": return [(name, value), ...]
            "named": return values for `name_list` only; undefined names are
            reported as ``(name, DAVError(HTTP_NOT_FOUND))``
        """
        assert mode in ("allprop", "name", "named")
        props = self.get_property_list()
        if mode == "allprop":
            return props
        if mode == "name":
            return [(name, None) for name, _value in props]

        by_local_name = {util.property_local_name(n): v for n, v in props}
        res = []
        for name in name_list or []:
            value = by_local_name.get(util.property_local_name(name))
            if value is None:
                res.append((name, DAVError(HTTP_NOT_FOUND)))
            else:
                res.append((name, value))
        return res


class FileEntry(Entry):
    """A non-collection resource."""


class CollectionEntry(Entry):
    """A collection, represented by a marker object."""

    is_collection = True

    def get_resource_type(self):
        el = etree.Element("{DAV:}resourcetype")
        etree.SubElement(el, "{DAV:}collection")
        return el


class RootEntry(CollectionEntry):
    """The implicit root collection (never stored)."""

    def __init__(self):
        # Timestamps are synthesized on every request
        super().__init__(
            ObjectRecord(
                key="",
                size=0,
                uploaded=time.time(),
                etag="",
                http_metadata=HttpMetadata(),
                custom_metadata={},
            )
        )

    @property
    def name(self):
        return ""


def entry_from_record(record):
    """Return a FileEntry or CollectionEntry for a store record."""
    if is_collection(record):
        return CollectionEntry(record)
    return FileEntry(record)


def get_entry(store, key):
    """Return the Entry for `key`, or None if it does not exist."""
    if key == "":
        return RootEntry()
    record = store.head(key)
    if record is None:
        return None
    return entry_from_record(record)
