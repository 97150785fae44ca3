# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
Implementation of an object store that keeps all data in memory.

Keys are listed in lexicographical order, cursors are 'start after' keys,
and delimiter folding behaves like S3 `list_objects_v2`.

This is the default store: it is handy for tests and demos, but all data is
lost when the process ends.

Usage::

    store = MemoryObjectStore()
    store.put("docs/readme.txt", b"Hello", http_metadata=HttpMetadata("text/plain"))
"""

import hashlib
import threading
import time
from dataclasses import replace

from bucketdav import util
from bucketdav.store.base_store import (
    HttpMetadata,
    ListPage,
    ObjectRecord,
    ObjectStore,
)

__docformat__ = "reStructuredText"

_logger = util.get_module_logger(__name__)


class MemoryObjectStore(ObjectStore):
    """Thread safe, dict based object store."""

    def __init__(self, initial_objects=None):
        super().__init__()
        self._lock = threading.RLock()
        #: key -> (ObjectRecord without body, data)
        self._objects = {}
        for key, data in (initial_objects or {}).items():
            self.put(key, util.to_bytes(data))

    def __repr__(self):
        return f"{self.__class__.__name__}({len(self._objects)} objects)"

    def __len__(self):
        return len(self._objects)

    def keys(self):
        """Return a sorted list of all keys (mainly for tests)."""
        with self._lock:
            return sorted(self._objects)

    def head(self, key):
        with self._lock:
            entry = self._objects.get(key)
        return entry[0] if entry else None

    def get(self, key, *, only_if=None, byte_range=None):
        with self._lock:
            entry = self._objects.get(key)
        if entry is None:
            return None
        record, data = entry
        if only_if is not None and not only_if.is_met(record):
            _logger.debug(f"get({key!r}): precondition failed")
            return record

        if byte_range is not None and byte_range.is_satisfiable(record.size):
            offset, end = byte_range.resolve(record.size)
            data = data[offset : end + 1]
        return replace(record, body=data, byte_range=byte_range)

    def put(
        self, key, data, *, only_if=None, http_metadata=None, custom_metadata=None
    ):
        data = util.to_bytes(data)
        with self._lock:
            entry = self._objects.get(key)
            if only_if is not None and not only_if.is_met(entry and entry[0]):
                _logger.debug(f"put({key!r}): precondition failed")
                return None
            record = ObjectRecord(
                key=key,
                size=len(data),
                uploaded=time.time(),
                etag=hashlib.md5(data).hexdigest(),
                http_metadata=http_metadata or HttpMetadata(),
                custom_metadata=dict(custom_metadata or {}),
            )
            self._objects[key] = (record, data)
        return record

    def delete(self, keys):
        if util.is_basestring(keys):
            keys = [keys]
        with self._lock:
            for key in keys:
                self._objects.pop(key, None)

    def list(self, *, prefix="", delimiter=None, cursor=None, limit=1000):
        with self._lock:
            items = sorted(
                (k, v[0]) for k, v in self._objects.items() if k.startswith(prefix)
            )

        objects = []
        prefixes = []
        last = None
        truncated = False
        for key, record in items:
            if cursor is not None:
                if key <= cursor:
                    continue
                if delimiter and cursor.endswith(delimiter) and key.startswith(cursor):
                    # Already reported as folded prefix
                    continue

            common_prefix = None
            if delimiter:
                rest = key[len(prefix) :]
                idx = rest.find(delimiter)
                if idx >= 0:
                    common_prefix = prefix + rest[: idx + len(delimiter)]
                    if prefixes and prefixes[-1] == common_prefix:
                        continue

            if len(objects) + len(prefixes) >= limit:
                truncated = True
                break

            if common_prefix is not None:
                prefixes.append(common_prefix)
                last = common_prefix
            else:
                objects.append(record)
                last = key

        return ListPage(
            objects=tuple(objects),
            truncated=truncated,
            cursor=last if truncated else None,
            delimited_prefixes=tuple(prefixes),
        )
