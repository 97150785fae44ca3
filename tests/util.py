# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
    Test helpers.

Example:
    app = make_dav_app(store=MemoryObjectStore({"a.txt": b"Hello"}))
    test_app = webtest.TestApp(app, extra_environ={"HTTP_AUTHORIZATION": AUTH_HEADER})
"""

from bucketdav import util
from bucketdav.dav_app import BucketDAVApp
from bucketdav.dav_resource import collection_metadata
from bucketdav.http_authenticator import make_basic_auth_header
from bucketdav.store.base_store import StoreError
from bucketdav.store.memory_store import MemoryObjectStore

USER_NAME = "tester"
PASSWORD = "secret"
AUTH_HEADER = make_basic_auth_header(USER_NAME, PASSWORD)


def make_dav_app(store=None, **opts):
    """Return a BucketDAVApp for `store` (a new MemoryObjectStore by default)."""
    config = {
        "store": store if store is not None else MemoryObjectStore(),
        "http_authenticator": {"username": USER_NAME, "password": PASSWORD},
        "verbose": 1,
        "logging": {"enable": False},
    }
    util.deep_update(config, opts)
    return BucketDAVApp(config)


def make_tree(store, tree):
    """Populate `store` from a dict; keys ending with '/' become collections.

    Example:
        make_tree(store, {"a/": None, "a/b.txt": b"Hello"})
    """
    for key, data in tree.items():
        if key.endswith("/"):
            store.put(key.rstrip("/"), b"", custom_metadata=collection_metadata())
        else:
            store.put(key, util.to_bytes(data))
    return store


# ========================================================================
# Store doubles
# ========================================================================


class RecordingStore(MemoryObjectStore):
    """MemoryObjectStore that records the names of all calls."""

    def __init__(self, initial_objects=None):
        self.calls = []
        super().__init__(initial_objects)
        self.calls.clear()

    def head(self, key):
        self.calls.append("head")
        return super().head(key)

    def get(self, key, **kwargs):
        self.calls.append("get")
        return super().get(key, **kwargs)

    def put(self, key, data, **kwargs):
        self.calls.append("put")
        return super().put(key, data, **kwargs)

    def delete(self, keys):
        self.calls.append("delete")
        return super().delete(keys)

    def list(self, **kwargs):
        self.calls.append("list")
        return super().list(**kwargs)


class FlakyStore(MemoryObjectStore):
    """MemoryObjectStore that fails to write or delete keys containing `bad`."""

    def __init__(self, initial_objects=None, *, bad="bad"):
        self.bad = bad
        #: Set to True to start failing
        self.armed = False
        super().__init__(initial_objects)

    def put(self, key, data, **kwargs):
        if self.armed and self.bad in key:
            raise StoreError(f"Simulated put failure for {key!r}")
        return super().put(key, data, **kwargs)

    def delete(self, keys):
        if util.is_basestring(keys):
            keys = [keys]
        keys = list(keys)
        if self.armed and any(self.bad in k for k in keys):
            raise StoreError(f"Simulated delete failure for {keys!r}")
        return super().delete(keys)
