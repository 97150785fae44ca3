# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
Unit test for BucketDAV HTTP request functionality

This test suite uses webtest.TestApp to send fake requests to the WSGI
stack.

See http://webtest.readthedocs.org/en/latest/
"""

import sys
import unittest

import pytest

from bucketdav.dav_resource import is_collection
from bucketdav.http_authenticator import make_basic_auth_header
from bucketdav.store.memory_store import MemoryObjectStore
from bucketdav.xml_tools import etree
from tests.util import AUTH_HEADER, FlakyStore, RecordingStore, make_dav_app, make_tree

try:
    import webtest
except ImportError:
    print("*" * 70, file=sys.stderr)
    print("Could not import webtest.TestApp: some tests will fail.", file=sys.stderr)
    print("Try 'pip install WebTest' to run these tests.", file=sys.stderr)
    print("*" * 70, file=sys.stderr)
    raise pytest.skip(
        "Skip tests that require WebTest", allow_module_level=True
    ) from None


PROPFIND_LENGTH = b"""<?xml version="1.0" encoding="utf-8" ?>
<D:propfind xmlns:D="DAV:">
  <D:prop><D:getcontentlength/><D:getetag/></D:prop>
</D:propfind>"""

PROPPATCH_AUTHOR = b"""<?xml version="1.0" encoding="utf-8" ?>
<D:propertyupdate xmlns:D="DAV:" xmlns:Z="http://ns.example.com/z/">
  <D:set><D:prop><Z:Author>Jim Whitehead</Z:Author></D:prop></D:set>
</D:propertyupdate>"""


def _make_test_app(store=None, *, with_auth=True, **opts):
    wsgi_app = make_dav_app(store, **opts)
    extra_environ = {"HTTP_AUTHORIZATION": AUTH_HEADER} if with_auth else None
    return webtest.TestApp(wsgi_app, extra_environ=extra_environ)


def _hrefs(res):
    """Return the list of <href> values of a multistatus response."""
    root = etree.fromstring(res.body)
    assert root.tag == "{DAV:}multistatus"
    return [r.findtext("{DAV:}href") for r in root.findall("{DAV:}response")]


def _props(res, href):
    """Return {clark_name: (status, text)} for one response."""
    root = etree.fromstring(res.body)
    for resp in root.findall("{DAV:}response"):
        if resp.findtext("{DAV:}href") != href:
            continue
        props = {}
        for propstat in resp.findall("{DAV:}propstat"):
            status = propstat.findtext("{DAV:}status")
            for prop in propstat.find("{DAV:}prop"):
                props[prop.tag] = (status, prop.text)
        return props
    raise AssertionError(f"No response for {href!r}")


# ========================================================================
# ServerTest
# ========================================================================


class ServerTest(unittest.TestCase):
    """Test BucketDAVApp using webtest."""

    def setUp(self):
        self.store = MemoryObjectStore()
        self.app = _make_test_app(self.store)

    def tearDown(self):
        del self.app
        self.store = None

    def testPreconditions(self):
        """Environment must be set."""
        self.assertTrue(
            __debug__, "__debug__ must be True, otherwise asserts are ignored"
        )

    def testBasicLifecycle(self):
        """Create, read, list, and delete."""
        app = self.app

        # Parent collection does not exist (expect '409 Conflict')
        app.put("/a/b.txt", params=b"hi", content_type="text/plain", status=409)

        app.request("/a", method="MKCOL", status=201)
        res = app.put("/a/b.txt", params=b"hi", content_type="text/plain", status=201)
        etag = res.headers["ETag"]
        assert etag == '"{}"'.format(self.store.head("a/b.txt").etag)

        res = app.get("/a/b.txt", status=200)
        assert res.body == b"hi"
        assert res.headers["Content-Length"] == "2"
        assert res.content_type == "text/plain"
        assert res.headers["ETag"] == etag
        assert res.headers["Accept-Ranges"] == "bytes"
        assert res.headers["Content-Range"] == "bytes 0-1/2"

        res = app.head("/a/b.txt", status=200)
        assert res.body == b""
        assert res.headers["Content-Length"] == "2"

        res = app.get("/a/", status=200)
        assert res.content_type == "text/html"
        assert 'href="/a/b.txt"' in res.text
        assert 'href="/"' in res.text, "Link to parent"

        app.delete("/a", status=204)
        app.get("/a/b.txt", status=404)
        app.delete("/a", status=404)
        assert self.store.keys() == []

    def testGetPut(self):
        """Read and write file contents and metadata."""
        app = self.app
        data1 = b"this is a file\nwith two lines"
        data2 = b"this is another file\nwith three lines\nsee?"

        app.get("/file1.txt", status=404)
        app.put("/file1.txt", params=data1, content_type="text/plain", status=201)
        res = app.get("/file1.txt", status=200)
        assert res.body == data1, "GET file content different from PUT"

        # PUT overwrites
        app.put("/file1.txt", params=data2, content_type="text/plain", status=201)
        res = app.get("/file1.txt", status=200)
        assert res.body == data2, "GET file content different from PUT"

        # Empty files
        app.put("/empty.txt", params=b"", content_type="text/plain", status=201)
        res = app.get("/empty.txt", status=200)
        assert res.body == b""
        assert "Content-Range" not in res.headers

        # Request must not contain a body (expect '415 Media Type Not Supported')
        app.request(
            "/file1.txt",
            method="GET",
            headers={"Content-Length": str(len(data1))},
            body=data1,
            status=415,
        )

        # Can't PUT to a collection
        app.request("/folder", method="MKCOL", status=201)
        app.put("/folder", params=data1, content_type="text/plain", status=405)
        app.put("/folder/", params=data1, content_type="text/plain", status=405)

        # The parent must be a collection, not a file
        app.put("/file1.txt/x", params=data1, content_type="text/plain", status=409)

    def testMetadata(self):
        """HTTP metadata is stored on PUT and sent on GET."""
        app = self.app
        app.put(
            "/readme.txt",
            params=b"Hello",
            content_type="text/plain",
            headers={
                "Content-Language": "en",
                "Content-Encoding": "identity",
                "Content-Disposition": "Read Me",
                "Cache-Control": "no-cache",
            },
            status=201,
        )
        hm = self.store.head("readme.txt").http_metadata
        assert hm.content_type.startswith("text/plain")
        assert hm.content_language == "en"

        res = app.get("/readme.txt", status=200)
        assert res.content_type == "text/plain"
        assert res.headers["Content-Language"] == "en"
        assert res.headers["Content-Encoding"] == "identity"
        assert res.headers["Content-Disposition"] == "Read Me"
        assert res.headers["Cache-Control"] == "no-cache"

        # Files without content type
        self.store.put("raw.bin", b"\x00\x01")
        res = app.get("/raw.bin", status=200)
        assert res.headers["Content-Type"] == "application/octet-stream"

    def testEncoding(self):
        """Handle special characters."""
        app = self.app
        data = "Umlaute(äöüß) Euro(€)".encode("utf8")
        app.put("/file%20uml(%C3%A4%C3%B6%C3%BC).txt", params=data, status=201)
        assert self.store.keys() == ["file uml(äöü).txt"]
        res = app.get("/file%20uml(%C3%A4%C3%B6%C3%BC).txt", status=200)
        assert res.body == data

        res = app.request("/", method="PROPFIND", headers={"Depth": "1"}, status=207)
        assert "/file%20uml%28%C3%A4%C3%B6%C3%BC%29.txt" in _hrefs(res)

    def testRanges(self):
        app = self.app
        self.store.put("data.txt", b"Hello World")

        res = app.get("/data.txt", headers={"Range": "bytes=0-4"}, status=206)
        assert res.body == b"Hello"
        assert res.headers["Content-Length"] == "5"
        assert res.headers["Content-Range"] == "bytes 0-4/11"

        res = app.get("/data.txt", headers={"Range": "bytes=-5"}, status=206)
        assert res.body == b"World"
        assert res.headers["Content-Range"] == "bytes 6-10/11"

        res = app.get("/data.txt", headers={"Range": "bytes=6-"}, status=206)
        assert res.body == b"World"

        # Range covers everything
        res = app.get("/data.txt", headers={"Range": "bytes=0-100"}, status=200)
        assert res.body == b"Hello World"
        assert res.headers["Content-Range"] == "bytes 0-10/11"

        # Not satisfiable
        res = app.get("/data.txt", headers={"Range": "bytes=20-"}, status=416)
        assert res.headers["Content-Range"] == "bytes */11"

        # Malformed ranges are ignored
        res = app.get("/data.txt", headers={"Range": "bytes=x-y"}, status=200)
        assert res.body == b"Hello World"

    def testConditionalRequests(self):
        app = self.app
        res = app.put("/a.txt", params=b"v1", content_type="text/plain", status=201)
        etag = res.headers["ETag"]

        app.get("/a.txt", headers={"If-Match": etag}, status=200)
        app.get("/a.txt", headers={"If-Match": '"other"'}, status=412)
        app.get("/a.txt", headers={"If-None-Match": etag}, status=412)
        app.get("/a.txt", headers={"If-None-Match": '"other"'}, status=200)
        app.get(
            "/a.txt",
            headers={"If-Unmodified-Since": "Sun, 06 Nov 1994 08:49:37 GMT"},
            status=412,
        )

        # Create-only
        app.put(
            "/a.txt",
            params=b"v2",
            content_type="text/plain",
            headers={"If-None-Match": "*"},
            status=412,
        )
        # Update-only
        app.put(
            "/b.txt",
            params=b"v2",
            content_type="text/plain",
            headers={"If-Match": "*"},
            status=412,
        )
        app.put(
            "/a.txt",
            params=b"v2",
            content_type="text/plain",
            headers={"If-Match": etag},
            status=201,
        )
        assert self.store.get("a.txt").body == b"v2"
        assert self.store.head("b.txt") is None

    def testMkcol(self):
        app = self.app
        app.request("/a", method="MKCOL", status=201)
        assert is_collection(self.store.head("a"))
        # Already exists (expect '405 Method Not Allowed')
        app.request("/a", method="MKCOL", status=405)
        app.request("/a/", method="MKCOL", status=405)
        # Missing parent
        app.request("/x/y", method="MKCOL", status=409)
        # Body is not supported
        app.request(
            "/b",
            method="MKCOL",
            headers={"Content-Type": "text/xml"},
            body=b"<mkcol/>",
            status=415,
        )
        app.request("/a/sub/", method="MKCOL", status=201)
        assert is_collection(self.store.head("a/sub"))
        # Request metadata is kept on the marker
        app.request(
            "/a/named",
            method="MKCOL",
            headers={"Content-Disposition": "Nice"},
            status=201,
        )
        assert self.store.head("a/named").http_metadata.content_disposition == "Nice"
        res = app.get("/a/", status=200)
        assert b"Nice" in res.body

    def testDelete(self):
        app = self.app
        make_tree(
            self.store,
            {
                "a/": None,
                "a/1.txt": b"1",
                "a/sub/": None,
                "a/sub/2.txt": b"2",
                "ab.txt": b"sibling",
            },
        )
        app.delete("/a/sub/2.txt", status=204)
        app.delete("/a/", status=204)
        assert self.store.keys() == ["ab.txt"]

    def testPropfind(self):
        app = self.app
        make_tree(
            self.store,
            {
                "a/": None,
                "a/b.txt": b"hi",
                "a/sub/": None,
                "a/sub/c.txt": b"deep",
            },
        )

        res = app.request("/a/b.txt", method="PROPFIND", headers={"Depth": "0"})
        assert res.status_int == 207
        assert res.content_type == "application/xml"
        assert _hrefs(res) == ["/a/b.txt"]

        res = app.request("/a", method="PROPFIND", headers={"Depth": "1"}, status=207)
        assert _hrefs(res) == ["/a/", "/a/b.txt", "/a/sub/"]

        res = app.request(
            "/a/", method="PROPFIND", headers={"Depth": "infinity"}, status=207
        )
        assert _hrefs(res) == ["/a/", "/a/b.txt", "/a/sub/", "/a/sub/c.txt"]

        # Default depth is 'infinity'
        res = app.request("/", method="PROPFIND", status=207)
        assert _hrefs(res) == ["/", "/a/", "/a/b.txt", "/a/sub/", "/a/sub/c.txt"]

        res = app.request("/", method="PROPFIND", headers={"Depth": "0"}, status=207)
        assert _hrefs(res) == ["/"]

        # allprop
        props = _props(res, "/")
        assert "{DAV:}resourcetype" in props
        res = app.request(
            "/a/b.txt", method="PROPFIND", headers={"Depth": "0"}, status=207
        )
        props = _props(res, "/a/b.txt")
        assert props["{DAV:}getcontentlength"] == ("HTTP/1.1 200 OK", "2")
        assert "{DAV:}getlastmodified" in props
        assert "{DAV:}resourcetype" not in props

        # Named properties
        res = app.request(
            "/a/b.txt",
            method="PROPFIND",
            headers={"Depth": "0", "Content-Type": "application/xml"},
            body=PROPFIND_LENGTH,
            status=207,
        )
        props = _props(res, "/a/b.txt")
        assert set(props.keys()) == {"{DAV:}getcontentlength", "{DAV:}getetag"}

        # Errors
        app.request("/missing", method="PROPFIND", status=404)
        app.request("/a", method="PROPFIND", headers={"Depth": "2"}, status=403)
        app.request(
            "/a",
            method="PROPFIND",
            headers={"Content-Type": "application/xml"},
            body=b"<foo/>",
            status=400,
        )
        app.request(
            "/a",
            method="PROPFIND",
            headers={"Content-Type": "application/xml"},
            body=b"<not xml",
            status=400,
        )

    def testProppatch(self):
        app = self.app
        make_tree(self.store, {"a/": None, "a/b.txt": b"hi"})

        res = app.request(
            "/a/b.txt",
            method="PROPPATCH",
            headers={"Content-Type": "application/xml"},
            body=PROPPATCH_AUTHOR,
            status=207,
        )
        props = _props(res, "/a/b.txt")
        assert props == {"{DAV:}author": ("HTTP/1.1 200 OK", None)}

        obj = self.store.get("a/b.txt")
        assert obj.custom_metadata == {"author": "Jim Whitehead"}
        assert obj.body == b"hi"

        res = app.request(
            "/a/b.txt", method="PROPFIND", headers={"Depth": "0"}, status=207
        )
        props = _props(res, "/a/b.txt")
        assert props["{DAV:}author"] == ("HTTP/1.1 200 OK", "Jim Whitehead")

        # Collections keep their marker
        app.request(
            "/a",
            method="PROPPATCH",
            headers={"Content-Type": "application/xml"},
            body=PROPPATCH_AUTHOR,
            status=207,
        )
        assert is_collection(self.store.head("a"))
        assert self.store.head("a").custom_metadata["author"] == "Jim Whitehead"

        # Remove
        res = app.request(
            "/a/b.txt",
            method="PROPPATCH",
            headers={"Content-Type": "application/xml"},
            body=b"""<propertyupdate xmlns="DAV:">
                <remove><prop><author/></prop></remove>
            </propertyupdate>""",
            status=207,
        )
        assert self.store.head("a/b.txt").custom_metadata == {}

    def testProppatchLiveProperty(self):
        """Live properties can't be changed, the whole request fails."""
        app = self.app
        self.store.put("b.txt", b"hi")
        res = app.request(
            "/b.txt",
            method="PROPPATCH",
            headers={"Content-Type": "application/xml"},
            body=b"""<propertyupdate xmlns="DAV:">
                <set><prop><author>Joe</author><getetag>x</getetag></prop></set>
            </propertyupdate>""",
            status=207,
        )
        props = _props(res, "/b.txt")
        assert props["{DAV:}getetag"][0] == "HTTP/1.1 403 Forbidden"
        assert props["{DAV:}author"][0] == "HTTP/1.1 424 Failed Dependency"
        assert self.store.head("b.txt").custom_metadata == {}

    def testProppatchErrors(self):
        app = self.app
        app.request(
            "/missing.txt",
            method="PROPPATCH",
            headers={"Content-Type": "application/xml"},
            body=PROPPATCH_AUTHOR,
            status=404,
        )
        self.store.put("b.txt", b"hi")
        app.request("/b.txt", method="PROPPATCH", status=400)
        app.request(
            "/b.txt",
            method="PROPPATCH",
            headers={"Content-Type": "application/xml"},
            body=b"<propfind xmlns='DAV:'/>",
            status=400,
        )

    def testCopy(self):
        app = self.app
        store = self.store
        make_tree(
            store,
            {"a/": None, "a/b.txt": b"hi", "a/sub/": None, "a/sub/c.txt": b"deep"},
        )

        app.request(
            "/a/b.txt", method="COPY", headers={"Destination": "/c.txt"}, status=201
        )
        assert store.get("c.txt").body == b"hi"
        assert store.head("a/b.txt") is not None

        # Overwrite is the default for COPY
        app.request(
            "/a/sub/c.txt",
            method="COPY",
            headers={"Destination": "/c.txt"},
            status=204,
        )
        assert store.get("c.txt").body == b"deep"
        app.request(
            "/a/b.txt",
            method="COPY",
            headers={"Destination": "/c.txt", "Overwrite": "F"},
            status=412,
        )

        # Absolute destination URL on the same host
        app.request(
            "/a/b.txt",
            method="COPY",
            headers={"Destination": "http://localhost:80/d.txt"},
            status=201,
        )
        assert store.get("d.txt").body == b"hi"

        # Collections
        app.request(
            "/a", method="COPY", headers={"Destination": "/x", "Depth": "0"}, status=201
        )
        assert is_collection(store.head("x"))
        assert store.head("x/b.txt") is None

        app.request("/a/", method="COPY", headers={"Destination": "/y/"}, status=201)
        assert is_collection(store.head("y/sub"))
        assert store.get("y/sub/c.txt").body == b"deep"
        assert store.head("a/sub/c.txt") is not None

    def testMove(self):
        app = self.app
        store = self.store
        make_tree(
            store,
            {"a/": None, "a/b.txt": b"hi", "a/sub/": None, "a/sub/c.txt": b"deep"},
        )
        store.put("c.txt", b"other")

        # Destination exists and Overwrite is not 'T'
        app.request(
            "/c.txt", method="MOVE", headers={"Destination": "/a/b.txt"}, status=412
        )
        app.request(
            "/c.txt",
            method="MOVE",
            headers={"Destination": "/a/b.txt", "Overwrite": "F"},
            status=412,
        )
        app.request(
            "/c.txt",
            method="MOVE",
            headers={"Destination": "/a/b.txt", "Overwrite": "T"},
            status=204,
        )
        assert store.head("c.txt") is None
        assert store.get("a/b.txt").body == b"other"

        app.request("/a", method="MOVE", headers={"Destination": "/m"}, status=201)
        assert store.keys() == ["m", "m/b.txt", "m/sub", "m/sub/c.txt"]

        # Onto itself
        app.request(
            "/m/b.txt",
            method="MOVE",
            headers={"Destination": "/m/b.txt", "Overwrite": "T"},
            status=400,
        )
        assert store.get("m/b.txt").body == b"other"

    def testCopyMoveErrors(self):
        app = self.app
        make_tree(self.store, {"a/": None, "a/b.txt": b"hi"})

        # Missing Destination header
        app.request("/a/b.txt", method="COPY", status=400)
        # Root as source or destination
        app.request("/", method="COPY", headers={"Destination": "/x"}, status=403)
        app.request("/a", method="MOVE", headers={"Destination": "/"}, status=403)
        # Into itself
        app.request("/a", method="COPY", headers={"Destination": "/a/x"}, status=403)
        # Missing destination parent
        app.request(
            "/a/b.txt", method="COPY", headers={"Destination": "/no/x"}, status=409
        )
        # Missing source
        app.request(
            "/missing", method="MOVE", headers={"Destination": "/x"}, status=404
        )
        # Different host
        app.request(
            "/a/b.txt",
            method="COPY",
            headers={"Destination": "http://other.example.com/x"},
            status=502,
        )
        # Depth 1 is not allowed for collections
        app.request(
            "/a", method="COPY", headers={"Destination": "/x", "Depth": "1"}, status=400
        )
        assert self.store.keys() == ["a", "a/b.txt"]

        # Moving onto an ancestor would delete the source first
        make_tree(self.store, {"a/b/": None, "a/b/f.txt": b"f"})
        keys = self.store.keys()
        app.request(
            "/a/b",
            method="MOVE",
            headers={"Destination": "/a", "Overwrite": "T"},
            status=403,
        )
        app.request(
            "/a/b/f.txt",
            method="MOVE",
            headers={"Destination": "/a", "Overwrite": "T"},
            status=403,
        )
        assert self.store.keys() == keys

    def testOptions(self):
        app = self.app
        res = app.options("/", status=204)
        assert res.headers["DAV"] == "1, 3"
        assert "PROPFIND" in res.headers["Allow"]
        assert "LOCK" not in res.headers["Allow"]

    def testUnsupportedMethod(self):
        app = self.app
        res = app.request("/a.txt", method="PATCH", status=405)
        assert "PROPPATCH" in res.headers["Allow"]
        app.request("/a.txt", method="LOCK", status=405)

    def testDirBrowser(self):
        app = self.app
        make_tree(
            self.store,
            {
                "docs/": None,
                "docs/readme.txt": b"Hello",
                "docs/sub dir/": None,
                "docs/.DS_Store": b"",
            },
        )
        res = app.get("/", status=200)
        assert "BucketDAV - Index of /" in res
        assert 'href="/docs/"' in res.text

        res = app.get("/docs/", status=200)
        assert 'href="/docs/readme.txt"' in res.text
        assert 'href="/docs/sub%20dir/"' in res.text
        assert "5 Bytes" in res.text
        assert ".DS_Store" not in res.text, "Ignored by default"

        # Unknown collections render an empty listing
        res = app.get("/not-existing/", status=200)
        assert "readme.txt" not in res.text

        res = app.head("/docs/", status=200)
        assert res.body == b""


class ConfigurationTest(unittest.TestCase):
    """Options that change the request handling."""

    def testAuthentication(self):
        store = RecordingStore({"file1.txt": b"Hello"})
        app = _make_test_app(store, with_auth=False)

        # Anonymous access must fail (expect '401 Not Authorized')
        res = app.get("/file1.txt", status=401)
        assert res.headers["WWW-Authenticate"] == 'Basic realm="BUCKETDAV"'
        app.get("/", status=401)
        app.put("/x.txt", params=b"x", content_type="text/plain", status=401)
        app.request("/", method="PROPFIND", status=401)
        app.head("/file1.txt", status=401)

        # Wrong credentials
        app.get(
            "/file1.txt",
            headers={"Authorization": make_basic_auth_header("tester", "wrong")},
            status=401,
        )
        app.get(
            "/file1.txt", headers={"Authorization": "Basic !!!"}, status=401
        )
        assert store.calls == [], "Store was accessed without authorization"

        # OPTIONS does not require authentication
        app.options("/", status=204)

        # Basic access authentication
        res = app.get("/file1.txt", headers={"Authorization": AUTH_HEADER}, status=200)
        assert res.body == b"Hello"
        assert store.calls == ["get"]

    def testCors(self):
        app = _make_test_app(with_auth=False)
        origin = "https://example.com"

        # Added to errors as well
        res = app.get("/", headers={"Origin": origin}, status=401)
        assert res.headers["Access-Control-Allow-Origin"] == origin
        assert "PROPFIND" in res.headers["Access-Control-Allow-Methods"]

        res = app.options("/", headers={"Origin": origin}, status=204)
        assert res.headers["Access-Control-Allow-Origin"] == origin
        assert res.headers["Access-Control-Max-Age"] == "86400"

        # Without Origin header
        res = app.options("/", status=204)
        assert res.headers["Access-Control-Allow-Origin"] == "*"

        # Restricted origins
        app = _make_test_app(cors={"allow_origin": ["https://good.example.com"]})
        res = app.options("/", headers={"Origin": "https://good.example.com"})
        assert res.headers["Access-Control-Allow-Origin"] == "https://good.example.com"
        assert res.headers["Vary"] == "Origin"
        res = app.options("/", headers={"Origin": "https://evil.example.com"})
        assert "Access-Control-Allow-Origin" not in res.headers

    def testMountPath(self):
        store = MemoryObjectStore()
        app = _make_test_app(store, mount_path="/dav")

        app.put("/dav/a.txt", params=b"hi", content_type="text/plain", status=201)
        assert store.keys() == ["a.txt"]
        app.get("/dav/a.txt", status=200)
        app.get("/a.txt", status=404)

        res = app.request("/dav/", method="PROPFIND", headers={"Depth": "1"})
        assert _hrefs(res) == ["/dav/", "/dav/a.txt"]

        app.request(
            "/dav/a.txt", method="COPY", headers={"Destination": "/dav/b.txt"}
        )
        assert store.keys() == ["a.txt", "b.txt"]

        res = app.get("/dav/", status=200)
        assert 'href="/dav/a.txt"' in res.text

    def testDirBrowserDisabled(self):
        store = make_tree(MemoryObjectStore(), {"a/": None})
        app = _make_test_app(store, dir_browser={"enable": False})
        app.get("/a/", status=501)
        app.get("/", status=501)

    def testInvalidConfig(self):
        self.assertRaises(ValueError, make_dav_app, mount_path="dav/")
        self.assertRaises(ValueError, make_dav_app, http_authenticator={"username": ""})
        self.assertRaises(ValueError, make_dav_app, {"class": "builtins.dict"})

    def testStoreFromClassPath(self):
        app = _make_test_app(
            {
                "class": "bucketdav.store.memory_store.MemoryObjectStore",
                "kwargs": {"initial_objects": {"a.txt": b"Hello"}},
            }
        )
        res = app.get("/a.txt", status=200)
        assert res.body == b"Hello"

    def testPartialFailure(self):
        """Failed members of a tree operation are reported as 500."""
        store = make_tree(
            FlakyStore(),
            {"a/": None, "a/bad.txt": b"x", "a/good.txt": b"y", "a/sub/": None},
        )
        store.armed = True
        app = _make_test_app(store, listing={"page_size": 1})

        res = app.delete("/a", status=500)
        assert "a/*" in res.text
        # Siblings are deleted anyway
        assert store.keys() == ["a/bad.txt"]

        store.armed = False
        make_tree(store, {"c/": None, "c/1.txt": b"1"})
        store.armed = True
        app.request("/c", method="COPY", headers={"Destination": "/bad"}, status=500)

    def testStoreError(self):
        """Unexpected store errors are reported as 500."""
        store = FlakyStore()
        store.armed = True
        app = _make_test_app(store)
        app.put("/bad.txt", params=b"x", content_type="text/plain", status=500)
        assert store.keys() == []


# ========================================================================


if __name__ == "__main__":
    unittest.main()
