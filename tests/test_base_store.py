# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""Unit tests for the value types in bucketdav.store.base_store"""

import unittest

from bucketdav.store.base_store import (
    ByteRange,
    Conditions,
    HttpMetadata,
    ObjectRecord,
    calc_content_range,
)

# 'Sun, 06 Nov 1994 08:49:37 GMT'
NOV_1994 = 784111777


class ByteRangeTest(unittest.TestCase):
    def testParseHeader(self):
        assert ByteRange.from_header(None) is None
        assert ByteRange.from_header("") is None
        assert ByteRange.from_header("bytes=0-4") == ByteRange(offset=0, length=5)
        assert ByteRange.from_header("bytes=5-") == ByteRange(offset=5)
        assert ByteRange.from_header("bytes=-3") == ByteRange(suffix=3)
        assert ByteRange.from_header(" bytes = 2-2 ") == ByteRange(offset=2, length=1)
        # Only the first range is served
        assert ByteRange.from_header("bytes=0-1, 5-6") == ByteRange(offset=0, length=2)
        # Malformed or unsupported: serve the full object
        assert ByteRange.from_header("bytes=5-2") is None
        assert ByteRange.from_header("items=0-4") is None
        assert ByteRange.from_header("bytes=abc") is None
        assert ByteRange.from_header("bytes=") is None

    def testValidation(self):
        self.assertRaises(ValueError, ByteRange, offset=1, suffix=1)
        self.assertRaises(ValueError, ByteRange, length=1, suffix=1)
        self.assertRaises(ValueError, ByteRange, offset=-1)
        self.assertRaises(ValueError, ByteRange, suffix=-1)

    def testResolve(self):
        size = 10
        assert calc_content_range(None, size) == (0, 9)
        assert ByteRange(offset=0, length=5).resolve(size) == (0, 4)
        assert ByteRange(offset=5).resolve(size) == (5, 9)
        assert ByteRange(length=3).resolve(size) == (0, 2)
        assert ByteRange(suffix=3).resolve(size) == (7, 9)
        assert ByteRange(suffix=20).resolve(size) == (0, 9)
        assert ByteRange(offset=2, length=100).resolve(size) == (2, 9)

        assert not ByteRange(offset=10).is_satisfiable(size)
        assert not ByteRange(offset=12, length=2).is_satisfiable(size)
        assert not ByteRange(suffix=0).is_satisfiable(size)

    def testResolvedRangesAreInBounds(self):
        """Satisfiable ranges never leave the object."""
        for size in (1, 2, 7, 100):
            for spec in (
                "bytes=0-",
                "bytes=0-0",
                "bytes=1-3",
                "bytes=3-1000",
                "bytes=-1",
                "bytes=-5",
                "bytes=-1000",
                "bytes=6-6",
                "bytes=99-",
            ):
                byte_range = ByteRange.from_header(spec)
                if not byte_range.is_satisfiable(size):
                    continue
                offset, end = byte_range.resolve(size)
                assert 0 <= offset <= end <= size - 1, (spec, size, offset, end)


class ConditionsTest(unittest.TestCase):
    def setUp(self):
        self.record = ObjectRecord(
            key="a.txt", size=5, uploaded=NOV_1994 + 0.5, etag="abc"
        )

    def testFromEnviron(self):
        assert Conditions.from_environ({}) is None
        assert Conditions.from_environ({"HTTP_IF_MATCH": '"abc", "def"'}) == (
            Conditions(etag_matches=("abc", "def"))
        )
        cond = Conditions.from_environ(
            {
                "HTTP_IF_NONE_MATCH": "*",
                "HTTP_IF_MODIFIED_SINCE": "Sun, 06 Nov 1994 08:49:37 GMT",
                "HTTP_IF_UNMODIFIED_SINCE": "Sun, 06 Nov 1994 08:49:37 GMT",
            }
        )
        assert cond.etag_does_not_match == ("*",)
        assert cond.uploaded_after == NOV_1994
        assert cond.uploaded_before == NOV_1994

    def testEtags(self):
        rec = self.record
        assert Conditions(etag_matches=("abc",)).is_met(rec)
        assert Conditions(etag_matches=("x", "abc")).is_met(rec)
        assert Conditions(etag_matches=("*",)).is_met(rec)
        assert not Conditions(etag_matches=("x",)).is_met(rec)
        assert not Conditions(etag_matches=("*",)).is_met(None)

        assert not Conditions(etag_does_not_match=("abc",)).is_met(rec)
        assert not Conditions(etag_does_not_match=("*",)).is_met(rec)
        assert Conditions(etag_does_not_match=("x",)).is_met(rec)
        assert Conditions(etag_does_not_match=("*",)).is_met(None)

    def testDates(self):
        rec = self.record
        # Compared with one second resolution
        assert Conditions(uploaded_before=NOV_1994).is_met(rec)
        assert not Conditions(uploaded_before=NOV_1994 - 1).is_met(rec)
        assert not Conditions(uploaded_after=NOV_1994).is_met(rec)
        assert Conditions(uploaded_after=NOV_1994 - 1).is_met(rec)

    def testPrecedence(self):
        rec = self.record
        # If-Match wins over If-Unmodified-Since
        assert Conditions(etag_matches=("abc",), uploaded_before=0).is_met(rec)
        # If-None-Match wins over If-Modified-Since
        assert Conditions(
            etag_does_not_match=("x",), uploaded_after=NOV_1994 + 10
        ).is_met(rec)


class HttpMetadataTest(unittest.TestCase):
    def testFromEnviron(self):
        hm = HttpMetadata.from_environ(
            {
                "CONTENT_TYPE": "text/plain",
                "HTTP_CONTENT_DISPOSITION": "readme.txt",
                "HTTP_CONTENT_LANGUAGE": "en",
                "HTTP_CONTENT_ENCODING": "identity",
                "HTTP_CACHE_CONTROL": "no-cache",
                "HTTP_EXPIRES": "Sun, 06 Nov 1994 08:49:37 GMT",
            }
        )
        assert hm == HttpMetadata(
            content_type="text/plain",
            content_disposition="readme.txt",
            content_language="en",
            content_encoding="identity",
            cache_control="no-cache",
            cache_expiry=NOV_1994,
        )
        assert hm.to_headers() == [
            ("Content-Disposition", "readme.txt"),
            ("Content-Encoding", "identity"),
            ("Content-Language", "en"),
            ("Cache-Control", "no-cache"),
            ("Cache-Expiry", "1994-11-06T08:49:37+00:00"),
        ]

    def testEmpty(self):
        hm = HttpMetadata.from_environ({"CONTENT_TYPE": ""})
        assert hm == HttpMetadata()
        assert hm.to_headers() == []


if __name__ == "__main__":
    unittest.main()
