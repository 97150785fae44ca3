# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
Implementation of an object store on top of an S3 compatible bucket.

Requires boto3 (``pip install bucketdav[s3]``).

Usage in ``bucketdav.yaml``::

    store:
        class: bucketdav.store.s3_store.S3ObjectStore
        kwargs:
            bucket: my-bucket
            key_prefix: dav/
            endpoint_url: https://s3.example.com
            region_name: eu-central-1

Credentials are resolved by boto3 (environment, ~/.aws/credentials, ...).

S3 cannot evaluate date conditions on writes, so write preconditions are
checked with a HEAD request before the upload; `If-Match` and
`If-None-Match: *` are also passed to S3.
"""

import calendar
from dataclasses import replace
from datetime import datetime, timezone

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from bucketdav import util
from bucketdav.store.base_store import (
    HttpMetadata,
    ListPage,
    ObjectRecord,
    ObjectStore,
    StoreError,
)

__docformat__ = "reStructuredText"

_logger = util.get_module_logger(__name__)

#: S3 error codes that mean 'no such object'
NOT_FOUND_CODES = {"NoSuchKey", "404", "NotFound"}
#: S3 error codes that mean 'precondition failed'
PRECONDITION_CODES = {"PreconditionFailed", "412", "NotModified", "304"}

#: `delete_objects` accepts at most 1000 keys per call
MAX_DELETE_BATCH = 1000


def _error_code(e):
    return e.response.get("Error", {}).get("Code", "")


def _to_epoch(dt):
    if dt is None:
        return None
    return calendar.timegm(dt.utctimetuple())


def _to_datetime(secs):
    return datetime.fromtimestamp(secs, timezone.utc)


class S3ObjectStore(ObjectStore):
    """Object store for one bucket (optionally below a key prefix)."""

    def __init__(
        self,
        bucket,
        *,
        key_prefix="",
        endpoint_url=None,
        region_name=None,
        connect_timeout=10,
        read_timeout=60,
        client=None,
    ):
        super().__init__()
        self.bucket = bucket
        self.key_prefix = key_prefix.strip("/") + "/" if key_prefix.strip("/") else ""
        if client is None:
            session = boto3.Session(region_name=region_name)
            client = session.client(
                "s3",
                region_name=region_name,
                endpoint_url=endpoint_url,
                config=BotoConfig(
                    connect_timeout=connect_timeout,
                    read_timeout=read_timeout,
                    retries={"max_attempts": 5, "mode": "standard"},
                ),
            )
        self._s3 = client

    def __repr__(self):
        return f"{self.__class__.__name__}('s3://{self.bucket}/{self.key_prefix}')"

    def _full_key(self, key):
        return self.key_prefix + key

    def _store_key(self, full_key):
        return util.removeprefix(full_key, self.key_prefix)

    def _record_from_response(self, key, res, *, size=None):
        return ObjectRecord(
            key=key,
            size=int(res["ContentLength"] if size is None else size),
            uploaded=_to_epoch(res.get("LastModified")) or 0,
            etag=res.get("ETag", "").strip('"'),
            http_metadata=HttpMetadata(
                content_type=res.get("ContentType"),
                content_disposition=res.get("ContentDisposition"),
                content_language=res.get("ContentLanguage"),
                content_encoding=res.get("ContentEncoding"),
                cache_control=res.get("CacheControl"),
                cache_expiry=_to_epoch(res.get("Expires")),
            ),
            custom_metadata=dict(res.get("Metadata") or {}),
        )

    def _call(self, method, **kwargs):
        """Invoke a client method, converting transport errors to StoreError."""
        try:
            return getattr(self._s3, method)(Bucket=self.bucket, **kwargs)
        except BotoCoreError as e:
            raise StoreError(f"{method} failed: {e}") from e

    def head(self, key):
        try:
            res = self._call("head_object", Key=self._full_key(key))
        except ClientError as e:
            if _error_code(e) in NOT_FOUND_CODES:
                return None
            raise StoreError(f"head_object({key!r}) failed: {e}") from e
        return self._record_from_response(key, res)

    def get(self, key, *, only_if=None, byte_range=None):
        kwargs = {"Key": self._full_key(key)}
        if only_if is not None:
            if only_if.etag_matches:
                kwargs["IfMatch"] = ", ".join(
                    f'"{t}"' if t != "*" else t for t in only_if.etag_matches
                )
            if only_if.etag_does_not_match:
                kwargs["IfNoneMatch"] = ", ".join(
                    f'"{t}"' if t != "*" else t for t in only_if.etag_does_not_match
                )
            if only_if.uploaded_before is not None:
                kwargs["IfUnmodifiedSince"] = _to_datetime(only_if.uploaded_before)
            if only_if.uploaded_after is not None:
                kwargs["IfModifiedSince"] = _to_datetime(only_if.uploaded_after)
        if byte_range is not None:
            if byte_range.suffix is not None:
                kwargs["Range"] = f"bytes=-{byte_range.suffix}"
            else:
                start = byte_range.offset or 0
                if byte_range.length is None:
                    kwargs["Range"] = f"bytes={start}-"
                else:
                    kwargs["Range"] = f"bytes={start}-{start + byte_range.length - 1}"

        try:
            res = self._call("get_object", **kwargs)
        except ClientError as e:
            code = _error_code(e)
            if code in NOT_FOUND_CODES:
                return None
            if code in PRECONDITION_CODES:
                _logger.debug(f"get({key!r}): precondition failed ({code})")
                return self.head(key)
            if code == "InvalidRange":
                # Let the request layer report 416 based on the object size
                record = self.head(key)
                if record is None:
                    return None
                return replace(record, body=b"", byte_range=byte_range)
            raise StoreError(f"get_object({key!r}) failed: {e}") from e

        size = res["ContentLength"]
        content_range = res.get("ContentRange")
        if content_range:
            # 'bytes 0-9/100'
            size = int(content_range.rsplit("/", 1)[1])
        record = self._record_from_response(key, res, size=size)
        body = res["Body"].read()
        return replace(record, body=body, byte_range=byte_range)

    def put(
        self, key, data, *, only_if=None, http_metadata=None, custom_metadata=None
    ):
        data = util.to_bytes(data)
        kwargs = {
            "Key": self._full_key(key),
            "Body": data,
            "Metadata": dict(custom_metadata or {}),
        }
        if only_if is not None:
            if not only_if.is_met(self.head(key)):
                _logger.debug(f"put({key!r}): precondition failed")
                return None
            if len(only_if.etag_matches) == 1 and only_if.etag_matches[0] != "*":
                kwargs["IfMatch"] = f'"{only_if.etag_matches[0]}"'
            if "*" in only_if.etag_does_not_match:
                kwargs["IfNoneMatch"] = "*"

        hm = http_metadata or HttpMetadata()
        if hm.content_type:
            kwargs["ContentType"] = hm.content_type
        if hm.content_disposition:
            kwargs["ContentDisposition"] = hm.content_disposition
        if hm.content_language:
            kwargs["ContentLanguage"] = hm.content_language
        if hm.content_encoding:
            kwargs["ContentEncoding"] = hm.content_encoding
        if hm.cache_control:
            kwargs["CacheControl"] = hm.cache_control
        if hm.cache_expiry is not None:
            kwargs["Expires"] = _to_datetime(hm.cache_expiry)

        try:
            res = self._call("put_object", **kwargs)
        except ClientError as e:
            if _error_code(e) in PRECONDITION_CODES:
                _logger.debug(f"put({key!r}): precondition failed (S3)")
                return None
            raise StoreError(f"put_object({key!r}) failed: {e}") from e

        return ObjectRecord(
            key=key,
            size=len(data),
            uploaded=_to_epoch(datetime.now(timezone.utc)),
            etag=res.get("ETag", "").strip('"'),
            http_metadata=hm,
            custom_metadata=dict(custom_metadata or {}),
        )

    def delete(self, keys):
        if util.is_basestring(keys):
            keys = [keys]
        keys = list(keys)
        for i in range(0, len(keys), MAX_DELETE_BATCH):
            batch = keys[i : i + MAX_DELETE_BATCH]
            try:
                res = self._call(
                    "delete_objects",
                    Delete={
                        "Objects": [{"Key": self._full_key(k)} for k in batch],
                        "Quiet": True,
                    },
                )
            except ClientError as e:
                raise StoreError(f"delete_objects failed: {e}") from e
            errors = res.get("Errors")
            if errors:
                raise StoreError(
                    "delete_objects failed for {}".format(
                        ", ".join(err.get("Key", "?") for err in errors)
                    )
                )

    def list(self, *, prefix="", delimiter=None, cursor=None, limit=1000):
        kwargs = {"Prefix": self._full_key(prefix), "MaxKeys": limit}
        if delimiter:
            kwargs["Delimiter"] = delimiter
        if cursor:
            kwargs["ContinuationToken"] = cursor
        try:
            res = self._call("list_objects_v2", **kwargs)
        except ClientError as e:
            raise StoreError(f"list_objects_v2({prefix!r}) failed: {e}") from e

        objects = []
        for item in res.get("Contents", []):
            key = self._store_key(item["Key"])
            # The listing does not contain user metadata, which we need to
            # tell collection markers from files
            record = self.head(key)
            if record is not None:
                objects.append(record)
        prefixes = tuple(
            self._store_key(p["Prefix"]) for p in res.get("CommonPrefixes", [])
        )
        truncated = bool(res.get("IsTruncated"))
        return ListPage(
            objects=tuple(objects),
            truncated=truncated,
            cursor=res.get("NextContinuationToken") if truncated else None,
            delimited_prefixes=prefixes,
        )
