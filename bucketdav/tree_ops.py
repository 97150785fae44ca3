# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
Copy, move, and delete resource trees in an object store.

Stores don't support renames or multi-key transactions, so a tree operation
is a batch of independent single-key operations that are run concurrently on
a thread pool and awaited jointly.

If one member of a batch fails, the siblings still complete and nothing is
rolled back. The result is reported as `TreeOpResult`, which the request
layer converts to a '500 Internal Server Error' if there were failures.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import List, Tuple

from bucketdav import util
from bucketdav.dav_error import HTTP_INTERNAL_ERROR, DAVError
from bucketdav.dav_resource import child_prefix
from bucketdav.listing import DEFAULT_PAGE_SIZE, iter_entries, iter_pages
from bucketdav.store.base_store import StoreError

__docformat__ = "reStructuredText"

_logger = util.get_module_logger(__name__)

DEFAULT_MAX_WORKERS = 16


@dataclass
class TreeOpResult:
    """Outcome of a tree operation."""

    operation: str
    #: Keys (or batch labels) that were processed successfully
    completed: List[str] = field(default_factory=list)
    #: (key, exception) for every failed member
    failures: List[Tuple[str, Exception]] = field(default_factory=list)

    @property
    def ok(self):
        return not self.failures

    def merge(self, other):
        self.completed.extend(other.completed)
        self.failures.extend(other.failures)
        return self

    def raise_on_failure(self):
        """Raise HTTP_INTERNAL_ERROR if any member failed."""
        if not self.failures:
            return
        keys = ", ".join(key for key, _e in self.failures)
        _logger.error(
            f"{self.operation}: {len(self.failures)} of "
            f"{len(self.failures) + len(self.completed)} operations failed: {keys}"
        )
        raise DAVError(
            HTTP_INTERNAL_ERROR,
            f"{self.operation} partially failed for: {keys}",
            src_exception=self.failures[0][1],
        )


class TreeOps:
    """Run tree operations against a store, fanning out to a thread pool."""

    def __init__(
        self, store, *, max_workers=DEFAULT_MAX_WORKERS, page_size=DEFAULT_PAGE_SIZE
    ):
        self.store = store
        self.max_workers = max_workers
        self.page_size = page_size

    def __repr__(self):
        return f"{self.__class__.__name__}({self.store}, max_workers={self.max_workers})"

    def _fan_out(self, result, fn, jobs):
        """Run `fn(*args)` for all (label, args) in `jobs` and wait for all of them.

        `jobs` may be a generator: submission starts before it is exhausted.
        """
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {executor.submit(fn, *args): label for label, args in jobs}
            for future in as_completed(futures):
                label = futures[future]
                try:
                    future.result()
                except Exception as e:
                    _logger.warning(f"{result.operation}({label!r}) failed: {e!r}")
                    result.failures.append((label, e))
                else:
                    result.completed.append(label)
        return result

    # --- Delete ---------------------------------------------------------------

    def _delete_pages(self, result, prefix):
        """Batch-delete every page of keys below `prefix` concurrently."""

        def _jobs():
            for i, page in enumerate(
                iter_pages(self.store, prefix, recursive=True, page_size=self.page_size)
            ):
                keys = [rec.key for rec in page.objects]
                if keys:
                    yield (f"{prefix}*[{i}]", (keys,))

        return self._fan_out(result, self.store.delete, _jobs())

    def delete_tree(self, key, *, is_collection):
        """Delete a file, or a collection with all its descendants.

        key '' (root) wipes the whole store.
        """
        result = TreeOpResult("DELETE")
        if key == "":
            return self._delete_pages(result, "")

        # Store errors for the resource itself are not caught
        self.store.delete(key)
        result.completed.append(key)
        if is_collection:
            self._delete_pages(result, child_prefix(key))
        return result

    # --- Copy / Move ----------------------------------------------------------

    def _copy_one(self, src_key, dest_key, move):
        obj = self.store.get(src_key)
        if obj is None:
            raise StoreError(f"Source vanished: {src_key!r}")
        res = self.store.put(
            dest_key,
            obj.body,
            http_metadata=obj.http_metadata,
            custom_metadata=dict(obj.custom_metadata),
        )
        if res is None:
            raise StoreError(f"Could not write {dest_key!r}")
        if move and src_key != dest_key:
            self.store.delete(src_key)

    def copy_tree(self, src_key, dest_key, *, is_collection, depth="infinity", move=False):
        """Copy (or move) a file or collection to `dest_key`.

        Collections are copied with all descendants (depth 'infinity') or as
        marker only (depth '0'). Descendant keys are remapped from
        `src_key/...` to `dest_key/...`.
        """
        result = TreeOpResult("MOVE" if move else "COPY")
        if not is_collection:
            self._copy_one(src_key, dest_key, move)
            result.completed.append(src_key)
            return result

        if depth == "0":
            jobs = [(src_key, (src_key, dest_key, move))]
        else:
            assert depth == "infinity", depth
            src_prefix = child_prefix(src_key)
            dest_prefix = child_prefix(dest_key)
            # Materialize the list first, so new keys below the destination
            # don't show up in the source listing
            keys = [
                rec.key
                for rec in iter_entries(
                    self.store, src_prefix, recursive=True, page_size=self.page_size
                )
            ]
            jobs = [(src_key, (src_key, dest_key, move))]
            jobs.extend(
                (k, (k, dest_prefix + k[len(src_prefix) :], move)) for k in keys
            )
        _logger.debug(f"{result.operation} {src_key!r} -> {dest_key!r}: {len(jobs)} keys")
        return self._fan_out(result, self._copy_one, jobs)
