# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
Lazy iteration over store listings.

Stores return listings in pages; these generators follow the store cursor
until a page is not truncated anymore.
"""

from bucketdav import util

__docformat__ = "reStructuredText"

_logger = util.get_module_logger(__name__)

DEFAULT_PAGE_SIZE = 1000


def iter_pages(store, prefix, *, recursive=False, page_size=DEFAULT_PAGE_SIZE):
    """Yield `ListPage` instances for all keys below `prefix`.

    Non-recursive listings fold deeper keys at '/'.
    """
    delimiter = None if recursive else "/"
    cursor = None
    count = 0
    while True:
        page = store.list(
            prefix=prefix, delimiter=delimiter, cursor=cursor, limit=page_size
        )
        count += 1
        yield page
        if not page.truncated:
            break
        cursor = page.cursor
    _logger.debug(f"Listed {prefix!r} (recursive={recursive}) in {count} page(s)")


def iter_entries(store, prefix, *, recursive=False, page_size=DEFAULT_PAGE_SIZE):
    """Yield all `ObjectRecord`s below `prefix`, in store order."""
    for page in iter_pages(store, prefix, recursive=recursive, page_size=page_size):
        yield from page.objects
