# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
WSGI middleware that handles GET requests on collection URLs (ending with '/')
to display directory listings.

The listing is always answered with '200 OK', even if the collection marker
does not exist: the store only knows keys, so an empty listing is all we can
tell.
"""

import os
from fnmatch import fnmatch
from urllib.parse import quote, unquote

from jinja2 import Environment, FileSystemLoader, select_autoescape

from bucketdav import __version__, util
from bucketdav.dav_error import HTTP_MEDIATYPE_NOT_SUPPORTED
from bucketdav.dav_resource import (
    child_prefix,
    entry_from_record,
    get_entry,
    resource_path,
)
from bucketdav.listing import iter_entries
from bucketdav.mw.base_mw import BaseMiddleware

__docformat__ = "reStructuredText"

_logger = util.get_module_logger(__name__)


class BucketDAVDirBrowser(BaseMiddleware):
    """WSGI middleware that renders HTML listings for collection URLs."""

    def __init__(self, dav_app, next_app, config):
        super().__init__(dav_app, next_app, config)

        self.dir_config = util.get_dict_value(config, "dir_browser", as_dict=True)
        self.page_size = util.get_dict_value(config, "listing.page_size", 1000)

        htdocs_path = self.dir_config.get("htdocs_path")
        if htdocs_path:
            self.htdocs_path = util.fix_path(htdocs_path, config)
        else:
            self.htdocs_path = os.path.join(os.path.dirname(__file__), "htdocs")

        if not os.path.isdir(self.htdocs_path):
            raise ValueError(f"Invalid dir_browser htdocs_path {self.htdocs_path!r}")

        # Prepare a Jinja2 template
        templateLoader = FileSystemLoader(searchpath=self.htdocs_path)
        templateEnv = Environment(loader=templateLoader, autoescape=select_autoescape())
        self.template = templateEnv.get_template("template.html")

    def is_disabled(self):
        return self.dir_config.get("enable") is False

    def __call__(self, environ, start_response):
        path = environ["PATH_INFO"]

        if environ["REQUEST_METHOD"] in ("GET", "HEAD") and path.endswith("/"):
            if util.get_content_length(environ) != 0:
                util.fail(
                    HTTP_MEDIATYPE_NOT_SUPPORTED,
                    "The server does not handle any body content.",
                )

            context = self._get_context(environ, resource_path(path))

            res = self.template.render(**context)
            res = util.to_bytes(res)
            start_response(
                "200 OK",
                [
                    ("Content-Type", "text/html; charset=utf-8"),
                    ("Content-Length", str(len(res))),
                    ("Cache-Control", "private"),
                    ("Date", util.get_rfc1123_time()),
                ],
            )
            if environ["REQUEST_METHOD"] == "HEAD":
                return [b""]
            return [res]

        return self.next_app(environ, start_response)

    def _get_context(self, environ, key):
        store = self.dav_app.store
        script_name = environ.get("SCRIPT_NAME", "")
        is_top_dir = key == ""

        dav_res = get_entry(store, key)
        if dav_res is None or not dav_res.is_collection:
            # Not a (known) collection: render the bare path
            href = quote(f"{script_name.rstrip('/')}/{key}/")
        else:
            href = dav_res.get_href(script_name)

        context = {
            "rows": [],
            "version": __version__,
            "display_path": unquote(href),
            "url": href,
            "parent_url": None if is_top_dir else util.get_uri_parent(href),
            "is_top_dir": is_top_dir,
            "config": self.dir_config,
            "trailer": f"{util.public_bucketdav_info} - {util.get_rfc1123_time()}",
            "is_authenticated": bool(environ.get("bucketdav.auth.user_name")),
            "user_name": environ.get("bucketdav.auth.user_name") or "anonymous",
            "realm": environ.get("bucketdav.auth.realm"),
        }

        ignore_patterns = self.dir_config.get("ignore") or []
        if util.is_basestring(ignore_patterns):
            ignore_patterns = ignore_patterns.split(",")

        rows = context["rows"]
        ignored_list = []
        for record in iter_entries(store, child_prefix(key), page_size=self.page_size):
            if record.key == key:
                continue
            res = entry_from_record(record)
            display_name = res.get_display_name()
            if any(fnmatch(display_name, pat.strip()) for pat in ignore_patterns):
                ignored_list.append(display_name)
                continue

            entry = {
                "href": res.get_href(script_name),
                "display_name": display_name,
                "is_collection": res.is_collection,
                "tr_class": "directory" if res.is_collection else "file",
                "str_modified": util.get_rfc1123_time(record.uploaded),
                "str_size": "-",
            }
            if not res.is_collection:
                entry["str_size"] = util.byte_number_string(record.size)
            rows.append(entry)

        if ignored_list:
            _logger.debug(
                f"Dir browser ignored {len(ignored_list)} entries: {ignored_list}"
            )

        rows.sort(key=lambda v: f"{not v['is_collection']}{v['display_name'].lower()}")
        return context
