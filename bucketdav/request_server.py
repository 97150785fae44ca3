# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
WSGI application that handles one single WebDAV request against the object
store.

This is the last element of the middleware stack. Requests are dispatched by
method to ``do_METHOD()`` handlers. Errors are signalled by raising DAVError
(see `util.fail()`), which is converted to a response by the ErrorPrinter.

Collection URLs (ending with '/') are answered by the dir browser for
GET/HEAD, so ``do_GET()`` only handles files here.
"""

from urllib.parse import unquote, urlparse

from bucketdav import util, xml_tools
from bucketdav.dav_error import (
    HTTP_BAD_GATEWAY,
    HTTP_BAD_REQUEST,
    HTTP_CONFLICT,
    HTTP_CREATED,
    HTTP_FAILED_DEPENDENCY,
    HTTP_FORBIDDEN,
    HTTP_MEDIATYPE_NOT_SUPPORTED,
    HTTP_METHOD_NOT_ALLOWED,
    HTTP_NO_CONTENT,
    HTTP_NOT_FOUND,
    HTTP_NOT_IMPLEMENTED,
    HTTP_PRECONDITION_FAILED,
    HTTP_RANGE_NOT_SATISFIABLE,
    DAVError,
)
from bucketdav.dav_resource import (
    LIVE_PROPS,
    child_prefix,
    collection_metadata,
    entry_from_record,
    get_entry,
    is_collection,
    parent_key,
    resource_path,
)
from bucketdav.listing import iter_entries
from bucketdav.mw.base_mw import BaseMiddleware
from bucketdav.property_update import parse_property_update
from bucketdav.store.base_store import (
    ByteRange,
    Conditions,
    HttpMetadata,
    calc_content_range,
)
from bucketdav.tree_ops import TreeOps

__docformat__ = "reStructuredText"

_logger = util.get_module_logger(__name__)

SUPPORTED_METHODS = (
    "OPTIONS",
    "PROPFIND",
    "PROPPATCH",
    "MKCOL",
    "GET",
    "HEAD",
    "PUT",
    "DELETE",
    "COPY",
    "MOVE",
)
DAV_COMPLIANCE_LEVEL = "1, 3"


# ========================================================================
# RequestServer
# ========================================================================
class RequestServer(BaseMiddleware):
    def __init__(self, dav_app, next_app, config):
        super().__init__(dav_app, next_app, config)
        self.page_size = util.get_dict_value(config, "listing.page_size", 1000)
        self.max_workers = util.get_dict_value(config, "tree_ops.max_workers", 16)

    @property
    def store(self):
        return self.dav_app.store

    def _tree_ops(self):
        return TreeOps(
            self.store, max_workers=self.max_workers, page_size=self.page_size
        )

    def _allow_headers(self):
        return [
            ("Allow", ", ".join(SUPPORTED_METHODS)),
            ("DAV", DAV_COMPLIANCE_LEVEL),
        ]

    def __call__(self, environ, start_response):
        request_method = environ["REQUEST_METHOD"]

        # Convert 'infinity' and 'T'/'F' to a common case
        if environ.get("HTTP_DEPTH") is not None:
            environ["HTTP_DEPTH"] = environ["HTTP_DEPTH"].strip().lower()
        if environ.get("HTTP_OVERWRITE") is not None:
            environ["HTTP_OVERWRITE"] = environ["HTTP_OVERWRITE"].strip().upper()

        # Dispatch HTTP request methods to 'do_METHOD()' handlers
        method = None
        if request_method in SUPPORTED_METHODS:
            method = getattr(self, f"do_{request_method}", None)
        if not method:
            _logger.error(f"Invalid HTTP method {request_method!r}")
            self._fail(
                HTTP_METHOD_NOT_ALLOWED,
                request_method,
                add_headers=self._allow_headers(),
            )

        return method(environ, start_response)

    def _fail(self, value, context_info=None, *, src_exception=None, add_headers=None):
        """Wrapper to raise (and log) DAVError."""
        util.fail(
            value,
            context_info,
            src_exception=src_exception,
            add_headers=add_headers,
        )

    def _read_body(self, environ):
        """Return the complete request body (also for chunked transfer)."""
        if (
            "CONTENT_LENGTH" not in environ
            and environ.get("HTTP_TRANSFER_ENCODING", "").lower() == "chunked"
        ):
            # The server decodes chunks for us, we just read until EOF
            environ["bucketdav.all_input_read"] = 1
            return environ["wsgi.input"].read()
        return util.read_request_body(environ)

    def _check_parent_collection(self, key):
        """Raise HTTP_CONFLICT if the parent of `key` is not an existing collection."""
        parent = parent_key(key)
        if parent and not is_collection(self.store.head(parent)):
            self._fail(HTTP_CONFLICT, f"Parent collection {parent!r} does not exist.")

    # --- OPTIONS --------------------------------------------------------------

    def do_OPTIONS(self, environ, start_response):
        """
        @see http://www.webdav.org/specs/rfc4918.html#HEADER_DAV
        """
        headers = [
            ("Content-Length", "0"),
            ("Date", util.get_rfc1123_time()),
        ] + self._allow_headers()
        util.read_and_discard_input(environ)
        start_response("204 No Content", headers)
        return [b""]

    # --- GET / HEAD -----------------------------------------------------------

    def do_GET(self, environ, start_response):
        return self._send_resource(environ, start_response, is_head_method=False)

    def do_HEAD(self, environ, start_response):
        return self._send_resource(environ, start_response, is_head_method=True)

    def _send_resource(self, environ, start_response, is_head_method):
        path = environ["PATH_INFO"]
        if path.endswith("/"):
            # Should have been handled by the dir browser
            self._fail(HTTP_NOT_IMPLEMENTED, "Directory browsing is not enabled.")
        if util.get_content_length(environ) != 0:
            self._fail(
                HTTP_MEDIATYPE_NOT_SUPPORTED,
                "The server does not handle any body content.",
            )

        key = resource_path(path)
        byte_range = ByteRange.from_header(environ.get("HTTP_RANGE"))
        obj = self.store.get(
            key, only_if=Conditions.from_environ(environ), byte_range=byte_range
        )
        if obj is None:
            self._fail(HTTP_NOT_FOUND, path)
        if obj.body is None:
            self._fail(HTTP_PRECONDITION_FAILED, "Condition not met.")

        size = obj.size
        if size == 0:
            byte_range = None
        elif byte_range is not None and not byte_range.is_satisfiable(size):
            self._fail(
                HTTP_RANGE_NOT_SATISFIABLE,
                f"Range {environ.get('HTTP_RANGE')!r} (size: {size})",
                add_headers=[("Content-Range", f"bytes */{size}")],
            )
        range_start, range_end = calc_content_range(byte_range, size)
        range_length = range_end - range_start + 1

        hm = obj.http_metadata
        response_headers = [
            ("Content-Length", str(range_length)),
            ("Content-Type", hm.content_type or "application/octet-stream"),
            ("Last-Modified", util.get_rfc1123_time(obj.uploaded)),
            ("ETag", f'"{util.checked_etag(obj.etag)}"'),
            ("Accept-Ranges", "bytes"),
            ("Date", util.get_rfc1123_time()),
        ]
        if size > 0:
            response_headers.append(
                ("Content-Range", f"bytes {range_start}-{range_end}/{size}")
            )
        response_headers.extend(hm.to_headers())

        if range_length != size:
            start_response("206 Partial Content", response_headers)
        else:
            start_response("200 OK", response_headers)

        # Return empty body for HEAD requests
        if is_head_method:
            return [b""]
        return [obj.body]

    # --- PUT / MKCOL / DELETE -------------------------------------------------

    def do_PUT(self, environ, start_response):
        path = environ["PATH_INFO"]
        if path.endswith("/"):
            self._fail(HTTP_METHOD_NOT_ALLOWED, "Cannot PUT to a collection URL.")

        key = resource_path(path)
        self._check_parent_collection(key)
        if is_collection(self.store.head(key)):
            self._fail(HTTP_METHOD_NOT_ALLOWED, "Cannot PUT to a collection.")

        data = self._read_body(environ)
        res = self.store.put(
            key,
            data,
            only_if=Conditions.from_environ(environ),
            http_metadata=HttpMetadata.from_environ(environ),
        )
        if res is None:
            self._fail(HTTP_PRECONDITION_FAILED, "Condition not met.")

        _logger.debug(f"PUT {key!r}: {len(data)} bytes")
        return util.send_status_response(
            environ,
            start_response,
            HTTP_CREATED,
            add_headers=[("ETag", f'"{util.checked_etag(res.etag)}"')],
        )

    def do_MKCOL(self, environ, start_response):
        """Handle MKCOL request to create a new collection.

        @see http://www.webdav.org/specs/rfc4918.html#METHOD_MKCOL
        """
        path = environ["PATH_INFO"]

        if util.get_content_length(environ) != 0:
            self._fail(
                HTTP_MEDIATYPE_NOT_SUPPORTED,
                "The server does not handle any body content.",
            )

        key = resource_path(path)
        if get_entry(self.store, key) is not None:
            self._fail(HTTP_METHOD_NOT_ALLOWED, "Collection or file already exists.")

        parent = parent_key(key)
        if parent and self.store.head(parent) is None:
            self._fail(HTTP_CONFLICT, f"Parent collection {parent!r} does not exist.")

        self.store.put(
            key,
            b"",
            http_metadata=HttpMetadata.from_environ(environ),
            custom_metadata=collection_metadata(),
        )
        return util.send_status_response(environ, start_response, HTTP_CREATED)

    def do_DELETE(self, environ, start_response):
        """
        @see: http://www.webdav.org/specs/rfc4918.html#METHOD_DELETE
        """
        path = environ["PATH_INFO"]
        key = resource_path(path)
        util.read_and_discard_input(environ)

        entry = get_entry(self.store, key)
        if entry is None:
            self._fail(HTTP_NOT_FOUND, path)

        result = self._tree_ops().delete_tree(key, is_collection=entry.is_collection)
        result.raise_on_failure()
        return util.send_status_response(environ, start_response, HTTP_NO_CONTENT)

    # --- PROPFIND / PROPPATCH -------------------------------------------------

    def do_PROPFIND(self, environ, start_response):
        """
        @see http://www.webdav.org/specs/rfc4918.html#METHOD_PROPFIND
        """
        path = environ["PATH_INFO"]
        key = resource_path(path)
        script_name = environ.get("SCRIPT_NAME", "")

        entry = get_entry(self.store, key)
        if entry is None:
            self._fail(HTTP_NOT_FOUND, path)

        depth = environ.setdefault("HTTP_DEPTH", "infinity")
        if entry.is_collection and depth not in ("0", "1", "infinity"):
            self._fail(HTTP_FORBIDDEN, f"Invalid Depth header: {depth!r}.")

        # Parse PROPFIND request
        requestEL = util.parse_xml_body(environ, allow_empty=True)
        if requestEL is None:
            # An empty PROPFIND request body MUST be treated as a request for
            # the names and values of all properties.
            requestEL = xml_tools.string_to_xml(
                "<D:propfind xmlns:D='DAV:'><D:allprop/></D:propfind>"
            )

        if requestEL.tag != "{DAV:}propfind":
            self._fail(HTTP_BAD_REQUEST)

        propNameList = []
        propFindMode = None
        for pfnode in requestEL:
            if pfnode.tag == "{DAV:}allprop":
                if propFindMode:
                    # RFC: allprop and name are mutually exclusive
                    self._fail(HTTP_BAD_REQUEST)
                propFindMode = "allprop"
            elif pfnode.tag == "{DAV:}propname":
                if propFindMode:
                    self._fail(HTTP_BAD_REQUEST)
                propFindMode = "name"
            elif pfnode.tag == "{DAV:}prop":
                if propFindMode not in (None, "named"):
                    self._fail(HTTP_BAD_REQUEST)
                propFindMode = "named"
                for propTagName in pfnode:
                    propNameList.append(propTagName.tag)
        if propFindMode is None:
            propFindMode = "allprop"

        entries = [entry]
        if entry.is_collection and depth != "0":
            entries.extend(
                entry_from_record(rec)
                for rec in iter_entries(
                    self.store,
                    child_prefix(key),
                    recursive=depth == "infinity",
                    page_size=self.page_size,
                )
                if rec.key != key
            )

        multistatusEL = xml_tools.make_multistatus_el()
        for res in entries:
            propList = res.get_properties(propFindMode, name_list=propNameList)
            util.add_property_response(
                multistatusEL, res.get_href(script_name), propList
            )

        _logger.debug(f"PROPFIND {key!r} (Depth: {depth}): {len(entries)} responses")
        return util.send_multi_status_response(environ, start_response, multistatusEL)

    def do_PROPPATCH(self, environ, start_response):
        """Handle PROPPATCH request to set or remove dead properties.

        Live properties (see `LIVE_PROPS`) are refused with '403 Forbidden'.
        In this case the other names are reported as '424 Failed Dependency'
        and nothing is written.

        @see http://www.webdav.org/specs/rfc4918.html#METHOD_PROPPATCH
        """
        path = environ["PATH_INFO"]
        key = resource_path(path)
        script_name = environ.get("SCRIPT_NAME", "")

        update = parse_property_update(util.read_request_body(environ))

        obj = self.store.get(key)
        if obj is None:
            self._fail(HTTP_NOT_FOUND, path)
        entry = entry_from_record(obj.without_body())

        names = update.names
        refused = [name for name in names if name in LIVE_PROPS]
        propResponseList = []
        if refused:
            _logger.info(f"PROPPATCH {key!r}: refused live properties {refused}")
            for name in names:
                if name in refused:
                    err = DAVError(HTTP_FORBIDDEN, "Cannot modify live property.")
                else:
                    err = DAVError(HTTP_FAILED_DEPENDENCY)
                propResponseList.append((f"{{DAV:}}{name}", err))
        else:
            merged = update.apply(obj.custom_metadata)
            res = self.store.put(
                key,
                obj.body,
                only_if=Conditions(etag_matches=(obj.etag,)),
                http_metadata=obj.http_metadata,
                custom_metadata=merged,
            )
            if res is None:
                self._fail(HTTP_PRECONDITION_FAILED, "Resource was modified.")
            propResponseList = [(f"{{DAV:}}{name}", None) for name in names]

        multistatusEL = xml_tools.make_multistatus_el()
        util.add_property_response(
            multistatusEL, entry.get_href(script_name), propResponseList
        )
        return util.send_multi_status_response(environ, start_response, multistatusEL)

    # --- COPY / MOVE ----------------------------------------------------------

    def do_COPY(self, environ, start_response):
        return self._copy_or_move(environ, start_response, is_move=False)

    def do_MOVE(self, environ, start_response):
        return self._copy_or_move(environ, start_response, is_move=True)

    def _get_destination_key(self, environ):
        """Return the store key for the `Destination` header."""
        if "HTTP_DESTINATION" not in environ:
            self._fail(HTTP_BAD_REQUEST, "Missing required Destination header.")

        # Destination header may be quoted (e.g. DAV Explorer sends unquoted,
        # Windows quoted)
        dest_url = environ["HTTP_DESTINATION"]
        dest_scheme, dest_netloc, dest_path, _params, _query, _frag = urlparse(
            dest_url, allow_fragments=False
        )
        dest_path = unquote(dest_path)

        if dest_scheme and dest_netloc:
            host = environ.get("HTTP_HOST") or environ.get("SERVER_NAME")
            if dest_netloc.lower() != (host or "").lower():
                self._fail(
                    HTTP_BAD_GATEWAY,
                    "Source and destination must have the same host name.",
                )

        # Destination is relative to the mount path
        script_name = environ.get("SCRIPT_NAME", "").rstrip("/")
        if script_name and util.is_equal_or_child_uri(script_name, dest_path):
            dest_path = dest_path[len(script_name) :] or "/"

        return resource_path(dest_path)

    def _copy_or_move(self, environ, start_response, is_move):
        """
        @see: http://www.webdav.org/specs/rfc4918.html#METHOD_COPY
        @see: http://www.webdav.org/specs/rfc4918.html#METHOD_MOVE
        """
        path = environ["PATH_INFO"]
        src_key = resource_path(path)
        util.read_and_discard_input(environ)

        dest_key = self._get_destination_key(environ)
        _logger.debug(f"{environ['REQUEST_METHOD']} {src_key!r} -> {dest_key!r}")

        if src_key == "" or dest_key == "":
            self._fail(HTTP_FORBIDDEN, "Cannot copy or move the root collection.")
        if util.is_child_uri("/" + src_key, "/" + dest_key):
            self._fail(HTTP_FORBIDDEN, "Cannot copy or move a collection into itself.")
        if is_move and util.is_child_uri("/" + dest_key, "/" + src_key):
            self._fail(
                HTTP_FORBIDDEN, "Cannot move a resource onto one of its ancestors."
            )

        dest_parent = parent_key(dest_key)
        if dest_parent and self.store.head(dest_parent) is None:
            self._fail(
                HTTP_CONFLICT, f"Destination parent {dest_parent!r} does not exist."
            )

        dest_entry = get_entry(self.store, dest_key)
        dest_exists = dest_entry is not None
        overwrite = environ.get("HTTP_OVERWRITE")
        if dest_exists:
            if is_move and overwrite != "T":
                self._fail(
                    HTTP_PRECONDITION_FAILED, "Destination exists (Overwrite: T required)."
                )
            if not is_move and overwrite == "F":
                self._fail(
                    HTTP_PRECONDITION_FAILED, "Destination exists (Overwrite: F)."
                )

        src_entry = get_entry(self.store, src_key)
        if src_entry is None:
            self._fail(HTTP_NOT_FOUND, path)
        if is_move and src_key == dest_key:
            self._fail(HTTP_BAD_REQUEST, "Cannot move a resource onto itself.")

        depth = environ.get("HTTP_DEPTH") or "infinity"
        if src_entry.is_collection and depth not in ("0", "infinity"):
            self._fail(HTTP_BAD_REQUEST, f"Invalid Depth header: {depth!r}.")

        tree_ops = self._tree_ops()
        if is_move and dest_exists:
            # Not atomic: the destination stays deleted if the following
            # copy fails
            tree_ops.delete_tree(
                dest_key, is_collection=dest_entry.is_collection
            ).raise_on_failure()

        result = tree_ops.copy_tree(
            src_key,
            dest_key,
            is_collection=src_entry.is_collection,
            depth=depth,
            move=is_move,
        )
        result.raise_on_failure()

        if dest_exists:
            return util.send_status_response(environ, start_response, HTTP_NO_CONTENT)
        return util.send_status_response(environ, start_response, HTTP_CREATED)
