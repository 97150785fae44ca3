# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
WSGI container, that handles the HTTP requests. This object is passed to the
WSGI server and represents our BucketDAV application to the outside.

On init:

    Merge the configuration with the defaults and initialize logging.

    Instantiate the object store.

    Initialize middleware objects and setup the WSGI application stack.

For every request:

    Add or modify info in the WSGI ``environ``:

        environ["SCRIPT_NAME"]
            Mount path of the application.
        environ["PATH_INFO"]
            Resource path, relative to the mount path.
        environ["bucketdav.config"]
            Configuration dictionary.
        environ["bucketdav.verbose"]
            Debug level [0-5].

    Log the HTTP request, then pass the request to the first middleware.
"""

import copy
import inspect
import platform
import sys
import time

from bucketdav import __version__, util
from bucketdav.dav_error import HTTP_NOT_FOUND
from bucketdav.default_conf import DEFAULT_CONFIG
from bucketdav.mw.base_mw import BaseMiddleware
from bucketdav.store.base_store import ObjectStore
from bucketdav.util import (
    dynamic_import_class,
    dynamic_instantiate_class_from_opts,
    safe_re_encode,
)

__docformat__ = "reStructuredText"

_logger = util.get_module_logger(__name__)


def _check_config(config):
    errors = []

    mandatory_fields = ("store", "middleware_stack")
    for field in mandatory_fields:
        if not config.get(field):
            errors.append(f"Missing required option {field!r}.")

    mount_path = config.get("mount_path")
    if mount_path and (not mount_path.startswith("/") or mount_path.endswith("/")):
        errors.append(
            f"If a mount_path is set, it must start (but not end) with '/': {mount_path!r}."
        )

    if errors:
        raise ValueError("Invalid configuration:\n  - " + "\n  - ".join(errors))

    return True


def make_store(store_opts):
    """Return an ObjectStore for the `store` configuration value."""
    if isinstance(store_opts, ObjectStore):
        return store_opts
    store = dynamic_instantiate_class_from_opts(store_opts)
    if not isinstance(store, ObjectStore):
        raise ValueError(f"Invalid store: {store!r} is not an ObjectStore")
    return store


# ========================================================================
# BucketDAVApp
# ========================================================================
class BucketDAVApp:
    def __init__(self, config):
        self.config = copy.deepcopy(DEFAULT_CONFIG)
        # The store may be passed as instance, which must not be copied
        store_opts = config.get("store")
        util.deep_update(self.config, {k: v for k, v in config.items() if k != "store"})
        if store_opts is not None:
            self.config["store"] = store_opts
        config = self.config

        if config["logging"].get("enable") is not False:
            util.init_logging(config)

        _check_config(config)

        self.verbose = config.get("verbose", 3)
        self.mount_path = config.get("mount_path") or ""

        self.store = make_store(config["store"])

        # Define WSGI application stack
        middleware_stack = config.get("middleware_stack", [])
        mw_list = []

        # This is the 'outer' application, i.e. the WSGI application object that
        # is eventually called by the server.
        self.application = self

        # The `middleware_stack` is configured such that the first app in the
        # list should be called first. Since every app wraps its predecessor, we
        # iterate in reverse order:
        for mw in reversed(middleware_stack):
            app = None
            if util.is_basestring(mw):
                # If a plain string is passed, try to import it, assuming
                # `BaseMiddleware` signature
                app_class = dynamic_import_class(mw)
                app = app_class(self, self.application, config)
            elif type(mw) is dict:
                # If a dict with one entry is passed, expect {class: ..., kwargs: ...}
                expand = {"${application}": self.application}
                app = dynamic_instantiate_class_from_opts(mw, expand=expand)
            elif inspect.isclass(mw):
                assert issubclass(mw, BaseMiddleware)
                app = mw(self, self.application, config)
            else:
                # Otherwise assume an initialized middleware instance
                app = mw

            if app:
                if callable(getattr(app, "is_disabled", None)) and app.is_disabled():
                    _logger.warning(f"App {app}.is_disabled() returned True: skipping.")
                else:
                    mw_list.append(app)
                    self.application = app
            else:
                _logger.error(f"Could not add middleware {mw}.")

        _logger.info(
            f"BucketDAV/{__version__} Python/{util.PYTHON_VERSION} "
            f"{platform.platform(aliased=True)}"
        )

        if self.verbose >= 3:
            _logger.info(f"Object store: {self.store}")

        if self.verbose >= 4:
            # We traversed the stack in reverse order. Now revert again, so
            # we see the order that was configured:
            _logger.info("Middleware stack:")
            for mw in reversed(mw_list):
                _logger.info(f"  - {mw}")

        if not config.get("ssl_certificate"):
            _logger.warning(
                "Basic authentication is enabled: It is highly recommended to enable SSL."
            )

        if self.mount_path:
            _logger.info(f"Configured mount path: {self.mount_path!r}.")

    def __call__(self, environ, start_response):
        # WSGI always assumes iso-8859-1. Modern clients send UTF-8, so we
        # re-encode.
        # See https://www.python.org/dev/peps/pep-3333/#unicode-issues
        path = environ["PATH_INFO"] = util.re_encode_wsgi(environ["PATH_INFO"])

        # Always adding these values to environ:
        environ["bucketdav.config"] = self.config
        environ["bucketdav.verbose"] = self.verbose

        # Transform SCRIPT_NAME and PATH_INFO
        if self.mount_path:
            if not util.is_equal_or_child_uri(self.mount_path, path):
                _logger.warning(f"Request outside mount path: {path!r}")
                yield from util.send_status_response(
                    environ, start_response, HTTP_NOT_FOUND
                )
                return
            environ["SCRIPT_NAME"] = (
                environ.get("SCRIPT_NAME", "").rstrip("/") + self.mount_path
            )
            environ["PATH_INFO"] = path[len(self.mount_path) :] or "/"

        start_time = time.time()

        def _start_response_wrapper(status, response_headers, exc_info=None):
            # Postprocess response headers
            headerDict = {}
            for header, value in response_headers:
                if header.lower() in headerDict:
                    _logger.error(f"Duplicate header in response: {header}")
                headerDict[header.lower()] = value

            # It seems that we must read *all* of the request body, otherwise
            # clients may miss the response
            util.read_and_discard_input(environ)

            # Make sure the socket is not reused, unless we are 100% sure all
            # current input was consumed
            if util.get_content_length(environ) != 0 and not environ.get(
                "bucketdav.all_input_read"
            ):
                _logger.warning(
                    "Input stream not completely consumed: closing connection."
                )
                if headerDict.get("connection") != "close":
                    response_headers.append(("Connection", "close"))

            # Log request
            if self.verbose >= 3:
                userInfo = environ.get("bucketdav.auth.user_name")
                if not userInfo:
                    userInfo = "(anonymous)"
                extra = []
                if "HTTP_DESTINATION" in environ:
                    extra.append('dest="{}"'.format(environ.get("HTTP_DESTINATION")))
                if environ.get("CONTENT_LENGTH", "") != "":
                    extra.append("length={}".format(environ.get("CONTENT_LENGTH")))
                if "HTTP_DEPTH" in environ:
                    extra.append("depth={}".format(environ.get("HTTP_DEPTH")))
                if "HTTP_RANGE" in environ:
                    extra.append("range={}".format(environ.get("HTTP_RANGE")))
                if "HTTP_OVERWRITE" in environ:
                    extra.append("overwrite={}".format(environ.get("HTTP_OVERWRITE")))
                if self.verbose >= 4 and "HTTP_USER_AGENT" in environ:
                    extra.append('agent="{}"'.format(environ.get("HTTP_USER_AGENT")))
                extra.append(f"elap={time.time() - start_time:.3f}sec")
                extra = ", ".join(extra)

                _logger.info(
                    '{addr} - {user} - [{time}] "{method} {path}" {extra} -> {status}'.format(
                        addr=environ.get("REMOTE_ADDR", ""),
                        user=userInfo,
                        time=util.get_log_time(),
                        method=environ.get("REQUEST_METHOD"),
                        path=safe_re_encode(
                            environ.get("PATH_INFO", ""),
                            sys.stdout.encoding if sys.stdout.encoding else "utf-8",
                        ),
                        extra=extra,
                        status=status,
                    )
                )
            return start_response(status, response_headers, exc_info)

        # Call first middleware
        app_iter = self.application(environ, _start_response_wrapper)
        try:
            yield from app_iter
        finally:
            if hasattr(app_iter, "close"):
                app_iter.close()
