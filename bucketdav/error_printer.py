# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
WSGI middleware to catch application thrown DAVErrors and return proper
responses.
"""

import traceback

from bucketdav import util
from bucketdav.dav_error import (
    HTTP_INTERNAL_ERROR,
    HTTP_NO_CONTENT,
    HTTP_NOT_MODIFIED,
    DAVError,
    as_DAVError,
    get_http_status_string,
)
from bucketdav.mw.base_mw import BaseMiddleware

__docformat__ = "reStructuredText"

_logger = util.get_module_logger(__name__)


# ========================================================================
# ErrorPrinter
# ========================================================================
class ErrorPrinter(BaseMiddleware):
    def __call__(self, environ, start_response):
        # Intercept start_response
        sub_app_start_response = util.SubAppStartResponse()

        try:
            try:
                # Handlers may return generators, so we must iterate here
                # in order to catch their exceptions
                response_started = False
                app_iter = self.next_app(environ, sub_app_start_response)
                for v in app_iter:
                    if not response_started:
                        start_response(
                            sub_app_start_response.status,
                            sub_app_start_response.response_headers,
                            sub_app_start_response.exc_info,
                        )
                    response_started = True

                    yield v

                if hasattr(app_iter, "close"):
                    app_iter.close()

                if not response_started:
                    start_response(
                        sub_app_start_response.status,
                        sub_app_start_response.response_headers,
                        sub_app_start_response.exc_info,
                    )

                return
            except DAVError:
                raise
            except Exception as e:
                # Catch all exceptions to return as 500 Internal Error
                _logger.error(f"{traceback.format_exc(10)}")
                raise as_DAVError(e) from None
        except DAVError as e:
            _logger.debug(f"Caught {e}")
            util.read_and_discard_input(environ)

            status = get_http_status_string(e)
            if e.value == HTTP_INTERNAL_ERROR:
                _logger.error(f"Caught HTTP_INTERNAL_ERROR: {e.get_user_info()}")
            elif e.value in (HTTP_NOT_MODIFIED, HTTP_NO_CONTENT):
                # See paste.lint: these code don't have content
                start_response(
                    status,
                    [("Content-Length", "0"), ("Date", util.get_rfc1123_time())]
                    + (e.add_headers or []),
                )
                yield b""
                return

            content_type, body = e.get_response_page()
            headers = e.add_headers or []
            start_response(
                status,
                [
                    ("Content-Type", content_type),
                    ("Content-Length", str(len(body))),
                    ("Date", util.get_rfc1123_time()),
                ]
                + headers,
            )
            if environ["REQUEST_METHOD"] == "HEAD":
                yield b""
            else:
                yield body
            return
