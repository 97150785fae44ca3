# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
Implements a DAVError class that is used to signal WebDAV and HTTP errors.
"""

import datetime
from html import escape

from bucketdav import __version__

__docformat__ = "reStructuredText"

# ========================================================================
# List of HTTP Response Codes.
# ========================================================================
HTTP_OK = 200
HTTP_CREATED = 201
HTTP_NO_CONTENT = 204
HTTP_PARTIAL_CONTENT = 206
HTTP_MULTI_STATUS = 207

HTTP_NOT_MODIFIED = 304
HTTP_BAD_REQUEST = 400
HTTP_NOT_AUTHORIZED = 401
HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404
HTTP_METHOD_NOT_ALLOWED = 405
HTTP_CONFLICT = 409
HTTP_PRECONDITION_FAILED = 412
HTTP_MEDIATYPE_NOT_SUPPORTED = 415
HTTP_RANGE_NOT_SATISFIABLE = 416
HTTP_FAILED_DEPENDENCY = 424

HTTP_INTERNAL_ERROR = 500
HTTP_NOT_IMPLEMENTED = 501
HTTP_BAD_GATEWAY = 502


# ========================================================================
# If ERROR_DESCRIPTIONS exists for an error code, the error description will be
# sent as the error response code.
# Otherwise only the numeric code itself is sent.
# ========================================================================
ERROR_DESCRIPTIONS = {
    HTTP_OK: "200 OK",
    HTTP_CREATED: "201 Created",
    HTTP_NO_CONTENT: "204 No Content",
    HTTP_PARTIAL_CONTENT: "206 Partial Content",
    HTTP_MULTI_STATUS: "207 Multi-Status",
    HTTP_NOT_MODIFIED: "304 Not Modified",
    HTTP_BAD_REQUEST: "400 Bad Request",
    HTTP_NOT_AUTHORIZED: "401 Not Authorized",
    HTTP_FORBIDDEN: "403 Forbidden",
    HTTP_NOT_FOUND: "404 Not Found",
    HTTP_METHOD_NOT_ALLOWED: "405 Method Not Allowed",
    HTTP_CONFLICT: "409 Conflict",
    HTTP_PRECONDITION_FAILED: "412 Precondition Failed",
    HTTP_MEDIATYPE_NOT_SUPPORTED: "415 Media Type Not Supported",
    HTTP_RANGE_NOT_SATISFIABLE: "416 Range Not Satisfiable",
    HTTP_FAILED_DEPENDENCY: "424 Failed Dependency",
    HTTP_INTERNAL_ERROR: "500 Internal Server Error",
    HTTP_NOT_IMPLEMENTED: "501 Not Implemented",
    HTTP_BAD_GATEWAY: "502 Bad Gateway",
}

# ========================================================================
# If ERROR_RESPONSES exists for an error code, a html output will be sent as
# response body including the ERROR_RESPONSES value. Otherwise a null response
# body is sent. Mostly for browser viewing.
# ========================================================================
ERROR_RESPONSES = {
    HTTP_BAD_REQUEST: "An invalid request was specified",
    HTTP_NOT_FOUND: "The specified resource was not found",
    HTTP_FORBIDDEN: "Access denied to the specified resource",
    HTTP_CONFLICT: "The parent collection does not exist",
    HTTP_INTERNAL_ERROR: "An internal server error occurred",
    HTTP_NOT_IMPLEMENTED: "Not implemented",
}


# ========================================================================
# DAVError
# ========================================================================
class DAVError(Exception):
    """General error class that is used to signal HTTP and WEBDAV errors.

    Args:
        status_code (int): HTTP status, e.g. ``HTTP_NOT_FOUND``
        context_info (str): Optional detail text for logs and the error page
        src_exception (Exception): The exception that caused this error
        add_headers (list): (name, value) tuples that are added to the error
            response, e.g. ``WWW-Authenticate`` or ``Content-Range``
    """

    def __init__(
        self, status_code, context_info=None, *, src_exception=None, add_headers=None
    ):
        self.value = int(status_code)
        self.context_info = context_info
        self.src_exception = src_exception
        self.add_headers = add_headers

    def __repr__(self):
        return f"DAVError({self.get_user_info()})"

    def __str__(self):
        return self.__repr__()

    def get_user_info(self):
        """Return readable string."""
        if self.value in ERROR_DESCRIPTIONS:
            s = f"{ERROR_DESCRIPTIONS[self.value]}"
        else:
            s = f"{self.value}"

        if self.context_info:
            s += f": {self.context_info}"
        elif self.value in ERROR_RESPONSES:
            s += f": {ERROR_RESPONSES[self.value]}"

        if self.src_exception:
            s += f"\n    Source exception: {self.src_exception!r}"
        return s

    def get_response_page(self):
        """Return a tuple (content-type, response page)."""
        status = get_http_status_string(self)
        html = []
        html.append("<!DOCTYPE html>")
        html.append("<html><head>")
        html.append("  <meta http-equiv='Content-Type' content='text/html; charset=UTF-8'>")
        html.append(f"  <title>{status}</title>")
        html.append("</head><body>")
        html.append(f"  <h1>{status}</h1>")
        html.append(f"  <p>{escape(self.get_user_info())}</p>")
        html.append("<hr/>")
        html.append(
            f"BucketDAV/{__version__} - {escape(str(datetime.datetime.now()))}"
        )
        html.append("</body></html>")
        html = "\n".join(html)
        return ("text/html; charset=utf-8", html.encode("utf-8"))


def get_http_status_code(v):
    """Return HTTP response code as integer, e.g. 204."""
    if hasattr(v, "value"):
        return int(v.value)  # v is a DAVError
    return int(v)


def get_http_status_string(v):
    """Return HTTP response string, e.g. 204 -> ('204 No Content').

    The return string always includes descriptive text, since some WSGI
    servers (and `wsgiref.validate`) reject a bare numeric status.

    `v`: status code or DAVError
    """
    code = get_http_status_code(v)
    try:
        return ERROR_DESCRIPTIONS[code]
    except KeyError:
        return f"{code} Status"


def as_DAVError(e):
    """Convert any non-DAVError exception to HTTP_INTERNAL_ERROR."""
    if isinstance(e, DAVError):
        return e
    elif isinstance(e, Exception):
        return DAVError(HTTP_INTERNAL_ERROR, src_exception=e)
    return DAVError(HTTP_INTERNAL_ERROR, f"{e}")
