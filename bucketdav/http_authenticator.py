# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
WSGI middleware for HTTP basic authentication with one shared credential.

Configuration::

    http_authenticator:
        username: "tester"
        password: "secret"
        realm: "BUCKETDAV"

Every request except OPTIONS must carry an ``Authorization`` header equal to
``Basic base64(username:password)``. The comparison is done in constant time
(after a length check), so response times don't leak the credential.

The HTTPAuthenticator puts the following information in the environ
dictionary::

   environ["bucketdav.auth.realm"] = realm name
   environ["bucketdav.auth.user_name"] = user_name
"""

import base64
import hmac
from textwrap import dedent

from bucketdav import util
from bucketdav.mw.base_mw import BaseMiddleware

__docformat__ = "reStructuredText"

_logger = util.get_module_logger(__name__)

DEFAULT_REALM = "BUCKETDAV"


def make_basic_auth_header(user_name, password):
    """Return the expected `Authorization` header value."""
    token = util.calc_base64(f"{user_name}:{password}")
    return f"Basic {token}"


def _decode_basic_user(auth_header):
    """Return the user name of a Basic auth header ('' if malformed)."""
    try:
        value = base64.b64decode(auth_header[len("Basic ") :].strip())
        return util.to_str(value).split(":", 1)[0]
    except ValueError:
        return ""


# ========================================================================
# HTTPAuthenticator
# ========================================================================
class HTTPAuthenticator(BaseMiddleware):
    """WSGI Middleware for basic authentication."""

    error_message_401 = dedent(
        """\
        <html>
            <head><title>401 Access not authorized</title></head>
            <body>
                <h1>401 Access not authorized</h1>
            </body>
        </html>
    """
    )

    def __init__(self, dav_app, next_app, config):
        super().__init__(dav_app, next_app, config)
        auth_conf = util.get_dict_value(config, "http_authenticator", as_dict=True)

        user_name = auth_conf.get("username")
        password = auth_conf.get("password")
        if not user_name or password is None:
            raise ValueError(
                "Missing credentials: set http_authenticator.username and .password"
            )
        self.realm = auth_conf.get("realm") or DEFAULT_REALM
        # Immutable after startup
        self._expected = util.to_bytes(make_basic_auth_header(user_name, password))

    def __repr__(self):
        return f"{self.__module__}.{self.__class__.__name__}({self.realm!r})"

    def is_authorized(self, auth_header):
        """Return True if `auth_header` matches the configured credential."""
        if not auth_header:
            return False
        given = util.to_bytes(auth_header)
        if len(given) != len(self._expected):
            return False
        return hmac.compare_digest(given, self._expected)

    def __call__(self, environ, start_response):
        environ["bucketdav.auth.realm"] = self.realm
        environ["bucketdav.auth.user_name"] = ""

        if environ["REQUEST_METHOD"] == "OPTIONS":
            return self.next_app(environ, start_response)

        auth_header = environ.get("HTTP_AUTHORIZATION")
        if self.is_authorized(auth_header):
            environ["bucketdav.auth.user_name"] = _decode_basic_user(auth_header)
            return self.next_app(environ, start_response)

        if auth_header:
            _logger.warning(
                f"Authentication (basic) failed for user "
                f"{_decode_basic_user(auth_header)!r}, realm {self.realm!r}."
            )
        return self.send_basic_auth_response(environ, start_response)

    def send_basic_auth_response(self, environ, start_response):
        _logger.debug(f"401 Not Authorized for realm {self.realm!r} (basic)")
        util.read_and_discard_input(environ)
        body = util.to_bytes(self.error_message_401)
        start_response(
            "401 Not Authorized",
            [
                ("WWW-Authenticate", f'Basic realm="{self.realm}"'),
                ("Content-Type", "text/html"),
                ("Content-Length", str(len(body))),
                ("Date", util.get_rfc1123_time()),
            ],
        )
        if environ["REQUEST_METHOD"] == "HEAD":
            return [b""]
        return [body]
