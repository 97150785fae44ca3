# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
WSGI middleware that injects CORS headers into every response.

Browser based WebDAV clients send credentials with every request, so the
headers are added to all responses, including errors and '401 Not
Authorized'. Preflight OPTIONS requests are passed through (OPTIONS does not
require authentication).
"""

from bucketdav import util
from bucketdav.mw.base_mw import BaseMiddleware

__docformat__ = "reStructuredText"

_logger = util.get_module_logger(__name__)


class Cors(BaseMiddleware):
    def __init__(self, dav_app, next_app, config):
        super().__init__(dav_app, next_app, config)
        opts = config.get("cors", None)
        if opts is None:
            opts = {}

        allow_origins = opts.get("allow_origin") or "*"
        if type(allow_origins) is str:
            allow_origins = allow_origins.strip()
            if allow_origins != "*":
                allow_origins = [allow_origins]
        else:
            allow_origins = [ao.strip() for ao in allow_origins]

        allow_headers = ", ".join(sorted(util.to_set(opts.get("allow_headers"))))
        allow_methods = ", ".join(sorted(util.to_set(opts.get("allow_methods"))))
        expose_headers = ", ".join(sorted(util.to_set(opts.get("expose_headers"))))
        allow_credentials = opts.get("allow_credentials", False)
        max_age = opts.get("max_age")

        add_always = []
        if allow_methods:
            add_always.append(("Access-Control-Allow-Methods", allow_methods))
        if allow_headers:
            add_always.append(("Access-Control-Allow-Headers", allow_headers))
        if expose_headers:
            add_always.append(("Access-Control-Expose-Headers", expose_headers))
        add_always.append(
            (
                "Access-Control-Allow-Credentials",
                "true" if allow_credentials else "false",
            )
        )
        if max_age:
            add_always.append(("Access-Control-Max-Age", str(int(max_age))))

        self.always_headers = add_always
        #: Either '*' or a list of origins
        self.allow_origins = allow_origins

    def __repr__(self):
        return f"{self.__module__}.{self.__class__.__name__}({self.allow_origins})"

    def get_origin_headers(self, origin):
        """Return the Access-Control-Allow-Origin headers for a request origin."""
        if self.allow_origins == "*":
            # Echo the origin, so browsers accept the response
            return [("Access-Control-Allow-Origin", origin or "*")]
        if origin in self.allow_origins:
            return [("Access-Control-Allow-Origin", origin), ("Vary", "Origin")]
        return []

    def __call__(self, environ, start_response):
        origin = environ.get("HTTP_ORIGIN")
        acao_headers = self.get_origin_headers(origin)

        if origin and not acao_headers:
            _logger.warning(
                f"Denied CORS {environ['REQUEST_METHOD']} {environ['PATH_INFO']!r}, "
                f"origin: {origin!r}"
            )

        def wrapped_start_response(status, headers, exc_info=None):
            if acao_headers:
                util.update_headers_in_place(
                    headers, acao_headers + self.always_headers
                )
            return start_response(status, headers, exc_info)

        return self.next_app(environ, wrapped_start_response)
