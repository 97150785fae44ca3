# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
Abstract base middleware class.
"""

from abc import ABC, abstractmethod

from bucketdav.util import NO_DEFAULT, get_dict_value

__docformat__ = "reStructuredText"


class BaseMiddleware(ABC):
    """Abstract base middleware class.

    Middlewares are instantiated by `BucketDAVApp` from the
    ``middleware_stack`` configuration, each wrapping the next one::

        bucketdav.mw.cors.Cors
        bucketdav.error_printer.ErrorPrinter
        bucketdav.http_authenticator.HTTPAuthenticator
        bucketdav.dir_browser.BucketDAVDirBrowser
        bucketdav.request_server.RequestServer

    Any other object that implements the WSGI specification can be added to
    the stack as well.
    """

    def __init__(self, dav_app, next_app, config):
        self.dav_app = dav_app
        self.next_app = next_app
        self.config = config
        self.verbose = config.get("verbose", 3)

    @abstractmethod
    def __call__(self, environ, start_response):
        raise NotImplementedError

    def __repr__(self):
        return f"{self.__module__}.{self.__class__.__name__}"

    def is_disabled(self):
        """Optionally return True to skip this module on startup."""
        return False

    def get_config(self, key_path: str, default=NO_DEFAULT):
        """Return a config value by dotted path, e.g. 'cors.max_age'."""
        res = get_dict_value(self.config, key_path, default)
        return res
