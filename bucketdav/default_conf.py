# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
Default configuration.
"""

from bucketdav.dir_browser import BucketDAVDirBrowser
from bucketdav.error_printer import ErrorPrinter
from bucketdav.http_authenticator import HTTPAuthenticator
from bucketdav.mw.cors import Cors
from bucketdav.request_server import RequestServer

__docformat__ = "reStructuredText"

# Use these settings, if config file does not define them (or is totally missing)
DEFAULT_VERBOSE = 3
DEFAULT_LOGGER_DATE_FORMAT = "%H:%M:%S"
DEFAULT_LOGGER_FORMAT = "%(asctime)s.%(msecs)03d - %(levelname)-8s: %(message)s"

DEFAULT_CONFIG = {
    "server": "cheroot",
    "server_args": {},
    "host": "localhost",
    "port": 8080,
    "mount_path": None,  # Application root, e.g. '/dav'
    #: ObjectStore instance, class path, or {"class": ..., "kwargs": {...}}
    "store": "bucketdav.store.memory_store.MemoryObjectStore",
    "middleware_stack": [
        Cors,
        ErrorPrinter,
        HTTPAuthenticator,
        BucketDAVDirBrowser,  # configured under dir_browser option (see below)
        RequestServer,  # this must be the last middleware item
    ],
    # HTTP Authentication Options
    "http_authenticator": {
        "username": None,  # required
        "password": None,  # required
        "realm": "BUCKETDAV",
    },
    #: CORS headers are added to every response
    "cors": {
        #: '*' echoes the request's Origin header
        "allow_origin": "*",
        "allow_methods": [
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
        ],
        "allow_headers": [
            "Authorization",
            "Content-Type",
            "Depth",
            "Overwrite",
            "Destination",
            "Range",
        ],
        "expose_headers": [
            "Content-Type",
            "Content-Length",
            "DAV",
            "ETag",
            "Last-Modified",
            "Location",
            "Date",
            "Content-Range",
        ],
        "allow_credentials": False,
        "max_age": 86400,
    },
    #: Thread pool size for COPY, MOVE, and DELETE of collections
    "tree_ops": {
        "max_workers": 16,
    },
    #: Number of keys that are requested per store `list()` call
    "listing": {
        "page_size": 1000,
    },
    #: Verbose Output
    #: 0 - no output
    #: 1 - no output (excepting application exceptions)
    #: 2 - show warnings
    #: 3 - show single line request summaries (for HTTP logging)
    #: 4 - show additional events
    #: 5 - show full request/response header info (HTTP Logging)
    "verbose": DEFAULT_VERBOSE,
    #: Log options
    "logging": {
        "enable": None,  # True: activate 'bucketdav' logger (in library mode)
        "logger_date_format": DEFAULT_LOGGER_DATE_FORMAT,
        "logger_format": DEFAULT_LOGGER_FORMAT,
        "enable_loggers": [],
    },
    #: Options for `BucketDAVDirBrowser`
    "dir_browser": {
        "enable": True,  # Render HTML listing for GET requests on collection URLs
        # List of fnmatch patterns:
        "ignore": [
            ".DS_Store",  # macOS folder meta data
            "._*",  # macOS hidden data files
            "Thumbs.db",  # Windows image previews
        ],
        # The path to the directory that contains template.html.
        # The default is the htdocs directory within the dir_browser directory.
        "htdocs_path": None,
    },
}
