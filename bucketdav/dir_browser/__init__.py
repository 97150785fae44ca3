# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
from bucketdav.dir_browser._dir_browser import BucketDAVDirBrowser  # noqa: F401
