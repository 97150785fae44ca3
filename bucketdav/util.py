# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
Miscellaneous support functions for BucketDAV.
"""

import base64
import calendar
import collections.abc
import logging
import os
import sys
import time
from copy import deepcopy
from email.utils import formatdate, parsedate
from typing import Optional

from bucketdav import __version__
from bucketdav.dav_error import (
    HTTP_BAD_REQUEST,
    HTTP_NO_CONTENT,
    HTTP_NOT_MODIFIED,
    DAVError,
    as_DAVError,
    get_http_status_string,
)
from bucketdav.xml_tools import (
    etree,
    is_etree_element,
    make_sub_element,
    split_namespace,
    xml_to_bytes,
)

__docformat__ = "reStructuredText"

#: The base logger (silent by default)
BASE_LOGGER_NAME = "bucketdav"
_logger = logging.getLogger(BASE_LOGGER_NAME)

#: Currently used Python version as string
PYTHON_VERSION = ".".join([str(s) for s in sys.version_info[:3]])

#: Project name and version presented to the clients
#: This is reset to ``"BucketDAV"`` if ``suppress_version_info`` is set in the
#: configuration.
public_bucketdav_info = f"BucketDAV/{__version__}"
public_python_info = f"Python/{PYTHON_VERSION}"


class NO_DEFAULT:
    """Sentinel for `get_dict_value()`."""


# ========================================================================
# Strings and dicts
# ========================================================================


def is_basestring(s):
    return isinstance(s, str)


def is_bytes(s):
    return isinstance(s, (bytes, bytearray))


def to_bytes(s, encoding="utf8"):
    """Convert a text string to bytes."""
    if type(s) is not bytes:
        s = bytes(s, encoding)
    return s


def to_str(s, encoding="utf8"):
    """Convert data to native str type."""
    if type(s) is bytes:
        s = str(s, encoding)
    elif type(s) is not str:
        s = str(s)
    return s


def to_set(val, *, or_none=False, raise_error=False) -> set:
    res = set()
    if type(val) is set:
        res = val
    elif type(val) is str:
        res = set(map(str.strip, val.split(",")))
    elif isinstance(val, (dict, list, tuple)):
        res = set(map(str, val))
    elif val is None and or_none:
        res = None
    elif raise_error:
        raise TypeError(f"{val}, {type(val)}")
    return res


def get_dict_value(d, key_path, default=NO_DEFAULT, *, as_dict=False):
    """Return the value of a nested dict using dot-notation path.

    Args:
        d (dict):
        key_path (str):
        default  (any):
        as_dict (bool):
            Assume default is `{}` and also return `{}` if the key exists with
            a value of `None`. This covers the case where suboptions are
            supposed to be dicts, but are defined in a YAML file as entry
            without a value.

    Raises:
        KeyError:
        ValueError:
        IndexError:

    Examples::

        get_dict_value(config, "http_authenticator.realm", "BUCKETDAV")
    """
    if as_dict:
        try:
            res = get_dict_value(d, key_path, default={})
            return res if res is not None else {}
        except (AttributeError, KeyError, ValueError, IndexError):
            return {}

    if default is not NO_DEFAULT:
        try:
            return get_dict_value(d, key_path)
        except (AttributeError, KeyError, ValueError, IndexError):
            return default

    seg_list = key_path.split(".")
    seg = seg_list.pop(0)
    value = d[seg]

    while seg_list:
        seg = seg_list.pop(0)
        if isinstance(value, dict):
            value = value[seg]
        elif isinstance(value, (list, tuple)):
            if not seg.startswith("[") or not seg.endswith("]"):
                raise ValueError("Use `[INT]` syntax to address list items")
            seg = seg[1:-1]
            value = value[int(seg)]
        else:
            value = getattr(value, seg)

    return value


def purge_passwords(d):
    """Return a deep copy of `d`, with all 'password' values masked."""

    def _purge(v):
        if isinstance(v, dict):
            if "password" in v:
                v["password"] = "<REMOVED>"
            for ele in v.values():
                _purge(ele)
        elif isinstance(v, (list, tuple)):
            for ele in v:
                _purge(ele)

    d = deepcopy(d)
    _purge(d)
    return d


def check_tags(tags, known, *, msg=None, raise_error=True, required=False):
    """Check if `tags` only contains known tags.

    If required is true, all known tags must be present in `tags`.
    """
    tags = to_set(tags)
    known = to_set(known)
    unknown = tags.difference(known)
    missing = None
    if required is True:
        missing = known.difference(tags)
    elif required:
        missing = to_set(required).difference(tags)

    if unknown or missing:
        if not msg:
            msg = "Invalid tags"
        err = [msg]
        if unknown:
            err.append(f"Unknown: {', '.join(sorted(unknown))!r}")
        if missing:
            err.append(f"Missing: {', '.join(sorted(missing))!r}")
        err = "\n".join(err)
        if raise_error:
            raise ValueError(err)
        return err
    return None


def deep_update(d, u):
    """Merge the nested dict `u` into `d` (in place) and return `d`."""
    for k, v in u.items():
        if isinstance(v, collections.abc.Mapping):
            prev_val = d.get(k)
            if prev_val is None or type(prev_val) in (bool, float, int, str):
                # Prev. values is a scalar: replace it with a copy of the new dict
                d[k] = dict(v)
            else:
                # Merge new values into prev. dict
                d[k] = deep_update(d.get(k, {}), v)
        else:
            d[k] = v
    return d


def removeprefix(s: str, prefix: str, ignore_case: bool = False) -> str:
    """Replacement for str.removeprefix() with ignore_case option."""
    if ignore_case:
        if not s.lower().startswith(prefix.lower()):
            return s
    elif not s.startswith(prefix):
        return s
    return s[len(prefix) :]


def fix_path(path, root, *, expand_vars=True, must_exist=True, allow_none=True):
    """Convert path to absolute, expand and check.

    Relative paths are evaluated against `root`. If `root` is a config dict,
    the folder of its `_config_file` is used (or the current working dir).
    """
    if path in (None, ""):
        if allow_none:
            return None
        raise ValueError(f"Invalid path {path!r}")

    if not os.path.isabs(path):
        if type(root) is dict:
            config_file = root.get("_config_file")
            root = os.path.dirname(config_file) if config_file else None
        if not root:
            root = os.getcwd()
        path = os.path.abspath(os.path.join(root, path))

    if expand_vars:
        path = os.path.expandvars(os.path.expanduser(path))

    if must_exist and not os.path.exists(path):
        raise ValueError(f"Invalid path: {path!r}")

    return path


def re_encode_wsgi(s: str, *, encoding="utf-8", fallback=False) -> str:
    """Convert a WSGI string to `str`, assuming the value is utf-8 encoded.

    WSGI always assumes iso-8859-1 (PEP 3333).
    https://bugs.python.org/issue16679#msg177450
    """
    try:
        if type(s) is bytes:
            return s.decode(encoding)
        return s.encode("iso-8859-1").decode(encoding)
    except UnicodeError:
        if fallback:
            return s
        raise


def safe_re_encode(s, encoding_to, *, errors="backslashreplace"):
    """Re-encode str or binary so that is compatible with a given encoding
    (replacing unsupported chars)."""
    if type(s) is bytes:
        s = s.decode(encoding_to, errors=errors).encode(encoding_to)
    else:
        s = s.encode(encoding_to, errors=errors).decode(encoding_to)
    return s


def byte_number_string(number, *, thousands_sep=True):
    """Convert a byte count into human-readable representation, e.g. "1,024 Bytes"."""
    bytesuffix = " Byte" if number == 1 else " Bytes"
    if thousands_sep:
        snum = f"{number:,d}"
    else:
        snum = str(number)
    return f"{snum}{bytesuffix}"


# ========================================================================
# Time tools
# ========================================================================


def get_rfc1123_time(secs=None):
    """Return <secs> in rfc 1123 date/time format (pass secs=None for current date)."""
    # Must be locale independent
    return formatdate(timeval=secs, localtime=False, usegmt=True)


def get_rfc3339_time(secs=None):
    """Return <secs> in RFC 3339 date/time format (pass secs=None for current date).

    RFC 3339 is a subset of ISO 8601, used for '{DAV:}creationdate'.
    See http://tools.ietf.org/html/rfc3339
    """
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(secs))


def get_log_time(secs=None):
    """Return <secs> in log time format (pass secs=None for current date)."""
    return time.strftime("%Y-%m-%d %H:%M:%S", time.gmtime(secs))


def parse_time_string(timestring):
    """Return the number of seconds since the epoch, for a date/time string.

    Returns None for invalid input

    The following time type strings are supported:

    Sun, 06 Nov 1994 08:49:37 GMT  ; RFC 822, updated by RFC 1123
    Sunday, 06-Nov-94 08:49:37 GMT ; RFC 850, obsoleted by RFC 1036
    Sun Nov  6 08:49:37 1994       ; ANSI C's asctime() format
    """
    result = _parse_gmt_time(timestring)
    if result:
        return calendar.timegm(result)
    return None


def _parse_gmt_time(timestring):
    """Return a standard time tuple (see time and calendar), for a date/time string."""
    for fmt in (
        "%a, %d %b %Y %H:%M:%S GMT",  # RFC 1123
        "%A, %d-%b-%y %H:%M:%S GMT",  # RFC 850
        "%a %b %d %H:%M:%S %Y",  # asctime()
    ):
        try:
            return time.strptime(timestring, fmt)
        except ValueError:
            pass

    # Sun Nov  6 08:49:37 1994 +0100 ; asctime() with time zone
    return parsedate(timestring)


# ========================================================================
# Logging
# ========================================================================


def init_logging(config):
    """Initialize base logger named 'bucketdav'.

    The base logger is filtered by the `verbose` configuration option.
    Log entries will have a time stamp.

    **Note:** init_logging() is automatically called if an application adds
    ``"logging": { "enable": true }`` to the configuration.

    Module loggers
    ~~~~~~~~~~~~~~
    Module loggers (e.g 'bucketdav.tree_ops') are named loggers, that
    can be independently switched to DEBUG mode by passing their name in
    ``logging.enable_loggers``.

    Log Level Matrix
    ~~~~~~~~~~~~~~~~

    +---------+--------+-------------+------------------------+
    | Verbose | Option | base logger | module logger(enabled) |
    +=========+========+=============+========================+
    |    0    | -qqq   | CRITICAL    | CRITICAL               |
    +---------+--------+-------------+------------------------+
    |    1    | -qq    | ERROR       | ERROR                  |
    +---------+--------+-------------+------------------------+
    |    2    | -q     | WARN        | WARN                   |
    +---------+--------+-------------+------------------------+
    |    3    |        | INFO        | **DEBUG**              |
    +---------+--------+-------------+------------------------+
    |    4    | -v     | DEBUG       | DEBUG                  |
    +---------+--------+-------------+------------------------+
    |    5    | -vv    | DEBUG       | DEBUG                  |
    +---------+--------+-------------+------------------------+
    """
    from bucketdav.default_conf import DEFAULT_LOGGER_DATE_FORMAT, DEFAULT_LOGGER_FORMAT

    verbose = config.get("verbose", 3)
    log_opts = config.get("logging") or {}

    enable_loggers = log_opts.get("enable_loggers") or []

    logger_date_format = log_opts.get("logger_date_format", DEFAULT_LOGGER_DATE_FORMAT)
    logger_format = log_opts.get("logger_format", DEFAULT_LOGGER_FORMAT)

    formatter = logging.Formatter(logger_format, logger_date_format)

    consoleHandler = logging.StreamHandler(sys.stdout)
    consoleHandler.setFormatter(formatter)

    logger = logging.getLogger(BASE_LOGGER_NAME)

    if verbose >= 4:  # --verbose
        logger.setLevel(logging.DEBUG)
    elif verbose == 3:  # default
        logger.setLevel(logging.INFO)
    elif verbose == 2:  # --quiet
        logger.setLevel(logging.WARN)
    elif verbose == 1:  # -qq
        logger.setLevel(logging.ERROR)
    else:  # -qqq
        logger.setLevel(logging.CRITICAL)

    # Don't call the root's handlers after our custom handlers
    logger.propagate = False

    # Remove previous handlers
    for hdlr in logger.handlers[:]:  # Must iterate an array copy
        hdlr.flush()
        hdlr.close()
        logger.removeHandler(hdlr)

    logger.addHandler(consoleHandler)

    if verbose >= 3:
        for e in enable_loggers:
            if not e.startswith(BASE_LOGGER_NAME + "."):
                e = BASE_LOGGER_NAME + "." + e
            lg = logging.getLogger(e.strip())
            lg.setLevel(logging.DEBUG)
    return


def get_module_logger(moduleName):
    """Create a module logger, that can be en/disabled by configuration.

    @see: unit.init_logging
    """
    if not moduleName.startswith(BASE_LOGGER_NAME + "."):
        moduleName = BASE_LOGGER_NAME + "." + moduleName
    logger = logging.getLogger(moduleName)
    return logger


# ========================================================================
# Module Import
# ========================================================================


def dynamic_import_class(name):
    """Import a class from a module string, e.g. ``my.module.ClassName``."""
    import importlib

    if "." not in name:
        raise ValueError(f"Expected `path.to.ClassName` string: {name!r}")
    module_name, class_name = name.rsplit(".", 1)
    try:
        module = importlib.import_module(module_name)
    except Exception as e:
        _logger.error(f"Dynamic import of {name!r} failed: {e}")
        raise
    the_class = getattr(module, class_name)
    return the_class


def dynamic_instantiate_class(class_name, options, *, expand=None):
    """Import a class and instantiate with custom args.

    Examples:
        # Equivalent of
        from my.module import Foo
        return Foo(bar=42, baz="qux")
        # would be
        dynamic_instantiate_class("my.module.Foo", {"kwargs": {"bar": 42, "baz": "qux"}})
    """

    def _expand(v):
        """Replace some string templates with defined values."""
        if expand and is_basestring(v) and v.lower() in expand:
            return expand[v]
        return v

    check_tags(
        options,
        {"args", "kwargs"},
        msg=f"Invalid class instantiation options for {class_name}",
    )
    pos_args = options.get("args") or []
    if not isinstance(pos_args, (tuple, list)):
        raise ValueError(f"Expected list format for `args` option: {options}")

    kwargs = options.get("kwargs") or {}
    if not isinstance(kwargs, dict):
        raise ValueError(f"Expected dict format for `kwargs` option: {options}")

    try:
        the_class = dynamic_import_class(class_name)
        pos_args = tuple(map(_expand, pos_args))
        kwargs = {k: _expand(v) for k, v in kwargs.items()}

        inst = the_class(*pos_args, **kwargs)

        disp_args = [f"{o}" for o in pos_args] + [
            f"{k}={v!r}" for k, v in purge_passwords(kwargs).items()
        ]
        _logger.debug(f"Instantiate {class_name}({', '.join(disp_args)}) => {inst}")
    except Exception:
        _logger.error(f"Instantiate {class_name} failed")
        raise

    return inst


def dynamic_instantiate_class_from_opts(options, *, expand=None):
    """Import a class and instantiate with custom args.

    Construct from class path, without constructor args:
    ```py
    dynamic_instantiate_class_from_opts("bucketdav.store.memory_store.MemoryObjectStore")
    ```
    Construct with constructor args:
    ```py
    opts = {
        "class": "bucketdav.store.s3_store.S3ObjectStore",
        "kwargs": {
            "bucket": "my-bucket",
        }
    }
    dynamic_instantiate_class_from_opts(opts)
    ```
    """
    if type(options) is str:
        options = {"class": options}
    else:
        options = dict(options)

    check_tags(
        options,
        {"class", "args", "kwargs"},
        required="class",
        msg="Invalid class instantiation options",
    )
    class_name = options.pop("class")
    return dynamic_instantiate_class(class_name, options, expand=expand)


# ========================================================================
# WSGI
# ========================================================================
def get_content_length(environ):
    """Return a positive CONTENT_LENGTH in a safe way (return 0 otherwise)."""
    try:
        return max(0, int(environ.get("CONTENT_LENGTH", 0)))
    except ValueError:
        return 0


def read_request_body(environ):
    """Read the complete request body (exactly CONTENT_LENGTH bytes)."""
    cl = get_content_length(environ)
    environ["bucketdav.all_input_read"] = 1
    if cl == 0:
        return b""
    return environ["wsgi.input"].read(cl)


def read_and_discard_input(environ):
    """Read and discard wsgi.input, if this has not been done yet.

    Returning a response without reading from a request body might confuse
    the WebDAV client, e.g. when a '401 Not authorized' is sent BEFORE
    anything was read from the request stream.
    """
    if environ.get("bucketdav.all_input_read"):
        return
    cl = get_content_length(environ)
    if cl == 0:
        return
    environ["bucketdav.all_input_read"] = 1
    body = environ["wsgi.input"].read(cl)
    _logger.debug(f"Discarded {len(body)} bytes of unread request body.")


def fail(value, context_info=None, *, src_exception=None, add_headers=None):
    """Wrapper to raise (and log) DAVError."""
    if isinstance(value, Exception):
        e = as_DAVError(value)
    else:
        e = DAVError(
            value,
            context_info,
            src_exception=src_exception,
            add_headers=add_headers,
        )
    _logger.debug(f"Raising DAVError {e.get_user_info()}")
    raise e


# ========================================================================
# SubAppStartResponse
# ========================================================================
class SubAppStartResponse:
    def __init__(self):
        self.__status = ""
        self.__response_headers = []
        self.__exc_info = None

        super().__init__()

    @property
    def status(self):
        return self.__status

    @property
    def response_headers(self):
        return self.__response_headers

    @property
    def exc_info(self):
        return self.__exc_info

    def __call__(self, status, response_headers, exc_info=None):
        self.__status = status
        self.__response_headers = response_headers
        self.__exc_info = exc_info


# ========================================================================
# URLs
# ========================================================================


def get_uri_parent(uri: str) -> Optional[str]:
    """Return URI of parent collection with trailing '/', or None, if URI is top-level.

    This function simply strips the last segment. It does not test, if the
    target is a 'collection', or even exists.
    """
    if not uri or uri.strip() == "/":
        return None
    return uri.rstrip("/").rsplit("/", 1)[0] + "/"


def is_child_uri(parent_uri: str, child_uri: str) -> bool:
    """Return True, if child_uri is a child of parent_uri.

    This function accounts for the fact that '/a/b/c' and 'a/b/c/' are
    children of '/a/b' (and also of '/a/b/').
    Note that '/a/b/cd' is NOT a child of 'a/b/c'.
    """
    return (
        bool(parent_uri)
        and bool(child_uri)
        and child_uri.rstrip("/").startswith(parent_uri.rstrip("/") + "/")
    )


def is_equal_or_child_uri(parent_uri, child_uri):
    """Return True, if child_uri is a child of parent_uri or maps to the same resource.

    Similar to <util.is_child_uri>_ ,  but this method also returns True, if parent
    equals child. ('/a/b' is considered identical with '/a/b/').
    """
    return bool(
        parent_uri
        and child_uri
        and (child_uri.rstrip("/") + "/").startswith(parent_uri.rstrip("/") + "/")
    )


def update_headers_in_place(target, new_items) -> None:
    """Modify or append new headers to existing header list (in-place)."""
    new_dict = {k.lower(): (k, v) for k, v in new_items}
    for idx, (name, _value) in enumerate(target):
        new_val = new_dict.pop(name.lower(), None)
        if new_val is not None:
            target[idx] = new_val
    for value in new_dict.values():
        target.append(value)

    return  # in-place does not return a value


# ========================================================================
# XML
# ========================================================================


def parse_xml_body(environ, *, allow_empty=False):
    """Read request body XML into an etree.Element.

    Return None, if no request body was sent (and `allow_empty` is set).
    Raise HTTP_BAD_REQUEST, if something else went wrong.
    """
    clHeader = environ.get("CONTENT_LENGTH", "").strip()
    if clHeader == "":
        requestbody = b""
    else:
        try:
            content_length = int(clHeader)
            if content_length < 0:
                raise DAVError(HTTP_BAD_REQUEST, "Negative content-length.")
        except ValueError:
            raise DAVError(HTTP_BAD_REQUEST, "content-length is not numeric.") from None
        requestbody = read_request_body(environ)

    if not requestbody:
        if allow_empty:
            return None
        raise DAVError(HTTP_BAD_REQUEST, "Body must not be empty.")

    try:
        rootEL = etree.fromstring(requestbody)
    except Exception as e:
        raise DAVError(
            HTTP_BAD_REQUEST, "Invalid XML format.", src_exception=e
        ) from None

    return rootEL


def send_status_response(
    environ, start_response, e, *, add_headers=None, is_head=False
):
    """Start a WSGI response for a DAVError or status code."""
    status = get_http_status_string(e)
    headers = []
    if add_headers:
        headers.extend(add_headers)
    if isinstance(e, DAVError) and e.add_headers:
        headers.extend(e.add_headers)

    if e in (HTTP_NOT_MODIFIED, HTTP_NO_CONTENT):
        # See paste.lint: these code don't have content
        start_response(
            status, [("Content-Length", "0"), ("Date", get_rfc1123_time())] + headers
        )
        return [b""]

    if not isinstance(e, DAVError):
        e = DAVError(e)

    content_type, body = e.get_response_page()
    if is_head:
        body = b""

    assert is_bytes(body), body  # If not, Content-Length is wrong!
    start_response(
        status,
        [
            ("Content-Type", content_type),
            ("Date", get_rfc1123_time()),
            ("Content-Length", str(len(body))),
        ]
        + headers,
    )
    return [body]


def send_multi_status_response(environ, start_response, multistatus_elem):
    # If logging of the body is desired, then this is the place to do it
    # pretty:
    if environ.get("bucketdav.dump_response_body"):
        _logger.info(
            "{} XML response body:\n{}".format(
                environ["REQUEST_METHOD"],
                to_str(xml_to_bytes(multistatus_elem, pretty=True)),
            )
        )

    xml_data = xml_to_bytes(multistatus_elem, pretty=False)
    # If not, Content-Length is wrong!
    assert is_bytes(xml_data), xml_data

    headers = [
        ("Content-Type", "application/xml; charset=utf-8"),
        ("Date", get_rfc1123_time()),
        ("Content-Length", str(len(xml_data))),
    ]

    start_response("207 Multi-Status", headers)
    return [xml_data]


def add_property_response(multistatus_elem, href, prop_list):
    """Append <response> element to <multistatus> element.

    <prop> node depends on the value type:
      - str: add element with this content
      - None: add an empty element
      - etree.Element: add XML element as child
      - DAVError: add an empty element to an own <propstat> for this status code

    @param multistatus_elem: etree.Element
    @param href: URL of the resource, e.g. '/a/b.txt'.
    @param prop_list: list of 2-tuples (name, value)
    """
    propDict = {}

    for name, value in prop_list:
        status = "200 OK"
        if isinstance(value, DAVError):
            status = get_http_status_string(value)
            # Always generate *empty* elements for props with error status
            value = None
        propDict.setdefault(status, []).append((name, value))

    # <response>
    responseEL = make_sub_element(multistatus_elem, "{DAV:}response")
    etree.SubElement(responseEL, "{DAV:}href").text = href

    # One <propstat> per status code
    for status in propDict:
        propstatEL = etree.SubElement(responseEL, "{DAV:}propstat")
        # List of <prop>
        propEL = etree.SubElement(propstatEL, "{DAV:}prop")
        for name, value in propDict[status]:
            if value is None:
                etree.SubElement(propEL, name)
            elif is_etree_element(value):
                propEL.append(value)
            else:
                etree.SubElement(propEL, name).text = to_str(value)
        # <status>
        etree.SubElement(propstatEL, "{DAV:}status").text = f"HTTP/1.1 {status}"


def property_local_name(clark_name):
    """Return the lower-cased local part of a property name, e.g. '{DAV:}Foo' -> 'foo'."""
    return split_namespace(clark_name)[1].lower()


# ========================================================================
# ETags
# ========================================================================


def calc_base64(s):
    """Return base64 encoded binarystring."""
    s = to_bytes(s)
    s = base64.b64encode(s)  # return bytestring
    return to_str(s)


def checked_etag(etag, *, allow_none=False):
    """Validate etag string to ensure proper comparison.

    This function is used to assert that store etags do not contain quotes,
    so they can be passed as `ETag: "<etag_value>"` header.
    """
    if etag is None and allow_none:
        return None
    etag = etag.strip()
    if not etag or '"' in etag or etag.startswith("W/"):
        # This is an internal server error
        raise ValueError(f"Invalid ETag format: '{etag!r}'.")
    return etag


def parse_if_match_header(value):
    """Return a list of etag-values for a `If-Match` or `If-Not-Match` header.

    Remove enclosing quotes for easy comparison with store etags.
    We strip the weak-ETag prefix, because the store only knows strong ETags.
    """
    res = []
    for etag in value.split(","):
        etag = removeprefix(etag.strip(), "W/")
        if etag.startswith('"') and etag.endswith('"'):
            etag = etag[1:-1]
        if etag:
            res.append(etag)
    return res
