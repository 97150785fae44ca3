# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
Small wrapper around the (safe) etree package.

Parsing always goes through defusedxml, so entity expansion and external
references in request bodies are rejected.
"""

import logging

# defusedxml doesn't define these non-parsing related objects
from xml.etree.ElementTree import Element, SubElement, register_namespace, tostring

from defusedxml import ElementTree as etree

__docformat__ = "reStructuredText"

_logger = logging.getLogger("bucketdav")

etree.Element = _ElementType = Element
etree.SubElement = SubElement
etree.tostring = tostring

# Serialize the DAV: namespace as 'D:' instead of 'ns0:'
register_namespace("D", "DAV:")


# ========================================================================
# XML
# ========================================================================


def is_etree_element(obj):
    return isinstance(obj, _ElementType)


def string_to_xml(text):
    """Convert XML string into etree.Element."""
    try:
        return etree.XML(text)
    except Exception:
        _logger.error(f"Error parsing XML string: {text!r}")
        raise


def iterparse(source, events=("start", "end")):
    """Pull-parse a file-like object (safe defaults)."""
    return etree.iterparse(source, events=events)


def xml_to_bytes(element, *, pretty=False):
    """Wrapper for etree.tostring, that prepends an encoding header."""
    if pretty:
        element = _indented_copy(element)
    xml = etree.tostring(element, encoding="UTF-8")
    if not xml.startswith(b"<?xml "):
        xml = b'<?xml version="1.0" encoding="utf-8" ?>\n' + xml

    assert xml.startswith(b"<?xml ")
    return xml


def _indented_copy(element):
    from copy import deepcopy
    from xml.etree.ElementTree import indent

    element = deepcopy(element)
    indent(element)
    return element


def make_multistatus_el():
    return etree.Element("{DAV:}multistatus")


def make_sub_element(parent, tag):
    return etree.SubElement(parent, tag)


def split_namespace(clark_name):
    """Return (namespace, localname) tuple for a property name in Clark Notation.

    Namespace defaults to ''.
    Example:
    '{DAV:}foo'  -> ('DAV:', 'foo')
    'bar'  -> ('', 'bar')
    """
    if clark_name.startswith("{") and "}" in clark_name:
        ns, localname = clark_name.split("}", 1)
        return (ns[1:], localname)
    return ("", clark_name)
