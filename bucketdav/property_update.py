# (c) 2009-2024 Martin Wendt and contributors; see WsgiDAV https://github.com/mar10/wsgidav
# Licensed under the MIT license:
# http://www.opensource.org/licenses/mit-license.php
"""
Streaming parser for PROPPATCH request bodies.

Example request body::

    <?xml version="1.0" encoding="utf-8" ?>
    <D:propertyupdate xmlns:D="DAV:" xmlns:Z="http://ns.example.com/z/">
      <D:set>
        <D:prop><Z:Author>Jim Whitehead</Z:Author></D:prop>
      </D:set>
      <D:remove>
        <D:prop><Z:Copyright-Owner/></D:prop>
      </D:remove>
    </D:propertyupdate>

Every element inside ``<set>`` / ``<remove>`` except ``<prop>`` is a
property. Property names are stored by their lower-cased local name
(namespaces are dropped), values are the trimmed element text.
"""

import io
from dataclasses import dataclass, field
from typing import List, Tuple

from bucketdav import util
from bucketdav.dav_error import HTTP_BAD_REQUEST, DAVError
from bucketdav.xml_tools import iterparse

__docformat__ = "reStructuredText"

_logger = util.get_module_logger(__name__)

# Parser states
IDLE = "idle"
IN_SET = "in_set"
IN_REMOVE = "in_remove"
IN_PROP = "in_prop"


@dataclass
class PropertyUpdate:
    """Parsed PROPPATCH instructions, in document order."""

    #: (name, value) pairs to set
    set_props: List[Tuple[str, str]] = field(default_factory=list)
    #: names to remove
    remove_props: List[str] = field(default_factory=list)

    @property
    def names(self):
        """All touched property names, in document order (no duplicates)."""
        res = []
        for name in [n for n, _v in self.set_props] + self.remove_props:
            if name not in res:
                res.append(name)
        return res

    def apply(self, custom_metadata):
        """Return a new dict with sets applied first, then removes."""
        res = dict(custom_metadata)
        for name, value in self.set_props:
            res[name] = value
        for name in self.remove_props:
            res.pop(name, None)
        return res


def parse_property_update(body):
    """Parse a `<propertyupdate>` document (bytes) into a `PropertyUpdate`.

    Raises HTTP_BAD_REQUEST for malformed XML or a wrong root element.
    """
    result = PropertyUpdate()
    state = IDLE
    outer_state = IDLE
    prop_name = None
    prop_depth = 0
    depth = 0
    root_seen = False

    if not body:
        raise DAVError(HTTP_BAD_REQUEST, "Body must not be empty.")

    try:
        for event, el in iterparse(io.BytesIO(body), events=("start", "end")):
            local_name = util.property_local_name(el.tag)
            if event == "start":
                depth += 1
                if not root_seen:
                    root_seen = True
                    if local_name != "propertyupdate":
                        raise DAVError(
                            HTTP_BAD_REQUEST,
                            f"Expected <propertyupdate>, got <{local_name}>",
                        )
                    continue
                if state == IDLE:
                    if local_name == "set":
                        state = IN_SET
                    elif local_name == "remove":
                        state = IN_REMOVE
                elif state in (IN_SET, IN_REMOVE):
                    if local_name != "prop":
                        outer_state = state
                        state = IN_PROP
                        prop_name = local_name
                        prop_depth = depth
                continue

            # "end" event
            if state == IN_PROP:
                if depth == prop_depth:
                    value = "".join(el.itertext()).strip()
                    if outer_state == IN_SET:
                        result.set_props.append((prop_name, value))
                    else:
                        result.remove_props.append(prop_name)
                    state = outer_state
                    prop_name = None
            elif state in (IN_SET, IN_REMOVE) and local_name in ("set", "remove"):
                state = IDLE
            depth -= 1
    except DAVError:
        raise
    except Exception as e:
        raise DAVError(
            HTTP_BAD_REQUEST, "Invalid XML format.", src_exception=e
        ) from None

    _logger.debug(
        f"PROPPATCH: set {[n for n, _v in result.set_props]}, "
        f"remove {result.remove_props}"
    )
    return result
