"""
Current BucketDAV version number.

See https://www.python.org/dev/peps/pep-0440
"""
from bucketdav._version import __version__  # noqa: F401

# Initialize a silent 'bucketdav' logger
# https://docs.python.org/3/howto/logging.html#configuring-logging-for-a-library
import logging

_base_logger = logging.getLogger(__name__)
_base_logger.addHandler(logging.NullHandler())
_base_logger.propagate = False
_base_logger.setLevel(logging.INFO)
