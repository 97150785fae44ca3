"""
Current BucketDAV version number, importable without side effects
(used by setup.py).
"""
__version__ = "0.4.0"
