"""Error taxonomy for source processing.

Every error here is caught at the per-source boundary and turned into a
recorded `failed` outcome; none of them should abort a multi-source batch.
"""

from __future__ import annotations


class SoupError(Exception):
    """Base class for ingestion errors"""
    pass


class NetworkError(SoupError):
    """Timeout, connection failure or non-2xx response"""
    pass


class ParseError(SoupError):
    """Malformed profile or feed document"""
    pass


class ValidationError(SoupError):
    """Profile document is missing required fields"""
    pass


class UnsupportedFormatError(SoupError):
    """Feed document is neither RSS nor Atom"""
    pass
