from __future__ import annotations


class DiscoveryError(Exception):
    """Base class for errors raised by the discovery pipeline."""


class InvalidQueryParameter(DiscoveryError, ValueError):
    """A query argument (radius, origin, limit, ttl) is out of range."""
