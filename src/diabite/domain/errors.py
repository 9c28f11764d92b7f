"""Errors raised by remote nutrition sources."""


class SourceError(Exception):
    """A remote source failed transiently; the next tier should be tried."""


class RateLimitedError(SourceError):
    """A remote source rejected the request with a rate limit response."""


class MalformedResponseError(SourceError):
    """A remote source answered with a body that could not be interpreted."""
