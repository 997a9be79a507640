"""Failures the refresh pipeline can surface to its callers."""


class PipelineError(Exception):
    """Base class for failures that abort a refresh."""


class EndpointNotFound(PipelineError):
    """Discovery could not locate the fingerprinted ranking URL."""


class BrowserLaunchError(EndpointNotFound):
    """Chromium could not be started. Handled exactly like EndpointNotFound."""


class MalformedResponse(PipelineError):
    """The ranking payload does not have the expected shape."""


class NetworkError(PipelineError):
    """A fetch failed, timed out, or returned an HTTP error status."""


class CacheUnavailable(PipelineError):
    """No usable episode snapshot exists on disk."""


class Transient(Exception):
    """Upstream answered with a retryable status."""
