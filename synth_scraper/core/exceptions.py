"""Error taxonomy for the synthesis pipeline."""

from typing import Any, Dict, Optional


class ScraperError(Exception):
    """Base exception for synth-scraper."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ConfigurationFailure(ScraperError):
    """Missing credential, empty target list or invalid bounds. Fatal for the run."""

    pass


class CaptureFailure(ScraperError):
    """Page could not be retrieved (network error, timeout)."""

    def __init__(self, message: str, url: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context)
        self.url = url


class ProviderError(ScraperError):
    """Code-generation provider failed or returned nothing usable."""

    pass


class ProviderRateLimited(ProviderError):
    """Code-generation provider signalled a rate limit."""

    pass


class SynthesisFailure(ScraperError):
    """No valid program after all attempts."""

    def __init__(
        self,
        message: str,
        reason: str,
        attempts: int,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, context)
        self.reason = reason
        self.attempts = attempts


class ExecutionFailure(ScraperError):
    """Generated program did not produce a payload."""

    TIMEOUT = "timeout"
    RUNTIME = "runtime"

    def __init__(
        self,
        message: str,
        kind: str,
        stderr: str = "",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, context)
        self.kind = kind
        self.stderr = stderr


class PersistenceFailure(ScraperError):
    """Writing the result file or the store document failed."""

    pass
