"""Exception hierarchy for the exporter."""

from typing import Optional


class ExporterError(Exception):
    """Base class for all exporter errors."""


class ConfigLoadError(ExporterError):
    """Configuration file missing, unparsable or invalid."""


class BrokerError(ExporterError):
    """A single poll against a broker failed."""


class TransportError(BrokerError):
    """Connection, timeout or TLS failure talking to the management API."""


class HTTPError(BrokerError):
    """Management API answered with a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthError(HTTPError):
    """Management API rejected the credentials (401/403)."""


class DecodeError(BrokerError):
    """Response body is not JSON or does not have the expected shape."""


class ParseIntervalError(ExporterError, ValueError):
    """Interval string is not a valid duration."""
