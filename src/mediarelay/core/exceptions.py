"""Custom exceptions for the Media Relay service and client."""


class MediaRelayException(Exception):
    """Base exception for Media Relay."""
    pass


class AuthError(MediaRelayException):
    """Exception raised when the refresh credential exchange is rejected."""
    pass


class ConfigError(MediaRelayException):
    """Exception raised when required configuration is missing or a placeholder."""
    pass


class AccessDenied(MediaRelayException):
    """Exception raised when the shared site password does not match."""
    pass


class UploadError(MediaRelayException):
    """Exception raised when a single-shot PUT, session create or chunk PUT fails."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RelayError(MediaRelayException):
    """Exception raised when a provider-to-provider transfer fails."""
    pass


class ListError(MediaRelayException):
    """Exception raised when a gallery page fetch fails."""
    pass


class PickerTimeoutError(MediaRelayException):
    """Exception raised when a picker session ends without a selection."""

    def __init__(self, message: str, outcome: str = "timed_out"):
        super().__init__(message)
        self.outcome = outcome


class RelayRequestError(MediaRelayException):
    """Exception raised by the client when the relay answers with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class UpstreamResponseError(MediaRelayException):
    """Exception raised when an upstream API answers with a body that is not JSON."""

    def __init__(self, message: str, details: str = ""):
        super().__init__(message)
        self.details = details


class FolderResolutionError(MediaRelayException):
    """Exception raised when no destination folder can be found or created."""
    pass
