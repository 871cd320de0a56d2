"""Custom exception hierarchy for release-publisher.

This module defines a structured exception hierarchy that lets callers tell
apart bad input, missing remote objects, optimistic-concurrency conflicts and
plain transport failures, while every pipeline step keeps the original cause
chained for diagnostics.

Exception Hierarchy:
    ReleasePublisherError (base)
    ├── ConfigurationError
    │   └── ValidationError
    ├── ExternalServiceError
    │   ├── TransportError
    │   └── RequestFailedError
    │       ├── NotFoundError
    │       └── ConflictError
    └── ReleaseStepError

Example Usage:
    >>> from release_publisher.exceptions import ReleaseStepError
    >>> try:
    ...     await provider.create_ref(fork, branch, sha)
    ... except RequestFailedError as e:
    ...     raise ReleaseStepError("failed to create release branch", step="create_branch") from e
"""


class ReleasePublisherError(Exception):
    """Base exception for all release-publisher errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        """Initialize exception.

        Args:
            message: Error message
        """
        self.message = message
        super().__init__(message)


class ConfigurationError(ReleasePublisherError):
    """Configuration-related errors.

    Examples:
        - Configuration file not found
        - Invalid YAML syntax
        - Invalid configuration values
    """

    pass


class ValidationError(ConfigurationError):
    """A required input is missing or empty.

    Always raised before any request reaches the remote API.
    """

    pass


class ExternalServiceError(ReleasePublisherError):
    """Communication with the hosting API failed."""

    pass


class TransportError(ExternalServiceError):
    """The request never produced an HTTP response (connect, read, timeout)."""

    pass


class RequestFailedError(ExternalServiceError):
    """The API answered with a non-2xx status.

    The response body is kept verbatim; it is frequently JSON but callers
    must not rely on that.

    Attributes:
        status_code: HTTP status code
        response_text: Raw response body text
    """

    def __init__(self, status_code: int, response_text: str, message: str | None = None) -> None:
        """Initialize exception.

        Args:
            status_code: HTTP status code
            response_text: Raw response body text
            message: Optional override for the default message
        """
        self.status_code = status_code
        self.response_text = response_text
        super().__init__(message or f"Request failed with {status_code}: {response_text}")


class NotFoundError(RequestFailedError):
    """The ref, file or repository does not exist (HTTP 404)."""

    pass


class ConflictError(RequestFailedError):
    """A write was rejected because remote state moved.

    Raised for stale content identifiers on file writes, refs that already
    exist, and non-fast-forward ref updates without force.
    """

    pass


class ReleaseStepError(ReleasePublisherError):
    """A named step of the release pipeline failed.

    The underlying error is always chained as ``__cause__``.

    Attributes:
        step: Short identifier of the failed step
    """

    def __init__(self, message: str, step: str | None = None) -> None:
        self.step = step
        super().__init__(message)


def format_error_chain(error: BaseException) -> str:
    """Render an error and its causes as ``outer: inner: root``.

    Args:
        error: The outermost exception

    Returns:
        Colon-separated messages, outermost first
    """
    parts: list[str] = []
    current: BaseException | None = error
    while current is not None:
        parts.append(str(current) or type(current).__name__)
        current = current.__cause__
    return ": ".join(parts)
