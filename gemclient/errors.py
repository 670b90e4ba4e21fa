"""gemclient exceptions.

Custom exception hierarchy for the error conditions a session, the HTTP
client and the file manager can report.
"""

from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from .types import ApiError


class GemError(Exception):
    """Base exception for gemclient errors."""

    pass


class GemConnectionError(GemError):
    """Raised when the HTTP request could not be sent."""

    def __init__(self, message: str = "Failed to connect to the Gemini API"):
        super().__init__(message)


class ResponseError(GemError):
    """Raised when the response body could not be read.

    Attributes:
        status_code: HTTP status of the response whose body failed.
    """

    def __init__(
        self,
        message: str = "Failed to read response body",
        status_code: Optional[int] = None,
    ):
        self.status_code = status_code
        if status_code is not None:
            message = f"{message} (status code: {status_code})"
        super().__init__(message)


class ParsingError(GemError):
    """Raised when a response body is not in the expected shape."""

    def __init__(self, message: str = "Failed to parse API response"):
        super().__init__(message)


class GeminiAPIError(GemError):
    """Raised when the API answers with an error object.

    Attributes:
        error: The parsed error returned by the service.
        status_code: HTTP status of the response.
    """

    def __init__(self, error: "ApiError", status_code: Optional[int] = None):
        self.error = error
        self.status_code = status_code
        super().__init__(str(error))


class EmptyApiResponseError(GemError):
    """Raised when the API returns no usable candidate."""

    def __init__(self, message: str = "Empty API response"):
        super().__init__(message)


class FeedbackError(GemError):
    """Raised when the prompt was blocked by the service.

    Attributes:
        reason: Display form of the block reason.
    """

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Prompt blocked: {reason}")


class AllCandidatesBlockedError(GemError):
    """Raised when every candidate came back without content."""

    def __init__(self, message: str = "All candidates were blocked"):
        super().__init__(message)


class StreamError(GemError):
    """Raised when a streamed response fails or cannot be decoded."""

    def __init__(self, message: str = "Streaming response parsing failed"):
        super().__init__(message)


class FileError(GemError):
    """Raised for failures in the file upload protocol or cache."""

    def __init__(self, message: str = "File operation failed"):
        super().__init__(message)


class MissingApiKeyError(GemError):
    """Raised when no API key is configured."""

    def __init__(
        self,
        message: str = "Gemini API key not found",
        checked_locations: Optional[List[str]] = None,
    ):
        self.checked_locations = checked_locations or []
        if checked_locations:
            locations = ", ".join(checked_locations)
            message = f"{message}. Checked: {locations}"
        super().__init__(message)
