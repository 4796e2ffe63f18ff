"""Exception hierarchy for the SketricGen SDK.

Every error raised by the SDK derives from :class:`WorkflowError`::

    WorkflowError
    ├── ConfigurationError   - missing or invalid client configuration
    ├── ValidationError      - bad caller input, raised before any request
    ├── APIError             - the API answered with status >= 400
    │   └── AuthenticationError (HTTP 401)
    ├── NetworkError         - transport failure other than a timeout
    ├── RequestTimeoutError  - the configured timeout elapsed
    ├── UploadError          - an upload step reported failure
    ├── FileSizeError        - file is empty or larger than allowed
    └── ContentTypeError     - file type is not on the allow-list

Example::

    try:
        await client.run_workflow("agent-123", "Hello")
    except AuthenticationError:
        print("check SKETRICGEN_API_KEY")
    except APIError as e:
        print(f"API error {e.status_code}: {e.message} (request {e.request_id})")
"""

from __future__ import annotations

from typing import Any


class WorkflowError(Exception):
    """Base exception for all SDK errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigurationError(WorkflowError):
    """Raised when the client cannot be configured (e.g. no API key)."""


class ValidationError(WorkflowError):
    """Raised for malformed caller input. No request has been sent."""


class APIError(WorkflowError):
    """Raised when the API returns a status code of 400 or above."""

    def __init__(
        self,
        message: str,
        status_code: int,
        response_body: Any = None,
        request_id: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.response_body = response_body
        self.request_id = request_id
        super().__init__(message)

    def __str__(self) -> str:
        text = f"API error {self.status_code}: {self.message}"
        if self.request_id:
            text += f" (request_id={self.request_id})"
        return text


class AuthenticationError(APIError):
    """Raised when the API rejects the credentials (HTTP 401)."""

    def __init__(
        self,
        message: str,
        status_code: int = 401,
        response_body: Any = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(message, status_code, response_body, request_id)


class NetworkError(WorkflowError):
    """Raised when the request fails at the transport level."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        self.cause = cause
        super().__init__(message)


class RequestTimeoutError(WorkflowError):
    """Raised when a request does not complete within its timeout."""

    def __init__(self, message: str = "Request timed out", timeout: float | None = None) -> None:
        self.timeout = timeout
        super().__init__(message)


class UploadError(WorkflowError):
    """Raised when the init, storage or complete step of an upload fails."""

    def __init__(
        self,
        message: str,
        response: Any = None,
        status_code: int | None = None,
    ) -> None:
        self.response = response
        self.status_code = status_code
        super().__init__(message)


class FileSizeError(WorkflowError):
    """Raised for empty files and files above the size limit."""

    def __init__(self, message: str, file_size: int, max_size: int) -> None:
        self.file_size = file_size
        self.max_size = max_size
        super().__init__(message)


class ContentTypeError(WorkflowError):
    """Raised when a file's content type is not allowed."""

    def __init__(self, message: str, content_type: str, allowed_types: list[str]) -> None:
        self.content_type = content_type
        self.allowed_types = allowed_types
        super().__init__(message)
