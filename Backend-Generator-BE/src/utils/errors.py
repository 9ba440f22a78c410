from typing import Optional


class AppError(Exception):
    """Base class for errors the HTTP layer knows how to translate."""

    status_code = 500
    public_message = "Internal server error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.public_message)
        self.message = message or self.public_message


class InvalidInput(AppError):
    status_code = 400
    public_message = "Invalid input"

    def __init__(self, message: str = ""):
        super().__init__(message)
        # client errors are safe to echo back
        self.public_message = self.message


class NotFound(AppError):
    status_code = 404
    public_message = "Not found"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.public_message = self.message


class ProviderError(AppError):
    """The LLM provider answered with a non-success status or was unreachable."""

    public_message = "LLM provider request failed"

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(
            f"Provider error {status}: {message}" if status else f"Provider error: {message}"
        )
        self.status = status
        self.provider_message = message


class MalformedResponse(AppError):
    """No JSON project description could be recovered from the model output."""

    public_message = "Invalid response format from LLM"

    def __init__(self, message: str, fragment: str = ""):
        super().__init__(message)
        self.fragment = fragment


class PathTraversal(AppError):
    public_message = "Refused to write outside the project directory"

    def __init__(self, path: str):
        super().__init__(f"Path escapes project root: {path!r}")
        self.path = path
