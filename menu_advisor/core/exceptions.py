"""Custom exception hierarchy."""


class AppError(Exception):
    """Base exception for application errors."""
    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.original_error = original_error


class APIClientError(AppError):
    """Raised when an external API call fails."""
    pass


class APITimeoutError(APIClientError):
    """Raised when an external API call times out."""
    pass


class CompletionError(APIClientError):
    """Raised when the completion service returns no usable text.

    Covers content-filtered (blocked) responses and malformed payloads.
    """

    def __init__(
        self,
        message: str,
        finish_reason: str = None,
        original_error: Exception = None,
    ):
        super().__init__(message, original_error=original_error)
        self.finish_reason = finish_reason


class ExtractionError(AppError):
    """Raised when a stored document cannot be read or recognized."""
    pass


class ParseError(AppError):
    """Raised when a completion does not match the expected JSON/Markdown contract.

    The offending completion text is kept so it can be shown to a human.
    """

    def __init__(self, message: str, raw_text: str = "", original_error: Exception = None):
        super().__init__(message, original_error=original_error)
        self.raw_text = raw_text


class ValidationError(AppError):
    """Raised when human-supplied input fails a format check."""
    pass


class PersistenceError(AppError):
    """Raised when a database operation fails."""
    pass


class ConfigurationError(AppError):
    """Raised when configuration is invalid or missing."""
    pass


class UnsupportedFileTypeError(AppError):
    """Raised when an uploaded file is not a supported menu format."""
    pass


class ConversationNotFoundError(AppError):
    """Raised when no conversation is bound to a chat thread."""
    pass
