"""LearningSuite API client exceptions."""


class LearningSuiteError(Exception):
    """Base exception for all LearningSuite API errors."""

    def __init__(self, message, code=None, details=None, is_retryable=False):
        super().__init__(message)
        self.code = code
        self.details = details or {}
        self.is_retryable = is_retryable


class AuthenticationError(LearningSuiteError):
    """Missing or rejected API key."""

    def __init__(self, message='Authentication failed', **kwargs):
        super().__init__(message, is_retryable=False, **kwargs)


class NetworkError(LearningSuiteError):
    """Connection refused, timeout, or network issue."""

    def __init__(self, message='Network error', **kwargs):
        super().__init__(message, is_retryable=True, **kwargs)


class TimeoutError(NetworkError):
    """Request timed out."""

    def __init__(self, message='Request timed out', **kwargs):
        super().__init__(message, **kwargs)


class APIError(LearningSuiteError):
    """Non-success response from the LearningSuite API."""

    def __init__(self, message='API error', status_code=None, **kwargs):
        is_retryable = bool(status_code and status_code >= 500)
        super().__init__(message, is_retryable=is_retryable, **kwargs)
        self.status_code = status_code


class ParseError(LearningSuiteError):
    """Failed to parse API response."""

    def __init__(self, message='Failed to parse response', **kwargs):
        super().__init__(message, is_retryable=False, **kwargs)
