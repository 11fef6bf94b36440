from .learningsuite_client import LearningSuiteClient
from .exceptions import (
    LearningSuiteError, AuthenticationError, NetworkError, TimeoutError, APIError, ParseError
)

__all__ = [
    'LearningSuiteClient', 'LearningSuiteError', 'AuthenticationError',
    'NetworkError', 'TimeoutError', 'APIError', 'ParseError',
]
