"""Shared error codes for pingwatch."""

from .errors import ErrorCode, PingwatchError, PingwatchInputError, ERROR_METADATA

__all__ = [
    'ErrorCode',
    'PingwatchError',
    'PingwatchInputError',
    'ERROR_METADATA',
]
