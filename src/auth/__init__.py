"""
Authentication module for the workspace namespace picker.

This module handles OAuth proxy header authentication.
"""

from .auth import (
    UserInfo,
    AuthenticationError,
    InvalidHeaderError,
    get_user_from_headers,
    validate_and_extract_user,
    validate_headers,
    extract_bearer_token,
    parse_groups,
    set_dev_headers,
    clear_dev_headers
)

__all__ = [
    'UserInfo',
    'AuthenticationError',
    'InvalidHeaderError',
    'get_user_from_headers',
    'validate_and_extract_user',
    'validate_headers',
    'extract_bearer_token',
    'parse_groups',
    'set_dev_headers',
    'clear_dev_headers'
]
