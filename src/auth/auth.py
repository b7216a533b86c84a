"""
OAuth proxy header authentication.

The namespace picker runs behind an OAuth proxy that forwards the identity of
the signed-in user in request headers. This module validates those headers
and turns them into the identity used for namespace resolution.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import streamlit as st

from workspace_namespaces.models import ResolutionContext

logger = logging.getLogger(__name__)

USER_HEADER = 'X-Forwarded-User'
PREFERRED_USERNAME_HEADER = 'X-Forwarded-Preferred-Username'
EMAIL_HEADER = 'X-Forwarded-Email'
GROUPS_HEADER = 'X-Forwarded-Groups'
AUTHORIZATION_HEADER = 'Authorization'

MAX_USER_LENGTH = 253
_FORBIDDEN_USER_CHARS = ['<', '>', '"', "'", '&', ';', '\n', '\r', '\t', '\x00']


class AuthenticationError(Exception):
    """Raised when authentication fails due to missing or invalid credentials."""
    pass


class InvalidHeaderError(Exception):
    """Raised when OAuth proxy headers are malformed or invalid."""
    pass


@dataclass
class UserInfo:
    """Identity of the signed-in user as forwarded by the OAuth proxy."""

    user_id: str
    user_name: str
    email: Optional[str] = None
    groups: List[str] = field(default_factory=list)
    bearer_token: Optional[str] = None

    def is_authenticated(self) -> bool:
        return bool(self.user_id and self.user_name)

    def to_resolution_context(self, workspace_id: Optional[str] = None) -> ResolutionContext:
        """Identity used to evaluate namespace templates for this user."""
        return ResolutionContext(
            user_id=self.user_id,
            user_name=self.user_name,
            workspace_id=workspace_id
        )


def extract_bearer_token(authorization_header: str) -> Optional[str]:
    """
    Extract bearer token from Authorization header.

    Args:
        authorization_header: The Authorization header value

    Returns:
        Bearer token string or None if not found/invalid
    """
    if not authorization_header:
        return None

    # Authorization header format: "Bearer <token>"
    parts = authorization_header.strip().split()
    if len(parts) != 2 or parts[0].lower() != 'bearer':
        logger.warning("Invalid Authorization header format")
        return None

    return parts[1]


def parse_groups(groups_header: str) -> List[str]:
    """Parse the comma-separated X-Forwarded-Groups header."""
    if not groups_header:
        return []
    return [group.strip() for group in groups_header.split(',') if group.strip()]


def _validate_identity_value(header: str, value: str) -> None:
    if len(value) > MAX_USER_LENGTH:
        logger.error(f"Authentication attempt failed: {header} too long")
        raise InvalidHeaderError(f"{header} exceeds maximum length of {MAX_USER_LENGTH} characters")

    if any(char in value for char in _FORBIDDEN_USER_CHARS):
        logger.error(f"Authentication attempt failed: {header} contains invalid characters: {value!r}")
        raise InvalidHeaderError(f"{header} contains invalid characters")


def validate_headers(headers: Dict[str, Any]) -> None:
    """
    Validate OAuth proxy headers for presence and format.

    Args:
        headers: Dictionary of HTTP headers

    Raises:
        AuthenticationError: When required authentication headers are missing
        InvalidHeaderError: When headers are present but malformed
    """
    if not headers:
        logger.error("Authentication attempt failed: No headers provided")
        raise AuthenticationError("No headers provided for authentication")

    user = headers.get(USER_HEADER)
    if user is None:
        logger.error(f"Authentication attempt failed: Missing required header '{USER_HEADER}'")
        raise AuthenticationError(f"Missing required header: {USER_HEADER}")
    if not str(user).strip():
        logger.error(f"Authentication attempt failed: Empty value for header '{USER_HEADER}'")
        raise AuthenticationError(f"Empty value for required header: {USER_HEADER}")

    _validate_identity_value(USER_HEADER, str(user).strip())

    preferred = headers.get(PREFERRED_USERNAME_HEADER, '')
    if preferred and str(preferred).strip():
        _validate_identity_value(PREFERRED_USERNAME_HEADER, str(preferred).strip())

    auth_header = headers.get(AUTHORIZATION_HEADER, '')
    if auth_header:
        if not isinstance(auth_header, str):
            raise InvalidHeaderError("Authorization header must be a string")

        auth_parts = auth_header.strip().split()
        if len(auth_parts) != 2:
            logger.error("Authentication attempt failed: Invalid Authorization header format")
            raise InvalidHeaderError("Authorization header must be in format 'Bearer <token>'")
        if auth_parts[0].lower() != 'bearer':
            logger.error("Authentication attempt failed: Authorization header must use Bearer scheme")
            raise InvalidHeaderError("Authorization header must use Bearer authentication scheme")

    groups_header = headers.get(GROUPS_HEADER, '')
    if groups_header and not isinstance(groups_header, str):
        logger.error(f"Authentication attempt failed: {GROUPS_HEADER} header must be a string")
        raise InvalidHeaderError(f"{GROUPS_HEADER} header must be a string")

    logger.debug("Header validation passed successfully")


def validate_and_extract_user(headers: Optional[Dict[str, Any]] = None) -> UserInfo:
    """
    Validate headers and extract the signed-in user.

    The user id comes from X-Forwarded-User and the user name from
    X-Forwarded-Preferred-Username, falling back to the user id.

    Args:
        headers: Optional dictionary of headers for testing purposes

    Returns:
        UserInfo object with validated user data

    Raises:
        AuthenticationError: When authentication fails due to missing/invalid credentials
        InvalidHeaderError: When headers are malformed
    """
    if headers is None:
        headers = _get_streamlit_headers()

    try:
        validate_headers(headers)
    except (AuthenticationError, InvalidHeaderError) as e:
        logger.error(f"Authentication failed: {e}")
        raise

    user_id = str(headers.get(USER_HEADER)).strip()
    user_name = str(headers.get(PREFERRED_USERNAME_HEADER, '') or '').strip()
    if not user_name:
        user_name = user_id
        logger.info("Using user id as user name fallback")

    email = str(headers.get(EMAIL_HEADER, '') or '').strip() or None
    bearer_token = extract_bearer_token(headers.get(AUTHORIZATION_HEADER, ''))

    user_info = UserInfo(
        user_id=user_id,
        user_name=user_name,
        email=email,
        groups=parse_groups(headers.get(GROUPS_HEADER, '')),
        bearer_token=bearer_token
    )

    logger.info(f"Authentication successful for user: {user_name}")
    logger.debug(f"Bearer token present: {bool(bearer_token)}")
    return user_info


def get_user_from_headers(headers: Optional[Dict[str, Any]] = None) -> Optional[UserInfo]:
    """
    Extract user information from OAuth proxy headers.

    Returns:
        UserInfo object or None if authentication fails
    """
    try:
        return validate_and_extract_user(headers)
    except (AuthenticationError, InvalidHeaderError) as e:
        logger.warning(f"Authentication failed (returning None): {e}")
        return None


def _get_streamlit_headers() -> Dict[str, str]:
    """
    Get headers from the Streamlit request context.

    Falls back to headers stored in session state and then to the DEV_*
    environment variables for local development.
    """
    headers = st.context.headers
    if headers:
        real_headers = headers.to_dict()
        if real_headers.get(USER_HEADER):
            logger.debug(f"Retrieved {len(real_headers)} headers from Streamlit context")
            return real_headers

    # For development, check if headers are stored in session state
    if 'auth_headers' in st.session_state:
        logger.debug("Using headers from session state (development)")
        return st.session_state['auth_headers']

    if os.getenv('DEV_MODE', '').lower() == 'true':
        dev_headers = {
            USER_HEADER: os.getenv('DEV_USER', ''),
            PREFERRED_USERNAME_HEADER: os.getenv('DEV_PREFERRED_USERNAME', ''),
            EMAIL_HEADER: os.getenv('DEV_EMAIL', ''),
            GROUPS_HEADER: os.getenv('DEV_GROUPS', ''),
            AUTHORIZATION_HEADER: f"Bearer {os.getenv('DEV_TOKEN')}" if os.getenv('DEV_TOKEN') else ""
        }
        dev_headers = {k: v for k, v in dev_headers.items() if v}

        if dev_headers.get(USER_HEADER):
            logger.debug(f"Using development headers for user: {dev_headers[USER_HEADER]}")
            return dev_headers

    logger.debug("No headers found in any context")
    return {}


def set_dev_headers(user_id: str, user_name: str = None, groups: List[str] = None,
                    token: str = None) -> None:
    """
    Set development headers for testing purposes.

    Args:
        user_id: User identifier
        user_name: User name used in namespace templates
        groups: List of user groups
        token: Bearer token
    """
    headers = {
        USER_HEADER: user_id,
        PREFERRED_USERNAME_HEADER: user_name or user_id,
        GROUPS_HEADER: ','.join(groups or []),
    }
    if token:
        headers[AUTHORIZATION_HEADER] = f"Bearer {token}"

    st.session_state['auth_headers'] = headers
    logger.info(f"Set development headers for user: {user_id}")


def clear_dev_headers() -> None:
    """Clear development headers from session state."""
    if 'auth_headers' in st.session_state:
        del st.session_state['auth_headers']
        logger.info("Cleared development headers")
