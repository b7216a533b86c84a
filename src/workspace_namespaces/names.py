"""
Namespace name helpers.

Turns arbitrary user-derived strings into valid DNS-1123 labels and
generates the random suffixes used to disambiguate evaluated names.
"""

import random
import re
import string

METADATA_NAME_MAX_LENGTH = 63

# Evaluated names longer than this are cut before a suffix is appended
SUFFIXED_NAME_PREFIX_LENGTH = 55
SUFFIX_LENGTH = 6

PROTECTED_PREFIX = "kube-"
PROTECTED_PREFIX_ESCAPE = "che-"

_DNS_LABEL_PATTERN = re.compile(r'^[a-z0-9]([-a-z0-9]*[a-z0-9])?$')
_INVALID_CHARS_PATTERN = re.compile(r'[^a-z0-9-]')
_DASH_RUN_PATTERN = re.compile(r'-+')
_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def normalize_namespace_name(raw: str) -> str:
    """
    Normalize an arbitrary string into a namespace label.

    Never fails; the result may be empty when the input holds no usable
    characters at all.

    Args:
        raw: Input string, typically a template with placeholders substituted

    Returns:
        str: Lowercase label of at most 63 characters without leading,
        trailing or repeated dashes
    """
    if not raw:
        return ""

    name = _INVALID_CHARS_PATTERN.sub('-', raw.lower())
    name = _DASH_RUN_PATTERN.sub('-', name).strip('-')

    if len(name) > METADATA_NAME_MAX_LENGTH:
        name = name[:METADATA_NAME_MAX_LENGTH].rstrip('-')

    return name


def is_valid_namespace_name(name: str) -> bool:
    """Check that a name is a DNS-1123 label without repeated dashes."""
    if not name or len(name) > METADATA_NAME_MAX_LENGTH:
        return False
    if '--' in name:
        return False
    return bool(_DNS_LABEL_PATTERN.match(name))


def has_protected_prefix(name: str) -> bool:
    """Names starting with the cluster-reserved prefix must not be used as-is."""
    return bool(name) and name.startswith(PROTECTED_PREFIX)


def escape_protected_prefix(name: str) -> str:
    if has_protected_prefix(name):
        name = normalize_namespace_name(PROTECTED_PREFIX_ESCAPE + name)
    return name


def generate_suffix(length: int = SUFFIX_LENGTH) -> str:
    """Random lowercase alphanumeric suffix, no leading dash."""
    return ''.join(random.choice(_SUFFIX_ALPHABET) for _ in range(length))


def with_random_suffix(name: str) -> str:
    """
    Append a dash and a random suffix, keeping the result within the length limit.

    Args:
        name: Already normalized namespace name

    Returns:
        str: Name of the form ``<first 55 chars>-<6 random chars>``
    """
    prefix = name[:SUFFIXED_NAME_PREFIX_LENGTH].rstrip('-')
    return f"{prefix}-{generate_suffix()}"
