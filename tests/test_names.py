"""
Unit tests for namespace name normalization.
"""

import pytest

from workspace_namespaces.names import (
    METADATA_NAME_MAX_LENGTH,
    escape_protected_prefix,
    generate_suffix,
    has_protected_prefix,
    is_valid_namespace_name,
    normalize_namespace_name,
    with_random_suffix,
)


class TestNormalizeNamespaceName:
    """Test normalize_namespace_name."""

    @pytest.mark.parametrize("raw,expected", [
        ("jondoe-che", "jondoe-che"),
        ("JonDoe", "jondoe"),
        ("gmail@foo.bar", "gmail-foo-bar"),
        ("_fef_123-ah_*zz**", "fef-123-ah-zz"),
        ("a-b#-hello", "a-b-hello"),
        ("a---------b", "a-b"),
        ("--ab--", "ab"),
        ("kube:admin", "kube-admin"),
    ])
    def test_normalization(self, raw, expected):
        assert normalize_namespace_name(raw) == expected

    def test_empty_and_unusable_input(self):
        assert normalize_namespace_name("") == ""
        assert normalize_namespace_name(None) == ""
        assert normalize_namespace_name("@#$%") == ""

    def test_long_input_truncated(self):
        raw = "looooooooooooooooooooooooooooooooooooooooooooooooooooooooooooooooooooooooong-name"
        normalized = normalize_namespace_name(raw)

        assert len(normalized) == METADATA_NAME_MAX_LENGTH
        assert raw.startswith(normalized)

    def test_truncation_strips_trailing_dash(self):
        raw = "a" * 62 + "-bcd"
        normalized = normalize_namespace_name(raw)

        assert normalized == "a" * 62
        assert not normalized.endswith('-')

    @pytest.mark.parametrize("raw", [
        "--ab--", "User.Name@Example.COM", "a" * 100, "x-" * 50, "ünïcödé-user", "  spaced  out  ",
    ])
    def test_idempotent_and_bounded(self, raw):
        once = normalize_namespace_name(raw)

        assert normalize_namespace_name(once) == once
        assert len(once) <= METADATA_NAME_MAX_LENGTH


class TestIsValidNamespaceName:
    """Test DNS label validation."""

    def test_valid_names(self):
        assert is_valid_namespace_name("jondoe-che")
        assert is_valid_namespace_name("a")
        assert is_valid_namespace_name("a" * 63)

    def test_invalid_names(self):
        assert not is_valid_namespace_name("")
        assert not is_valid_namespace_name(None)
        assert not is_valid_namespace_name("a" * 64)
        assert not is_valid_namespace_name("-ab")
        assert not is_valid_namespace_name("ab-")
        assert not is_valid_namespace_name("a--b")
        assert not is_valid_namespace_name("Jondoe")
        assert not is_valid_namespace_name("jon_doe")


class TestProtectedPrefix:
    """Test handling of the reserved kube- prefix."""

    def test_has_protected_prefix(self):
        assert has_protected_prefix("kube-system")
        assert not has_protected_prefix("kubeflow")
        assert not has_protected_prefix("che-kube-admin")
        assert not has_protected_prefix("")

    def test_escape_protected_prefix(self):
        assert escape_protected_prefix("kube-admin") == "che-kube-admin"
        assert escape_protected_prefix("jondoe") == "jondoe"


class TestSuffix:
    """Test random suffix generation."""

    def test_generate_suffix(self):
        suffix = generate_suffix()

        assert len(suffix) == 6
        assert suffix.isalnum()
        assert suffix == suffix.lower()

    def test_with_random_suffix_short_name(self):
        name = with_random_suffix("che-kube-admin")

        assert name.startswith("che-kube-admin-")
        assert len(name) == len("che-kube-admin-") + 6
        assert is_valid_namespace_name(name)

    def test_with_random_suffix_long_name(self):
        name = with_random_suffix("a" * 63)

        assert len(name) == 62
        assert name.startswith("a" * 55 + "-")
        assert is_valid_namespace_name(name)
