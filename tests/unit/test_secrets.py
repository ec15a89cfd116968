"""Tests for secret data utilities."""

from __future__ import annotations

import base64

from vault_sync_operator.utils.secrets import content_version, decode_secret_data, secret_value_text


class TestDecodeSecretData:
    """Test cases for decode_secret_data."""

    def test_base64_values(self):
        """Test decoding API-encoded values."""
        data = {"user": base64.b64encode(b"admin").decode()}
        assert decode_secret_data(data) == {"user": b"admin"}

    def test_none_and_missing(self):
        """Test empty inputs."""
        assert decode_secret_data(None) == {}
        assert decode_secret_data({"k": None}) == {"k": b""}

    def test_bytes_passthrough(self):
        """Test that raw bytes are kept."""
        assert decode_secret_data({"k": b"raw"}) == {"k": b"raw"}


class TestSecretValueText:
    """Test cases for secret_value_text."""

    def test_utf8(self):
        """Test plain text round trip."""
        assert secret_value_text("pässword".encode("utf-8")) == "pässword"

    def test_binary_does_not_raise(self):
        """Test that invalid UTF-8 is replaced instead of failing."""
        assert secret_value_text(b"\xff\xfe") == "��"


class TestContentVersion:
    """Test cases for content_version."""

    def test_stable_across_key_order(self):
        """Test that the digest ignores dict order."""
        assert content_version({"a": b"1", "b": b"2"}) == content_version({"b": b"2", "a": b"1"})

    def test_changes_with_content(self):
        """Test that any value change produces a new token."""
        assert content_version({"a": b"1"}) != content_version({"a": b"2"})
        assert content_version({"a": b"1"}).startswith("sha256:")
