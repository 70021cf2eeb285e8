"""Unit tests for auth/passwords.py -- credential derivation and verification.

Covers:
- derive() output verifies with the same password and fails with another
- each derivation uses a fresh salt
- malformed stored values are a verification failure, not an exception
- equalize_timing() performs a real verification
"""

import base64
from unittest.mock import patch

import pytest

from auth.passwords import CredentialManager


class TestDeriveAndVerify:
    def test_matching_password_verifies(self, credentials: CredentialManager) -> None:
        hashed, salt = credentials.derive("Secret1")
        assert credentials.verify("Secret1", hashed, salt) is True

    def test_different_password_fails(self, credentials: CredentialManager) -> None:
        hashed, salt = credentials.derive("Secret1")
        assert credentials.verify("Secret2", hashed, salt) is False
        assert credentials.verify("secret1", hashed, salt) is False

    def test_outputs_are_base64(self, credentials: CredentialManager) -> None:
        hashed, salt = credentials.derive("Secret1")
        assert len(base64.b64decode(hashed, validate=True)) == 64
        assert len(base64.b64decode(salt, validate=True)) == 16

    def test_same_password_gets_fresh_salt(self, credentials: CredentialManager) -> None:
        first = credentials.derive("Secret1")
        second = credentials.derive("Secret1")
        assert first[1] != second[1]
        assert first[0] != second[0]

    def test_hash_is_bound_to_its_salt(self, credentials: CredentialManager) -> None:
        hashed, _salt = credentials.derive("Secret1")
        _other_hash, other_salt = credentials.derive("Secret1")
        assert credentials.verify("Secret1", hashed, other_salt) is False

    def test_unicode_password(self, credentials: CredentialManager) -> None:
        hashed, salt = credentials.derive("pässwörd-密码")
        assert credentials.verify("pässwörd-密码", hashed, salt) is True

    def test_empty_password_cannot_be_derived(self, credentials: CredentialManager) -> None:
        with pytest.raises(ValueError):
            credentials.derive("")

    def test_rounds_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            CredentialManager(rounds=0)


class TestMalformedStoredValues:
    @pytest.mark.parametrize(
        "stored_hash, stored_salt",
        [
            ("not base64!!", "c2FsdHNhbHRzYWx0c2FsdA=="),
            ("aGFzaA==", "***"),
            ("", ""),
            (None, None),
            ("aGFzaA==", "c2FsdHNhbHRzYWx0c2FsdA=="),  # valid base64, wrong hash length
        ],
    )
    def test_returns_false(self, credentials: CredentialManager, stored_hash, stored_salt) -> None:
        assert credentials.verify("Secret1", stored_hash, stored_salt) is False

    def test_empty_password_against_real_credential(self, credentials: CredentialManager) -> None:
        hashed, salt = credentials.derive("Secret1")
        assert credentials.verify("", hashed, salt) is False


def test_equalize_timing_runs_a_verification(credentials: CredentialManager) -> None:
    with patch.object(credentials, "verify", wraps=credentials.verify) as spy:
        credentials.equalize_timing("whatever")
    spy.assert_called_once()
