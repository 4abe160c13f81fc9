"""
Test suite for caller authentication

Test Command: pytest tests/test_auth.py -v --cov=tribunal/auth
"""

from datetime import timedelta

import jwt
import pytest

from tribunal.auth import AuthenticationError, CallerAuthenticator


@pytest.fixture
def authenticator():
    return CallerAuthenticator(secret_key="test-secret", token_expire_minutes=5)


class TestCallerAuthenticator:
    """Test token issue, validation and revocation."""

    def test_round_trip(self, authenticator):
        token = authenticator.issue_token(42)

        assert authenticator.validate_token(token) == 42

    def test_expired_token(self, authenticator):
        token = authenticator.issue_token(42, expires_delta=timedelta(seconds=-1))

        with pytest.raises(AuthenticationError) as exc_info:
            authenticator.validate_token(token)
        assert exc_info.value.error_code == "TOKEN_EXPIRED"

    def test_wrong_secret(self, authenticator):
        token = CallerAuthenticator(secret_key="other-secret").issue_token(42)

        with pytest.raises(AuthenticationError) as exc_info:
            authenticator.validate_token(token)
        assert exc_info.value.error_code == "INVALID_TOKEN"

    def test_garbage_token(self, authenticator):
        with pytest.raises(AuthenticationError) as exc_info:
            authenticator.validate_token("not-a-jwt")
        assert exc_info.value.error_code == "INVALID_TOKEN"

    def test_revoked_token(self, authenticator):
        token = authenticator.issue_token(42)
        authenticator.revoke_token(token)

        with pytest.raises(AuthenticationError) as exc_info:
            authenticator.validate_token(token)
        assert exc_info.value.error_code == "TOKEN_REVOKED"

    def test_non_numeric_subject(self, authenticator):
        token = jwt.encode({"sub": "alice"}, "test-secret", algorithm="HS256")

        with pytest.raises(AuthenticationError) as exc_info:
            authenticator.validate_token(token)
        assert exc_info.value.error_code == "INVALID_SUBJECT"

    def test_generated_secret(self):
        first = CallerAuthenticator()
        second = CallerAuthenticator()

        assert first.secret_key != second.secret_key
