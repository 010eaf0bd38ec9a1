"""
Unit tests for the Gateway Auth Gate.
"""

import pytest
from jose import jwt
from unittest.mock import MagicMock

from service_gateway.app.auth import AuthGate
from service_gateway.app.auth.gate import EXPIRED_TOKEN, INVALID_TOKEN, MALFORMED_HEADER, MISSING_TOKEN
from shared.errors import AuthenticationError, AuthorizationError
from shared.identity import ForwardedIdentity
from shared.test_helpers import TEST_SECRET, MockTokenGenerator, TestUser


def make_request(authorization=None):
    request = MagicMock()
    request.headers = {"Authorization": authorization} if authorization is not None else {}
    return request


class TestAuthGate:
    """Test cases for AuthGate."""

    @pytest.fixture
    def gate(self):
        return AuthGate(TEST_SECRET)

    @pytest.fixture
    def tokens(self):
        return MockTokenGenerator()

    @pytest.mark.asyncio
    async def test_valid_token_attaches_identity(self, gate, tokens):
        token = tokens.generate_access_token(TestUser("user-1", role="rh"))
        request = make_request(f"Bearer {token}")

        identity = await gate.authenticate(request)

        assert identity.subject == "user-1"
        assert identity.role == "rh"
        assert identity.expiry is not None
        assert request.state.identity is identity

    @pytest.mark.asyncio
    async def test_sub_claim_is_accepted(self, gate):
        token = jwt.encode({"sub": "user-2"}, TEST_SECRET, algorithm="HS256")
        identity = await gate.authenticate(make_request(f"Bearer {token}"))
        assert identity.subject == "user-2"
        assert identity.role is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("header, message", [
        (None, MISSING_TOKEN),
        ("", MISSING_TOKEN),
        ("Token abc", MALFORMED_HEADER),
        ("Bearer", MALFORMED_HEADER),
        ("Bearer a b", MALFORMED_HEADER),
    ])
    async def test_header_failures(self, gate, header, message):
        with pytest.raises(AuthenticationError) as exc_info:
            await gate.authenticate(make_request(header))

        assert exc_info.value.status_code == 401
        assert exc_info.value.message == message

    @pytest.mark.asyncio
    async def test_expired_token(self, gate, tokens):
        token = tokens.generate_access_token(TestUser("user-1"), expires_in=-60)

        with pytest.raises(AuthenticationError) as exc_info:
            await gate.authenticate(make_request(f"Bearer {token}"))

        assert exc_info.value.message == EXPIRED_TOKEN

    @pytest.mark.asyncio
    async def test_wrong_signature(self, gate):
        token = MockTokenGenerator(secret="other-secret").generate_access_token(TestUser("user-1"))

        with pytest.raises(AuthenticationError) as exc_info:
            await gate.authenticate(make_request(f"Bearer {token}"))

        assert exc_info.value.message == INVALID_TOKEN

    @pytest.mark.asyncio
    async def test_garbage_token(self, gate):
        with pytest.raises(AuthenticationError) as exc_info:
            await gate.authenticate(make_request("Bearer not-a-jwt"))

        assert exc_info.value.message == INVALID_TOKEN

    def test_token_without_subject(self, gate):
        token = jwt.encode({"role": "admin"}, TEST_SECRET, algorithm="HS256")

        with pytest.raises(AuthenticationError) as exc_info:
            gate.verify(token)

        assert exc_info.value.message == INVALID_TOKEN

    def test_authorize_allows_everyone_without_roles(self, gate):
        gate.authorize(ForwardedIdentity("user-1"), None)

    def test_authorize_allowed_role(self, gate):
        gate.authorize(ForwardedIdentity("user-1", role="admin"), frozenset({"admin", "rh"}))

    def test_authorize_rejects_other_roles(self, gate):
        with pytest.raises(AuthorizationError) as exc_info:
            gate.authorize(ForwardedIdentity("user-1", role="worker"), frozenset({"admin"}))

        assert exc_info.value.status_code == 403
        assert exc_info.value.message == "Forbidden - insufficient permissions"
