from unittest.mock import MagicMock

import httpx
import pytest
from newapi_stats.client.auth import Authenticator, AuthSession
from newapi_stats.client.errors import ApiError, AuthError, MissingDataError


@pytest.fixture
def session():
    return AuthSession()


@pytest.fixture
def auth(http, session, api_config):
    return Authenticator(http, session, api_config)


class TestHeaders:
    @pytest.fixture
    def auth(self, api_config):
        return Authenticator(MagicMock(), AuthSession(), api_config)

    def test_cookie_headers(self, auth):
        assert auth.cookie_headers() == {
            "New-API-User": "42",
            "Cookie": "session=cookie-abc",
        }

    def test_token_headers_clear_cookie(self, auth):
        assert auth.token_headers("tok") == {
            "New-API-User": "42",
            "Authorization": "Bearer tok",
            "Cookie": "",
        }


@pytest.mark.asyncio
class TestAuthenticator:
    async def test_uses_profile_token(self, auth, fake_api, session):
        token = await auth.get_access_token()
        assert token == "token-from-profile"
        assert session.access_token == "token-from-profile"
        assert fake_api.requests_to("/api/user/token") == []

    async def test_profile_request_is_cookie_authenticated(self, auth, fake_api):
        await auth.get_access_token()
        request = fake_api.requests_to("/api/user/self")[0]
        assert request.headers["Cookie"] == "session=cookie-abc"
        assert request.headers["New-API-User"] == "42"
        assert "Authorization" not in request.headers

    async def test_creates_token_when_profile_has_none(self, auth, fake_api):
        fake_api.profile_token = None
        token = await auth.get_access_token()
        assert token == "token-created"
        created = fake_api.requests_to("/api/user/token")
        assert len(created) == 1
        assert created[0].headers["Cookie"] == "session=cookie-abc"

    async def test_token_is_cached(self, auth, fake_api):
        await auth.get_access_token()
        await auth.get_access_token()
        assert len(fake_api.requests_to("/api/user/self")) == 1

    async def test_invalidate_forces_reacquire(self, auth, fake_api, session):
        await auth.get_access_token()
        session.invalidate()
        assert not session.has_token
        fake_api.profile_token = "rotated"
        assert await auth.get_access_token() == "rotated"
        assert len(fake_api.requests_to("/api/user/self")) == 2

    async def test_authorized_headers_carry_bearer(self, auth):
        headers = await auth.authorized_headers()
        assert headers["Authorization"] == "Bearer token-from-profile"
        assert headers["Cookie"] == ""

    async def test_profile_401_propagates(self, auth, fake_api, session):
        fake_api.overrides["/api/user/self"] = httpx.Response(401)
        with pytest.raises(AuthError):
            await auth.get_access_token()
        assert session.access_token is None

    async def test_profile_failure_message_propagates(self, auth, fake_api):
        fake_api.overrides["/api/user/self"] = httpx.Response(
            200, json={"success": False, "message": "not logged in"}
        )
        with pytest.raises(ApiError, match="not logged in"):
            await auth.get_access_token()

    async def test_missing_created_token_is_missing_data(self, auth, fake_api, session):
        fake_api.profile_token = None
        fake_api.created_token = None
        with pytest.raises(MissingDataError):
            await auth.get_access_token()
        assert session.access_token is None
