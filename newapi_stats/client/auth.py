import asyncio

from newapi_stats.client.http import HttpClient, unwrap
from newapi_stats.observability.logger import get_logger
from newapi_stats.stats.models import NewAPIConfig, UserProfile

log = get_logger("client.auth")


class AuthSession:
    """In-memory holder of the bearer token derived from the session cookie.

    Owned by the stats service for the lifetime of the process; never persisted.
    """

    def __init__(self):
        self.access_token: str | None = None
        self.lock = asyncio.Lock()
        # Bumped on every invalidate() so an acquisition that raced with it is discarded
        self.generation = 0

    @property
    def has_token(self) -> bool:
        return bool(self.access_token)

    def invalidate(self):
        if self.access_token:
            log.info("access_token_invalidated")
        self.access_token = None
        self.generation += 1


class Authenticator:
    """Turns cookie credentials into a bearer token and builds request headers."""

    def __init__(self, http: HttpClient, session: AuthSession, config: NewAPIConfig):
        self.http = http
        self.session = session
        self.config = config

    def cookie_headers(self) -> dict[str, str]:
        return {
            "New-API-User": str(self.config.user_id),
            "Cookie": f"session={self.config.session_cookie}",
        }

    def token_headers(self, token: str) -> dict[str, str]:
        return {
            "New-API-User": str(self.config.user_id),
            "Authorization": f"Bearer {token}",
            "Cookie": "",  # never send both credentials
        }

    async def authorized_headers(self) -> dict[str, str]:
        return self.token_headers(await self.get_access_token())

    async def get_access_token(self) -> str:
        async with self.session.lock:
            if self.session.access_token:
                return self.session.access_token

            generation = self.session.generation
            token = await self._get_or_create_token()
            if generation == self.session.generation:
                self.session.access_token = token
            return token

    async def fetch_profile(self) -> UserProfile:
        payload = await self.http.get_json(
            f"{self.config.base_url}/api/user/self",
            headers=self.cookie_headers(),
        )
        return unwrap(payload, UserProfile, "user profile")

    async def create_token(self) -> str:
        payload = await self.http.get_json(
            f"{self.config.base_url}/api/user/token",
            headers=self.cookie_headers(),
        )
        return unwrap(payload, str, "access token")

    async def _get_or_create_token(self) -> str:
        profile = await self.fetch_profile()
        if profile.access_token:
            log.info("access_token_acquired", source="profile", user_id=self.config.user_id)
            return profile.access_token

        token = await self.create_token()
        log.info("access_token_acquired", source="created", user_id=self.config.user_id)
        return token
