from datetime import datetime, timezone

from newapi_stats.client.auth import Authenticator, AuthSession
from newapi_stats.client.http import HttpClient, unwrap
from newapi_stats.observability.logger import get_logger
from newapi_stats.stats.aggregator import LogAggregator, today_window
from newapi_stats.stats.metrics import derive_stats
from newapi_stats.stats.models import Balance, NewAPIConfig, Stats

log = get_logger("stats.service")

# Changing any of these means a different account or server: the token is stale
CREDENTIAL_FIELDS = ("base_url", "user_id", "session_cookie")


class NewAPIStatsService:
    """Runs one fetch cycle: balance, today's usage, all-time usage, derived figures.

    Stages run strictly in order and any failure aborts the cycle. The cached
    access token in `self.session` is the only state kept between cycles.
    """

    def __init__(self, config: NewAPIConfig, http: HttpClient | None = None):
        self.http = http or HttpClient()
        self.session = AuthSession()
        self._config = config
        self._build()

    def _build(self):
        self.auth = Authenticator(self.http, self.session, self._config)
        self.aggregator = LogAggregator(self.http, self.auth)

    @property
    def config(self) -> NewAPIConfig:
        return self._config

    @property
    def is_configured(self) -> bool:
        return self._config.is_configured

    def update_config(self, **changes) -> NewAPIConfig:
        """Apply a partial config change; starts a fresh token session if credentials changed."""
        new_config = self._config.replace(**changes)
        if any(getattr(new_config, f) != getattr(self._config, f) for f in CREDENTIAL_FIELDS):
            # A cycle still running on the old authenticator keeps the old session,
            # so whatever it acquires never reaches the new credentials
            self.session.invalidate()
            self.session = AuthSession()
        self._config = new_config
        self._build()
        log.info("config_updated", fields=sorted(changes), configured=new_config.is_configured)
        return new_config

    async def aclose(self):
        await self.http.aclose()

    async def fetch_balance(self, auth: Authenticator | None = None) -> int:
        auth = auth or self.auth
        payload = await self.http.get_json(
            f"{auth.config.base_url}/api/user/self",
            headers=await auth.authorized_headers(),
        )
        balance = unwrap(payload, Balance, "balance")
        return balance.quota or 0

    async def fetch_stats(self, now: datetime | None = None) -> Stats | None:
        """Return a fresh snapshot, or None when the account is not configured."""
        if not self.is_configured:
            log.info("stats_skipped_unconfigured")
            return None

        # Pin one config for the whole cycle; update_config() swaps these out
        config, auth, aggregator = self._config, self.auth, self.aggregator
        local_now = now or datetime.now()

        balance = await self.fetch_balance(auth)
        today = await aggregator.aggregate(today_window(local_now))
        total = await aggregator.aggregate()

        stats = derive_stats(
            balance,
            today,
            total,
            config,
            now=local_now.astimezone(timezone.utc),
        )
        log.info(
            "stats_fetched",
            balance=stats.balance,
            today_consumption=stats.today_consumption,
            total_consumption=stats.total_consumption,
            usage_percentage=round(stats.usage_percentage, 1),
        )
        return stats
