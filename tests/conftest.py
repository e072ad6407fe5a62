import os

# Must be set before any newapi_stats imports that read settings
os.environ["NEWAPI_SESSION_COOKIE"] = ""
os.environ["NEWAPI_REFRESH_INTERVAL_SECONDS"] = "300"

import httpx
import pytest
import pytest_asyncio
from newapi_stats.client.http import HttpClient
from newapi_stats.stats.models import NewAPIConfig
from tests.fakes import FakeNewAPI


@pytest.fixture
def api_config():
    return NewAPIConfig(
        base_url="https://newapi.test",
        user_id=42,
        session_cookie="cookie-abc",
        conversion_factor=500000,
        exchange_rate=7.2,
    )


@pytest.fixture
def fake_api():
    return FakeNewAPI()


@pytest_asyncio.fixture
async def http(fake_api):
    """HttpClient wired to the fake server."""
    client = HttpClient(transport=httpx.MockTransport(fake_api.handler))
    yield client
    await client.aclose()
