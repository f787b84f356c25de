"""Integration test fixtures (service checks and prerequisites).

Provides fixtures for checking if external services are available.
Integration tests are skipped if required services are not running.
"""

import pytest
import pytest_asyncio
from redis import Redis
from redis.asyncio import Redis as AsyncRedis
from redis.exceptions import RedisError

TEST_REDIS_URL = "redis://localhost:6379/15"


@pytest.fixture(scope="session")
def check_redis():
    """Check if Redis is available at localhost:6379.

    Skips tests if Redis is not reachable.
    """
    try:
        client = Redis.from_url(TEST_REDIS_URL, socket_connect_timeout=2)
        client.ping()
        client.close()
    except RedisError as e:
        pytest.skip(f"Redis not available: {e}")


@pytest_asyncio.fixture
async def real_async_redis_client(check_redis):
    """Real AsyncRedis client instance for integration tests (async).

    Requires Redis to be running (checked by check_redis fixture).
    Uses database 15 (test database).
    """
    client = AsyncRedis.from_url(TEST_REDIS_URL, decode_responses=True)

    # Clear test database before test
    await client.flushdb()

    yield client

    # Clear test database after test
    await client.flushdb()
    await client.aclose()


@pytest.fixture
def integration_settings(test_settings):
    """Settings for integration tests with real services.

    Points to the local Redis test database.
    """
    return test_settings.model_copy(
        update={
            "STORAGE_BACKEND": "redis",
            "REDIS_URL": TEST_REDIS_URL,
            "PROMETHEUS_ENABLED": False,
        }
    )
