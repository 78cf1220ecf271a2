import datetime
from unittest.mock import AsyncMock, Mock

import pytest

ACCOUNT_ULID = "01HZY3QK7D5V8N2C4M6P9R0T1W"
OTHER_ULID = "01HZY3QK7D5V8N2C4M6P9R0T2X"


def make_pool():
    """Mock asyncpg pool whose acquire() and transaction() work as async context managers"""
    pool = Mock()
    conn = AsyncMock()

    async_context = AsyncMock()
    async_context.__aenter__ = AsyncMock(return_value=conn)
    async_context.__aexit__ = AsyncMock(return_value=None)
    pool.acquire.return_value = async_context

    transaction = AsyncMock()
    transaction.__aenter__ = AsyncMock(return_value=None)
    transaction.__aexit__ = AsyncMock(return_value=None)
    conn.transaction = Mock(return_value=transaction)

    return pool, conn


@pytest.fixture
def mock_pool():
    return make_pool()


@pytest.fixture
def account_row():
    return {
        "ulid": ACCOUNT_ULID,
        "wallet_id": 12345,
        "index": 1,
        "xpub": "xpub6CUGRUonZSQ4TWtTMmzXdrXDtypWKiKrhko4egpiMZbpiaQL2jkwSB1icqYh2cfDfVxdx4df189oLKnC5fSwqPfgyP3hooxujYzAu3fDVmz",
        "email": "billing@example.com",
        "phone": None,
        "webhook": None,
        "soft_quota": 800,
        "hard_quota": 1000,
        "stale_at": datetime.datetime(2026, 11, 1),
        "expires_at": datetime.datetime(2026, 11, 8),
    }
