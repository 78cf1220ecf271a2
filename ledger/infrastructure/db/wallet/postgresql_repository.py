import time

import asyncpg

from ledger.domain.wallet.entity import Wallet
from ledger.domain.wallet.repository import WalletRepository
from ledger.infrastructure.db.errors import storage_errors

# Monitoring imports
from ledger.shared.monitoring.logging import LoggerMixin
from ledger.shared.monitoring.metrics import MetricsContext

REGISTER_WALLET_SQL = "INSERT INTO wallet(id) VALUES($1) ON CONFLICT (id) DO NOTHING"


class PostgreSQLWalletRepository(WalletRepository, LoggerMixin):
    def __init__(self, pool):
        self._pool = pool

    @classmethod
    async def create(cls, dsn: str):
        pool = await asyncpg.create_pool(dsn=dsn)
        return cls(pool)

    async def register_wallet(self, wallet_id: int, conn=None) -> bool:
        start_time = time.time()

        try:
            with storage_errors("register_wallet"), MetricsContext("register_wallet", "wallet"):
                if conn is not None:
                    result = await conn.execute(REGISTER_WALLET_SQL, wallet_id)
                else:
                    async with self._pool.acquire() as conn:
                        result = await conn.execute(REGISTER_WALLET_SQL, wallet_id)

            # "INSERT 0 0" means the wallet already existed
            inserted = result.split()[-1] == "1"
            duration = time.time() - start_time
            self.logger.info(
                f"Wallet registration completed - Wallet: {wallet_id}, New: {inserted}, Duration: {duration:.3f}s"
            )
            return inserted

        except Exception as e:
            duration = time.time() - start_time
            self.logger.error(
                f"Failed to register wallet - Wallet: {wallet_id}, Error: {str(e)}, Duration: {duration:.3f}s"
            )
            raise

    async def get_wallet(self, wallet_id: int) -> Wallet | None:
        with storage_errors("get_wallet"), MetricsContext("get_wallet", "wallet"):
            async with self._pool.acquire() as conn:
                row = await conn.fetchrow(
                    "SELECT id, secret_type, created_at, updated_at FROM wallet WHERE id = $1",
                    wallet_id,
                )

        if not row:
            return None
        return Wallet(
            id=row["id"],
            secret_type=row["secret_type"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
