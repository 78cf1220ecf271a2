import time
from typing import Optional

import asyncpg

from ledger.domain.token.entity import Token
from ledger.domain.token.repository import TokenRepository
from ledger.infrastructure.db.errors import storage_errors

# Monitoring imports
from ledger.shared.monitoring.logging import LoggerMixin, log_token_operation
from ledger.shared.monitoring.metrics import MetricsContext


class PostgreSQLTokenRepository(TokenRepository, LoggerMixin):
    """
    Storage for capability tokens and their use log.

    Rows are keyed by the truncated token hash. Plaintext tokens are written
    to the token column for audit but never logged.
    """

    def __init__(self, pool):
        self._pool = pool

    @classmethod
    async def create(cls, dsn: str):
        pool = await asyncpg.create_pool(dsn=dsn)
        return cls(pool)

    async def save_token(
        self,
        hash_id: str,
        token: str,
        account_ulid: str,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        webhook: Optional[str] = None,
    ) -> None:
        start_time = time.time()

        self.logger.info(f"Saving token - Hash: {hash_id}, Account: {account_ulid}")

        try:
            with storage_errors("save_token"), MetricsContext("save_token", "base62_token"):
                async with self._pool.acquire() as conn:
                    async with conn.transaction():
                        await conn.execute(
                            "INSERT INTO base62_token(hash_id, token, account_ulid) VALUES($1, $2, $3)",
                            hash_id,
                            token,
                            account_ulid,
                        )
                        if email is not None or phone is not None or webhook is not None:
                            await conn.execute(
                                """UPDATE account
                                   SET email = COALESCE($1, email),
                                       phone = COALESCE($2, phone),
                                       webhook = COALESCE($3, webhook),
                                       updated_at = NOW()
                                   WHERE ulid = $4""",
                                email,
                                phone,
                                webhook,
                                account_ulid,
                            )

            duration = time.time() - start_time
            self.logger.info(
                f"Token saved - Hash: {hash_id}, Account: {account_ulid}, Duration: {duration:.3f}s"
            )

        except Exception as e:
            duration = time.time() - start_time
            self.logger.error(
                f"Failed to save token - Hash: {hash_id}, Account: {account_ulid}, Error: {str(e)}, Duration: {duration:.3f}s"
            )
            raise

    async def get_token(self, hash_id: str) -> Token | None:
        with storage_errors("get_token"), MetricsContext("get_token", "base62_token"):
            async with self._pool.acquire() as conn:
                row = await conn.fetchrow(
                    """SELECT hash_id, account_ulid, revoked_at, created_at
                       FROM base62_token
                       WHERE hash_id = $1
                       ORDER BY created_at DESC
                       LIMIT 1""",
                    hash_id,
                )
        if not row:
            return None
        return Token(
            hash_id=row["hash_id"],
            account_ulid=row["account_ulid"].strip(),
            revoked_at=row["revoked_at"],
            created_at=row["created_at"],
        )

    async def revoke_token(self, hash_id: str) -> bool:
        """
        Soft-delete a token. Returns False if it is unknown or already revoked.
        """
        with storage_errors("revoke_token"), MetricsContext("revoke_token", "base62_token"):
            async with self._pool.acquire() as conn:
                result = await conn.execute(
                    "UPDATE base62_token SET revoked_at = NOW() WHERE hash_id = $1 AND revoked_at IS NULL",
                    hash_id,
                )

        revoked = result.split()[-1] != "0"
        self.logger.info(
            f"Token revocation completed - Hash: {hash_id}, Revoked: {revoked}",
            extra=log_token_operation("revoke", hash_id, revoked=revoked),
        )
        return revoked

    async def record_use(self, hash_id: str) -> None:
        with storage_errors("record_use"), MetricsContext("record_use", "base62_token_use"):
            async with self._pool.acquire() as conn:
                await conn.execute(
                    "INSERT INTO base62_token_use(base62_token_hash_id) VALUES($1)",
                    hash_id,
                )

    async def count_uses(self, account_ulid: str) -> int:
        """
        Count recorded uses of the account's tokens.

        Only revoked tokens are counted: uses of live tokens join the total
        once the token is revoked.
        """
        with storage_errors("count_uses"), MetricsContext("count_uses", "base62_token_use"):
            async with self._pool.acquire() as conn:
                count = await conn.fetchval(
                    """SELECT count(base62_token_hash_id) AS request_count
                       FROM base62_token_use
                       WHERE base62_token_hash_id IN (
                           SELECT hash_id FROM base62_token
                           WHERE account_ulid = $1
                           AND revoked_at IS NOT NULL
                       )""",
                    account_ulid,
                )
        return count or 0
