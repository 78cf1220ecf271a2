import time
from typing import Optional

import asyncpg
from ulid import ULID

from ledger.domain.account.entity import Account, Quota
from ledger.domain.account.quota import normalize_quota
from ledger.domain.account.repository import AccountRepository
from ledger.domain.wallet.repository import WalletRepository
from ledger.infrastructure.db.errors import storage_errors
from ledger.infrastructure.db.wallet.postgresql_repository import PostgreSQLWalletRepository

# Monitoring imports
from ledger.shared.monitoring.logging import (
    LoggerMixin,
    log_database_operation,
    log_quota_operation,
)
from ledger.shared.monitoring.metrics import (
    MetricsContext,
    record_account_created,
    record_account_operation,
    record_quota_recharge,
)

ACCOUNT_COLUMNS = (
    "account.ulid, account.wallet_id, account.index, account.xpub, "
    "account.email, account.phone, account.webhook, "
    "account.soft_quota, account.hard_quota, account.stale_at, account.expires_at"
)

# index comes from the account_index_seq sequence, never from a read-modify-write
INSERT_ACCOUNT_SQL = """
    INSERT INTO account (ulid, wallet_id, index, xpub)
    VALUES ($1, $2, DEFAULT, '')
    RETURNING index
"""


def new_ulid() -> str:
    return str(ULID())


def account_from_row(row) -> Account:
    return Account(
        ulid=row["ulid"].strip(),
        wallet_id=row["wallet_id"],
        index=row["index"],
        xpub=(row["xpub"] or "").strip(),
        email=row["email"],
        phone=row["phone"],
        webhook=row["webhook"],
        soft_quota=row["soft_quota"],
        hard_quota=row["hard_quota"],
        stale_at=row["stale_at"],
        expires_at=row["expires_at"],
    )


class PostgreSQLAccountRepository(AccountRepository, LoggerMixin):
    def __init__(self, pool, wallet_repository: Optional[WalletRepository] = None):
        self._pool = pool
        self._wallet_repository = wallet_repository or PostgreSQLWalletRepository(pool)

    @classmethod
    async def create(cls, dsn: str):
        pool = await asyncpg.create_pool(dsn=dsn)
        return cls(pool)

    async def create_account(self, wallet_id: int, ulid: Optional[str] = None) -> Account:
        """
        Allocate the next derivation index for a wallet and create its account.

        The account row and the wallet upsert share one transaction; the
        wallet foreign key is deferred, so the account may go in first.
        """
        ulid = ulid or new_ulid()
        start_time = time.time()

        self.logger.info(f"Creating account - Wallet: {wallet_id}, ULID: {ulid}")

        try:
            with storage_errors("create_account"), MetricsContext("create_account", "account"):
                async with self._pool.acquire() as conn:
                    async with conn.transaction():
                        index = await conn.fetchval(INSERT_ACCOUNT_SQL, ulid, wallet_id)
                        await self._wallet_repository.register_wallet(wallet_id, conn=conn)

            duration = time.time() - start_time
            self.logger.info(
                f"Account created - Wallet: {wallet_id}, ULID: {ulid}, Index: {index}, Duration: {duration:.3f}s"
            )
            record_account_created()
            record_account_operation("create_account", "success")

            return Account(ulid=ulid, wallet_id=wallet_id, index=index, xpub="")

        except Exception as e:
            duration = time.time() - start_time
            self.logger.error(
                f"Failed to create account - Wallet: {wallet_id}, Error: {str(e)}, Duration: {duration:.3f}s",
                extra=log_database_operation("create_account", "account", wallet_id=wallet_id),
            )
            record_account_operation("create_account", "error")
            raise

    async def attach_xpub(self, ulid: str, xpub: str) -> bool:
        """
        Set the derived public key of an account.

        Callers are expected to do this once; a second call overwrites.
        """
        with storage_errors("attach_xpub"), MetricsContext("attach_xpub", "account"):
            async with self._pool.acquire() as conn:
                result = await conn.execute(
                    "UPDATE account SET xpub = $1, updated_at = NOW() WHERE ulid = $2",
                    xpub,
                    ulid,
                )

        updated = result.split()[-1] == "1"
        if updated:
            self.logger.info(f"XPub attached - ULID: {ulid}")
        else:
            self.logger.warning(f"XPub not attached, account not found - ULID: {ulid}")
        record_account_operation("attach_xpub", "success" if updated else "not_found")
        return updated

    async def get_account(self, ulid: str) -> Account | None:
        with storage_errors("get_account"), MetricsContext("get_account", "account"):
            async with self._pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"SELECT {ACCOUNT_COLUMNS} FROM account WHERE account.ulid = $1",
                    ulid,
                )
        return account_from_row(row) if row else None

    async def get_account_by_token_hash(self, hash_id: str) -> Account | None:
        """
        Resolve a token hash to the account it is bound to.

        Revoked tokens do not resolve. Should two live bindings ever share a
        hash, the newest issuance wins.
        """
        start_time = time.time()

        with storage_errors("get_account_by_token_hash"), MetricsContext("get_account_by_token_hash", "base62_token"):
            async with self._pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"""SELECT {ACCOUNT_COLUMNS}
                        FROM base62_token
                        INNER JOIN account ON base62_token.account_ulid = account.ulid
                        WHERE base62_token.hash_id = $1
                        AND base62_token.revoked_at IS NULL
                        ORDER BY base62_token.created_at DESC
                        LIMIT 1""",
                    hash_id,
                )

        duration = time.time() - start_time
        self.logger.debug(
            f"Token lookup completed - Hash: {hash_id}, Found: {row is not None}, Duration: {duration:.3f}s"
        )
        return account_from_row(row) if row else None

    async def recharge(self, ulid: str, quota: Quota) -> Quota | None:
        """
        Overwrite the quota fields of an account.

        Last write wins, nothing is merged with the previous quota.

        Returns:
            The stored quota, or None when the account does not exist
        """
        quota = normalize_quota(quota)

        with storage_errors("recharge"), MetricsContext("recharge", "account"):
            async with self._pool.acquire() as conn:
                result = await conn.execute(
                    """UPDATE account
                       SET soft_quota = $1, hard_quota = $2, stale_at = $3, expires_at = $4, updated_at = NOW()
                       WHERE ulid = $5""",
                    quota.soft_quota,
                    quota.hard_quota,
                    quota.stale_at,
                    quota.expires_at,
                    ulid,
                )

        if result.split()[-1] != "1":
            self.logger.warning(f"Recharge skipped, account not found - ULID: {ulid}")
            return None

        self.logger.info(
            f"Account recharged - ULID: {ulid}, Soft: {quota.soft_quota}, Hard: {quota.hard_quota}, "
            f"Stale at: {quota.stale_at.isoformat()}, Expires at: {quota.expires_at.isoformat()}",
            extra=log_quota_operation("recharge", ulid, hard_quota=quota.hard_quota),
        )
        record_quota_recharge()
        return quota

    async def list_accounts_with_quota(self) -> list[Account]:
        with storage_errors("list_accounts_with_quota"), MetricsContext("list_accounts_with_quota", "account"):
            async with self._pool.acquire() as conn:
                rows = await conn.fetch(
                    f"""SELECT {ACCOUNT_COLUMNS} FROM account
                        WHERE account.expires_at IS NOT NULL
                        ORDER BY account.expires_at ASC"""
                )
        return [account_from_row(row) for row in rows]
