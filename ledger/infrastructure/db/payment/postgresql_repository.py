import datetime
import time
from typing import Optional

import asyncpg

from ledger.domain.account.quota import to_naive_utc
from ledger.domain.errors import InvalidPaymentAmountError
from ledger.domain.limits import INT8_MAX
from ledger.domain.payment.entity import Payment
from ledger.domain.payment.repository import PaymentRepository
from ledger.infrastructure.db.account.postgresql_repository import new_ulid
from ledger.infrastructure.db.errors import storage_errors

# Monitoring imports
from ledger.shared.monitoring.logging import LoggerMixin
from ledger.shared.monitoring.metrics import (
    MetricsContext,
    record_payment_created,
    record_payment_paid,
)

PAYMENT_COLUMNS = "ulid, account_ulid, index, satoshis, created_at, paid_at"


def payment_from_row(row) -> Payment:
    return Payment(
        ulid=row["ulid"].strip(),
        account_ulid=row["account_ulid"].strip(),
        index=row["index"],
        satoshis=row["satoshis"],
        created_at=row["created_at"],
        paid_at=row["paid_at"],
    )


class PostgreSQLPaymentRepository(PaymentRepository, LoggerMixin):
    def __init__(self, pool):
        self._pool = pool

    @classmethod
    async def create(cls, dsn: str):
        pool = await asyncpg.create_pool(dsn=dsn)
        return cls(pool)

    async def create_payment(
        self, account_ulid: str, satoshis: int, ulid: Optional[str] = None
    ) -> Payment:
        """
        Record a pending payment with the next per-account index.

        Two concurrent writers may compute the same index; the unique
        (account_ulid, index) constraint rejects the loser with a
        ConstraintViolationError.
        """
        if isinstance(satoshis, bool) or not isinstance(satoshis, int) or not 0 < satoshis <= INT8_MAX:
            raise InvalidPaymentAmountError(satoshis)

        ulid = ulid or new_ulid()
        start_time = time.time()

        try:
            with storage_errors("create_payment"), MetricsContext("create_payment", "payment"):
                async with self._pool.acquire() as conn:
                    row = await conn.fetchrow(
                        """INSERT INTO payment (ulid, account_ulid, index, satoshis)
                           SELECT $1, $2, COALESCE(MAX(index), 0) + 1, $3
                           FROM payment WHERE account_ulid = $2
                           RETURNING index, created_at""",
                        ulid,
                        account_ulid,
                        satoshis,
                    )

            duration = time.time() - start_time
            self.logger.info(
                f"Payment recorded - ULID: {ulid}, Account: {account_ulid}, Index: {row['index']}, "
                f"Satoshis: {satoshis}, Duration: {duration:.3f}s"
            )
            record_payment_created(satoshis)

            return Payment(
                ulid=ulid,
                account_ulid=account_ulid,
                index=row["index"],
                satoshis=satoshis,
                created_at=row["created_at"],
                paid_at=None,
            )

        except Exception as e:
            duration = time.time() - start_time
            self.logger.error(
                f"Failed to record payment - Account: {account_ulid}, Error: {str(e)}, Duration: {duration:.3f}s"
            )
            raise

    async def mark_paid(self, ulid: str, paid_at: Optional[datetime.datetime] = None) -> bool:
        """
        Mark a pending payment as paid. A payment is marked at most once;
        returns False when it is unknown or already paid.
        """
        with storage_errors("mark_paid"), MetricsContext("mark_paid", "payment"):
            async with self._pool.acquire() as conn:
                if paid_at is None:
                    result = await conn.execute(
                        "UPDATE payment SET paid_at = NOW(), updated_at = NOW() WHERE ulid = $1 AND paid_at IS NULL",
                        ulid,
                    )
                else:
                    result = await conn.execute(
                        "UPDATE payment SET paid_at = $2, updated_at = NOW() WHERE ulid = $1 AND paid_at IS NULL",
                        ulid,
                        to_naive_utc(paid_at),
                    )

        marked = result.split()[-1] == "1"
        if marked:
            self.logger.info(f"Payment marked paid - ULID: {ulid}")
            record_payment_paid()
        else:
            self.logger.warning(f"Payment not marked, unknown or already paid - ULID: {ulid}")
        return marked

    async def most_recent_paid(self, account_ulid: str) -> Payment | None:
        with storage_errors("most_recent_paid"), MetricsContext("most_recent_paid", "payment"):
            async with self._pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"""SELECT {PAYMENT_COLUMNS}
                        FROM payment
                        WHERE account_ulid = $1
                        AND paid_at IS NOT NULL
                        ORDER BY created_at DESC, index DESC
                        LIMIT 1""",
                    account_ulid,
                )
        return payment_from_row(row) if row else None
