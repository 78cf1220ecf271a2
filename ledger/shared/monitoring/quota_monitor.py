import asyncio
from collections import Counter
from typing import List

from ledger.domain.account.quota import QuotaStatus, evaluate, utcnow
from ledger.domain.account.repository import AccountRepository
from ledger.domain.payment.repository import PaymentRepository
from ledger.domain.token.repository import TokenRepository
from ledger.shared.monitoring.logging import LoggerMixin, get_logger
from ledger.shared.monitoring.metrics import record_error, set_quota_status_counts

REPORTED_STATUSES = (
    QuotaStatus.SOFT_LIMIT,
    QuotaStatus.STALE,
    QuotaStatus.HARD_LIMIT,
    QuotaStatus.EXPIRED,
)


class QuotaMonitorService(LoggerMixin):
    """
    Background pass over accounts that carry a quota.

    Each pass reads metered usage and the last completed payment, classifies
    the account and publishes the per-status counts. It reports only: quota
    fields are never modified here.
    """

    def __init__(
        self,
        account_repo: AccountRepository,
        token_repo: TokenRepository,
        payment_repo: PaymentRepository,
        poll_interval: int = 300,
    ):
        self.account_repo = account_repo
        self.token_repo = token_repo
        self.payment_repo = payment_repo
        self.poll_interval = poll_interval
        self.running = False
        self._task = None

    async def start(self):
        """Start the monitoring service"""
        if self.running:
            self.logger.warning("Quota monitor is already running")
            return

        self.running = True
        self._task = asyncio.create_task(self._monitor_loop())
        self.logger.info(f"Quota monitor service started - Poll interval: {self.poll_interval}s")

    async def stop(self):
        """Stop the monitoring service"""
        self.running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self.logger.info("Quota monitor service stopped")

    async def _monitor_loop(self):
        while self.running:
            try:
                await self.check_quotas()
                await asyncio.sleep(self.poll_interval)
            except asyncio.CancelledError:
                break
            except Exception as e:
                self.logger.error(f"Error in quota monitor loop: {str(e)}")
                record_error(type(e).__name__, "quota_monitor")
                await asyncio.sleep(self.poll_interval)

    async def check_quotas(self) -> dict:
        """Classify every account with a quota; returns counts per status"""
        accounts = await self.account_repo.list_accounts_with_quota()
        if not accounts:
            self.logger.debug("No accounts with a quota to check")

        now = utcnow()
        counts = Counter({status.value: 0 for status in QuotaStatus})

        for account in accounts:
            usage = await self.token_repo.count_uses(account.ulid)
            status = evaluate(account.quota, usage, now)
            counts[status.value] += 1

            if status in REPORTED_STATUSES:
                last_payment = await self.payment_repo.most_recent_paid(account.ulid)
                paid_at = last_payment.paid_at.isoformat() if last_payment else "never"
                self.logger.info(
                    f"Account quota {status.value} - ULID: {account.ulid}, Usage: {usage}, "
                    f"Soft: {account.soft_quota}, Hard: {account.hard_quota}, Last paid: {paid_at}"
                )

        set_quota_status_counts(counts)
        return dict(counts)


class QuotaMonitorManager:
    """
    Manager to control monitor instances
    """

    def __init__(self):
        self.monitors: List[QuotaMonitorService] = []
        self.logger = get_logger(__name__)

    def add_monitor(self, monitor: QuotaMonitorService):
        self.monitors.append(monitor)

    async def start_all(self):
        for monitor in self.monitors:
            await monitor.start()
        self.logger.info(f"All {len(self.monitors)} quota monitors started")

    async def stop_all(self):
        for monitor in self.monitors:
            await monitor.stop()
        self.logger.info("All quota monitors stopped")

    async def health_check(self) -> dict:
        """Return health status of monitors"""
        return {
            "total_monitors": len(self.monitors),
            "running_monitors": sum(1 for m in self.monitors if m.running),
            "status": (
                "healthy" if all(m.running for m in self.monitors) else "degraded"
            ),
        }
