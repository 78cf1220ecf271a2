"""
Quota status evaluation.

Reporting only: nothing here blocks a request. The API and the quota
monitor expose the status; enforcement belongs to whoever reads it.
"""
import datetime
from enum import Enum
from typing import Optional

from ledger.domain.account.entity import Quota


class QuotaStatus(str, Enum):
    UNLIMITED = "unlimited"
    OK = "ok"
    SOFT_LIMIT = "soft_limit"
    STALE = "stale"
    HARD_LIMIT = "hard_limit"
    EXPIRED = "expired"


def utcnow() -> datetime.datetime:
    """Naive UTC, matching the TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime.datetime) -> datetime.datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(datetime.timezone.utc).replace(tzinfo=None)


def normalize_quota(quota: Quota) -> Quota:
    return Quota(
        soft_quota=quota.soft_quota,
        hard_quota=quota.hard_quota,
        stale_at=to_naive_utc(quota.stale_at),
        expires_at=to_naive_utc(quota.expires_at),
    )


def evaluate(
    quota: Optional[Quota], usage: int, now: Optional[datetime.datetime] = None
) -> QuotaStatus:
    """
    Classify an account given its quota and its metered usage.

    Precedence, most severe first: expired, hard limit, stale, soft limit.
    An account without a quota is unlimited.
    """
    if quota is None:
        return QuotaStatus.UNLIMITED

    now = to_naive_utc(now) if now is not None else utcnow()
    quota = normalize_quota(quota)

    if now >= quota.expires_at:
        return QuotaStatus.EXPIRED
    if usage >= quota.hard_quota:
        return QuotaStatus.HARD_LIMIT
    if now >= quota.stale_at:
        return QuotaStatus.STALE
    if usage >= quota.soft_quota:
        return QuotaStatus.SOFT_LIMIT
    return QuotaStatus.OK
