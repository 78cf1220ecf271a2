import datetime
from typing import Optional
from pydantic import BaseModel, Field

from ledger.domain.limits import INT4_MAX


class Quota(BaseModel):
    soft_quota: int = Field(..., ge=0, le=INT4_MAX, description="Warning threshold, in requests")
    hard_quota: int = Field(..., ge=0, le=INT4_MAX, description="Hard stop, in requests")
    stale_at: datetime.datetime
    expires_at: datetime.datetime


class Account(BaseModel):
    ulid: str = Field(..., min_length=26, max_length=26)
    wallet_id: int
    index: int
    xpub: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    webhook: Optional[str] = None
    soft_quota: Optional[int] = None
    hard_quota: Optional[int] = None
    stale_at: Optional[datetime.datetime] = None
    expires_at: Optional[datetime.datetime] = None

    @property
    def quota(self) -> Optional[Quota]:
        if None in (self.soft_quota, self.hard_quota, self.stale_at, self.expires_at):
            return None
        return Quota(
            soft_quota=self.soft_quota,
            hard_quota=self.hard_quota,
            stale_at=self.stale_at,
            expires_at=self.expires_at,
        )
