import datetime
from typing import Optional
from pydantic import BaseModel, Field


class Token(BaseModel):
    hash_id: str = Field(..., min_length=24, max_length=24)
    account_ulid: str
    revoked_at: Optional[datetime.datetime] = None
    created_at: datetime.datetime

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None
