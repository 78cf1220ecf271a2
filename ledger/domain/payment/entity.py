import datetime
from typing import Optional
from pydantic import BaseModel, Field


class Payment(BaseModel):
    ulid: str = Field(..., min_length=26, max_length=26)
    account_ulid: str
    index: int
    satoshis: int = Field(..., description="Amount in satoshis, never fractional")
    created_at: datetime.datetime
    paid_at: Optional[datetime.datetime] = None

    @property
    def is_paid(self) -> bool:
        return self.paid_at is not None
