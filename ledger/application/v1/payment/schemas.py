import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ledger.domain.limits import INT8_MAX


class PaymentCreateRequest(BaseModel):
    satoshis: int = Field(..., gt=0, le=INT8_MAX, strict=True, description="Amount in satoshis")


class PaymentMarkPaidRequest(BaseModel):
    paid_at: Optional[datetime.datetime] = None


class PaymentResponse(BaseModel):
    ulid: str
    account_ulid: str
    index: int
    satoshis: int
    created_at: datetime.datetime
    paid_at: Optional[datetime.datetime] = None


class PaymentStatusResponse(BaseModel):
    status: str
    detail: Optional[str] = None
