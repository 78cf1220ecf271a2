import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ledger.domain.limits import INT4_MAX

from ledger.application.v1.payment.schemas import PaymentResponse


# POST /wallets/{wallet_id}/accounts
class AccountCreateRequest(BaseModel):
    ulid: Optional[str] = Field(None, min_length=26, max_length=26)


class AccountResponse(BaseModel):
    ulid: str
    wallet_id: int
    index: int
    xpub: str
    email: Optional[str] = None
    phone: Optional[str] = None
    webhook: Optional[str] = None
    soft_quota: Optional[int] = None
    hard_quota: Optional[int] = None
    stale_at: Optional[datetime.datetime] = None
    expires_at: Optional[datetime.datetime] = None


# PUT /accounts/{ulid}/xpub
class XPubRequest(BaseModel):
    xpub: str = Field(..., min_length=1, max_length=111)


# POST /accounts/{ulid}/tokens
class TokenIssueRequest(BaseModel):
    prefix: Optional[str] = Field(None, description="Defaults to the configured TOKEN_PREFIX")
    email: Optional[str] = None
    phone: Optional[str] = None
    webhook: Optional[str] = None


class TokenIssueResponse(BaseModel):
    token: str
    account_ulid: str


# PUT /accounts/{ulid}/quota
class QuotaRequest(BaseModel):
    soft_quota: int = Field(..., ge=0, le=INT4_MAX)
    hard_quota: int = Field(..., ge=0, le=INT4_MAX)
    stale_at: datetime.datetime
    expires_at: datetime.datetime


class QuotaResponse(QuotaRequest):
    pass


class UsageResponse(BaseModel):
    account_ulid: str
    request_count: int


# GET /account
class AccountOverviewResponse(BaseModel):
    account: AccountResponse
    request_count: int
    quota_status: str
    last_payment: Optional[PaymentResponse] = None


class StatusResponse(BaseModel):
    status: str
    detail: Optional[str] = None
