from fastapi import HTTPException

from ledger.application.v1.account.schemas import (AccountOverviewResponse,
                                                   AccountResponse,
                                                   QuotaRequest, QuotaResponse,
                                                   StatusResponse,
                                                   TokenIssueRequest,
                                                   TokenIssueResponse,
                                                   UsageResponse)
from ledger.application.v1.account.usecase import (AttachXPubUseCase,
                                                   AuthenticateUseCase,
                                                   CountUsesUseCase,
                                                   CreateAccountUseCase,
                                                   GetAccountOverviewUseCase,
                                                   IssueTokenUseCase,
                                                   RechargeUseCase,
                                                   RevokeTokenUseCase)
from ledger.application.v1.payment.handlers import payment_response
from ledger.domain.account.entity import Account, Quota
from ledger.shared.monitoring.logging import get_logger

logger = get_logger(__name__)


def account_response(account: Account) -> AccountResponse:
    return AccountResponse(**account.model_dump())


async def create_account_handler(
    wallet_id: int, ulid: str | None, usecase: CreateAccountUseCase
) -> AccountResponse:
    account = await usecase.execute(wallet_id, ulid)
    return account_response(account)


async def attach_xpub_handler(
    ulid: str, xpub: str, usecase: AttachXPubUseCase
) -> StatusResponse:
    if not await usecase.execute(ulid, xpub):
        raise HTTPException(status_code=404, detail="Account not found")
    return StatusResponse(status="success", detail="xpub attached")


async def issue_token_handler(
    ulid: str,
    request: TokenIssueRequest,
    default_prefix: str,
    usecase: IssueTokenUseCase,
) -> TokenIssueResponse:
    token = await usecase.execute(
        default_prefix if request.prefix is None else request.prefix,
        ulid,
        email=request.email,
        phone=request.phone,
        webhook=request.webhook,
    )
    return TokenIssueResponse(token=token, account_ulid=ulid)


async def authenticate_handler(
    token: str | None, usecase: AuthenticateUseCase
) -> Account:
    account = await usecase.execute(token) if token else None
    if account is None:
        raise HTTPException(
            status_code=401,
            detail="Invalid or revoked token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return account


async def account_overview_handler(
    account: Account, usecase: GetAccountOverviewUseCase
) -> AccountOverviewResponse:
    overview = await usecase.execute(account)
    return AccountOverviewResponse(
        account=account_response(overview.account),
        request_count=overview.usage,
        quota_status=overview.quota_status.value,
        last_payment=(
            payment_response(overview.last_payment) if overview.last_payment else None
        ),
    )


async def revoke_token_handler(token: str, usecase: RevokeTokenUseCase) -> StatusResponse:
    if not await usecase.execute(token):
        raise HTTPException(status_code=404, detail="Token not found or already revoked")
    return StatusResponse(status="success", detail="token revoked")


async def recharge_handler(
    ulid: str, request: QuotaRequest, usecase: RechargeUseCase
) -> QuotaResponse:
    if request.soft_quota > request.hard_quota:
        logger.warning(
            f"Recharging with soft quota above hard quota - ULID: {ulid}, Soft: {request.soft_quota}, Hard: {request.hard_quota}"
        )
    quota = await usecase.execute(ulid, Quota(**request.model_dump()))
    if quota is None:
        raise HTTPException(status_code=404, detail="Account not found")
    return QuotaResponse(**quota.model_dump())


async def usage_handler(ulid: str, usecase: CountUsesUseCase) -> UsageResponse:
    count = await usecase.execute(ulid)
    return UsageResponse(account_ulid=ulid, request_count=count)
