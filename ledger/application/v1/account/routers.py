from fastapi import APIRouter, Body, Depends, Path, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ledger.application.v1.account.handlers import (account_overview_handler,
                                                    attach_xpub_handler,
                                                    authenticate_handler,
                                                    create_account_handler,
                                                    issue_token_handler,
                                                    recharge_handler,
                                                    revoke_token_handler,
                                                    usage_handler)
from ledger.application.v1.account.schemas import (AccountCreateRequest,
                                                   AccountOverviewResponse,
                                                   AccountResponse,
                                                   QuotaRequest, QuotaResponse,
                                                   StatusResponse,
                                                   TokenIssueRequest,
                                                   TokenIssueResponse,
                                                   UsageResponse, XPubRequest)
from ledger.application.v1.account.usecase import (AttachXPubUseCase,
                                                   AuthenticateUseCase,
                                                   CountUsesUseCase,
                                                   CreateAccountUseCase,
                                                   GetAccountOverviewUseCase,
                                                   IssueTokenUseCase,
                                                   RechargeUseCase,
                                                   RevokeTokenUseCase)
from ledger.domain.account.entity import Account
from ledger.domain.limits import INT8_MAX

router = APIRouter(prefix="/v1", tags=["Account"])

bearer_scheme = HTTPBearer(auto_error=False)


def get_create_account_usecase(request: Request):
    return CreateAccountUseCase(request.app.state.account_repo)


def get_attach_xpub_usecase(request: Request):
    return AttachXPubUseCase(request.app.state.account_repo)


def get_issue_token_usecase(request: Request):
    return IssueTokenUseCase(request.app.state.token_repo)


def get_authenticate_usecase(request: Request):
    return AuthenticateUseCase(request.app.state.account_repo, request.app.state.token_repo)


def get_revoke_token_usecase(request: Request):
    return RevokeTokenUseCase(request.app.state.token_repo)


def get_count_uses_usecase(request: Request):
    return CountUsesUseCase(request.app.state.token_repo)


def get_recharge_usecase(request: Request):
    return RechargeUseCase(request.app.state.account_repo)


def get_account_overview_usecase(request: Request):
    return GetAccountOverviewUseCase(request.app.state.token_repo, request.app.state.payment_repo)


def get_bearer_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str | None:
    return credentials.credentials if credentials else None


async def get_authenticated_account(
    token: str | None = Depends(get_bearer_token),
    usecase: AuthenticateUseCase = Depends(get_authenticate_usecase),
) -> Account:
    return await authenticate_handler(token, usecase)


@router.post("/wallets/{wallet_id}/accounts", response_model=AccountResponse, status_code=201)
async def create_account(
    wallet_id: int = Path(..., ge=0, le=INT8_MAX),
    body: AccountCreateRequest | None = Body(None),
    usecase: CreateAccountUseCase = Depends(get_create_account_usecase),
):
    return await create_account_handler(wallet_id, body.ulid if body else None, usecase)


@router.put("/accounts/{ulid}/xpub", response_model=StatusResponse)
async def attach_xpub(
    ulid: str,
    body: XPubRequest,
    usecase: AttachXPubUseCase = Depends(get_attach_xpub_usecase),
):
    return await attach_xpub_handler(ulid, body.xpub, usecase)


@router.post("/accounts/{ulid}/tokens", response_model=TokenIssueResponse, status_code=201)
async def issue_token(
    ulid: str,
    request: Request,
    body: TokenIssueRequest | None = Body(None),
    usecase: IssueTokenUseCase = Depends(get_issue_token_usecase),
):
    default_prefix = request.app.state.config.token_prefix
    return await issue_token_handler(ulid, body or TokenIssueRequest(), default_prefix, usecase)


@router.get("/account", response_model=AccountOverviewResponse)
async def get_current_account(
    account: Account = Depends(get_authenticated_account),
    usecase: GetAccountOverviewUseCase = Depends(get_account_overview_usecase),
):
    return await account_overview_handler(account, usecase)


@router.delete("/account/token", response_model=StatusResponse)
async def revoke_current_token(
    token: str | None = Depends(get_bearer_token),
    usecase: RevokeTokenUseCase = Depends(get_revoke_token_usecase),
):
    return await revoke_token_handler(token or "", usecase)


@router.put("/accounts/{ulid}/quota", response_model=QuotaResponse)
async def recharge(
    ulid: str,
    body: QuotaRequest,
    usecase: RechargeUseCase = Depends(get_recharge_usecase),
):
    return await recharge_handler(ulid, body, usecase)


@router.get("/accounts/{ulid}/usage", response_model=UsageResponse)
async def get_usage(
    ulid: str,
    usecase: CountUsesUseCase = Depends(get_count_uses_usecase),
):
    return await usage_handler(ulid, usecase)
