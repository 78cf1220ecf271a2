from fastapi import APIRouter, Body, Depends, Request

from ledger.application.v1.payment.handlers import (create_payment_handler,
                                                    latest_payment_handler,
                                                    mark_paid_handler)
from ledger.application.v1.payment.schemas import (PaymentCreateRequest,
                                                   PaymentMarkPaidRequest,
                                                   PaymentResponse,
                                                   PaymentStatusResponse)
from ledger.application.v1.payment.usecase import (CreatePaymentUseCase,
                                                   GetLatestPaymentUseCase,
                                                   MarkPaymentPaidUseCase)

router = APIRouter(prefix="/v1", tags=["Payment"])


def get_create_payment_usecase(request: Request):
    return CreatePaymentUseCase(request.app.state.payment_repo)


def get_mark_paid_usecase(request: Request):
    return MarkPaymentPaidUseCase(request.app.state.payment_repo)


def get_latest_payment_usecase(request: Request):
    return GetLatestPaymentUseCase(request.app.state.payment_repo)


@router.post("/accounts/{ulid}/payments", response_model=PaymentResponse, status_code=201)
async def create_payment(
    ulid: str,
    body: PaymentCreateRequest,
    usecase: CreatePaymentUseCase = Depends(get_create_payment_usecase),
):
    return await create_payment_handler(ulid, body, usecase)


@router.post("/payments/{ulid}/paid", response_model=PaymentStatusResponse)
async def mark_payment_paid(
    ulid: str,
    body: PaymentMarkPaidRequest | None = Body(None),
    usecase: MarkPaymentPaidUseCase = Depends(get_mark_paid_usecase),
):
    return await mark_paid_handler(ulid, body or PaymentMarkPaidRequest(), usecase)


@router.get("/accounts/{ulid}/payments/latest", response_model=PaymentResponse)
async def get_latest_payment(
    ulid: str,
    usecase: GetLatestPaymentUseCase = Depends(get_latest_payment_usecase),
):
    return await latest_payment_handler(ulid, usecase)
