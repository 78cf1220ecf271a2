from fastapi import HTTPException

from ledger.application.v1.payment.schemas import (PaymentCreateRequest,
                                                   PaymentMarkPaidRequest,
                                                   PaymentResponse,
                                                   PaymentStatusResponse)
from ledger.application.v1.payment.usecase import (CreatePaymentUseCase,
                                                   GetLatestPaymentUseCase,
                                                   MarkPaymentPaidUseCase)
from ledger.domain.payment.entity import Payment


def payment_response(payment: Payment) -> PaymentResponse:
    return PaymentResponse(**payment.model_dump())


async def create_payment_handler(
    account_ulid: str, request: PaymentCreateRequest, usecase: CreatePaymentUseCase
) -> PaymentResponse:
    payment = await usecase.execute(account_ulid, request.satoshis)
    return payment_response(payment)


async def mark_paid_handler(
    ulid: str, request: PaymentMarkPaidRequest, usecase: MarkPaymentPaidUseCase
) -> PaymentStatusResponse:
    if not await usecase.execute(ulid, request.paid_at):
        raise HTTPException(status_code=409, detail="Payment unknown or already paid")
    return PaymentStatusResponse(status="success", detail="payment marked paid")


async def latest_payment_handler(
    account_ulid: str, usecase: GetLatestPaymentUseCase
) -> PaymentResponse:
    payment = await usecase.execute(account_ulid)
    if payment is None:
        raise HTTPException(status_code=404, detail="No completed payment")
    return payment_response(payment)
