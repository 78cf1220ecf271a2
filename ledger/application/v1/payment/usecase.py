import datetime
from typing import Optional

from ledger.domain.payment.entity import Payment
from ledger.domain.payment.repository import PaymentRepository


# --- Use Cases ---
class CreatePaymentUseCase:
    def __init__(self, payment_repository: PaymentRepository):
        self.payment_repository = payment_repository

    async def execute(self, account_ulid: str, satoshis: int) -> Payment:
        return await self.payment_repository.create_payment(account_ulid, satoshis)


class MarkPaymentPaidUseCase:
    def __init__(self, payment_repository: PaymentRepository):
        self.payment_repository = payment_repository

    async def execute(self, ulid: str, paid_at: Optional[datetime.datetime] = None) -> bool:
        return await self.payment_repository.mark_paid(ulid, paid_at)


class GetLatestPaymentUseCase:
    def __init__(self, payment_repository: PaymentRepository):
        self.payment_repository = payment_repository

    async def execute(self, account_ulid: str) -> Payment | None:
        """
        Most recent completed payment of the account, None if it has never paid.
        """
        return await self.payment_repository.most_recent_paid(account_ulid)
