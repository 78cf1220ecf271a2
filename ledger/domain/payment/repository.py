import datetime
from abc import ABC, abstractmethod
from typing import Optional
from ledger.domain.payment.entity import Payment

class PaymentRepository(ABC):
    @abstractmethod
    async def create_payment(self, account_ulid: str, satoshis: int, ulid: Optional[str] = None) -> Payment:
        pass

    @abstractmethod
    async def mark_paid(self, ulid: str, paid_at: Optional[datetime.datetime] = None) -> bool:
        pass

    @abstractmethod
    async def most_recent_paid(self, account_ulid: str) -> Optional[Payment]:
        pass
