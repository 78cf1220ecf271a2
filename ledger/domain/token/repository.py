from abc import ABC, abstractmethod
from typing import Optional
from ledger.domain.token.entity import Token

class TokenRepository(ABC):
    @abstractmethod
    async def save_token(self, hash_id: str, token: str, account_ulid: str,
                         email: Optional[str] = None, phone: Optional[str] = None,
                         webhook: Optional[str] = None) -> None:
        pass

    @abstractmethod
    async def get_token(self, hash_id: str) -> Optional[Token]:
        pass

    @abstractmethod
    async def revoke_token(self, hash_id: str) -> bool:
        pass

    @abstractmethod
    async def record_use(self, hash_id: str) -> None:
        pass

    @abstractmethod
    async def count_uses(self, account_ulid: str) -> int:
        pass
