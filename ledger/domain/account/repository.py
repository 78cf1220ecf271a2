from abc import ABC, abstractmethod
from typing import List, Optional
from ledger.domain.account.entity import Account, Quota

class AccountRepository(ABC):
    @abstractmethod
    async def create_account(self, wallet_id: int, ulid: Optional[str] = None) -> Account:
        pass

    @abstractmethod
    async def attach_xpub(self, ulid: str, xpub: str) -> bool:
        pass

    @abstractmethod
    async def get_account(self, ulid: str) -> Optional[Account]:
        pass

    @abstractmethod
    async def get_account_by_token_hash(self, hash_id: str) -> Optional[Account]:
        pass

    @abstractmethod
    async def recharge(self, ulid: str, quota: Quota) -> Optional[Quota]:
        pass

    @abstractmethod
    async def list_accounts_with_quota(self) -> List[Account]:
        pass
