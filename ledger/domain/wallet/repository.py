from abc import ABC, abstractmethod
from typing import Optional
from ledger.domain.wallet.entity import Wallet

class WalletRepository(ABC):
    @abstractmethod
    async def register_wallet(self, wallet_id: int, conn=None) -> bool:
        """
        Insert the wallet if missing; False when it already existed.
        A connection passed in conn joins the caller's open transaction.
        """
        pass

    @abstractmethod
    async def get_wallet(self, wallet_id: int) -> Optional[Wallet]:
        pass
