from dataclasses import dataclass
from typing import Optional

from ledger.domain.account.entity import Account, Quota
from ledger.domain.account.quota import QuotaStatus, evaluate
from ledger.domain.account.repository import AccountRepository
from ledger.domain.errors import InvalidTokenPrefixError
from ledger.domain.payment.entity import Payment
from ledger.domain.payment.repository import PaymentRepository
from ledger.domain.token.repository import TokenRepository
from ledger.shared.monitoring.logging import LoggerMixin, log_token_operation, mask_token
from ledger.shared.monitoring.metrics import (
    record_authentication,
    record_token_issued,
    record_token_revoked,
    token_authentication_duration_seconds,
    track_time,
)
from ledger.shared.utils import base62_token


@dataclass
class AccountOverview:
    account: Account
    usage: int
    quota_status: QuotaStatus
    last_payment: Optional[Payment]


# --- Use Cases ---
class CreateAccountUseCase(LoggerMixin):
    def __init__(self, account_repository: AccountRepository):
        self.account_repository = account_repository

    async def execute(self, wallet_id: int, ulid: Optional[str] = None) -> Account:
        """
        Creates an account for the wallet with the next derivation index.
        The wallet is registered on first use.
        """
        return await self.account_repository.create_account(wallet_id, ulid)


class AttachXPubUseCase:
    def __init__(self, account_repository: AccountRepository):
        self.account_repository = account_repository

    async def execute(self, ulid: str, xpub: str) -> bool:
        return await self.account_repository.attach_xpub(ulid, xpub)


class IssueTokenUseCase(LoggerMixin):
    def __init__(self, token_repository: TokenRepository):
        self.token_repository = token_repository

    async def execute(
        self,
        prefix: str,
        account_ulid: str,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        webhook: Optional[str] = None,
    ) -> str:
        """
        Issues a capability token bound to the account and returns it.

        Only the hash id identifies the token afterwards; the caller is the
        only party that receives the token from this call.
        """
        if not base62_token.is_valid_prefix(prefix):
            raise InvalidTokenPrefixError(prefix)

        token = base62_token.generate(prefix)
        hash_id = base62_token.hash_id(token)
        await self.token_repository.save_token(
            hash_id, token, account_ulid, email=email, phone=phone, webhook=webhook
        )
        record_token_issued()
        self.logger.info(
            f"Token issued - Hash: {hash_id}, Account: {account_ulid}",
            extra=log_token_operation("issue", hash_id, account_ulid=account_ulid),
        )
        return token


class AuthenticateUseCase(LoggerMixin):
    def __init__(self, account_repository: AccountRepository, token_repository: TokenRepository):
        self.account_repository = account_repository
        self.token_repository = token_repository

    @track_time(token_authentication_duration_seconds)
    async def execute(self, token: str) -> Account | None:
        """
        Resolves a presented token to its account and records the use.

        Returns None for malformed, unknown or revoked tokens.
        """
        if not base62_token.verify(token):
            record_authentication("malformed")
            self.logger.info(f"Malformed token rejected - {mask_token(token)}")
            return None

        hash_id = base62_token.hash_id(token)
        account = await self.account_repository.get_account_by_token_hash(hash_id)
        if account is None:
            record_authentication("unknown")
            self.logger.info(f"Authentication failed - Hash: {hash_id}")
            return None

        await self.token_repository.record_use(hash_id)
        record_authentication("success")
        return account


class RevokeTokenUseCase(LoggerMixin):
    def __init__(self, token_repository: TokenRepository):
        self.token_repository = token_repository

    async def execute(self, token: str) -> bool:
        if base62_token.split(token) is None:
            return False
        revoked = await self.token_repository.revoke_token(base62_token.hash_id(token))
        if revoked:
            record_token_revoked()
        return revoked


class CountUsesUseCase:
    def __init__(self, token_repository: TokenRepository):
        self.token_repository = token_repository

    async def execute(self, account_ulid: str) -> int:
        return await self.token_repository.count_uses(account_ulid)


class RechargeUseCase:
    def __init__(self, account_repository: AccountRepository):
        self.account_repository = account_repository

    async def execute(self, account_ulid: str, quota: Quota) -> Quota | None:
        return await self.account_repository.recharge(account_ulid, quota)


class GetAccountOverviewUseCase:
    def __init__(self, token_repository: TokenRepository, payment_repository: PaymentRepository):
        self.token_repository = token_repository
        self.payment_repository = payment_repository

    async def execute(self, account: Account) -> AccountOverview:
        usage = await self.token_repository.count_uses(account.ulid)
        last_payment = await self.payment_repository.most_recent_paid(account.ulid)
        return AccountOverview(
            account=account,
            usage=usage,
            quota_status=evaluate(account.quota, usage),
            last_payment=last_payment,
        )
