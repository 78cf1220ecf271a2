import datetime
from unittest.mock import AsyncMock

import pytest

from ledger.application.v1.account.usecase import (AttachXPubUseCase,
                                                   AuthenticateUseCase,
                                                   CountUsesUseCase,
                                                   CreateAccountUseCase,
                                                   GetAccountOverviewUseCase,
                                                   IssueTokenUseCase,
                                                   RechargeUseCase,
                                                   RevokeTokenUseCase)
from ledger.domain.account.entity import Account, Quota
from ledger.domain.account.quota import QuotaStatus
from ledger.domain.errors import InvalidTokenPrefixError
from ledger.domain.payment.entity import Payment
from ledger.shared.utils import base62_token
from tests.conftest import ACCOUNT_ULID, OTHER_ULID


@pytest.fixture
def account():
    return Account(ulid=ACCOUNT_ULID, wallet_id=12345, index=1)


@pytest.fixture
def account_repo(account):
    repo = AsyncMock()
    repo.create_account.return_value = account
    repo.get_account_by_token_hash.return_value = account
    return repo


@pytest.fixture
def token_repo():
    repo = AsyncMock()
    repo.count_uses.return_value = 0
    repo.revoke_token.return_value = True
    return repo


class TestCreateAccountUseCase:
    """Test account creation use case"""

    @pytest.mark.asyncio
    async def test_execute(self, account_repo, account):
        usecase = CreateAccountUseCase(account_repo)
        result = await usecase.execute(12345)

        assert result == account
        account_repo.create_account.assert_called_once_with(12345, None)

    @pytest.mark.asyncio
    async def test_execute_with_ulid(self, account_repo):
        usecase = CreateAccountUseCase(account_repo)
        await usecase.execute(12345, ACCOUNT_ULID)

        account_repo.create_account.assert_called_once_with(12345, ACCOUNT_ULID)

    @pytest.mark.asyncio
    async def test_attach_xpub(self, account_repo):
        account_repo.attach_xpub.return_value = True

        usecase = AttachXPubUseCase(account_repo)
        assert await usecase.execute(ACCOUNT_ULID, "xpub6CUGRUo") is True


class TestIssueTokenUseCase:
    """Test token issuance"""

    @pytest.mark.asyncio
    async def test_issue_token(self, token_repo):
        usecase = IssueTokenUseCase(token_repo)
        token = await usecase.execute("svc_", ACCOUNT_ULID, email="billing@example.com")

        assert token.startswith("svc_")
        assert base62_token.verify(token)

        args, kwargs = token_repo.save_token.call_args
        assert args == (base62_token.hash_id(token), token, ACCOUNT_ULID)
        assert kwargs == {"email": "billing@example.com", "phone": None, "webhook": None}

    @pytest.mark.asyncio
    async def test_each_issue_is_distinct(self, token_repo):
        usecase = IssueTokenUseCase(token_repo)
        first = await usecase.execute("svc_", ACCOUNT_ULID)
        second = await usecase.execute("svc_", ACCOUNT_ULID)

        assert first != second

    @pytest.mark.asyncio
    async def test_invalid_prefix(self, token_repo):
        usecase = IssueTokenUseCase(token_repo)

        with pytest.raises(InvalidTokenPrefixError):
            await usecase.execute("", ACCOUNT_ULID)

        token_repo.save_token.assert_not_called()


class TestAuthenticateUseCase:
    """Test token authentication"""

    @pytest.mark.asyncio
    async def test_authenticate(self, account_repo, token_repo, account):
        token = base62_token.generate("svc_")

        usecase = AuthenticateUseCase(account_repo, token_repo)
        result = await usecase.execute(token)

        assert result == account
        hash_id = base62_token.hash_id(token)
        account_repo.get_account_by_token_hash.assert_called_once_with(hash_id)
        token_repo.record_use.assert_called_once_with(hash_id)

    @pytest.mark.asyncio
    async def test_malformed_token_skips_lookup(self, account_repo, token_repo):
        usecase = AuthenticateUseCase(account_repo, token_repo)
        result = await usecase.execute("svc_notatoken")

        assert result is None
        account_repo.get_account_by_token_hash.assert_not_called()
        token_repo.record_use.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_token(self, account_repo, token_repo):
        account_repo.get_account_by_token_hash.return_value = None

        usecase = AuthenticateUseCase(account_repo, token_repo)
        result = await usecase.execute(base62_token.generate("svc_"))

        assert result is None
        token_repo.record_use.assert_not_called()


class TestRevokeTokenUseCase:
    """Test token revocation"""

    @pytest.mark.asyncio
    async def test_revoke(self, token_repo):
        token = base62_token.generate("svc_")

        usecase = RevokeTokenUseCase(token_repo)
        assert await usecase.execute(token) is True
        token_repo.revoke_token.assert_called_once_with(base62_token.hash_id(token))

    @pytest.mark.asyncio
    async def test_revoke_already_revoked(self, token_repo):
        token_repo.revoke_token.return_value = False

        usecase = RevokeTokenUseCase(token_repo)
        assert await usecase.execute(base62_token.generate("svc_")) is False

    @pytest.mark.asyncio
    async def test_revoke_garbage(self, token_repo):
        usecase = RevokeTokenUseCase(token_repo)
        assert await usecase.execute("garbage") is False
        token_repo.revoke_token.assert_not_called()


class TestQuotaUseCases:
    """Test usage, recharge and overview"""

    @pytest.mark.asyncio
    async def test_count_uses(self, token_repo):
        token_repo.count_uses.return_value = 42

        usecase = CountUsesUseCase(token_repo)
        assert await usecase.execute(ACCOUNT_ULID) == 42

    @pytest.mark.asyncio
    async def test_recharge(self, account_repo):
        quota = Quota(
            soft_quota=800,
            hard_quota=1000,
            stale_at=datetime.datetime(2026, 11, 1),
            expires_at=datetime.datetime(2026, 11, 8),
        )
        account_repo.recharge.return_value = quota

        usecase = RechargeUseCase(account_repo)
        assert await usecase.execute(ACCOUNT_ULID, quota) == quota
        account_repo.recharge.assert_called_once_with(ACCOUNT_ULID, quota)

    @pytest.mark.asyncio
    async def test_overview_without_quota(self, token_repo, account):
        payment_repo = AsyncMock()
        payment_repo.most_recent_paid.return_value = None
        token_repo.count_uses.return_value = 7

        usecase = GetAccountOverviewUseCase(token_repo, payment_repo)
        overview = await usecase.execute(account)

        assert overview.usage == 7
        assert overview.quota_status == QuotaStatus.UNLIMITED
        assert overview.last_payment is None

    @pytest.mark.asyncio
    async def test_overview_with_quota_and_payment(self, token_repo):
        future = datetime.datetime(2999, 1, 1)
        account = Account(
            ulid=ACCOUNT_ULID,
            wallet_id=12345,
            index=1,
            soft_quota=5,
            hard_quota=10,
            stale_at=future,
            expires_at=future,
        )
        payment = Payment(
            ulid=OTHER_ULID,
            account_ulid=ACCOUNT_ULID,
            index=1,
            satoshis=1000,
            created_at=datetime.datetime(2026, 10, 1),
            paid_at=datetime.datetime(2026, 10, 2),
        )
        payment_repo = AsyncMock()
        payment_repo.most_recent_paid.return_value = payment
        token_repo.count_uses.return_value = 6

        usecase = GetAccountOverviewUseCase(token_repo, payment_repo)
        overview = await usecase.execute(account)

        assert overview.quota_status == QuotaStatus.SOFT_LIMIT
        assert overview.last_payment == payment
