import datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock

import asyncpg
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from ledger.application.v1.account.routers import router as account_router
from ledger.application.v1.errors import register_exception_handlers
from ledger.application.v1.payment.routers import router as payment_router
from ledger.domain.account.entity import Account, Quota
from ledger.domain.errors import (ConstraintViolationError,
                                  InvalidPaymentAmountError,
                                  TransientStorageError)
from ledger.domain.payment.entity import Payment
from ledger.infrastructure.db.account.postgresql_repository import PostgreSQLAccountRepository
from ledger.shared.utils import base62_token
from tests.conftest import ACCOUNT_ULID, OTHER_ULID, make_pool


@pytest.fixture
def account():
    return Account(ulid=ACCOUNT_ULID, wallet_id=12345, index=1)


@pytest.fixture
def app(account):
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(account_router)
    app.include_router(payment_router)

    app.state.config = SimpleNamespace(token_prefix="svc_")
    app.state.account_repo = AsyncMock()
    app.state.token_repo = AsyncMock()
    app.state.payment_repo = AsyncMock()

    app.state.account_repo.create_account.return_value = account
    app.state.account_repo.get_account_by_token_hash.return_value = account
    app.state.token_repo.count_uses.return_value = 0
    app.state.payment_repo.most_recent_paid.return_value = None
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def payment():
    return Payment(
        ulid=OTHER_ULID,
        account_ulid=ACCOUNT_ULID,
        index=1,
        satoshis=25_000,
        created_at=datetime.datetime(2026, 10, 1, 10, 0),
    )


class TestAccountRoutes:
    """Test account and token endpoints"""

    def test_create_account(self, client, app):
        response = client.post("/v1/wallets/12345/accounts")

        assert response.status_code == 201
        data = response.json()
        assert data["ulid"] == ACCOUNT_ULID
        assert data["index"] == 1
        assert data["xpub"] == ""
        app.state.account_repo.create_account.assert_called_once_with(12345, None)

    def test_create_account_with_ulid(self, client, app):
        response = client.post("/v1/wallets/12345/accounts", json={"ulid": ACCOUNT_ULID})

        assert response.status_code == 201
        app.state.account_repo.create_account.assert_called_once_with(12345, ACCOUNT_ULID)

    def test_create_account_storage_down(self, client, app):
        app.state.account_repo.create_account.side_effect = TransientStorageError(
            "create_account", "connection refused"
        )

        response = client.post("/v1/wallets/12345/accounts")

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "1"

    @pytest.mark.parametrize("wallet_id", [-1, 2**63, 1180591620717411303424])
    def test_create_account_wallet_id_out_of_range(self, client, app, wallet_id):
        response = client.post(f"/v1/wallets/{wallet_id}/accounts")

        assert response.status_code == 422
        app.state.account_repo.create_account.assert_not_called()

    def test_create_account_at_max_wallet_id(self, client, app):
        response = client.post(f"/v1/wallets/{2**63 - 1}/accounts")

        assert response.status_code == 201
        app.state.account_repo.create_account.assert_called_once_with(2**63 - 1, None)

    def test_create_account_value_rejected_by_database(self, client, app):
        pool, conn = make_pool()
        conn.fetchval.side_effect = asyncpg.exceptions.NumericValueOutOfRangeError(
            "bigint out of range"
        )
        app.state.account_repo = PostgreSQLAccountRepository(pool)

        response = client.post("/v1/wallets/12345/accounts")

        assert response.status_code == 422
        assert "bigint out of range" in response.json()["detail"]

    def test_attach_xpub(self, client, app):
        app.state.account_repo.attach_xpub.return_value = True

        response = client.put(f"/v1/accounts/{ACCOUNT_ULID}/xpub", json={"xpub": "xpub6CUGRUo"})

        assert response.status_code == 200
        assert response.json()["status"] == "success"

    def test_attach_xpub_unknown_account(self, client, app):
        app.state.account_repo.attach_xpub.return_value = False

        response = client.put(f"/v1/accounts/{ACCOUNT_ULID}/xpub", json={"xpub": "xpub6CUGRUo"})

        assert response.status_code == 404

    def test_issue_token_uses_default_prefix(self, client, app):
        response = client.post(f"/v1/accounts/{ACCOUNT_ULID}/tokens")

        assert response.status_code == 201
        token = response.json()["token"]
        assert token.startswith("svc_")
        assert base62_token.verify(token)

    def test_issue_token_with_prefix(self, client):
        response = client.post(f"/v1/accounts/{ACCOUNT_ULID}/tokens", json={"prefix": "prod_"})

        assert response.status_code == 201
        assert response.json()["token"].startswith("prod_")

    def test_issue_token_prefix_with_dash(self, client):
        response = client.post(f"/v1/accounts/{ACCOUNT_ULID}/tokens", json={"prefix": "svc-prod_"})

        assert response.status_code == 201
        token = response.json()["token"]
        assert token.startswith("svc-prod_")
        assert len(token) == len("svc-prod_") + base62_token.TOKEN_LEN
        assert base62_token.verify(token)

    def test_issue_token_invalid_prefix(self, client):
        response = client.post(f"/v1/accounts/{ACCOUNT_ULID}/tokens", json={"prefix": ""})

        assert response.status_code == 422

    def test_issue_token_unknown_account(self, client, app):
        app.state.token_repo.save_token.side_effect = ConstraintViolationError(
            "save_token", "foreign key violation", "base62_token_account_ulid_fkey"
        )

        response = client.post(f"/v1/accounts/{ACCOUNT_ULID}/tokens")

        assert response.status_code == 409
        assert response.json()["constraint"] == "base62_token_account_ulid_fkey"

    def test_current_account(self, client, app):
        token = base62_token.generate("svc_")
        app.state.token_repo.count_uses.return_value = 3

        response = client.get("/v1/account", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        data = response.json()
        assert data["account"]["ulid"] == ACCOUNT_ULID
        assert data["request_count"] == 3
        assert data["quota_status"] == "unlimited"
        assert data["last_payment"] is None
        app.state.token_repo.record_use.assert_called_once_with(base62_token.hash_id(token))

    def test_current_account_without_token(self, client):
        response = client.get("/v1/account")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_current_account_with_revoked_token(self, client, app):
        app.state.account_repo.get_account_by_token_hash.return_value = None

        response = client.get(
            "/v1/account",
            headers={"Authorization": f"Bearer {base62_token.generate('svc_')}"},
        )

        assert response.status_code == 401

    def test_revoke_token(self, client, app):
        app.state.token_repo.revoke_token.return_value = True
        token = base62_token.generate("svc_")

        response = client.delete("/v1/account/token", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        app.state.token_repo.revoke_token.assert_called_once_with(base62_token.hash_id(token))

    def test_revoke_token_twice(self, client, app):
        app.state.token_repo.revoke_token.return_value = False

        response = client.delete(
            "/v1/account/token",
            headers={"Authorization": f"Bearer {base62_token.generate('svc_')}"},
        )

        assert response.status_code == 404

    def test_recharge(self, client, app):
        quota = Quota(
            soft_quota=800,
            hard_quota=1000,
            stale_at=datetime.datetime(2026, 11, 1),
            expires_at=datetime.datetime(2026, 11, 8),
        )
        app.state.account_repo.recharge.return_value = quota

        response = client.put(
            f"/v1/accounts/{ACCOUNT_ULID}/quota",
            json={
                "soft_quota": 800,
                "hard_quota": 1000,
                "stale_at": "2026-11-01T00:00:00",
                "expires_at": "2026-11-08T00:00:00",
            },
        )

        assert response.status_code == 200
        assert response.json()["hard_quota"] == 1000

    @pytest.mark.parametrize(
        "field, value",
        [("soft_quota", 2**31), ("hard_quota", 2**31), ("hard_quota", -1)],
    )
    def test_recharge_quota_out_of_range(self, client, app, field, value):
        body = {
            "soft_quota": 800,
            "hard_quota": 1000,
            "stale_at": "2026-11-01T00:00:00",
            "expires_at": "2026-11-08T00:00:00",
        }
        body[field] = value

        response = client.put(f"/v1/accounts/{ACCOUNT_ULID}/quota", json=body)

        assert response.status_code == 422
        app.state.account_repo.recharge.assert_not_called()

    def test_recharge_unknown_account(self, client, app):
        app.state.account_repo.recharge.return_value = None

        response = client.put(
            f"/v1/accounts/{ACCOUNT_ULID}/quota",
            json={
                "soft_quota": 800,
                "hard_quota": 1000,
                "stale_at": "2026-11-01T00:00:00",
                "expires_at": "2026-11-08T00:00:00",
            },
        )

        assert response.status_code == 404

    def test_usage(self, client, app):
        app.state.token_repo.count_uses.return_value = 12

        response = client.get(f"/v1/accounts/{ACCOUNT_ULID}/usage")

        assert response.status_code == 200
        assert response.json() == {"account_ulid": ACCOUNT_ULID, "request_count": 12}


class TestPaymentRoutes:
    """Test payment endpoints"""

    def test_create_payment(self, client, app, payment):
        app.state.payment_repo.create_payment.return_value = payment

        response = client.post(f"/v1/accounts/{ACCOUNT_ULID}/payments", json={"satoshis": 25_000})

        assert response.status_code == 201
        assert response.json()["index"] == 1
        app.state.payment_repo.create_payment.assert_called_once_with(ACCOUNT_ULID, 25_000)

    @pytest.mark.parametrize("satoshis", [0, -5, 1.5, "25000", 2**63])
    def test_create_payment_invalid_amount(self, client, app, satoshis):
        response = client.post(f"/v1/accounts/{ACCOUNT_ULID}/payments", json={"satoshis": satoshis})

        assert response.status_code == 422
        app.state.payment_repo.create_payment.assert_not_called()

    def test_create_payment_rejected_by_repository(self, client, app):
        app.state.payment_repo.create_payment.side_effect = InvalidPaymentAmountError(0)

        response = client.post(f"/v1/accounts/{ACCOUNT_ULID}/payments", json={"satoshis": 1})

        assert response.status_code == 422

    def test_mark_paid(self, client, app):
        app.state.payment_repo.mark_paid.return_value = True

        response = client.post(f"/v1/payments/{OTHER_ULID}/paid")

        assert response.status_code == 200
        app.state.payment_repo.mark_paid.assert_called_once_with(OTHER_ULID, None)

    def test_mark_paid_twice(self, client, app):
        app.state.payment_repo.mark_paid.return_value = False

        response = client.post(f"/v1/payments/{OTHER_ULID}/paid")

        assert response.status_code == 409

    def test_latest_payment(self, client, app, payment):
        paid = payment.model_copy(update={"paid_at": datetime.datetime(2026, 10, 1, 11, 0)})
        app.state.payment_repo.most_recent_paid.return_value = paid

        response = client.get(f"/v1/accounts/{ACCOUNT_ULID}/payments/latest")

        assert response.status_code == 200
        assert response.json()["paid_at"] == "2026-10-01T11:00:00"

    def test_latest_payment_never_paid(self, client):
        response = client.get(f"/v1/accounts/{ACCOUNT_ULID}/payments/latest")

        assert response.status_code == 404
