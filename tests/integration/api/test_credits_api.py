"""Integration tests for Credit API endpoints"""

import pytest
from datetime import timedelta
from httpx import AsyncClient

from src.domain.base import utcnow
from src.domain.credit_balance import CreditBalance, DurationPolicy


class TestCreditsAPIIntegration:
    """Integration test suite for Credit API endpoints"""

    @pytest.mark.asyncio
    async def test_transfer_success(self, client: AsyncClient, seed):
        """POST /credits/transfers moves credits down the hierarchy and returns 201"""
        # Arrange
        seed.add(CreditBalance(owner_id="reseller_1", category_id="marketing", amount=500))
        await seed.commit()

        # Act
        payload = {
            "from_owner_id": "reseller_1",
            "to_owner_id": "user_1",
            "category_id": "marketing",
            "amount": 120,
            "duration_policy": "monthly",
            "idempotency_key": "api_transfer_1",
        }
        response = await client.post("/api/credits/transfers", json=payload)

        # Assert
        assert response.status_code == 201
        data = response.json()
        assert data["transaction_type"] == "transfer"
        assert data["amount"] == 120
        assert data["balance_after"] == 120

        balance = await client.get("/api/credits/balances/user_1/marketing")
        assert balance.status_code == 200
        assert balance.json()["amount"] == 120
        assert balance.json()["duration_policy"] == "monthly"

    @pytest.mark.asyncio
    async def test_transfer_not_allowed_returns_403(self, client: AsyncClient, seed):
        seed.add(CreditBalance(owner_id="user_1", category_id="marketing", amount=50))
        await seed.commit()

        payload = {
            "from_owner_id": "user_1",
            "to_owner_id": "user_2",
            "category_id": "marketing",
            "amount": 10,
        }
        response = await client.post("/api/credits/transfers", json=payload)

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "TRANSFER_NOT_ALLOWED"

    @pytest.mark.asyncio
    async def test_transfer_insufficient_returns_402(self, client: AsyncClient, seed):
        seed.add(CreditBalance(owner_id="reseller_1", category_id="marketing", amount=5))
        await seed.commit()

        payload = {
            "from_owner_id": "reseller_1",
            "to_owner_id": "user_1",
            "category_id": "marketing",
            "amount": 10,
        }
        response = await client.post("/api/credits/transfers", json=payload)

        assert response.status_code == 402
        assert response.json()["error"]["code"] == "INSUFFICIENT_CREDIT"

    @pytest.mark.asyncio
    async def test_transfer_validation_error(self, client: AsyncClient, seed):
        """Non-positive amounts are rejected before reaching the use case"""
        payload = {
            "from_owner_id": "reseller_1",
            "to_owner_id": "user_1",
            "category_id": "marketing",
            "amount": 0,
        }
        response = await client.post("/api/credits/transfers", json=payload)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_debit_and_history(self, client: AsyncClient, seed):
        seed.add(CreditBalance(owner_id="user_1", category_id="marketing", amount=100))
        await seed.commit()

        debit = await client.post(
            "/api/credits/debits",
            json={"owner_id": "user_1", "category_id": "marketing", "amount": 30},
        )
        history = await client.get(
            "/api/credits/transactions", params={"owner_id": "user_1", "transaction_type": "debit"}
        )

        assert debit.status_code == 200
        assert debit.json()["balance_after"] == 70
        assert history.status_code == 200
        assert history.json()["total"] == 1
        assert history.json()["transactions"][0]["amount"] == 30

    @pytest.mark.asyncio
    async def test_balance_not_found(self, client: AsyncClient, seed):
        response = await client.get("/api/credits/balances/user_2/marketing")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "BALANCE_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_expired_balance_reads_zero_until_swept(self, client: AsyncClient, seed):
        seed.add(
            CreditBalance(
                owner_id="user_1",
                category_id="marketing",
                amount=40,
                duration_policy=DurationPolicy.DAILY,
                expires_at=utcnow() - timedelta(hours=2),
            )
        )
        await seed.commit()

        before = await client.get("/api/credits/balances/user_1/marketing")
        sweep = await client.post("/api/credits/expiry-sweeps")
        after = await client.get("/api/credits/balances/user_1/marketing")

        assert before.json()["amount"] == 0
        assert before.json()["stored_amount"] == 40
        assert sweep.status_code == 200
        assert sweep.json()["expired_credits"] == 40
        assert after.json()["stored_amount"] == 0
        assert after.json()["duration_policy"] == "unlimited"
