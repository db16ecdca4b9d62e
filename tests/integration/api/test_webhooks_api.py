"""Integration tests for the WhatsApp webhook endpoints"""

import pytest
from httpx import AsyncClient

from config import ApplicationConfig
from src.domain.campaign import Campaign, CampaignStatus
from src.domain.campaign_recipient import CampaignRecipient, RecipientStatus


def status_payload(*statuses):
    return {
        "object": "whatsapp_business_account",
        "entry": [
            {
                "id": "1029384756",
                "changes": [
                    {
                        "field": "messages",
                        "value": {"messaging_product": "whatsapp", "statuses": list(statuses)},
                    }
                ],
            }
        ],
    }


async def sent_campaign(session):
    campaign = Campaign(
        name="Status updates",
        owner_id="user_1",
        category_id="marketing",
        message_spec={"text": "Hello"},
        status=CampaignStatus.COMPLETED,
        total_count=2,
        sent_count=2,
        last_processed_index=2,
    )
    session.add(campaign)
    await session.flush()
    session.add_all(
        [
            CampaignRecipient(
                campaign_id=campaign.id,
                position=0,
                phone_number="+15550000001",
                status=RecipientStatus.SENT,
                external_message_id="wamid.A",
            ),
            CampaignRecipient(
                campaign_id=campaign.id,
                position=1,
                phone_number="+15550000002",
                status=RecipientStatus.SENT,
                external_message_id="wamid.B",
            ),
        ]
    )
    await session.commit()
    return campaign


class TestWebhookVerification:

    @pytest.mark.asyncio
    async def test_echoes_challenge_with_valid_token(self, client: AsyncClient, monkeypatch):
        monkeypatch.setattr(ApplicationConfig, "META_WEBHOOK_VERIFY_TOKEN", "s3cret")

        response = await client.get(
            "/api/webhooks/whatsapp",
            params={"hub.mode": "subscribe", "hub.verify_token": "s3cret", "hub.challenge": "1158201444"},
        )

        assert response.status_code == 200
        assert response.text == "1158201444"

    @pytest.mark.asyncio
    async def test_rejects_wrong_token(self, client: AsyncClient, monkeypatch):
        monkeypatch.setattr(ApplicationConfig, "META_WEBHOOK_VERIFY_TOKEN", "s3cret")

        response = await client.get(
            "/api/webhooks/whatsapp",
            params={"hub.mode": "subscribe", "hub.verify_token": "guess", "hub.challenge": "1"},
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "WEBHOOK_VERIFICATION_FAILED"


class TestWebhookStatusUpdates:

    @pytest.mark.asyncio
    async def test_applies_forward_updates_and_ignores_stale_ones(self, client: AsyncClient, seed):
        """
        Given: Two sent recipients
        When: One is read, then a late 'delivered' arrives, and the other fails
        Then: Counters follow the furthest status and the stale update is ignored
        """
        campaign = await sent_campaign(seed)

        response = await client.post(
            "/api/webhooks/whatsapp",
            json=status_payload(
                {"id": "wamid.A", "status": "read", "timestamp": "1729332000"},
                {"id": "wamid.A", "status": "delivered", "timestamp": "1729331990"},
                {
                    "id": "wamid.B",
                    "status": "failed",
                    "timestamp": "1729332001",
                    "errors": [{"code": 131049, "title": "Not delivered to maintain healthy ecosystem"}],
                },
                {"id": "wamid.unknown", "status": "delivered"},
            ),
        )

        assert response.status_code == 200
        assert response.json() == {"received": 4, "applied": 2, "ignored": 2}

        stats = (await client.get(f"/api/campaigns/{campaign.id}")).json()["stats"]
        assert stats == {"total": 2, "sent": 1, "delivered": 1, "read": 1, "failed": 1}

    @pytest.mark.asyncio
    async def test_empty_notification_is_accepted(self, client: AsyncClient, seed):
        response = await client.post("/api/webhooks/whatsapp", json={"object": "whatsapp_business_account", "entry": []})

        assert response.status_code == 200
        assert response.json()["received"] == 0
