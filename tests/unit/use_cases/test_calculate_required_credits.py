"""Unit tests for CalculateRequiredCredits use case"""

import pytest

from src.app.use_cases.credits.calculate_required_credits import (
    CalculateRequiredCredits,
    per_message_cost,
)
from src.domain.campaign import Campaign, CampaignType
from src.domain.category import Category


def make_campaign(campaign_type=CampaignType.TEMPLATE, **message):
    return Campaign(
        id=1,
        name="promo",
        owner_id="user_1",
        category_id="marketing",
        campaign_type=campaign_type,
        message_spec=message or {"template_name": "promo_oct"},
    )


@pytest.fixture
def category():
    return Category(
        id="marketing",
        name="marketing",
        credit_cost=1.0,
        media_credit_cost=0.5,
        interactive_credit_cost=0.25,
        campaign_type_multipliers={"template": 1.5, "quick": 1.0},
    )


@pytest.mark.asyncio
class TestCalculateRequiredCredits:

    async def test_template_campaign_applies_multiplier(self, category):
        """100 recipients x 1.0 x 1.5 = 150"""
        result = await CalculateRequiredCredits().execute(make_campaign(), category, 100)

        assert result.is_ok()
        assert result.value.required_credits == 150
        assert result.value.per_message_cost == 1.5
        assert result.value.recipient_count == 100

    async def test_media_and_buttons_add_surcharges(self, category):
        campaign = make_campaign(
            CampaignType.QUICK,
            text="Hello",
            media={"type": "image", "url": "https://example.com/a.png"},
            buttons=[{"id": "yes", "title": "Yes"}],
        )

        result = await CalculateRequiredCredits().execute(campaign, category, 10)

        # (1.0 + 0.5 + 0.25) x 10
        assert result.value.required_credits == 17

    async def test_interactive_types_pay_surcharge_without_buttons(self, category):
        campaign = make_campaign(CampaignType.POLL, text="Pick one")

        result = await CalculateRequiredCredits().execute(campaign, category, 4)

        assert result.value.required_credits == 5

    async def test_total_is_truncated_once(self):
        """0.3 per message over 10 recipients is 3, not 10 x floor(0.3)"""
        category = Category(id="utility", name="utility", credit_cost=0.3)
        campaign = make_campaign(CampaignType.QUICK, text="hi")

        result = await CalculateRequiredCredits().execute(campaign, category, 10)

        assert result.value.required_credits == 3

    async def test_fractional_total_rounds_down(self):
        category = Category(id="utility", name="utility", credit_cost=1.0, campaign_type_multipliers={"template": 1.25})

        result = await CalculateRequiredCredits().execute(make_campaign(), category, 3)

        assert result.value.required_credits == 3

    async def test_zero_recipients_cost_nothing(self, category):
        result = await CalculateRequiredCredits().execute(make_campaign(), category, 0)

        assert result.value.required_credits == 0

    async def test_negative_recipient_count_is_rejected(self, category):
        result = await CalculateRequiredCredits().execute(make_campaign(), category, -1)

        assert result.error.code == "VALIDATION_ERROR"


def test_unknown_type_multiplier_defaults_to_one(category):
    assert per_message_cost(make_campaign(CampaignType.LIST, text="menu"), category) == pytest.approx(1.25)
