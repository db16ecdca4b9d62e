"""
Calculate Required Credits Use Case

Prices a campaign run from its category's pricing without touching any
balance.
"""
from decimal import Decimal, ROUND_FLOOR
from libs.result import Result, Return, Error
from src.domain.campaign import Campaign, CampaignType
from src.domain.category import Category
from .dtos import RequiredCreditsDTO


# Campaign types that carry interactive elements even without explicit buttons
INTERACTIVE_CAMPAIGN_TYPES = frozenset({CampaignType.BUTTON, CampaignType.LIST, CampaignType.POLL})


def per_message_cost(campaign: Campaign, category: Category) -> Decimal:
    """creditCost x type multiplier, plus media and interactive surcharges"""
    message = campaign.message
    cost = Decimal(str(category.credit_cost)) * Decimal(
        str(category.campaign_type_multiplier(CampaignType(campaign.campaign_type).value))
    )
    if message.has_media:
        cost += Decimal(str(category.media_credit_cost))
    if message.has_buttons or CampaignType(campaign.campaign_type) in INTERACTIVE_CAMPAIGN_TYPES:
        cost += Decimal(str(category.interactive_credit_cost))
    return cost


class CalculateRequiredCredits:
    """
    Use case: Price a campaign run

    The per-message cost is summed without rounding and the total for all
    recipients is truncated once, so fractional multipliers never compound.
    """

    async def execute(
        self, campaign: Campaign, category: Category, recipient_count: int
    ) -> Result[RequiredCreditsDTO]:
        if recipient_count < 0:
            return Return.err(
                Error(code="VALIDATION_ERROR", message="Recipient count cannot be negative")
            )

        cost = per_message_cost(campaign, category)
        total = (cost * recipient_count).to_integral_value(rounding=ROUND_FLOOR)

        return Return.ok(
            RequiredCreditsDTO(
                required_credits=max(0, int(total)),
                per_message_cost=float(cost),
                recipient_count=recipient_count,
            )
        )
