"""Get Campaign Use Case"""

from libs.result import Result, Return, Error
from src.app.repositories.campaign_repository import CampaignRepository
from .dtos import CampaignResponseDTO


class GetCampaign:
    """Read-only view of a campaign's status, counters and cursor"""

    def __init__(self, campaign_repo: CampaignRepository):
        self.campaign_repo = campaign_repo

    async def execute(self, campaign_id: int) -> Result[CampaignResponseDTO]:
        campaign = await self.campaign_repo.get_by_id(campaign_id)
        if not campaign:
            return Return.err(
                Error(code="CAMPAIGN_NOT_FOUND", message=f"Campaign {campaign_id} not found")
            )
        return Return.ok(CampaignResponseDTO.from_entity(campaign))
