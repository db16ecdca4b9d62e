"""Campaign Credit Repository Interface

Persistence for the refund policy attached to an (owner, campaign) pair.
"""

from abc import ABC, abstractmethod
from typing import Optional
from src.domain.campaign_credit import CampaignCredit


class CampaignCreditRepository(ABC):

    @abstractmethod
    async def get(self, owner_id: str, campaign_id: int) -> Optional[CampaignCredit]:
        pass

    @abstractmethod
    async def save(self, campaign_credit: CampaignCredit) -> CampaignCredit:
        """Insert or update the association"""
        pass
