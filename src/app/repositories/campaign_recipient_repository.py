"""Campaign Recipient Repository Interface"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional
from src.domain.campaign_recipient import CampaignRecipient, RecipientStatus


class CampaignRecipientRepository(ABC):

    @abstractmethod
    async def add_many(self, recipients: List[CampaignRecipient]) -> None:
        pass

    @abstractmethod
    async def list_range(self, campaign_id: int, start: int, end: int) -> List[CampaignRecipient]:
        """Recipients with start <= position < end, ordered by position"""
        pass

    @abstractmethod
    async def list_retry_candidates(self, campaign_id: int, limit: int) -> List[CampaignRecipient]:
        """Failed recipients still flagged error_retryable, ordered by position"""
        pass

    @abstractmethod
    async def count(self, campaign_id: int) -> int:
        pass

    @abstractmethod
    async def count_by_status(self, campaign_id: int) -> Dict[RecipientStatus, int]:
        pass

    @abstractmethod
    async def get_by_external_id(self, external_message_id: str) -> Optional[CampaignRecipient]:
        pass

    @abstractmethod
    async def save_many(self, recipients: List[CampaignRecipient]) -> None:
        pass

    @abstractmethod
    async def reset_all(self, campaign_id: int) -> None:
        """Reset every recipient of the campaign to pending"""
        pass
