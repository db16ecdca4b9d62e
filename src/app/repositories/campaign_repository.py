"""Campaign Repository Interface

Status changes are compare-and-set and counters are atomic increments,
so the dispatch loop and API callers never overwrite each other.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
from src.domain.campaign import Campaign, CampaignStatus


class CampaignRepository(ABC):

    @abstractmethod
    async def create(self, campaign: Campaign) -> Campaign:
        pass

    @abstractmethod
    async def get_by_id(self, campaign_id: int) -> Optional[Campaign]:
        """Retrieve a campaign, refreshed from the database"""
        pass

    @abstractmethod
    async def get_status(self, campaign_id: int) -> Optional[CampaignStatus]:
        """Fresh read of the status column (never served from a cache)"""
        pass

    @abstractmethod
    async def transition(
        self,
        campaign_id: int,
        from_statuses: Iterable[CampaignStatus],
        to_status: CampaignStatus,
        **values: Any,
    ) -> bool:
        """
        Compare-and-set status change

        Args:
            campaign_id: Campaign ID
            from_statuses: Statuses the campaign must currently be in
            to_status: New status
            **values: Extra columns to set in the same statement

        Returns:
            True if the campaign was in one of from_statuses and was updated
        """
        pass

    @abstractmethod
    async def save_checkpoint(self, campaign_id: int, last_processed_index: int) -> None:
        """
        Persist the resume cursor

        Args:
            campaign_id: Campaign ID
            last_processed_index: Position of the next recipient to send
        """
        pass

    @abstractmethod
    async def increment_counters(self, campaign_id: int, counter_deltas: Dict[str, int]) -> None:
        pass

    @abstractmethod
    async def reset_for_rerun(
        self,
        campaign_id: int,
        from_statuses: Iterable[CampaignStatus],
        to_status: CampaignStatus,
        total_count: int,
    ) -> bool:
        """Zero counters and cursor, bump run_number, set status (compare-and-set)"""
        pass

    @abstractmethod
    async def list_due_scheduled(self, now: datetime, limit: int = 100) -> List[Campaign]:
        pass

    @abstractmethod
    async def list_rate_limited(self, paused_before: datetime, limit: int = 100) -> List[Campaign]:
        """Campaigns paused by the send rate limit no later than paused_before"""
        pass
