"""Background workers for the campaign credit service"""
from .credit_expiry_sweeper import CreditExpirySweeperWorker
from .campaign_scheduler import CampaignSchedulerWorker

__all__ = ["CreditExpirySweeperWorker", "CampaignSchedulerWorker"]
