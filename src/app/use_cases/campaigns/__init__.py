"""Campaign dispatch use cases"""
from .create_campaign import CreateCampaign
from .schedule_campaign import ScheduleCampaign
from .start_campaign import StartCampaign, DispatchRunner
from .pause_campaign import PauseCampaign
from .resume_campaign import ResumeCampaign
from .cancel_campaign import CancelCampaign
from .rerun_campaign import RerunCampaign
from .dispatch_campaign import DispatchCampaign
from .apply_message_status import ApplyMessageStatus
from .get_campaign import GetCampaign
from .message_builder import MessageBuilder, ordered_parameters, render_text
from .dtos import (
    RecipientInputDTO,
    CreateCampaignCommandDTO,
    ScheduleCampaignCommandDTO,
    MessageStatusCommandDTO,
    CampaignResponseDTO,
    StartCampaignResponseDTO,
    MessageStatusResultDTO,
    DispatchResultDTO,
)

__all__ = [
    "CreateCampaign",
    "ScheduleCampaign",
    "StartCampaign",
    "DispatchRunner",
    "PauseCampaign",
    "ResumeCampaign",
    "CancelCampaign",
    "RerunCampaign",
    "DispatchCampaign",
    "ApplyMessageStatus",
    "GetCampaign",
    "MessageBuilder",
    "ordered_parameters",
    "render_text",
    "RecipientInputDTO",
    "CreateCampaignCommandDTO",
    "ScheduleCampaignCommandDTO",
    "MessageStatusCommandDTO",
    "CampaignResponseDTO",
    "StartCampaignResponseDTO",
    "MessageStatusResultDTO",
    "DispatchResultDTO",
]
