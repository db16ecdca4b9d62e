"""CreateCampaign Use Case

Creates a draft campaign with its ordered recipient list.
"""

from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.owner_repository import OwnerRepository
from src.app.repositories.category_repository import CategoryRepository
from src.app.repositories.campaign_repository import CampaignRepository
from src.app.repositories.campaign_recipient_repository import CampaignRecipientRepository
from src.app.repositories.campaign_credit_repository import CampaignCreditRepository
from src.domain.campaign import Campaign, CampaignStatus
from src.domain.campaign_credit import CampaignCredit
from src.domain.campaign_recipient import CampaignRecipient
from .dtos import CreateCampaignCommandDTO, CampaignResponseDTO


class CreateCampaign:
    """
    Use Case: Create a campaign in draft

    Business Rules:
    1. Owner and category must exist
    2. Template campaigns need a template name; others need text or media
    3. Recipient positions follow the submitted order and never change
    4. An optional refund policy is stored with the campaign
    """

    def __init__(
        self,
        uow: UnitOfWork,
        owner_repo: OwnerRepository,
        category_repo: CategoryRepository,
        campaign_repo: CampaignRepository,
        recipient_repo: CampaignRecipientRepository,
        campaign_credit_repo: CampaignCreditRepository,
    ):
        self.uow = uow
        self.owner_repo = owner_repo
        self.category_repo = category_repo
        self.campaign_repo = campaign_repo
        self.recipient_repo = recipient_repo
        self.campaign_credit_repo = campaign_credit_repo

    async def execute(self, command: CreateCampaignCommandDTO) -> Result[CampaignResponseDTO]:
        message = command.message
        if not message.is_template and not message.text and not message.has_media:
            return Return.err(
                Error(
                    code="VALIDATION_ERROR",
                    message="Message needs a template name, text or media",
                )
            )
        if command.max_delay_seconds < command.min_delay_seconds:
            return Return.err(
                Error(
                    code="VALIDATION_ERROR",
                    message="max_delay_seconds must be >= min_delay_seconds",
                )
            )

        try:
            owner = await self.owner_repo.get_by_id(command.owner_id)
            if not owner:
                return Return.err(
                    Error(code="OWNER_NOT_FOUND", message=f"Owner {command.owner_id} not found")
                )

            category = await self.category_repo.get_by_id(command.category_id)
            if not category:
                return Return.err(
                    Error(code="CATEGORY_NOT_FOUND", message=f"Category {command.category_id} not found")
                )

            campaign = Campaign(
                name=command.name,
                owner_id=command.owner_id,
                category_id=command.category_id,
                campaign_type=command.campaign_type,
                message_spec=message.model_dump(mode="json"),
                status=CampaignStatus.DRAFT,
                batch_size=command.batch_size,
                interval_minutes=command.interval_minutes,
                max_retries=command.max_retries,
                stop_on_error=command.stop_on_error,
                use_message_variations=command.use_message_variations,
                min_delay_seconds=command.min_delay_seconds,
                max_delay_seconds=command.max_delay_seconds,
                total_count=len(command.recipients),
            )
            created = await self.campaign_repo.create(campaign)

            await self.recipient_repo.add_many(
                [
                    CampaignRecipient(
                        campaign_id=created.id,
                        position=position,
                        phone_number=recipient.phone_number,
                        variables=dict(recipient.variables),
                    )
                    for position, recipient in enumerate(command.recipients)
                ]
            )

            if command.refund_policy is not None:
                campaign_credit = CampaignCredit(owner_id=command.owner_id, campaign_id=created.id)
                campaign_credit.apply_policy(command.refund_policy)
                await self.campaign_credit_repo.save(campaign_credit)

            await self.uow.commit()

            return Return.ok(CampaignResponseDTO.from_entity(created))

        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="CREATE_CAMPAIGN_FAILED",
                    message="Failed to create campaign",
                    reason=str(e),
                )
            )
