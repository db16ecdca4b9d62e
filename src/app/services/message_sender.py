"""Message Sender Interface

Contract for the external messaging provider. Implementations raise
`ProviderError` (retryable or permanent) or
`ProviderAuthenticationError` (campaign-level) on failure, and must
bound every call with a timeout.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from src.domain.campaign import ButtonSpec, MediaSpec


class OutboundMessage(BaseModel):
    """
    Provider-neutral message for one recipient

    Template mode carries `parameters` in ascending placeholder order
    ({{1}}, {{2}}, ...); free-text mode carries text and optional
    media/buttons.
    """

    template_name: Optional[str] = None
    language_code: str = "en_US"
    parameters: List[str] = Field(default_factory=list)
    header_components: List[Dict[str, Any]] = Field(default_factory=list)
    text: Optional[str] = None
    media: Optional[MediaSpec] = None
    buttons: List[ButtonSpec] = Field(default_factory=list)

    @property
    def is_template(self) -> bool:
        return bool(self.template_name)


class SendResult(BaseModel):
    external_id: str
    provider_status: str = "accepted"


class MessageSender(ABC):

    @abstractmethod
    async def send(self, recipient_address: str, message: OutboundMessage) -> SendResult:
        """
        Send one message

        Args:
            recipient_address: Phone number in international format
            message: Message built for this recipient

        Returns:
            SendResult with the provider's message id

        Raises:
            ProviderError: send failed (check `retryable`)
            ProviderAuthenticationError: credentials rejected
        """
        pass
