"""Request schemas for Campaign and webhook APIs"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class ScheduleRequestSchema(BaseModel):
    start_at: datetime = Field(..., description="UTC start time (must be in the future)")


class WebhookStatusError(BaseModel):
    code: Optional[Any] = None
    title: Optional[str] = None
    message: Optional[str] = None


class WebhookStatus(BaseModel):
    id: str
    status: str
    timestamp: Optional[str] = None
    recipient_id: Optional[str] = None
    errors: List[WebhookStatusError] = Field(default_factory=list)


class WebhookValue(BaseModel):
    messaging_product: Optional[str] = None
    statuses: List[WebhookStatus] = Field(default_factory=list)


class WebhookChange(BaseModel):
    field: Optional[str] = None
    value: WebhookValue = Field(default_factory=WebhookValue)


class WebhookEntry(BaseModel):
    id: Optional[str] = None
    changes: List[WebhookChange] = Field(default_factory=list)


class WhatsAppWebhookSchema(BaseModel):
    """
    WhatsApp Cloud API webhook notification

    Only `statuses` updates are consumed; inbound messages are ignored.
    """

    object: Optional[str] = None
    entry: List[WebhookEntry] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "object": "whatsapp_business_account",
                "entry": [
                    {
                        "id": "1029384756",
                        "changes": [
                            {
                                "field": "messages",
                                "value": {
                                    "messaging_product": "whatsapp",
                                    "statuses": [
                                        {"id": "wamid.HBgM", "status": "delivered", "timestamp": "1729332000"}
                                    ],
                                },
                            }
                        ],
                    }
                ],
            }
        }

    def iter_statuses(self) -> List[WebhookStatus]:
        return [status for entry in self.entry for change in entry.changes for status in change.value.statuses]


def webhook_error_fields(status: WebhookStatus) -> Dict[str, Optional[str]]:
    if not status.errors:
        return {"error_code": None, "error_message": None}
    error = status.errors[0]
    return {
        "error_code": str(error.code) if error.code is not None else None,
        "error_message": error.message or error.title,
    }
