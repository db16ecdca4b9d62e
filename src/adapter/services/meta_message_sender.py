"""Message Sender Implementations

Provides the WhatsApp Cloud API (Meta Graph API) sender plus a logging
sender for development.
"""

import logging
from typing import Any, Dict, Optional
import httpx
from src.app.services.message_sender import MessageSender, OutboundMessage, SendResult
from src.domain.base import generate_uuid
from src.domain.errors import ProviderAuthenticationError, ProviderError

logger = logging.getLogger(__name__)

# Graph API error codes: 190 expired/invalid token; throttling codes are retryable
AUTH_ERROR_CODES = frozenset({"190"})
RETRYABLE_ERROR_CODES = frozenset({"1", "2", "4", "80007", "130429", "131000", "131016", "131048", "131056"})


class LoggingMessageSender(MessageSender):
    """
    Message sender that only logs

    Useful for development and testing when no provider credentials are set.
    """

    async def send(self, recipient_address: str, message: OutboundMessage) -> SendResult:
        kind = f"template '{message.template_name}'" if message.is_template else "free-text message"
        logger.info(f"[DRY RUN] Would send {kind} to {recipient_address}")
        return SendResult(external_id=f"dryrun.{generate_uuid()}", provider_status="logged")


class MetaCloudMessageSender(MessageSender):
    """
    Message sender for the WhatsApp Cloud API

    POSTs to {base_url}/{api_version}/{phone_number_id}/messages with a
    bearer token. Every call is bounded by `timeout`; timeouts, transport
    errors, 429 and 5xx are retryable, rejected credentials abort the
    campaign, other 4xx are permanent.
    """

    def __init__(
        self,
        phone_number_id: str,
        access_token: str,
        base_url: str = "https://graph.facebook.com",
        api_version: str = "v22.0",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.phone_number_id = phone_number_id
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")
        self.api_version = api_version
        self.timeout = timeout
        self.transport = transport

    @property
    def messages_url(self) -> str:
        return f"{self.base_url}/{self.api_version}/{self.phone_number_id}/messages"

    async def send(self, recipient_address: str, message: OutboundMessage) -> SendResult:
        payload = self.build_payload(recipient_address, message)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    self.messages_url,
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {self.access_token}",
                        "Content-Type": "application/json",
                    },
                )
        except httpx.TimeoutException as e:
            raise ProviderError("TIMEOUT", f"Request to WhatsApp API timed out: {e}", retryable=True)
        except httpx.TransportError as e:
            raise ProviderError("NETWORK_ERROR", f"Could not reach WhatsApp API: {e}", retryable=True)

        if response.is_success:
            return self._parse_success(response)

        raise self._to_provider_error(response)

    def build_payload(self, recipient_address: str, message: OutboundMessage) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": recipient_address,
        }

        if message.is_template:
            components = list(message.header_components)
            if message.parameters:
                components.append(
                    {
                        "type": "body",
                        "parameters": [{"type": "text", "text": value} for value in message.parameters],
                    }
                )
            template: Dict[str, Any] = {
                "name": message.template_name,
                "language": {"code": message.language_code},
            }
            if components:
                template["components"] = components
            payload["type"] = "template"
            payload["template"] = template
            return payload

        if message.buttons:
            interactive: Dict[str, Any] = {
                "type": "button",
                "body": {"text": message.text or ""},
                "action": {
                    "buttons": [
                        {"type": "reply", "reply": {"id": button.id, "title": button.title}}
                        for button in message.buttons
                    ]
                },
            }
            if message.media:
                interactive["header"] = {
                    "type": message.media.type,
                    message.media.type: {"link": message.media.url},
                }
            payload["type"] = "interactive"
            payload["interactive"] = interactive
            return payload

        if message.media:
            media: Dict[str, Any] = {"link": message.media.url}
            caption = message.media.caption or message.text
            if caption and message.media.type != "audio":
                media["caption"] = caption
            payload["type"] = message.media.type
            payload[message.media.type] = media
            return payload

        payload["type"] = "text"
        payload["text"] = {"preview_url": False, "body": message.text or ""}
        return payload

    @staticmethod
    def _parse_success(response: httpx.Response) -> SendResult:
        try:
            body = response.json()
            message_id = body["messages"][0]["id"]
        except (ValueError, KeyError, IndexError, TypeError):
            raise ProviderError("INVALID_RESPONSE", f"Unexpected WhatsApp API response: {response.text[:200]}")

        status = body["messages"][0].get("message_status", "accepted")
        return SendResult(external_id=message_id, provider_status=status)

    @staticmethod
    def _to_provider_error(response: httpx.Response) -> ProviderError:
        code = str(response.status_code)
        message = response.reason_phrase or "WhatsApp API error"
        try:
            error = response.json().get("error") or {}
            if error.get("code") is not None:
                code = str(error["code"])
            message = error.get("error_user_msg") or error.get("message") or message
        except (ValueError, AttributeError):
            pass

        if response.status_code in (401, 403) or code in AUTH_ERROR_CODES:
            return ProviderAuthenticationError(code, message)

        retryable = (
            response.status_code == 429
            or response.status_code >= 500
            or code in RETRYABLE_ERROR_CODES
        )
        return ProviderError(code, message, retryable=retryable)


def create_message_sender(
    phone_number_id: Optional[str] = None,
    access_token: Optional[str] = None,
    base_url: str = "https://graph.facebook.com",
    api_version: str = "v22.0",
    timeout: float = 30.0,
) -> MessageSender:
    """
    Factory function to create the appropriate message sender

    Returns the Cloud API sender when credentials are configured, otherwise
    the logging sender.
    """
    if phone_number_id and access_token:
        return MetaCloudMessageSender(
            phone_number_id=phone_number_id,
            access_token=access_token,
            base_url=base_url,
            api_version=api_version,
            timeout=timeout,
        )

    logger.warning("WhatsApp credentials not configured; messages will only be logged")
    return LoggingMessageSender()
