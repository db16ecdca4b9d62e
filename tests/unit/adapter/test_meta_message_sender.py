"""Unit tests for the WhatsApp Cloud API sender

Uses httpx.MockTransport so no network calls are made.
"""

import json
import httpx
import pytest

from src.adapter.services.meta_message_sender import (
    LoggingMessageSender,
    MetaCloudMessageSender,
    create_message_sender,
)
from src.app.services.message_sender import OutboundMessage
from src.domain.errors import ProviderAuthenticationError, ProviderError


def make_sender(handler):
    return MetaCloudMessageSender(
        phone_number_id="1234",
        access_token="token-abc",
        api_version="v22.0",
        transport=httpx.MockTransport(handler),
    )


def graph_error(status_code, code, message="error"):
    return httpx.Response(status_code, json={"error": {"code": code, "message": message}})


@pytest.mark.asyncio
class TestMetaCloudMessageSender:

    async def test_template_send(self):
        captured = {}

        def handler(request: httpx.Request):
            captured["url"] = str(request.url)
            captured["auth"] = request.headers["Authorization"]
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"messages": [{"id": "wamid.1"}]})

        result = await make_sender(handler).send(
            "+15550001111",
            OutboundMessage(template_name="promo_oct", language_code="en_US", parameters=["Ana", "Friday"]),
        )

        assert result.external_id == "wamid.1"
        assert captured["url"] == "https://graph.facebook.com/v22.0/1234/messages"
        assert captured["auth"] == "Bearer token-abc"
        template = captured["body"]["template"]
        assert captured["body"]["type"] == "template"
        assert template["name"] == "promo_oct"
        assert template["components"] == [
            {
                "type": "body",
                "parameters": [{"type": "text", "text": "Ana"}, {"type": "text", "text": "Friday"}],
            }
        ]

    async def test_rate_limited_response_is_retryable(self):
        sender = make_sender(lambda request: graph_error(429, 130429, "Rate limit hit"))

        with pytest.raises(ProviderError) as excinfo:
            await sender.send("+15550001111", OutboundMessage(text="hi"))

        assert excinfo.value.retryable is True
        assert excinfo.value.code == "130429"

    async def test_server_error_is_retryable(self):
        sender = make_sender(lambda request: httpx.Response(503, text="unavailable"))

        with pytest.raises(ProviderError) as excinfo:
            await sender.send("+15550001111", OutboundMessage(text="hi"))

        assert excinfo.value.retryable is True

    async def test_invalid_recipient_is_permanent(self):
        sender = make_sender(lambda request: graph_error(400, 131026, "Message undeliverable"))

        with pytest.raises(ProviderError) as excinfo:
            await sender.send("+15550001111", OutboundMessage(text="hi"))

        assert excinfo.value.retryable is False
        assert excinfo.value.message == "Message undeliverable"

    async def test_expired_token_aborts(self):
        sender = make_sender(lambda request: graph_error(400, 190, "Access token has expired"))

        with pytest.raises(ProviderAuthenticationError):
            await sender.send("+15550001111", OutboundMessage(text="hi"))

    async def test_unauthorized_status_aborts(self):
        sender = make_sender(lambda request: httpx.Response(401, json={}))

        with pytest.raises(ProviderAuthenticationError):
            await sender.send("+15550001111", OutboundMessage(text="hi"))

    async def test_timeout_is_retryable(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(ProviderError) as excinfo:
            await make_sender(handler).send("+15550001111", OutboundMessage(text="hi"))

        assert excinfo.value.code == "TIMEOUT"
        assert excinfo.value.retryable is True

    async def test_malformed_success_body(self):
        sender = make_sender(lambda request: httpx.Response(200, json={"messages": []}))

        with pytest.raises(ProviderError) as excinfo:
            await sender.send("+15550001111", OutboundMessage(text="hi"))

        assert excinfo.value.code == "INVALID_RESPONSE"


class TestBuildPayload:

    def setup_method(self):
        self.sender = MetaCloudMessageSender(phone_number_id="1234", access_token="t")

    def test_text_payload(self):
        payload = self.sender.build_payload("+1555", OutboundMessage(text="Hello"))

        assert payload["type"] == "text"
        assert payload["text"] == {"preview_url": False, "body": "Hello"}

    def test_media_payload_uses_text_as_caption(self):
        payload = self.sender.build_payload(
            "+1555",
            OutboundMessage(text="Look", media={"type": "image", "url": "https://example.com/a.png"}),
        )

        assert payload["type"] == "image"
        assert payload["image"] == {"link": "https://example.com/a.png", "caption": "Look"}

    def test_buttons_become_interactive_reply_buttons(self):
        payload = self.sender.build_payload(
            "+1555",
            OutboundMessage(text="Join?", buttons=[{"id": "yes", "title": "Yes"}, {"id": "no", "title": "No"}]),
        )

        assert payload["type"] == "interactive"
        buttons = payload["interactive"]["action"]["buttons"]
        assert [button["reply"]["id"] for button in buttons] == ["yes", "no"]


def test_factory_falls_back_to_logging_sender():
    assert isinstance(create_message_sender(), LoggingMessageSender)
    assert isinstance(create_message_sender(phone_number_id="1", access_token="t"), MetaCloudMessageSender)
