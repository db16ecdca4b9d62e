"""Per-recipient message construction

Turns a campaign's MessageSpec plus one recipient's variables into the
OutboundMessage handed to the MessageSender, and applies the optional
anti-throttling text variations.
"""

import random
import re
from typing import Dict, List, Optional
from src.app.services.message_sender import OutboundMessage
from src.domain.campaign import MessageSpec

PLACEHOLDER_KEY = re.compile(r"^\s*(?:\{\{\s*)?(\d+)(?:\s*\}\})?\s*$")
PLACEHOLDER = re.compile(r"\{\{\s*([\w.]+)\s*\}\}")
SPINTAX = re.compile(r"\{([^{}|]*\|[^{}]*)\}")

PHRASE_VARIATIONS: Dict[str, List[str]] = {
    "hello": ["hi", "hey", "greetings"],
    "thank you": ["thanks", "appreciate it", "much obliged"],
}


def ordered_parameters(variables: Optional[Dict[str, str]]) -> List[str]:
    """
    Positional template parameters in ascending placeholder order.

    Keys may be "1" or "{{1}}"; keys without a numeric index are ignored.
    """
    indexed = []
    for key, value in (variables or {}).items():
        match = PLACEHOLDER_KEY.match(str(key))
        if match:
            indexed.append((int(match.group(1)), "" if value is None else str(value)))
    indexed.sort(key=lambda item: item[0])
    return [value for _, value in indexed]


def render_text(text: str, variables: Optional[Dict[str, str]]) -> str:
    """Substitute {{n}} / {{name}} placeholders; unknown ones are left as-is"""
    lookup = {}
    for key, value in (variables or {}).items():
        match = PLACEHOLDER_KEY.match(str(key))
        lookup[match.group(1) if match else str(key)] = "" if value is None else str(value)

    return PLACEHOLDER.sub(lambda m: lookup.get(m.group(1), m.group(0)), text)


class MessageBuilder:
    """
    Builds OutboundMessages and picks jittered delays.

    The random source is injected so tests can make variations and
    delays deterministic.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        phrase_variations: Optional[Dict[str, List[str]]] = None,
    ):
        self.rng = rng or random.Random()
        self.phrase_variations = PHRASE_VARIATIONS if phrase_variations is None else phrase_variations

    def build(
        self,
        message: MessageSpec,
        variables: Optional[Dict[str, str]] = None,
        use_variations: bool = False,
    ) -> OutboundMessage:
        if message.is_template:
            return OutboundMessage(
                template_name=message.template_name,
                language_code=message.language_code,
                parameters=ordered_parameters(variables),
                header_components=list(message.components),
            )

        text = render_text(message.text or "", variables)
        if use_variations:
            text = self.vary(text)

        return OutboundMessage(
            text=text or None,
            media=message.media,
            buttons=list(message.buttons),
        )

    def vary(self, text: str) -> str:
        """Resolve {a|b|c} spintax and swap known phrases for synonyms"""
        text = SPINTAX.sub(lambda m: self.rng.choice(m.group(1).split("|")), text)

        for phrase, choices in self.phrase_variations.items():
            pattern = re.compile(rf"\b{re.escape(phrase)}\b", re.IGNORECASE)
            if pattern.search(text):
                replacement = self.rng.choice(choices)
                text = pattern.sub(lambda _: replacement, text)
        return text

    def jitter_seconds(self, min_delay: float, max_delay: float) -> float:
        if max_delay <= 0:
            return 0.0
        low = max(0.0, min(min_delay, max_delay))
        return self.rng.uniform(low, max_delay)
