"""Attachment message encoding and tolerant decoding."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from pydantic import ValidationError

from numizmapp.schemas.attachment import AttachedItem

logger = logging.getLogger(__name__)

ATTACHMENT_SENTINEL = "$$ATTACHMENT::"
ATTACHMENT_PLACEHOLDER = "could not display attached item"
SYSTEM_MESSAGE_PREFIX = "[system"


@dataclass(slots=True)
class ParsedContent:
    """Message content split into caption text and an optional attachment."""

    text: str
    attachment: AttachedItem | None = None
    attachment_failed: bool = False

    @property
    def placeholder(self) -> str | None:
        return ATTACHMENT_PLACEHOLDER if self.attachment_failed else None


def encode_attachment(item: AttachedItem, *, caption: str = "") -> str:
    """Serialize ``item`` behind the sentinel; ``caption`` is kept verbatim in front."""

    payload = json.dumps(item.model_dump(), separators=(",", ":"), ensure_ascii=False)
    return f"{caption}{ATTACHMENT_SENTINEL}{payload}"


def has_attachment(content: str) -> bool:
    return ATTACHMENT_SENTINEL in content


def parse_message_content(content: str) -> ParsedContent:
    """Decode message content. Never raises on malformed attachment payloads."""

    text, sentinel, payload = content.partition(ATTACHMENT_SENTINEL)
    if not sentinel:
        return ParsedContent(text=content)
    try:
        item = AttachedItem.model_validate_json(payload)
    except ValidationError:
        logger.warning("attachments.decode_failed payload_length=%d", len(payload))
        return ParsedContent(text=text, attachment_failed=True)
    return ParsedContent(text=text, attachment=item)


def is_system_message(content: str) -> bool:
    """System notices share the messages table but are never shown in chat."""

    return content.startswith(SYSTEM_MESSAGE_PREFIX)
