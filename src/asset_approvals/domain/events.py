"""Normalized inbound webhook events."""

from dataclasses import dataclass, field
from enum import Enum


class MessageKind(str, Enum):
    """Inbound message types handled by the dialog."""

    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    DOCUMENT = "document"


class ReactionAction(str, Enum):
    """Whether a reaction was added or removed."""

    ADDED = "added"
    REMOVED = "removed"


@dataclass(frozen=True)
class InboundMessage:
    """A message received from a chat participant."""

    sender_id: str
    sender_name: str
    kind: MessageKind
    is_group: bool = False
    text: str | None = None
    media_ref: str | None = None
    media_mime: str | None = None
    filename: str | None = None


@dataclass(frozen=True)
class InboundReaction:
    """A reaction added to or removed from a message."""

    target_message_id: str
    actor_id: str
    emoji: str
    action: ReactionAction = ReactionAction.ADDED
    origin_group_id: str | None = None


@dataclass(frozen=True)
class WebhookDelivery:
    """Events carried by one webhook delivery, in received order."""

    messages: list[InboundMessage] = field(default_factory=list)
    reactions: list[InboundReaction] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.messages and not self.reactions
