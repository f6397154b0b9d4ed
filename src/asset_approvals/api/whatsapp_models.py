"""Pydantic models for WhatsApp webhook payloads."""

import logging
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from asset_approvals.domain.events import (
    InboundMessage,
    InboundReaction,
    MessageKind,
    ReactionAction,
    WebhookDelivery,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class WhatsAppProfile(BaseModel):
    """WhatsApp profile payload."""

    name: str | None = None


class WhatsAppContact(BaseModel):
    """Contact entry sent alongside messages."""

    wa_id: str | None = None
    profile: WhatsAppProfile | None = None


class WhatsAppText(BaseModel):
    """Text message body."""

    body: str = ""


class WhatsAppMedia(BaseModel):
    """Image, video or document payload."""

    id: str
    mime_type: str | None = None
    filename: str | None = None
    caption: str | None = None


class WhatsAppMessage(BaseModel):
    """WhatsApp inbound message payload."""

    model_config = ConfigDict(populate_by_name=True)

    id: str | None = None
    from_user: str = Field(alias="from")
    type: str
    group_id: str | None = None
    profile: WhatsAppProfile | None = None
    text: WhatsAppText | None = None
    image: WhatsAppMedia | None = None
    video: WhatsAppMedia | None = None
    document: WhatsAppMedia | None = None


class WhatsAppReaction(BaseModel):
    """WhatsApp reaction payload."""

    model_config = ConfigDict(populate_by_name=True)

    message_id: str
    from_user: str = Field(alias="from")
    emoji: str = ""
    action: str = ReactionAction.ADDED.value
    group_id: str | None = None


class WhatsAppChangeValue(BaseModel):
    """Value of one webhook change.

    Contacts, messages and reactions stay raw so each one is validated on its
    own.
    """

    contacts: list[Any] = Field(default_factory=list)
    messages: list[Any] = Field(default_factory=list)
    reactions: list[Any] = Field(default_factory=list)


class WhatsAppChange(BaseModel):
    """Webhook change entry."""

    field: str | None = None
    value: WhatsAppChangeValue | None = None


class WhatsAppEntry(BaseModel):
    """Webhook entry."""

    id: str | None = None
    changes: list[Any] = Field(default_factory=list)


class WhatsAppWebhook(BaseModel):
    """Top-level webhook payload."""

    object: str | None = None
    entry: list[Any] = Field(default_factory=list)


def parse_delivery(payload: object) -> WebhookDelivery:
    """Normalize a webhook payload.

    Entries, changes, contacts, messages and reactions are validated one at a
    time, and whatever fails validation is skipped.
    """
    webhook = _validate(WhatsAppWebhook, payload, "webhook payload")
    delivery = WebhookDelivery()
    if webhook is None:
        return delivery

    for raw_entry in webhook.entry:
        entry = _validate(WhatsAppEntry, raw_entry, "webhook entry")
        if entry is None:
            continue
        for raw_change in entry.changes:
            change = _validate(WhatsAppChange, raw_change, "webhook change")
            if change is None or change.value is None:
                continue
            names = _contact_names(change.value.contacts)
            for raw in change.value.messages:
                message = _parse_message(raw, names)
                if message is not None:
                    delivery.messages.append(message)
            for raw in change.value.reactions:
                reaction = _validate(WhatsAppReaction, raw, "reaction")
                if reaction is not None:
                    delivery.reactions.append(to_inbound_reaction(reaction))
    return delivery


def to_inbound_message(
    message: WhatsAppMessage, names: dict[str, str] | None = None
) -> InboundMessage | None:
    """Convert a wire message, or return None for unsupported types."""
    try:
        kind = MessageKind(message.type)
    except ValueError:
        return None

    sender_name = (
        (message.profile.name if message.profile else None)
        or (names or {}).get(message.from_user)
        or message.from_user
    )
    if kind is MessageKind.TEXT:
        return InboundMessage(
            sender_id=message.from_user,
            sender_name=sender_name,
            kind=kind,
            is_group=bool(message.group_id),
            text=message.text.body if message.text else "",
        )

    media = getattr(message, kind.value)
    return InboundMessage(
        sender_id=message.from_user,
        sender_name=sender_name,
        kind=kind,
        is_group=bool(message.group_id),
        media_ref=media.id if media else None,
        media_mime=media.mime_type if media else None,
        filename=media.filename if media else None,
    )


def to_inbound_reaction(reaction: WhatsAppReaction) -> InboundReaction:
    """Convert a wire reaction; unknown actions count as additions."""
    action = (
        ReactionAction.REMOVED
        if reaction.action == ReactionAction.REMOVED.value
        else ReactionAction.ADDED
    )
    return InboundReaction(
        target_message_id=reaction.message_id,
        actor_id=reaction.from_user,
        emoji=reaction.emoji,
        action=action,
        origin_group_id=reaction.group_id,
    )


def _validate(model: type[ModelT], raw: object, label: str) -> ModelT | None:
    try:
        return model.model_validate(raw)
    except ValidationError:
        logger.warning("Skipping malformed %s", label)
        return None


def _contact_names(contacts: list[Any]) -> dict[str, str]:
    names: dict[str, str] = {}
    for raw in contacts:
        contact = _validate(WhatsAppContact, raw, "contact")
        if contact and contact.wa_id and contact.profile and contact.profile.name:
            names[contact.wa_id] = contact.profile.name
    return names


def _parse_message(raw: object, names: dict[str, str]) -> InboundMessage | None:
    message = _validate(WhatsAppMessage, raw, "message")
    if message is None:
        return None
    inbound = to_inbound_message(message, names)
    if inbound is None:
        logger.debug(
            "Ignoring unsupported message type", extra={"message_type": message.type}
        )
    return inbound
