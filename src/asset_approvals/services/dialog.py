"""Submission dialog state machine."""

import logging
import random
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from typing import Protocol

from asset_approvals.adapters.whatsapp_client import WhatsAppClient
from asset_approvals.config import WorkflowConfig
from asset_approvals.domain.errors import (
    MalformedEventError,
    MissingGroupConfiguration,
    TransportError,
)
from asset_approvals.domain.events import InboundMessage, MessageKind
from asset_approvals.domain.items import ContentKind, ItemRecord
from asset_approvals.domain.sessions import ContentRef, DialogStep, SessionRecord
from asset_approvals.domain.tracking import generate_tracking_code
from asset_approvals.services.approvals import ItemRepository
from asset_approvals.services.broadcast import GroupBroadcaster
from asset_approvals.services.locks import KeyedLocks
from asset_approvals.services.status import StatusService, parse_status_query

logger = logging.getLogger(__name__)

URL_PATTERN = re.compile(r"https?://\S+", re.IGNORECASE)

ASK_EVENT_PROMPT = "Which event is this for?"
ASK_TYPE_PROMPT = "What type of asset is this? (e.g. Instagram Story, Feed, Poster A3)"
INSTRUCTIONS = "Send an image, video, PDF or a link to start an approval."
MISSING_GROUP_REPLY = (
    "⚠️ The bot has no approval group configured yet. "
    "Please ask an admin to set GROUP_ID."
)
BROADCAST_FAILED_REPLY = (
    "Sorry, I couldn't send your submission to the approval group. "
    "Reply with the asset type again to retry."
)
RECORD_FAILED_REPLY = (
    "Your submission reached the approval group but its votes can't be "
    "counted. Please ask an admin about {code}."
)

_DEFAULT_MIME = {
    ContentKind.IMAGE: "image/jpeg",
    ContentKind.VIDEO: "video/mp4",
    ContentKind.DOCUMENT: "application/octet-stream",
}

_RESTART_LABELS = {
    ContentKind.IMAGE: "Image",
    ContentKind.VIDEO: "Video",
    ContentKind.DOCUMENT: "Document",
    ContentKind.LINK: "Link",
}


class SessionRepository(Protocol):
    """Persistence interface for submission dialogs."""

    def get_session(self, submitter_id: str) -> SessionRecord | None:
        """Return the open dialog for a submitter, if present."""

    def save_session(self, session: SessionRecord) -> None:
        """Create or replace the dialog for a submitter."""

    def delete_session(self, submitter_id: str) -> None:
        """Delete the dialog for a submitter."""


@dataclass(frozen=True)
class DialogPrompt:
    """Represents the next submitter-facing message."""

    text: str


def extract_content(message: InboundMessage) -> ContentRef | None:
    """Return the content a message submits, or None for plain text."""
    if message.kind is MessageKind.TEXT:
        match = URL_PATTERN.search(message.text or "")
        if match is None:
            return None
        return ContentRef(kind=ContentKind.LINK, link_url=match.group(0))

    kind = ContentKind(message.kind.value)
    if not message.media_ref:
        raise MalformedEventError(f"{kind.value} message has no media id")
    return ContentRef(
        kind=kind,
        media_ref=message.media_ref,
        media_mime=message.media_mime or _DEFAULT_MIME[kind],
        filename=message.filename,
    )


StepHandler = Callable[[SessionRecord, InboundMessage, str], Awaitable[DialogPrompt]]


@dataclass
class DialogService:
    """Guides a submitter from raw content to a broadcast item."""

    session_repository: SessionRepository
    item_repository: ItemRepository
    status_service: StatusService
    broadcaster: GroupBroadcaster
    client: WhatsAppClient
    config: WorkflowConfig
    locks: KeyedLocks = field(default_factory=KeyedLocks)
    rng: random.Random | None = None

    async def handle_message(self, message: InboundMessage) -> DialogPrompt | None:
        """Advance the sender's dialog and reply to them.

        Group messages are ignored.
        """
        if message.is_group:
            return None
        async with self.locks.get(message.sender_id):
            prompt = await self._transition(message)
        await self.client.send_direct_text(message.sender_id, prompt.text)
        return prompt

    async def _transition(self, message: InboundMessage) -> DialogPrompt:
        text = (message.text or "").strip()
        if message.kind is MessageKind.TEXT:
            tracking_code = parse_status_query(text)
            if tracking_code:
                return DialogPrompt(self.status_service.describe(tracking_code))

        content = extract_content(message)
        session = self.session_repository.get_session(message.sender_id)
        if session is None:
            return self._on_idle(message.sender_id, content)
        if content is not None:
            return self._restart(message.sender_id, content)
        if not text:
            return _question_for(session.step)
        handlers: dict[DialogStep, StepHandler] = {
            DialogStep.ASK_EVENT: self._on_event_name,
            DialogStep.ASK_TYPE: self._on_asset_type,
        }
        return await handlers[session.step](session, message, text)

    def _on_idle(self, submitter_id: str, content: ContentRef | None) -> DialogPrompt:
        if content is None:
            return DialogPrompt(INSTRUCTIONS)
        self._open_session(submitter_id, content)
        return DialogPrompt(ASK_EVENT_PROMPT)

    def _restart(self, submitter_id: str, content: ContentRef) -> DialogPrompt:
        self._open_session(submitter_id, content)
        logger.info(
            "Restarted submission dialog",
            extra={"submitter_id": submitter_id, "content_kind": content.kind.value},
        )
        label = _RESTART_LABELS[content.kind]
        return DialogPrompt(f"{label} received. {ASK_EVENT_PROMPT}")

    def _open_session(self, submitter_id: str, content: ContentRef) -> None:
        self.session_repository.save_session(
            SessionRecord(
                submitter_id=submitter_id,
                step=DialogStep.ASK_EVENT,
                content=content,
            )
        )

    async def _on_event_name(
        self, session: SessionRecord, message: InboundMessage, text: str
    ) -> DialogPrompt:
        self.session_repository.save_session(
            replace(session, step=DialogStep.ASK_TYPE, event_name=text)
        )
        return DialogPrompt(ASK_TYPE_PROMPT)

    async def _on_asset_type(
        self, session: SessionRecord, message: InboundMessage, text: str
    ) -> DialogPrompt:
        session = replace(session, asset_type=text)
        try:
            group_id = self._destination_group()
        except MissingGroupConfiguration as exc:
            logger.warning(str(exc), extra={"submitter_id": session.submitter_id})
            self.session_repository.delete_session(session.submitter_id)
            return DialogPrompt(MISSING_GROUP_REPLY)

        event_name = session.event_name or ""
        tracking_code = generate_tracking_code(event_name, self.rng)
        caption = self.broadcaster.caption_for(
            event_name=event_name,
            asset_type=text,
            submitter_name=message.sender_name,
            tracking_code=tracking_code,
        )
        try:
            item_id = await self.broadcaster.broadcast(
                group_id, session.content, caption
            )
        except TransportError:
            logger.exception(
                "Failed to broadcast submission",
                extra={"submitter_id": session.submitter_id},
            )
            return DialogPrompt(BROADCAST_FAILED_REPLY)

        self.session_repository.delete_session(session.submitter_id)
        try:
            self.item_repository.create_item(
                ItemRecord(
                    item_id=item_id,
                    tracking_code=tracking_code,
                    submitter_id=session.submitter_id,
                    submitter_name=message.sender_name or session.submitter_id,
                    group_id=group_id,
                    event_name=event_name,
                    asset_type=text,
                    content_kind=session.content.kind,
                    link_url=session.content.link_url,
                )
            )
        except Exception:
            # The content is already in the group, so the dialog stays closed.
            logger.exception(
                "Broadcast item could not be stored",
                extra={"item_id": item_id, "tracking_code": tracking_code},
            )
            return DialogPrompt(RECORD_FAILED_REPLY.format(code=tracking_code))
        logger.info(
            "Submission sent for approval",
            extra={"item_id": item_id, "tracking_code": tracking_code},
        )
        return DialogPrompt(
            "Your submission was sent for approval. "
            f"Your tracking code is {tracking_code}."
        )

    def _destination_group(self) -> str:
        if not self.config.group_id:
            raise MissingGroupConfiguration("No destination group is configured")
        return self.config.group_id


def _question_for(step: DialogStep) -> DialogPrompt:
    if step is DialogStep.ASK_EVENT:
        return DialogPrompt(ASK_EVENT_PROMPT)
    return DialogPrompt(ASK_TYPE_PROMPT)
