"""Shared test fixtures."""

import random
from dataclasses import dataclass, field, replace

import pytest

from asset_approvals.adapters.whatsapp_client import MediaMetadata, WhatsAppClient
from asset_approvals.config import Settings, WorkflowConfig
from asset_approvals.containers import AppContainer
from asset_approvals.domain.errors import TransportError
from asset_approvals.domain.items import ContentKind, ItemRecord, ItemStatus
from asset_approvals.domain.sessions import SessionRecord
from asset_approvals.services.approvals import (
    ApprovalService,
    ItemRepository,
    VoteRepository,
)
from asset_approvals.services.broadcast import GroupBroadcaster
from asset_approvals.services.deliveries import DeliveryProcessor
from asset_approvals.services.dialog import DialogService, SessionRepository
from asset_approvals.services.status import StatusService

GROUP_ID = "120363000000000000@g.us"
APPROVERS = frozenset(
    {"351910000001", "351910000002", "351910000003", "351910000004", "351910000005"}
)


@dataclass
class InMemoryItemRepository(ItemRepository):
    """In-memory item repository for tests."""

    items: dict[str, ItemRecord] = field(default_factory=dict)
    approvals: list[str] = field(default_factory=list)

    def create_item(self, item: ItemRecord) -> None:
        self.items.setdefault(item.item_id, item)

    def get_item(self, item_id: str) -> ItemRecord | None:
        return self.items.get(item_id)

    def find_by_tracking_code(self, tracking_code: str) -> ItemRecord | None:
        matches = [
            item for item in self.items.values() if item.tracking_code == tracking_code
        ]
        return matches[-1] if matches else None

    def mark_approved(self, item_id: str) -> bool:
        item = self.items.get(item_id)
        if item is None or item.status is ItemStatus.APPROVED:
            return False
        self.items[item_id] = replace(item, status=ItemStatus.APPROVED)
        self.approvals.append(item_id)
        return True


@dataclass
class InMemoryVoteRepository(VoteRepository):
    """In-memory vote repository for tests."""

    votes: dict[str, list[str]] = field(default_factory=dict)

    def add_vote(self, item_id: str, approver_id: str) -> None:
        voters = self.votes.setdefault(item_id, [])
        if approver_id not in voters:
            voters.append(approver_id)

    def remove_vote(self, item_id: str, approver_id: str) -> None:
        voters = self.votes.get(item_id, [])
        if approver_id in voters:
            voters.remove(approver_id)

    def list_voters(self, item_id: str) -> list[str]:
        return list(self.votes.get(item_id, []))


@dataclass
class InMemorySessionRepository(SessionRepository):
    """In-memory session repository for tests."""

    sessions: dict[str, SessionRecord] = field(default_factory=dict)

    def get_session(self, submitter_id: str) -> SessionRecord | None:
        return self.sessions.get(submitter_id)

    def save_session(self, session: SessionRecord) -> None:
        self.sessions[session.submitter_id] = session

    def delete_session(self, submitter_id: str) -> None:
        self.sessions.pop(submitter_id, None)


@dataclass
class FakeWhatsAppClient(WhatsAppClient):
    """Fake WhatsApp client that records outbound calls."""

    direct_messages: list[tuple[str, str]] = field(default_factory=list)
    group_texts: list[tuple[str, str]] = field(default_factory=list)
    group_media: list[dict[str, object]] = field(default_factory=list)
    replies: list[tuple[str, str, str | None]] = field(default_factory=list)
    uploads: list[tuple[bytes, str]] = field(default_factory=list)
    failing: set[str] = field(default_factory=set)
    content: bytes = b"fake-media-bytes"
    metadata_mime: str | None = "image/jpeg"
    sent_count: int = 0

    def _check(self, operation: str) -> None:
        if operation in self.failing:
            raise TransportError(f"{operation} failed")

    def _next_id(self) -> str:
        self.sent_count += 1
        return f"wamid.group-{self.sent_count}"

    async def send_direct_text(self, recipient_id: str, text: str) -> str | None:
        self._check("send_direct_text")
        self.direct_messages.append((recipient_id, text))
        return None

    async def send_group_text(self, group_id: str, text: str) -> str:
        self._check("send_group_text")
        self.group_texts.append((group_id, text))
        return self._next_id()

    async def send_group_media(
        self,
        group_id: str,
        kind: ContentKind,
        media_ref: str,
        caption: str,
        filename: str | None = None,
    ) -> str:
        self._check("send_group_media")
        self.group_media.append(
            {
                "group_id": group_id,
                "kind": kind,
                "media_ref": media_ref,
                "caption": caption,
                "filename": filename,
            }
        )
        return self._next_id()

    async def fetch_media_metadata(self, media_ref: str) -> MediaMetadata:
        self._check("fetch_media_metadata")
        return MediaMetadata(
            url=f"https://lookaside.example/{media_ref}",
            mime_type=self.metadata_mime,
        )

    async def download_binary(self, url: str) -> bytes:
        self._check("download_binary")
        return self.content

    async def upload_binary(self, data: bytes, mime_type: str) -> str:
        self._check("upload_binary")
        self.uploads.append((data, mime_type))
        return f"uploaded-{len(self.uploads)}"

    async def reply_in_thread(
        self, message_id: str, text: str, recipient_id: str | None = None
    ) -> str | None:
        self._check("reply_in_thread")
        self.replies.append((message_id, text, recipient_id))
        return None

    def texts_to(self, recipient_id: str) -> list[str]:
        return [text for to, text in self.direct_messages if to == recipient_id]


def make_item(item_id: str = "wamid.item-1", **overrides: object) -> ItemRecord:
    values: dict[str, object] = {
        "item_id": item_id,
        "tracking_code": "#GAL-1234",
        "submitter_id": "351920000000",
        "submitter_name": "Rita",
        "group_id": GROUP_ID,
        "event_name": "Gala 2024",
        "asset_type": "Instagram Story",
        "content_kind": ContentKind.IMAGE,
    }
    values.update(overrides)
    return ItemRecord(**values)  # type: ignore[arg-type]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        verify_token="verify-me",
        whatsapp_token="whatsapp-token",
        phone_number_id="1098765432",
        group_id=GROUP_ID,
        approver_numbers=",".join(sorted(APPROVERS)),
        required_hearts=4,
        supabase_url="https://example.supabase.co",
        supabase_service_key=(
            "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9."
            "eyJyb2xlIjoic2VydmljZV9yb2xlIn0."
            "c2lnbmF0dXJl"
        ),
    )


@pytest.fixture
def workflow() -> WorkflowConfig:
    return WorkflowConfig(group_id=GROUP_ID, approver_ids=APPROVERS, required_hearts=4)


@pytest.fixture
def item_repository() -> InMemoryItemRepository:
    return InMemoryItemRepository()


@pytest.fixture
def vote_repository() -> InMemoryVoteRepository:
    return InMemoryVoteRepository()


@pytest.fixture
def session_repository() -> InMemorySessionRepository:
    return InMemorySessionRepository()


@pytest.fixture
def whatsapp_client() -> FakeWhatsAppClient:
    return FakeWhatsAppClient()


@pytest.fixture
def status_service(
    item_repository: InMemoryItemRepository,
    vote_repository: InMemoryVoteRepository,
    workflow: WorkflowConfig,
) -> StatusService:
    return StatusService(
        item_repository=item_repository,
        vote_repository=vote_repository,
        config=workflow,
    )


def build_dialog_service(  # noqa: PLR0913
    session_repository: InMemorySessionRepository,
    item_repository: InMemoryItemRepository,
    vote_repository: InMemoryVoteRepository,
    client: FakeWhatsAppClient,
    config: WorkflowConfig,
    seed: int = 7,
) -> DialogService:
    return DialogService(
        session_repository=session_repository,
        item_repository=item_repository,
        status_service=StatusService(
            item_repository=item_repository,
            vote_repository=vote_repository,
            config=config,
        ),
        broadcaster=GroupBroadcaster(client=client, config=config),
        client=client,
        config=config,
        rng=random.Random(seed),
    )


@pytest.fixture
def dialog_service(
    session_repository: InMemorySessionRepository,
    item_repository: InMemoryItemRepository,
    vote_repository: InMemoryVoteRepository,
    whatsapp_client: FakeWhatsAppClient,
    workflow: WorkflowConfig,
) -> DialogService:
    return build_dialog_service(
        session_repository,
        item_repository,
        vote_repository,
        whatsapp_client,
        workflow,
    )


@pytest.fixture
def approval_service(
    item_repository: InMemoryItemRepository,
    vote_repository: InMemoryVoteRepository,
    whatsapp_client: FakeWhatsAppClient,
    workflow: WorkflowConfig,
) -> ApprovalService:
    return ApprovalService(
        item_repository=item_repository,
        vote_repository=vote_repository,
        client=whatsapp_client,
        config=workflow,
    )


@pytest.fixture
def container(  # noqa: PLR0913
    settings: Settings,
    workflow: WorkflowConfig,
    whatsapp_client: FakeWhatsAppClient,
    dialog_service: DialogService,
    approval_service: ApprovalService,
    status_service: StatusService,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        workflow=workflow,
        whatsapp_client=whatsapp_client,
        dialog_service=dialog_service,
        approval_service=approval_service,
        status_service=status_service,
        delivery_processor=DeliveryProcessor(
            dialog_service=dialog_service,
            approval_service=approval_service,
        ),
        close_resources=close_resources,
    )
