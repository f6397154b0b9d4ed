"""Domain models for submitted items."""

from dataclasses import dataclass
from enum import Enum


class ContentKind(str, Enum):
    """Kind of content a submitter can send."""

    IMAGE = "image"
    VIDEO = "video"
    DOCUMENT = "document"
    LINK = "link"

    @property
    def is_media(self) -> bool:
        return self is not ContentKind.LINK


class ItemStatus(str, Enum):
    """Approval status of an item."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"


@dataclass(frozen=True)
class ItemRecord:
    """Represents an item broadcast to the approval group.

    ``item_id`` is the id of the broadcast message in the group.
    """

    item_id: str
    tracking_code: str
    submitter_id: str
    submitter_name: str
    group_id: str | None
    event_name: str
    asset_type: str
    content_kind: ContentKind
    link_url: str | None = None
    status: ItemStatus = ItemStatus.PENDING

    @property
    def is_approved(self) -> bool:
        return self.status is ItemStatus.APPROVED
