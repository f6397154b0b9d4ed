"""Domain models for submission dialogs."""

from dataclasses import dataclass
from enum import Enum

from asset_approvals.domain.items import ContentKind


class DialogStep(str, Enum):
    """Question the submitter is expected to answer next."""

    ASK_EVENT = "ASK_EVENT"
    ASK_TYPE = "ASK_TYPE"


@dataclass(frozen=True)
class ContentRef:
    """Reference to the submitted content."""

    kind: ContentKind
    media_ref: str | None = None
    media_mime: str | None = None
    filename: str | None = None
    link_url: str | None = None


@dataclass(frozen=True)
class SessionRecord:
    """Represents a persisted in-progress dialog for one submitter."""

    submitter_id: str
    step: DialogStep
    content: ContentRef
    event_name: str | None = None
    asset_type: str | None = None
