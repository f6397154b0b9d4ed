"""Supabase-backed session repository."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from asset_approvals.domain.items import ContentKind
from asset_approvals.domain.sessions import ContentRef, DialogStep, SessionRecord
from asset_approvals.services.dialog import SessionRepository


@dataclass
class SupabaseSessionRepository(SessionRepository):
    """Supabase implementation for submission dialogs."""

    client: Client

    def get_session(self, submitter_id: str) -> SessionRecord | None:
        """Return the open dialog for a submitter, if present."""
        response = (
            self.client.table("submission_sessions")
            .select(
                "submitter_id, step, content_kind, media_ref, media_mime, "
                "filename, link_url, event_name, asset_type"
            )
            .eq("submitter_id", submitter_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return SessionRecord(
            submitter_id=str(row["submitter_id"]),
            step=DialogStep(row["step"]),
            content=ContentRef(
                kind=ContentKind(row["content_kind"]),
                media_ref=row.get("media_ref"),
                media_mime=row.get("media_mime"),
                filename=row.get("filename"),
                link_url=row.get("link_url"),
            ),
            event_name=row.get("event_name"),
            asset_type=row.get("asset_type"),
        )

    def save_session(self, session: SessionRecord) -> None:
        """Upsert the whole session row, replacing any previous dialog."""
        self.client.table("submission_sessions").upsert(
            {
                "submitter_id": session.submitter_id,
                "step": session.step.value,
                "content_kind": session.content.kind.value,
                "media_ref": session.content.media_ref,
                "media_mime": session.content.media_mime,
                "filename": session.content.filename,
                "link_url": session.content.link_url,
                "event_name": session.event_name,
                "asset_type": session.asset_type,
                "updated_at": datetime.now(tz=UTC).isoformat(),
            },
            on_conflict="submitter_id",
        ).execute()

    def delete_session(self, submitter_id: str) -> None:
        """Delete the dialog for a submitter."""
        self.client.table("submission_sessions").delete().eq(
            "submitter_id", submitter_id
        ).execute()
