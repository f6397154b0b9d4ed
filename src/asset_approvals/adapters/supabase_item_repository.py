"""Supabase-backed item repository."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from asset_approvals.domain.items import ContentKind, ItemRecord, ItemStatus
from asset_approvals.services.approvals import ItemRepository

_COLUMNS = (
    "item_id, tracking_code, submitter_id, submitter_name, group_id, "
    "event_name, asset_type, content_kind, link_url, status"
)


@dataclass
class SupabaseItemRepository(ItemRepository):
    """Supabase implementation for submitted items."""

    client: Client

    def create_item(self, item: ItemRecord) -> None:
        """Insert an item row, ignoring an existing item id."""
        self.client.table("approval_items").upsert(
            {
                "item_id": item.item_id,
                "tracking_code": item.tracking_code,
                "submitter_id": item.submitter_id,
                "submitter_name": item.submitter_name,
                "group_id": item.group_id,
                "event_name": item.event_name,
                "asset_type": item.asset_type,
                "content_kind": item.content_kind.value,
                "link_url": item.link_url,
                "status": item.status.value,
            },
            on_conflict="item_id",
            ignore_duplicates=True,
        ).execute()

    def get_item(self, item_id: str) -> ItemRecord | None:
        """Return an item by its group message id, if present."""
        response = (
            self.client.table("approval_items")
            .select(_COLUMNS)
            .eq("item_id", item_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _to_record(response.data[0])

    def find_by_tracking_code(self, tracking_code: str) -> ItemRecord | None:
        """Return the most recent item with a tracking code."""
        response = (
            self.client.table("approval_items")
            .select(_COLUMNS)
            .eq("tracking_code", tracking_code)
            .order("created_at", desc=True)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _to_record(response.data[0])

    def mark_approved(self, item_id: str) -> bool:
        """Approve a pending item; only the first caller gets a row back."""
        response = (
            self.client.table("approval_items")
            .update(
                {
                    "status": ItemStatus.APPROVED.value,
                    "approved_at": datetime.now(tz=UTC).isoformat(),
                }
            )
            .eq("item_id", item_id)
            .eq("status", ItemStatus.PENDING.value)
            .execute()
        )
        return bool(response.data)


def _to_record(row: dict[str, object]) -> ItemRecord:
    return ItemRecord(
        item_id=str(row["item_id"]),
        tracking_code=str(row["tracking_code"]),
        submitter_id=str(row.get("submitter_id") or ""),
        submitter_name=str(row.get("submitter_name") or ""),
        group_id=row.get("group_id") or None,
        event_name=str(row.get("event_name") or ""),
        asset_type=str(row.get("asset_type") or ""),
        content_kind=ContentKind(row["content_kind"]),
        link_url=row.get("link_url"),
        status=ItemStatus(row.get("status") or ItemStatus.PENDING.value),
    )
