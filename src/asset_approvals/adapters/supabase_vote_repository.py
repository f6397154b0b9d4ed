"""Supabase-backed vote repository."""

from dataclasses import dataclass

from supabase import Client

from asset_approvals.services.approvals import VoteRepository


@dataclass
class SupabaseVoteRepository(VoteRepository):
    """Supabase implementation for approver votes.

    The table has a unique constraint on (item_id, approver_id).
    """

    client: Client

    def add_vote(self, item_id: str, approver_id: str) -> None:
        """Insert a vote row unless it already exists."""
        self.client.table("approval_votes").upsert(
            {"item_id": item_id, "approver_id": approver_id},
            on_conflict="item_id,approver_id",
            ignore_duplicates=True,
        ).execute()

    def remove_vote(self, item_id: str, approver_id: str) -> None:
        """Delete a vote row."""
        self.client.table("approval_votes").delete().eq("item_id", item_id).eq(
            "approver_id", approver_id
        ).execute()

    def list_voters(self, item_id: str) -> list[str]:
        """Return approver ids voting for an item, oldest vote first."""
        response = (
            self.client.table("approval_votes")
            .select("approver_id")
            .eq("item_id", item_id)
            .order("created_at")
            .execute()
        )
        return [str(row["approver_id"]) for row in response.data or []]
