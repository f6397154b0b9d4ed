"""Status summaries for tracking-code lookups."""

import re
from dataclasses import dataclass

from asset_approvals.config import WorkflowConfig
from asset_approvals.services.approvals import ItemRepository, VoteRepository

STATUS_QUERY = re.compile(r"status\s+(#\w{3}-\d{3,5})", re.IGNORECASE)
EXAMPLE_QUERY = "status #GAL-1234"


def parse_status_query(text: str) -> str | None:
    """Return the uppercased tracking code from a status command, if any."""
    match = STATUS_QUERY.search(text)
    if match is None:
        return None
    return match.group(1).upper()


@dataclass
class StatusService:
    """Answers status lookups by tracking code."""

    item_repository: ItemRepository
    vote_repository: VoteRepository
    config: WorkflowConfig

    def describe(self, tracking_code: str) -> str:
        """Return a status summary for a tracking code."""
        item = self.item_repository.find_by_tracking_code(tracking_code)
        if item is None:
            return f"I couldn't find {tracking_code}. Example: {EXAMPLE_QUERY}"

        voters = self.vote_repository.list_voters(item.item_id)
        remaining = sorted(
            approver for approver in self.config.approver_ids if approver not in voters
        )
        lines = [
            f"{item.tracking_code}: {len(voters)}/{self.config.approver_count} ❤️",
            "✅ APPROVED" if item.is_approved else "⏳ PENDING",
            f"Voted: {', '.join(voters) or '—'}",
            f"Waiting on: {', '.join(remaining) or '—'}",
        ]
        return "\n".join(lines)
