"""Vote tallying and approval of broadcast items."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Protocol

from asset_approvals.adapters.whatsapp_client import WhatsAppClient
from asset_approvals.config import WorkflowConfig
from asset_approvals.domain.events import InboundReaction, ReactionAction
from asset_approvals.domain.items import ItemRecord
from asset_approvals.services.locks import KeyedLocks

logger = logging.getLogger(__name__)

HEART = "\u2764"
VARIATION_SELECTOR = "\ufe0f"


class ItemRepository(Protocol):
    """Persistence interface for submitted items."""

    def create_item(self, item: ItemRecord) -> None:
        """Store a new item. Storing an existing item id is a no-op."""

    def get_item(self, item_id: str) -> ItemRecord | None:
        """Return an item by its group message id, if present."""

    def find_by_tracking_code(self, tracking_code: str) -> ItemRecord | None:
        """Return the most recent item with a tracking code, if present."""

    def mark_approved(self, item_id: str) -> bool:
        """Move a pending item to APPROVED.

        Returns true only for the call that performed the transition.
        """


class VoteRepository(Protocol):
    """Persistence interface for approver votes."""

    def add_vote(self, item_id: str, approver_id: str) -> None:
        """Record a vote. Adding an existing vote is a no-op."""

    def remove_vote(self, item_id: str, approver_id: str) -> None:
        """Delete a vote. Removing a missing vote is a no-op."""

    def list_voters(self, item_id: str) -> list[str]:
        """Return the approvers currently voting for an item."""


@dataclass(frozen=True)
class VoteTally:
    """Outcome of applying one reaction to an item."""

    item: ItemRecord
    voters: list[str]
    approved_now: bool

    @property
    def vote_count(self) -> int:
        return len(self.voters)


def is_approval_emoji(emoji: str) -> bool:
    """Return true for the heart, with or without the variation selector."""
    return emoji.replace(VARIATION_SELECTOR, "") == HEART


def format_tally(item: ItemRecord, vote_count: int, approver_count: int) -> str:
    return f"{item.tracking_code}: {vote_count}/{approver_count} ❤️"


@dataclass
class ApprovalService:
    """Applies approver reactions and approves items at quorum."""

    item_repository: ItemRepository
    vote_repository: VoteRepository
    client: WhatsAppClient
    config: WorkflowConfig
    locks: KeyedLocks = field(default_factory=KeyedLocks)

    async def handle_reaction(self, reaction: InboundReaction) -> VoteTally | None:
        """Apply a reaction and send the tally or approval notices.

        Returns None when the reaction is not a vote.
        """
        if not is_approval_emoji(reaction.emoji):
            return None
        if reaction.actor_id not in self.config.approver_ids:
            logger.debug(
                "Ignoring reaction from non-approver",
                extra={"actor_id": reaction.actor_id},
            )
            return None

        tally = await self._apply_vote(reaction)
        if tally is None:
            return None
        await self._notify(tally)
        return tally

    async def _apply_vote(self, reaction: InboundReaction) -> VoteTally | None:
        item_id = reaction.target_message_id
        async with self.locks.get(item_id):
            item = await asyncio.to_thread(self.item_repository.get_item, item_id)
            if item is None:
                logger.debug(
                    "Ignoring reaction to unknown item", extra={"item_id": item_id}
                )
                return None
            if (
                self.config.group_id
                and reaction.origin_group_id
                and item.group_id
                and reaction.origin_group_id != item.group_id
            ):
                logger.debug(
                    "Ignoring reaction from another group",
                    extra={"item_id": item_id, "group_id": reaction.origin_group_id},
                )
                return None

            record_vote = (
                self.vote_repository.remove_vote
                if reaction.action is ReactionAction.REMOVED
                else self.vote_repository.add_vote
            )
            await asyncio.to_thread(record_vote, item_id, reaction.actor_id)
            voters = await asyncio.to_thread(self.vote_repository.list_voters, item_id)

            approved_now = (
                len(voters) >= self.config.required_hearts
                and not item.is_approved
                and await asyncio.to_thread(self.item_repository.mark_approved, item_id)
            )
            if approved_now:
                logger.info(
                    "Item approved",
                    extra={"item_id": item_id, "vote_count": len(voters)},
                )
            return VoteTally(item=item, voters=voters, approved_now=approved_now)

    async def _notify(self, tally: VoteTally) -> None:
        item = tally.item
        approver_count = self.config.approver_count
        if not tally.approved_now:
            await self.client.reply_in_thread(
                item.item_id,
                format_tally(item, tally.vote_count, approver_count),
                recipient_id=item.group_id,
            )
            return

        await self.client.reply_in_thread(
            item.item_id,
            (
                f"✅ Approved ({item.tracking_code}) - "
                f"{tally.vote_count}/{approver_count} ❤️"
            ),
            recipient_id=item.group_id,
        )
        if item.submitter_id:
            await self.client.send_direct_text(
                item.submitter_id,
                (
                    f"Your submission {item.tracking_code} was approved ✅ "
                    f"({tally.vote_count}/{approver_count} ❤️)."
                ),
            )
