"""Processing of one webhook delivery."""

import logging
from collections.abc import Awaitable
from dataclasses import dataclass

from asset_approvals.domain.errors import MalformedEventError, TransportError
from asset_approvals.domain.events import WebhookDelivery
from asset_approvals.services.approvals import ApprovalService
from asset_approvals.services.dialog import DialogService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryReport:
    """Counts of events handled and failed in a delivery."""

    handled: int = 0
    failed: int = 0


@dataclass
class DeliveryProcessor:
    """Routes delivery events to the dialog and approval engines.

    Every event runs in its own error boundary, so one failure never stops
    the remaining events of the same delivery.
    """

    dialog_service: DialogService
    approval_service: ApprovalService

    async def process(self, delivery: WebhookDelivery) -> DeliveryReport:
        """Handle messages, then reactions, in received order."""
        handled = 0
        failed = 0
        for message in delivery.messages:
            context = {"sender_id": message.sender_id, "kind": message.kind.value}
            if await self._run(
                self.dialog_service.handle_message(message), "message", context
            ):
                handled += 1
            else:
                failed += 1
        for reaction in delivery.reactions:
            context = {
                "item_id": reaction.target_message_id,
                "actor_id": reaction.actor_id,
            }
            if await self._run(
                self.approval_service.handle_reaction(reaction), "reaction", context
            ):
                handled += 1
            else:
                failed += 1
        return DeliveryReport(handled=handled, failed=failed)

    async def _run(
        self, step: Awaitable[object], label: str, context: dict[str, object]
    ) -> bool:
        try:
            await step
        except TransportError:
            logger.exception(
                "WhatsApp API failure while handling %s", label, extra=context
            )
        except MalformedEventError as exc:
            logger.warning("Skipping malformed %s: %s", label, exc, extra=context)
        except Exception:
            logger.exception(
                "Unexpected failure while handling %s", label, extra=context
            )
        else:
            return True
        return False
