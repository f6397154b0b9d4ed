"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from asset_approvals.adapters.supabase_item_repository import SupabaseItemRepository
from asset_approvals.adapters.supabase_session_repository import (
    SupabaseSessionRepository,
)
from asset_approvals.adapters.supabase_vote_repository import SupabaseVoteRepository
from asset_approvals.adapters.whatsapp_client import (
    HttpxWhatsAppClient,
    WhatsAppClient,
)
from asset_approvals.config import Settings, WorkflowConfig, workflow_config
from asset_approvals.services.approvals import ApprovalService
from asset_approvals.services.broadcast import GroupBroadcaster
from asset_approvals.services.deliveries import DeliveryProcessor
from asset_approvals.services.dialog import DialogService
from asset_approvals.services.status import StatusService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    workflow: WorkflowConfig
    whatsapp_client: WhatsAppClient
    dialog_service: DialogService
    approval_service: ApprovalService
    status_service: StatusService
    delivery_processor: DeliveryProcessor
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    workflow = workflow_config(resolved_settings)
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    item_repository = SupabaseItemRepository(supabase_client)
    vote_repository = SupabaseVoteRepository(supabase_client)
    session_repository = SupabaseSessionRepository(supabase_client)
    whatsapp_client = HttpxWhatsAppClient.create(
        access_token=resolved_settings.whatsapp_token,
        phone_number_id=resolved_settings.phone_number_id,
        base_url=resolved_settings.graph_api_base_url,
    )
    status_service = StatusService(
        item_repository=item_repository,
        vote_repository=vote_repository,
        config=workflow,
    )
    dialog_service = DialogService(
        session_repository=session_repository,
        item_repository=item_repository,
        status_service=status_service,
        broadcaster=GroupBroadcaster(client=whatsapp_client, config=workflow),
        client=whatsapp_client,
        config=workflow,
    )
    approval_service = ApprovalService(
        item_repository=item_repository,
        vote_repository=vote_repository,
        client=whatsapp_client,
        config=workflow,
    )
    delivery_processor = DeliveryProcessor(
        dialog_service=dialog_service,
        approval_service=approval_service,
    )

    async def close_resources() -> None:
        await whatsapp_client.close()

    return AppContainer(
        settings=resolved_settings,
        workflow=workflow,
        whatsapp_client=whatsapp_client,
        dialog_service=dialog_service,
        approval_service=approval_service,
        status_service=status_service,
        delivery_processor=delivery_processor,
        close_resources=close_resources,
    )
