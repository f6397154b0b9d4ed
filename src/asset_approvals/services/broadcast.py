"""Broadcasting submissions to the approval group."""

import logging
from dataclasses import dataclass

from asset_approvals.adapters.whatsapp_client import WhatsAppClient
from asset_approvals.config import WorkflowConfig
from asset_approvals.domain.items import ContentKind
from asset_approvals.domain.sessions import ContentRef

logger = logging.getLogger(__name__)

FALLBACK_MIME = "application/octet-stream"
FALLBACK_DOCUMENT_NAME = "file.pdf"


def compose_caption(  # noqa: PLR0913
    event_name: str,
    asset_type: str,
    submitter_name: str,
    tracking_code: str,
    required_hearts: int,
    approver_count: int,
) -> str:
    """Build the caption approvers see on the group message."""
    return "\n".join(
        [
            f"📝 Event: {event_name}",
            f"🖼️ Type: {asset_type}",
            f"👤 Submitted by: {submitter_name}",
            f"🔎 Tracking: {tracking_code}",
            "",
            f"React with ❤️ (we need {required_hearts}/{approver_count}).",
        ]
    )


@dataclass
class GroupBroadcaster:
    """Posts submitted content to a group chat."""

    client: WhatsAppClient
    config: WorkflowConfig

    def caption_for(
        self,
        event_name: str,
        asset_type: str,
        submitter_name: str,
        tracking_code: str,
    ) -> str:
        return compose_caption(
            event_name=event_name,
            asset_type=asset_type,
            submitter_name=submitter_name,
            tracking_code=tracking_code,
            required_hearts=self.config.required_hearts,
            approver_count=self.config.approver_count,
        )

    async def broadcast(self, group_id: str, content: ContentRef, caption: str) -> str:
        """Send the content to the group and return the group message id.

        Media is downloaded and uploaded again, since media ids received from
        the submitter cannot be sent from this number.
        """
        if content.kind is ContentKind.LINK:
            return await self.client.send_group_text(
                group_id, f"{caption}\n🔗 {content.link_url}"
            )
        if not content.media_ref:
            raise ValueError("Media content has no media reference")

        metadata = await self.client.fetch_media_metadata(content.media_ref)
        data = await self.client.download_binary(metadata.url)
        mime_type = content.media_mime or metadata.mime_type or FALLBACK_MIME
        uploaded_ref = await self.client.upload_binary(data, mime_type)
        logger.info(
            "Re-uploaded submitted media",
            extra={"media_ref": content.media_ref, "size": len(data)},
        )
        filename = None
        if content.kind is ContentKind.DOCUMENT:
            filename = content.filename or metadata.filename or FALLBACK_DOCUMENT_NAME
        return await self.client.send_group_media(
            group_id,
            content.kind,
            uploaded_ref,
            caption,
            filename=filename,
        )
