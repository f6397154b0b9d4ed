"""WhatsApp Cloud API client adapter."""

from dataclasses import dataclass
from typing import Protocol

import httpx

from asset_approvals.domain.errors import TransportError
from asset_approvals.domain.items import ContentKind


@dataclass(frozen=True)
class MediaMetadata:
    """Download location and type of an uploaded media object."""

    url: str
    mime_type: str | None = None
    filename: str | None = None


class WhatsAppClient(Protocol):
    """Interface for WhatsApp API interactions."""

    async def send_direct_text(self, recipient_id: str, text: str) -> str | None:
        """Send a text message to a single user."""

    async def send_group_text(self, group_id: str, text: str) -> str:
        """Send a text message to a group and return its message id."""

    async def send_group_media(
        self,
        group_id: str,
        kind: ContentKind,
        media_ref: str,
        caption: str,
        filename: str | None = None,
    ) -> str:
        """Send media to a group and return its message id."""

    async def fetch_media_metadata(self, media_ref: str) -> MediaMetadata:
        """Return the download metadata for a media id."""

    async def download_binary(self, url: str) -> bytes:
        """Download media bytes from a WhatsApp media URL."""

    async def upload_binary(self, data: bytes, mime_type: str) -> str:
        """Upload media bytes and return the new media id."""

    async def reply_in_thread(
        self, message_id: str, text: str, recipient_id: str | None = None
    ) -> str | None:
        """Reply to an existing message with a text message."""


@dataclass
class HttpxWhatsAppClient:
    """WhatsApp client implemented with httpx against the Graph API."""

    access_token: str
    phone_number_id: str
    http_client: httpx.AsyncClient
    base_url: str = "https://graph.facebook.com/v20.0"

    @classmethod
    def create(
        cls,
        access_token: str,
        phone_number_id: str,
        base_url: str = "https://graph.facebook.com/v20.0",
    ) -> "HttpxWhatsAppClient":
        """Create a WhatsApp client with a managed httpx session."""
        return cls(
            access_token=access_token,
            phone_number_id=phone_number_id,
            http_client=httpx.AsyncClient(),
            base_url=base_url.rstrip("/"),
        )

    @property
    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}

    async def send_direct_text(self, recipient_id: str, text: str) -> str | None:
        """Send a text message using the messages endpoint."""
        payload = _text_payload(recipient_id, text)
        return _message_id(await self._send(payload))

    async def send_group_text(self, group_id: str, text: str) -> str:
        """Send a text message to the group and return its message id."""
        payload = _text_payload(group_id, text)
        return _require_message_id(await self._send(payload))

    async def send_group_media(
        self,
        group_id: str,
        kind: ContentKind,
        media_ref: str,
        caption: str,
        filename: str | None = None,
    ) -> str:
        """Send an image, video or document to the group."""
        if not kind.is_media:
            raise ValueError(f"Cannot send {kind.value} content as media")
        media: dict[str, object] = {"id": media_ref, "caption": caption}
        if kind is ContentKind.DOCUMENT:
            media["filename"] = filename or "file"
        payload: dict[str, object] = {
            "messaging_product": "whatsapp",
            "to": group_id,
            "type": kind.value,
            kind.value: media,
        }
        return _require_message_id(await self._send(payload))

    async def fetch_media_metadata(self, media_ref: str) -> MediaMetadata:
        """Look up the temporary download URL for a media id."""
        try:
            response = await self.http_client.get(
                f"{self.base_url}/{media_ref}", headers=self._headers, timeout=10
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise TransportError(
                f"Failed to fetch media metadata for {media_ref}"
            ) from exc
        payload = _json(response)
        url = payload.get("url")
        if not url:
            raise TransportError(f"Media metadata for {media_ref} has no url")
        return MediaMetadata(
            url=url,
            mime_type=payload.get("mime_type"),
            filename=payload.get("filename"),
        )

    async def download_binary(self, url: str) -> bytes:
        """Download media bytes with the bearer token."""
        try:
            response = await self.http_client.get(
                url, headers=self._headers, timeout=30
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise TransportError("Failed to download media") from exc
        return response.content

    async def upload_binary(self, data: bytes, mime_type: str) -> str:
        """Upload media to this phone number and return the new media id."""
        url = f"{self.base_url}/{self.phone_number_id}/media"
        try:
            response = await self.http_client.post(
                url,
                headers=self._headers,
                data={"messaging_product": "whatsapp", "type": mime_type},
                files={"file": ("upload", data, mime_type)},
                timeout=60,
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise TransportError("Failed to upload media") from exc
        media_id = _json(response).get("id")
        if not media_id:
            raise TransportError("Media upload returned no id")
        return str(media_id)

    async def reply_in_thread(
        self, message_id: str, text: str, recipient_id: str | None = None
    ) -> str | None:
        """Reply to a message so the text shows up quoted in its thread."""
        payload: dict[str, object] = {
            "messaging_product": "whatsapp",
            "context": {"message_id": message_id},
            "type": "text",
            "text": {"body": text},
        }
        if recipient_id:
            payload["to"] = recipient_id
        return _message_id(await self._send(payload))

    async def close(self) -> None:
        """Close the underlying HTTP client session."""
        await self.http_client.aclose()

    async def _send(self, payload: dict[str, object]) -> dict[str, object]:
        url = f"{self.base_url}/{self.phone_number_id}/messages"
        try:
            response = await self.http_client.post(
                url, json=payload, headers=self._headers, timeout=10
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise TransportError(
                f"Failed to send {payload.get('type')} message"
            ) from exc
        return _json(response)


def _text_payload(recipient_id: str, text: str) -> dict[str, object]:
    return {
        "messaging_product": "whatsapp",
        "to": recipient_id,
        "type": "text",
        "text": {"body": text},
    }


def _message_id(response: dict[str, object]) -> str | None:
    messages = response.get("messages")
    if isinstance(messages, list) and messages and isinstance(messages[0], dict):
        message_id = messages[0].get("id")
        return str(message_id) if message_id else None
    return None


def _require_message_id(response: dict[str, object]) -> str:
    message_id = _message_id(response)
    if message_id is None:
        raise TransportError("Group message response has no message id")
    return message_id


def _json(response: httpx.Response) -> dict[str, object]:
    try:
        payload = response.json()
    except ValueError as exc:
        raise TransportError("WhatsApp API returned a non-JSON body") from exc
    if not isinstance(payload, dict):
        raise TransportError("WhatsApp API returned an unexpected body")
    return payload
