"""Application configuration."""

import os
from dataclasses import dataclass

from pydantic import PositiveInt
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    verify_token: str
    whatsapp_token: str
    phone_number_id: str
    group_id: str | None = None
    approver_numbers: str = ""
    required_hearts: PositiveInt = 4
    graph_api_base_url: str = "https://graph.facebook.com/v20.0"
    supabase_url: str
    supabase_service_key: str
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


@dataclass(frozen=True)
class WorkflowConfig:
    """Approval rules shared by the dialog and approval engines."""

    group_id: str | None
    approver_ids: frozenset[str]
    required_hearts: int

    def __post_init__(self) -> None:
        if self.required_hearts < 1:
            raise ValueError("required_hearts must be a positive integer")

    @property
    def approver_count(self) -> int:
        return len(self.approver_ids)


def parse_approver_ids(raw: str | None) -> frozenset[str]:
    """Parse the comma-separated approver allow-list from env."""
    if raw is None:
        return frozenset()
    return frozenset(chunk.strip() for chunk in raw.split(",") if chunk.strip())


def workflow_config(settings: Settings) -> WorkflowConfig:
    """Build the immutable workflow configuration from settings."""
    group_id = (settings.group_id or "").strip() or None
    return WorkflowConfig(
        group_id=group_id,
        approver_ids=parse_approver_ids(settings.approver_numbers),
        required_hearts=settings.required_hearts,
    )
