"""ASGI entrypoint for the asset approvals API."""

from asset_approvals.api.app import create_app
from asset_approvals.containers import build_container

app = create_app(build_container())
