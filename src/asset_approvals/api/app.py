"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import BackgroundTasks, FastAPI, HTTPException, Query, Request, status
from fastapi.responses import PlainTextResponse

from asset_approvals.api.whatsapp_models import parse_delivery
from asset_approvals.app_logging import configure_logging
from asset_approvals.containers import AppContainer


def verify_challenge(
    mode: str | None,
    token: str | None,
    challenge: str | None,
    verify_token: str,
) -> str | None:
    """Return the challenge to echo when the subscription request is valid."""
    if mode == "subscribe" and token and token == verify_token:
        return challenge or ""
    return None


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/webhook", response_class=PlainTextResponse)
    async def verify_webhook(
        request: Request,
        mode: str | None = Query(default=None, alias="hub.mode"),
        token: str | None = Query(default=None, alias="hub.verify_token"),
        challenge: str | None = Query(default=None, alias="hub.challenge"),
    ) -> PlainTextResponse:
        """Answer the WhatsApp webhook verification handshake."""
        state_container: AppContainer = request.app.state.container
        answer = verify_challenge(
            mode, token, challenge, state_container.settings.verify_token
        )
        if answer is None:
            logger.warning("Rejected webhook verification", extra={"mode": mode})
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN)
        return PlainTextResponse(answer)

    @app.post("/webhook")
    async def whatsapp_webhook(
        request: Request, background_tasks: BackgroundTasks
    ) -> dict[str, str]:
        """Acknowledge a WhatsApp delivery and process it in the background."""
        state_container: AppContainer = request.app.state.container
        try:
            payload = await request.json()
        except ValueError:
            logger.warning("Ignoring webhook delivery with an invalid JSON body")
            return {"status": "ok"}
        delivery = parse_delivery(payload)
        if not delivery.is_empty:
            background_tasks.add_task(
                state_container.delivery_processor.process, delivery
            )
        return {"status": "ok"}

    return app
