import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from notification_engine.config import get_settings
from notification_engine.infrastructure.channels import WhatsAppWebClient, build_channel_senders
from notification_engine.infrastructure.database import engine, initialize_database
from notification_engine.infrastructure.identity import KeycloakClient
from notification_engine.interfaces.api.errors import register_exception_handlers
from notification_engine.interfaces.api.routes import register_routes

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Prepare the database and outbound clients, release them on shutdown."""

    settings = get_settings()
    initialize_database()

    identity_provider = KeycloakClient.from_settings(settings)
    if not identity_provider.is_configured:
        logger.warning("Keycloak admin credentials missing; user profiles will not be refreshed")
    whatsapp_client = WhatsAppWebClient(settings) if settings.whatsapp_enabled else None

    app.state.identity_provider = identity_provider
    app.state.whatsapp_client = whatsapp_client
    app.state.channel_senders = build_channel_senders(settings, whatsapp_client=whatsapp_client)
    try:
        yield
    finally:
        if whatsapp_client is not None:
            whatsapp_client.close()
        identity_provider.close()
        engine.dispose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(title="Notification Engine", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    register_routes(app)
    return app


app = create_app()
