"""Infrastructure layer exports."""

from .ai_pricing import AIPricingClient, AIPricingError, configure_ai_pricing_client, get_ai_pricing_client
from .sessions import InMemorySessionRepository, SessionRepository
from .webhooks import (
    FilePart,
    GeneratedFile,
    WebhookClient,
    WebhookError,
    configure_webhook_client,
    get_webhook_client,
)

__all__ = [
    "AIPricingClient",
    "AIPricingError",
    "FilePart",
    "GeneratedFile",
    "InMemorySessionRepository",
    "SessionRepository",
    "WebhookClient",
    "WebhookError",
    "configure_ai_pricing_client",
    "configure_webhook_client",
    "get_ai_pricing_client",
    "get_webhook_client",
]
