import logging

from supabase import create_client, Client
from supabase.client import ClientOptions
from contextkeeper.config import Settings
from contextkeeper.core.errors import ConfigurationError

logger = logging.getLogger(__name__)


def create_supabase(settings: Settings) -> Client:
    """Build the process-wide Supabase client from configuration.

    Called once at startup; the client (and its httpx connection pool) is then
    handed to the gateway and the identity verifier explicitly.
    """
    if not settings.supabase_url:
        raise ConfigurationError("SUPABASE_URL environment variable is required")
    if not settings.supabase_service_role_key:
        raise ConfigurationError("SUPABASE_SERVICE_ROLE_KEY environment variable is required")

    options = ClientOptions(
        postgrest_client_timeout=settings.storage_timeout_seconds,
        auto_refresh_token=False,
        persist_session=False,
    )
    logger.info("Connecting to Supabase at %s", settings.supabase_url)
    return create_client(settings.supabase_url, settings.supabase_service_role_key, options=options)
