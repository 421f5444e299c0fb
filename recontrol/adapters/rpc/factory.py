"""Factory for the database gateway client."""

from recontrol.adapters.rpc.base import AbstractDatabaseGateway
from recontrol.adapters.rpc.postgrest_client import PostgrestClient
from recontrol.core.config import SupabaseSettings, settings
from recontrol.core.errors import ConfigurationAppError


def create_database_gateway(cfg: SupabaseSettings | None = None) -> AbstractDatabaseGateway:
    """Build the gateway client from ``SUPABASE_*`` settings.

    Raises:
        ConfigurationAppError: If the gateway URL or service role key is missing.
    """
    cfg = cfg or settings.supabase

    if not cfg.url:
        raise ConfigurationAppError(
            code="database_not_configured",
            message="SUPABASE_URL is not configured",
        )
    if not cfg.service_role_key:
        raise ConfigurationAppError(
            code="database_not_configured",
            message="SUPABASE_SERVICE_ROLE_KEY is not configured",
        )

    return PostgrestClient(
        base_url=cfg.url,
        service_role_key=cfg.service_role_key,
        schema=cfg.db_schema,
        timeout_seconds=cfg.timeout_seconds,
    )
