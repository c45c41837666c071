from supabase import AsyncClient, create_async_client
from supabase.lib.client_options import AsyncClientOptions

from dashboard.core.config import settings
from dashboard.core.exceptions import ConfigurationError
from dashboard.core.logger import logger

# Server-side clients never keep a session of their own: every request
# brings its token, and the service-role client must not persist anything.
_STATELESS = dict(auto_refresh_token=False, persist_session=False)


def _require_project():
    if not settings.SUPABASE_URL or not settings.SUPABASE_ANON_KEY:
        logger.warning("⚠️ Supabase credentials missing")
        raise ConfigurationError("Supabase is not configured (SUPABASE_URL / SUPABASE_ANON_KEY).")


async def create_anon_client() -> AsyncClient:
    """Client for auth calls made on behalf of a visitor (login, password reset)."""
    _require_project()
    return await create_async_client(
        settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY, options=AsyncClientOptions(**_STATELESS)
    )


async def create_user_client(access_token: str) -> AsyncClient:
    """
    Client whose table queries run as the signed-in user, so row-level
    security applies on top of the explicit owner filters.
    """
    client = await create_anon_client()
    client.postgrest.auth(access_token)
    return client


async def close_client(client: AsyncClient) -> None:
    """Closes the httpx pools behind the auth and PostgREST clients."""
    try:
        await client.auth.close()
        await client.postgrest.aclose()
    except Exception as e:
        logger.warning(f"⚠️ Supabase client not closed cleanly: {e}")


async def create_admin_client() -> AsyncClient:
    """
    Service-role client. Bypasses row-level security; only used by the
    signup flow to look up invitations and provision credentials.
    """
    _require_project()
    if not settings.SUPABASE_SERVICE_ROLE_KEY:
        logger.error("❌ SUPABASE_SERVICE_ROLE_KEY is not defined")
        raise ConfigurationError(
            "SUPABASE_SERVICE_ROLE_KEY is not defined. "
            "Add it to the environment (Supabase project settings > API > Service Role Key)."
        )
    return await create_async_client(
        settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY, options=AsyncClientOptions(**_STATELESS)
    )
