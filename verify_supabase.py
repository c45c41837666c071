import asyncio

from dashboard.core.config import settings
from dashboard.core.exceptions import DashboardError
from dashboard.core.logger import logger, setup_logging
from dashboard.services.db_service import QUOTES, RESERVATIONS, USERS, run_query
from dashboard.services.supabase_client import create_admin_client

setup_logging()

async def verify_supabase():
    """
    Checks the Supabase credentials and that every table the dashboard
    reads is reachable with the service-role key.
    """
    logger.info(f"Checking Supabase project {settings.SUPABASE_URL or '(not set)'}...")
    try:
        client = await create_admin_client()
    except DashboardError as e:
        logger.error(f"❌ {e.message}")
        return False

    ok = True
    for table in (USERS, RESERVATIONS, QUOTES):
        try:
            response = await run_query(client.table(table).select("id").limit(1), f"verify_{table}")
            logger.info(f"✅ {table}: reachable ({len(response.data)} sample row(s))")
        except DashboardError as e:
            logger.error(f"❌ {table}: {e.message}")
            ok = False
    return ok

if __name__ == "__main__":
    raise SystemExit(0 if asyncio.run(verify_supabase()) else 1)
