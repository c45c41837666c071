from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI

from dashboard.api import account, auth, calendar, history, overview, quotes, reservations
from dashboard.core.config import settings
from dashboard.core.config_loader import get_dashboard_config
from dashboard.core.exceptions import register_exception_handlers
from dashboard.core.logger import logger, setup_logging
from dashboard.core.security import RouteGuardMiddleware, SessionRegistry
from dashboard.models.views import DashboardSummary

setup_logging()

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("🚀 Starting dashboard backend")
    get_dashboard_config()
    yield
    # Shutdown
    logger.info(f"🛑 Shutting down backend ({len(app.state.sessions)} cached sessions dropped)")
    await app.state.sessions.close()

app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan
)
app.state.sessions = SessionRegistry(settings.SESSION_CACHE_SECONDS)

app.add_middleware(RouteGuardMiddleware)
register_exception_handlers(app)

api = settings.API_PREFIX
app.include_router(auth.router, prefix=f"{api}/auth", tags=["Auth"])
app.include_router(reservations.router, prefix=f"{api}/reservations", tags=["Reservations"])
app.include_router(quotes.router, prefix=f"{api}/quotes", tags=["Quotes"])
app.include_router(calendar.router, prefix=f"{api}/calendar", tags=["Calendar"])
app.include_router(history.router, prefix=f"{api}/history", tags=["History"])
app.include_router(overview.router, prefix=api, tags=["Overview"])
app.include_router(account.router, prefix=f"{api}/settings", tags=["Settings"])

# Home page summary
app.get("/", response_model=DashboardSummary, tags=["Overview"])(overview.get_summary)

@app.get("/health")
async def health_check():
    return {"status": "ok", "environment": settings.ENVIRONMENT, "timestamp": datetime.now().isoformat()}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("dashboard.main:app", host="0.0.0.0", port=settings.PORT, reload=True)
