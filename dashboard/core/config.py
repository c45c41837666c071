from typing import List

from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "Service Business Dashboard"
    API_PREFIX: str = "/api"

    # Server
    PORT: int = 8000
    ENVIRONMENT: str = "development"

    # Supabase
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: str = ""
    # Server-side only (signup provisioning). Never sent to clients.
    SUPABASE_SERVICE_ROLE_KEY: str = ""

    # Auth
    SITE_URL: str = "http://localhost:3000"
    LOGIN_PATH: str = "/login"
    HOME_PATH: str = "/"
    ACCESS_COOKIE_NAME: str = "sb-access-token"
    REFRESH_COOKIE_NAME: str = "sb-refresh-token"
    COOKIE_SECURE: bool = False
    SESSION_CACHE_SECONDS: int = 300
    MIN_PASSWORD_LENGTH: int = 6

    # Calendar / lists
    TIMEZONE: str = "Europe/Paris"
    OVERDUE_GRACE_MINUTES: int = 15
    DASHBOARD_CONFIG_PATH: str = "data/dashboard_config.json"

    # Logging
    LOG_LEVEL: str = "INFO"
    ERROR_LOG_PATH: str = "logs/errors.log"
    # Libraries only logged from WARNING up
    QUIET_LOGGERS: List[str] = ["uvicorn.access", "httpx", "httpcore", "hpack", "postgrest", "supabase", "gotrue"]

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
