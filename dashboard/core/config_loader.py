import json
from functools import lru_cache
from pathlib import Path
from typing import Dict, List

from pydantic import BaseModel, Field, ValidationError

from dashboard.core.config import settings
from dashboard.core.logger import logger

PROJECT_ROOT = Path(__file__).resolve().parents[2]


class Badge(BaseModel):
    label: str
    color: str
    background: str = "rgba(113, 113, 122, 0.1)"


class DateLabels(BaseModel):
    """Locale strings used to label dates in lists and calendar headers."""
    today: str = "Today"
    tomorrow: str = "Tomorrow"
    weekday_names: List[str] = Field(min_length=7, max_length=7)
    weekday_short_names: List[str] = Field(min_length=7, max_length=7)
    month_names: List[str] = Field(min_length=12, max_length=12)
    month_short_names: List[str] = Field(min_length=12, max_length=12)
    long_date_format: str = "{weekday}, {month} {day}, {year}"
    short_date_format: str = "{day} {month_short}"
    month_title_format: str = "{month} {year}"


class Presentation(BaseModel):
    quote_status: Dict[str, Badge]
    attendance: Dict[str, Badge]
    fallback: Badge = Badge(label="Unknown", color="#71717a")


class DashboardConfig(BaseModel):
    business_locale: str = "en"
    labels: DateLabels
    presentation: Presentation


def _resolve(path: str) -> Path:
    candidate = Path(path)
    if candidate.is_absolute() or candidate.exists():
        return candidate
    return PROJECT_ROOT / candidate


def load_dashboard_config(path: str = None) -> DashboardConfig:
    """
    Loads the dashboard display configuration (locale labels and the
    status -> badge presentation table) from JSON.
    Raises FileNotFoundError if the file is missing, ValueError if it is malformed.
    """
    config_path = _resolve(path or settings.DASHBOARD_CONFIG_PATH)
    if not config_path.exists():
        logger.critical(f"❌ Dashboard config '{config_path}' not found! The application cannot start.")
        raise FileNotFoundError(f"Configuration file not found at {config_path}")

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            raw = json.load(f)
    except json.JSONDecodeError as e:
        logger.critical(f"❌ Invalid JSON in dashboard config: {e}")
        raise ValueError(f"Invalid JSON in config file: {e}")

    try:
        config = DashboardConfig.model_validate(raw)
    except ValidationError as e:
        logger.critical(f"❌ Dashboard config does not match the expected shape: {e}")
        raise ValueError(f"Invalid dashboard config: {e}")

    logger.info(f"✅ Dashboard config loaded (locale: {config.business_locale})")
    return config


@lru_cache()
def get_dashboard_config() -> DashboardConfig:
    """Cached config used by the API layer."""
    return load_dashboard_config()


def get_status_badge(config: DashboardConfig, status: str) -> Badge:
    return config.presentation.quote_status.get(status, config.presentation.fallback)


def get_attendance_badge(config: DashboardConfig, attendance: str) -> Badge:
    return config.presentation.attendance.get(attendance, config.presentation.fallback)
