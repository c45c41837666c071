from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends

from dashboard.api.deps import get_config, get_store, get_viewer_timezone
from dashboard.core.config_loader import DashboardConfig
from dashboard.models.views import HistoryResponse
from dashboard.services.db_service import DBService
from dashboard.services.grouping import partition_history
from dashboard.services.presenter import reservation_views

router = APIRouter()


@router.get("", response_model=HistoryResponse)
async def get_history(
    store: DBService = Depends(get_store),
    config: DashboardConfig = Depends(get_config),
    tz: ZoneInfo = Depends(get_viewer_timezone),
):
    """Reservations with a recorded outcome, most recent first, split by outcome."""
    reservations = await store.list_reservations(resolved=True, ascending=False)
    partition = partition_history(reservations)
    return HistoryResponse(
        attended_count=partition.attended_count,
        missed_count=partition.missed_count,
        attended=reservation_views(partition.attended, config, tz),
        missed=reservation_views(partition.missed, config, tz),
    )
