from fastapi import APIRouter, Depends

from dashboard.api.deps import get_config, get_store
from dashboard.core.config_loader import DashboardConfig
from dashboard.models.auth_models import MessageResponse
from dashboard.models.records import QuoteCreate, QuoteStatusUpdate
from dashboard.models.views import QuoteListResponse, QuoteView
from dashboard.services.db_service import DBService
from dashboard.services.grouping import count_by_status
from dashboard.services.presenter import quote_view

router = APIRouter()


@router.get("", response_model=QuoteListResponse)
async def list_quotes(store: DBService = Depends(get_store), config: DashboardConfig = Depends(get_config)):
    """Quotes newest first, with a count per status."""
    quotes = await store.list_quotes()
    return QuoteListResponse(
        total=len(quotes),
        status_counts=count_by_status(quotes),
        items=[quote_view(q, config) for q in quotes],
    )


@router.post("", response_model=QuoteView, status_code=201)
async def create_quote(
    form: QuoteCreate,
    store: DBService = Depends(get_store),
    config: DashboardConfig = Depends(get_config),
):
    return quote_view(await store.create_quote(form), config)


@router.get("/{quote_id}", response_model=QuoteView)
async def get_quote(quote_id: str, store: DBService = Depends(get_store), config: DashboardConfig = Depends(get_config)):
    return quote_view(await store.get_quote(quote_id), config)


@router.patch("/{quote_id}/status", response_model=QuoteView)
async def set_quote_status(
    quote_id: str,
    update: QuoteStatusUpdate,
    store: DBService = Depends(get_store),
    config: DashboardConfig = Depends(get_config),
):
    # Any status may follow any other
    return quote_view(await store.set_quote_status(quote_id, update.status), config)


@router.delete("/{quote_id}", response_model=MessageResponse)
async def delete_quote(quote_id: str, store: DBService = Depends(get_store)):
    await store.delete_quote(quote_id)
    return MessageResponse(message="Quote deleted")
