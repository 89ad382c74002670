"""Order endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from app.db.store import DataStore, get_store
from app.schemas.order import OrderRead
from app.services.order_service import OrdersUnavailableError, fetch_orders

router: APIRouter = APIRouter()


@router.get("", response_model=list[OrderRead])
async def list_orders(store: DataStore = Depends(get_store)) -> list[OrderRead]:
    """Return all orders, newest first, with their items and subtotals."""
    try:
        return await fetch_orders(store)
    except OrdersUnavailableError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
