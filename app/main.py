"""FastAPI entrypoint for the restaurant order admin panel."""

from __future__ import annotations

import logging
from pathlib import Path
from urllib.parse import parse_qs, quote_plus

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from starlette.middleware.sessions import SessionMiddleware

from app.api.v1.api import api_router
from app.core.config import configure_logging, settings
from app.db import session as db_session
from app.db.base import Base
from app.db.migrations import ensure_sqlite_schema
from app.db.store import get_store
from app.schemas.order import OrderRead
from app.services.order_service import OrdersUnavailableError, fetch_orders
from app.services.orders_view import OrdersViewState
from app.services.settings_service import RESEND_API_KEY, SettingsSaveError, load_setting, save_setting
from app.utils.formatting import format_amount, format_order_date

BASE_DIR = Path(__file__).resolve().parent.parent
logger = logging.getLogger(__name__)

SAVE_SUCCESS_MESSAGE: str = "Resend API key saved successfully!"
SAVE_FAILURE_MESSAGE: str = "Failed to save settings. Please try again."
MISSING_KEY_MESSAGE: str = "Please enter your Resend API key."

configure_logging()

app = FastAPI(title=settings.app_name)
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret,
    same_site="lax",
    https_only=False,
    max_age=60 * 60 * 24 * 7,
)
app.include_router(api_router, prefix="/api/v1")
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))
templates.env.filters["amount"] = format_amount
templates.env.filters["order_date"] = format_order_date


def render_template(request: Request, name: str, context: dict | None = None):
    """Render a template with required request object and shared global context."""
    payload = {"request": request, "app_name": settings.app_name}
    if context:
        payload.update(context)
    return templates.TemplateResponse(request, name, payload)


@app.on_event("startup")
def startup() -> None:
    if settings.session_secret == settings.session_secret_fallback:
        logger.warning("SESSION_SECRET not set; using development fallback secret.")
    logger.info("Data backend: %s", settings.data_backend)
    if settings.data_backend.strip().lower() != "sql":
        return
    Base.metadata.create_all(bind=db_session.engine)
    ensure_sqlite_schema(db_session.engine)


async def _form_data(request: Request) -> dict[str, str]:
    body = (await request.body()).decode()
    parsed = parse_qs(body, keep_blank_values=True)
    return {key: values[-1] if values else "" for key, values in parsed.items()}


def _settings_redirect(status: str, message: str) -> RedirectResponse:
    return RedirectResponse(
        url=f"/admin/settings?status={status}&message={quote_plus(message)}",
        status_code=303,
    )


@app.get("/", response_class=RedirectResponse)
def root():
    return RedirectResponse(url="/admin", status_code=303)


@app.get("/admin", response_class=RedirectResponse)
def admin_home():
    return RedirectResponse(url="/admin/orders", status_code=303)


@app.get("/admin/orders", response_class=HTMLResponse)
async def admin_orders_page(request: Request):
    state = OrdersViewState.from_session(request.session)
    state.begin_fetch()
    orders: list[OrderRead] = []
    try:
        orders = await fetch_orders(get_store())
    except OrdersUnavailableError as exc:
        state.finish_fetch(str(exc))
    else:
        state.finish_fetch()
    state.save(request.session)
    return render_template(
        request,
        "admin_orders.html",
        {"active_tab": "orders", "orders": orders, "view": state},
    )


@app.post("/admin/orders/{order_id}/toggle", response_class=RedirectResponse)
def admin_orders_toggle(request: Request, order_id: str):
    state = OrdersViewState.from_session(request.session)
    state.toggle(order_id)
    state.save(request.session)
    return RedirectResponse(url=f"/admin/orders#order-{order_id}", status_code=303)


@app.get("/admin/settings", response_class=HTMLResponse)
async def admin_settings_page(
    request: Request,
    show: bool = False,
    status: str | None = None,
    message: str | None = None,
):
    api_key = await load_setting(get_store(), RESEND_API_KEY)
    flash = {"type": "success" if status == "success" else "error", "text": message} if message else None
    return render_template(
        request,
        "admin_settings.html",
        {"active_tab": "settings", "api_key": api_key or "", "show_key": show, "message": flash},
    )


@app.post("/admin/settings", response_class=RedirectResponse)
async def admin_settings_save(request: Request):
    form = await _form_data(request)
    api_key = form.get("resend_api_key", "")
    try:
        await save_setting(get_store(), RESEND_API_KEY, api_key)
    except ValueError:
        return _settings_redirect("error", MISSING_KEY_MESSAGE)
    except SettingsSaveError:
        return _settings_redirect("error", SAVE_FAILURE_MESSAGE)
    return _settings_redirect("success", SAVE_SUCCESS_MESSAGE)
