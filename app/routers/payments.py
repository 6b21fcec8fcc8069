from pathlib import Path
from typing import Any

import orjson
from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import FileResponse, ORJSONResponse, PlainTextResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import get_settings
from app.core.logging import get_logger
from app.db.base import DocumentStore
from app.deps import get_store, require_store
from app.services import callbacks as callbacks_service
from app.services import payments as payments_service

router = APIRouter()
log = get_logger(__name__)

FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


async def read_callback_payload(request: Request) -> dict[str, Any]:
    """Flat field -> value mapping from a JSON, urlencoded or multipart body. Unparseable bodies give {}."""
    content_type = request.headers.get("content-type", "").lower()
    if content_type.startswith(FORM_CONTENT_TYPES):
        try:
            form = await request.form()
        except (StarletteHTTPException, ValueError) as e:
            log.warning("payment_callback_form_unreadable", content_type=content_type, error=str(e))
            return {}
        # uploaded files carry no callback fields
        return {k: v for k, v in form.items() if isinstance(v, str)}
    body = await request.body()
    if not body:
        return {}
    try:
        data = orjson.loads(body)
    except orjson.JSONDecodeError:
        log.warning("payment_callback_body_unreadable", content_type=content_type, size=len(body))
        return {}
    return data if isinstance(data, dict) else {}


@router.post("/callback")
async def payment_callback(request: Request, store: DocumentStore | None = Depends(get_store)):
    """Gateway server-to-server callback. Always 200 unless the store is down or something unexpected fails."""
    payload = await read_callback_payload(request)
    try:
        return await callbacks_service.handle_callback(store, payload)
    except Exception as e:
        log.exception("payment_callback_failed", keys=sorted(payload.keys()))
        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"received": True, "success": False, "error": str(e)},
        )


@router.get("/callback")
async def payment_callback_redirect(
    billcode: str | None = Query(None),
    status_: str | None = Query(None, alias="status"),
    transaction_id: str | None = Query(None),
):
    """Browser return from the gateway: bounce to the app deep link. Nothing is stored."""
    deep_link = get_settings().android_app_deep_link
    try:
        url = callbacks_service.build_return_link(deep_link, billcode, status_, transaction_id)
    except Exception:
        log.exception("payment_redirect_failed", billcode=billcode)
        url = callbacks_service.build_error_link(deep_link)
    return RedirectResponse(url, status_code=status.HTTP_302_FOUND)


@router.get("/return")
async def payment_return():
    """Static page the gateway sends the browser to; it reads its own query string."""
    page = Path(get_settings().payment_return_page)
    if not page.is_file():
        return PlainTextResponse("Payment return page not found", status_code=status.HTTP_404_NOT_FOUND)
    return FileResponse(page, media_type="text/html")


@router.get("/orders/{order_id}/payments")
async def order_payments(
    order_id: str,
    store: DocumentStore = Depends(require_store),
    limit: int = Query(100, ge=1, le=500),
):
    """Payments recorded for one order (from the payments_by_order index), newest first."""
    entries = await payments_service.list_order_payments(store, order_id, limit=limit)
    return {"orderId": order_id, "payments": entries}
