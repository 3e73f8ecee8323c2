from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
import structlog

from ..inventory import InventoryProxy
from ..orders import STORE_ERRORS, OrderStore, apply_webhook, checkout
from ..payments import PaymentAdapter, WebhookConfigError, WebhookError
from .deps import get_orders, get_payments, get_proxy

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/stripe", tags=["payments"])


@router.post("/checkout")
async def create_checkout(
    payload: dict,
    proxy: InventoryProxy = Depends(get_proxy),
    payments: PaymentAdapter = Depends(get_payments),
    orders: OrderStore = Depends(get_orders),
):
    return await checkout(payload, proxy, payments, orders)


# ----------------------------
# Webhook endpoint
# ----------------------------
@router.post("/webhook", response_class=PlainTextResponse)
async def payments_webhook(
    request: Request,
    payments: PaymentAdapter = Depends(get_payments),
    orders: OrderStore = Depends(get_orders),
):
    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    try:
        event = payments.verify_webhook(payload, signature)
    except WebhookConfigError as e:
        return PlainTextResponse(str(e), status_code=400)
    except WebhookError as e:
        log.warning("webhook.rejected", error=str(e))
        return PlainTextResponse(f"Webhook Error: {e}", status_code=400)

    try:
        await apply_webhook(event, orders)
    except STORE_ERRORS as e:
        # non-2xx makes the processor redeliver
        log.error("webhook.store_error", type=event["type"],
                  intent_id=event.get("intent_id"), error=str(e))
        return PlainTextResponse("Webhook handling failed", status_code=500)
    return PlainTextResponse("ok")
