"""Order lifecycle: checkout creates a pending order, the webhook settles it.

    pending --payment_intent.succeeded------> paid
    pending --payment_intent.payment_failed--> cancelled

Status updates are matched by payment-intent id and applied
unconditionally, so a redelivered webhook re-applies the same terminal
status and a late failure overwrites an earlier success.
"""

from __future__ import annotations
import uuid
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from .errors import ApiError, ConfigError, ErrorCode, UpstreamError
from .helpers import now_ts, to_iso
from .infra.timings import timeit
from .inventory import InventoryProxy
from .model.db import (
    ORDER_CANCELLED, ORDER_PAID, ORDER_PENDING, ORDER_STATUSES, Order,
    row_to_dict,
)
from .payments import (
    PAYMENT_FAILED, PAYMENT_SUCCEEDED, PaymentAdapter, PaymentError,
    WebhookEvent,
)

log = structlog.get_logger(__name__)

STORE_ERRORS = (SQLAlchemyError, OSError)
ORDER_COLUMNS = frozenset(c.key for c in Order.__table__.columns)

WEBHOOK_TRANSITIONS = {
    PAYMENT_SUCCEEDED: ORDER_PAID,
    PAYMENT_FAILED: ORDER_CANCELLED,
}


def order_json(row: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(row)
    out["created_at"] = to_iso(row.get("created_at"))
    out["updated_at"] = to_iso(row.get("updated_at"))
    return out


class OrderStore:
    def __init__(self, Session: async_sessionmaker) -> None:
        self.Session = Session

    async def create(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Insert one order row; unknown columns are a ValueError."""
        unknown = sorted(set(payload) - ORDER_COLUMNS)
        if unknown:
            raise ValueError(f"unknown order fields: {', '.join(unknown)}")
        status = payload.get("status") or ORDER_PENDING
        if status not in ORDER_STATUSES:
            raise ValueError(f"invalid status: {status}")

        ts = now_ts()
        row = {
            **payload,
            "id": payload.get("id") or uuid.uuid4().hex,
            "status": status,
            "created_at": ts,
            "updated_at": ts,
        }
        row.setdefault("xs2_ticket_ids", [])
        row.setdefault("quantity", len(row["xs2_ticket_ids"]) or 1)
        row.setdefault("currency", "EUR")
        async with timeit("db.add_order"):
            async with self.Session() as db:
                async with db.begin():
                    db.add(Order(**row))
        return row

    async def get(self, order_id: str) -> Optional[Dict[str, Any]]:
        async with self.Session() as db:
            order = (await db.execute(
                select(Order).where(Order.id == order_id)
            )).scalar_one_or_none()
        return row_to_dict(order) if order is not None else None

    async def set_status_by_intent(self, intent_id: str, status: str) -> int:
        async with timeit("db.set_order_status"):
            async with self.Session() as db:
                async with db.begin():
                    result = await db.execute(
                        update(Order)
                        .where(Order.stripe_payment_intent_id == intent_id)
                        .values(status=status, updated_at=now_ts())
                    )
        return result.rowcount or 0


# ----------------------------
# Checkout
# ----------------------------
def _is_count(value: Any) -> bool:
    # bool is an int subclass; amounts are integer minor units
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _require_order(body: Dict[str, Any]) -> Dict[str, Any]:
    amount = body.get("amount")
    order = body.get("order")
    if not amount or not isinstance(order, dict) or not order:
        raise ApiError(ErrorCode.BAD_REQUEST, "amount and order required")
    if not _is_count(amount):
        raise ApiError(ErrorCode.BAD_REQUEST,
                       "amount must be a positive integer in minor units")
    for field in ("quantity", "total_amount"):
        if order.get(field) is not None and not _is_count(order[field]):
            raise ApiError(ErrorCode.BAD_REQUEST,
                           f"order.{field} must be a positive integer")
    ticket_ids = order.get("xs2_ticket_ids")
    if not isinstance(ticket_ids, list):
        raise ApiError(ErrorCode.BAD_REQUEST,
                       "order.xs2_ticket_ids must be a list")
    if not order.get("xs2_event_id"):
        raise ApiError(ErrorCode.BAD_REQUEST, "order.xs2_event_id required")
    return order


async def checkout(
    body: Dict[str, Any],
    proxy: InventoryProxy,
    payments: PaymentAdapter,
    orders: OrderStore,
) -> Dict[str, str]:
    """Validate stock, open a payment intent, record a pending order.

    No compensation: if the order insert fails after the intent exists,
    the intent is left orphaned and logged.
    """
    order = _require_order(body)
    amount: int = body["amount"]
    currency = body.get("currency") or "EUR"
    metadata = {str(k): str(v) for k, v in (body.get("metadata") or {}).items()}
    ticket_ids: List[str] = [str(t) for t in order["xs2_ticket_ids"]]

    try:
        async with timeit("xs2.validate_stock"):
            ok = await proxy.validate_stock(ticket_ids)
    except (UpstreamError, ConfigError) as e:
        log.error("checkout.stock_check_failed", error=str(e))
        raise ApiError(ErrorCode.UPSTREAM, "Stock validation failed",
                       message=str(e))
    if not ok:
        log.info("checkout.unavailable", tickets=ticket_ids)
        raise ApiError(ErrorCode.CONFLICT,
                       "One or more tickets are unavailable")

    metadata["xs2_event_id"] = str(order["xs2_event_id"])
    try:
        async with timeit("payments.create_intent"):
            pi = await payments.create_payment_intent(
                amount, currency, metadata
            )
    except ConfigError as e:
        raise ApiError(ErrorCode.CONFIG, str(e))
    except PaymentError as e:
        log.error("checkout.intent_failed", error=str(e))
        raise ApiError(ErrorCode.UPSTREAM, "Payment intent creation failed",
                       message=str(e))

    try:
        row = await orders.create({
            "customer_email": order.get("customer_email") or "",
            "customer_name": order.get("customer_name"),
            "xs2_event_id": str(order["xs2_event_id"]),
            "xs2_event_name": order.get("xs2_event_name"),
            "xs2_ticket_ids": ticket_ids,
            "quantity": order.get("quantity") or len(ticket_ids) or 1,
            "total_amount": order.get("total_amount") or amount,
            "currency": currency,
            "stripe_payment_intent_id": pi["id"],
            "status": ORDER_PENDING,
        })
    except (*STORE_ERRORS, ValueError) as e:
        log.error("checkout.orphaned_intent", intent_id=pi["id"],
                  error=str(e))
        raise ApiError(ErrorCode.STORE, "Failed to create order",
                       message=str(e))

    log.info("checkout.order_created", order_id=row["id"],
             intent_id=pi["id"], amount=amount, currency=currency)
    return {"client_secret": pi["client_secret"], "order_id": row["id"]}


# ----------------------------
# Webhook
# ----------------------------
async def apply_webhook(event: WebhookEvent, orders: OrderStore) -> Optional[str]:
    """Apply a verified processor event; returns the new status if any."""
    status = WEBHOOK_TRANSITIONS.get(event["type"])
    if status is None or not event.get("intent_id"):
        log.info("webhook.ignored", type=event["type"])
        return None
    touched = await orders.set_status_by_intent(event["intent_id"], status)
    log.info("webhook.status_applied", intent_id=event["intent_id"],
             status=status, rows=touched)
    return status

