"""
Per-day order short codes: `{day}/{month}.{year}-{seq}`.

The code is derived on every render from a count query and never stored.
`seq` is the number of orders sharing the business date that were created
at or before this one. Two orders inserted in the same instant can end up
with the same code; there is no atomic per-day counter behind this.

Rendering must never fail because of a code, so every failure degrades to
the plain order id.
"""
import logging
from datetime import date, datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bizops.core.exceptions import RecordStoreError
from bizops.services import records

logger = logging.getLogger(__name__)


def format_short_code(business_date: date, seq: int) -> str:
    return f"{business_date.day}/{business_date.month}.{business_date.year}-{seq}"


def _as_date(value) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def order_short_code(db: Session, order_id, business_date, created_at) -> str:
    """
    Short code for one order, or `str(order_id)` when it can't be worked out.

    `business_date` may be missing, in which case the creation date is used.
    """
    try:
        day = _as_date(business_date) or _as_date(created_at)
        if day is None or created_at is None:
            raise ValueError("order has neither a business date nor a creation time")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        seq = records.count_orders_until(db, day, created_at)
        return format_short_code(day, seq or 1)
    except (RecordStoreError, SQLAlchemyError, ValueError, TypeError) as e:
        logger.warning(f"[ShortCode] Falling back to id for order {order_id}: {e}")
        return str(order_id)


def short_code_for(db: Session, order) -> str:
    return order_short_code(db, order.id, order.order_date, order.created_at)
