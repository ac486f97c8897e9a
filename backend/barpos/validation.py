from __future__ import annotations

import re
from datetime import date, datetime, tzinfo
from decimal import Decimal, InvalidOperation
from typing import Any

from barpos.errors import InvalidInput
from barpos.models.inventory import LOCATIONS
from barpos.models.sales import SALE_TYPES, SALE_TYPE_TABLE
from barpos.time_utils import day_bounds, parse_iso_date, parse_iso_datetime, utc_day_bounds

"""
Input normalization (authoritative)

- Every payload is checked here before a unit of work starts; nothing that
  fails validation ever reaches the database.
- Payload keys are accepted in the desktop shell's camelCase ("saleNumber")
  or snake_case ("sale_number"); normalized output is always snake_case.
- Optional strings are trimmed; blank optional strings become None.
- Money is normalized to Decimal with two places. Strings are not money.
- Integers accept ints or plain ASCII digit strings with an optional single
  leading "-"; floats and bools are rejected. Magnitude is capped at
  MAX_INTEGER so every value fits a 32-bit INTEGER column.
"""

# 9,999,999,999.99 fits NUMERIC(12, 2)
MAX_AMOUNT = Decimal("9999999999.99")
MAX_INTEGER = 2**31 - 1
INTEGER_PATTERN = re.compile(r"-?[0-9]+")
CENT = Decimal("0.01")

PRODUCT_TEXT_FIELDS = ("variant", "barcode", "category", "description")


def _get(payload: dict, *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in payload:
            return payload[key]
    return default


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _field(payload: dict, name: str, default: Any = None) -> Any:
    return _get(payload, name, _camel(name), default=default)


def _require_payload(payload: Any) -> dict:
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise InvalidInput("Invalid payload: expected an object")
    return payload


def _required_text(value: Any, label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput(f"{label} is required and must be a valid string")
    return value.strip()


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def coerce_money(value: Any, label: str, *, required: bool = True, default: Decimal | None = None) -> Decimal:
    if value is None:
        if required:
            raise InvalidInput(f"{label} is required")
        return default if default is not None else Decimal("0.00")
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise InvalidInput(f"{label} must be a valid number")
    try:
        amount = Decimal(str(value)).quantize(CENT)
    except InvalidOperation:
        raise InvalidInput(f"{label} must be a valid number")
    if not amount.is_finite():
        raise InvalidInput(f"{label} must be a valid number")
    if amount < 0:
        raise InvalidInput(f"{label} must be a valid positive number")
    if amount > MAX_AMOUNT:
        raise InvalidInput(f"{label} cannot exceed {MAX_AMOUNT}")
    return amount


def coerce_int(
    value: Any,
    label: str,
    *,
    minimum: int | None = None,
    maximum: int = MAX_INTEGER,
) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        number = value
    elif isinstance(value, str):
        stripped = value.strip()
        # ASCII digits only: str.isdigit() also accepts "²", which int() rejects
        if not INTEGER_PATTERN.fullmatch(stripped):
            raise InvalidInput(f"{label} must be an integer")
        number = int(stripped)
    else:
        raise InvalidInput(f"{label} must be an integer")

    if minimum is not None and number < minimum:
        if minimum == 1:
            raise InvalidInput(f"{label} must be a positive integer")
        raise InvalidInput(f"{label} must be >= {minimum}")
    if number > maximum:
        raise InvalidInput(f"{label} cannot exceed {maximum}")
    if number < -MAX_INTEGER:
        raise InvalidInput(f"{label} is out of range")
    return number


def validate_location(value: Any, label: str = "location") -> str:
    if not isinstance(value, str) or value.strip().lower() not in LOCATIONS:
        raise InvalidInput(f"{label} must be one of: {', '.join(LOCATIONS)}")
    return value.strip().lower()


def validate_product(payload: Any) -> dict:
    """
    Validate and normalize a product payload.

    Fails with InvalidInput when name/sku are empty or not strings, or when
    price/cost are not numbers >= 0. Defaults unit to "pcs".
    """
    payload = _require_payload(payload)

    product = {
        "name": _required_text(payload.get("name"), "Product name"),
        "sku": _required_text(payload.get("sku"), "Product SKU"),
        "price": coerce_money(payload.get("price"), "Product price"),
        "cost": coerce_money(payload.get("cost"), "Product cost"),
        "unit": _optional_text(payload.get("unit")) or "pcs",
    }
    for key in PRODUCT_TEXT_FIELDS:
        product[key] = _optional_text(payload.get(key))
    return product


def validate_stock_levels(payload: Any) -> dict:
    payload = _require_payload(payload)
    levels = {}
    for name in ("min_stock_level", "max_stock_level"):
        raw = _field(payload, name)
        if raw is not None:
            levels[name] = coerce_int(raw, name, minimum=0)
    if not levels:
        raise InvalidInput("min_stock_level or max_stock_level is required")
    low, high = levels.get("min_stock_level"), levels.get("max_stock_level")
    if low is not None and high is not None and low > high:
        raise InvalidInput("min_stock_level cannot exceed max_stock_level")
    return levels


def validate_line_items(items: Any, *, label: str = "Sale items") -> list[dict]:
    if not isinstance(items, list) or not items:
        raise InvalidInput(f"{label} are required and must be a non-empty array")

    normalized = []
    for index, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            raise InvalidInput(f"Item {index}: must be an object")
        try:
            product_id = coerce_int(_field(item, "product_id"), "product ID", minimum=1)
        except InvalidInput:
            raise InvalidInput(f"Item {index}: Invalid product ID")
        try:
            quantity = coerce_int(item.get("quantity"), "quantity", minimum=1)
        except InvalidInput:
            raise InvalidInput(f"Item {index}: Invalid quantity")
        try:
            unit_price = coerce_money(_field(item, "unit_price"), "unit price")
        except InvalidInput:
            raise InvalidInput(f"Item {index}: Invalid unit price")
        try:
            total_price = coerce_money(_field(item, "total_price"), "total price")
        except InvalidInput:
            raise InvalidInput(f"Item {index}: Invalid total price")

        if abs(total_price - unit_price * quantity) > CENT:
            raise InvalidInput(
                f"Item {index}: total price {total_price} does not equal "
                f"quantity x unit price ({quantity} x {unit_price})"
            )

        line = {
            "product_id": product_id,
            "quantity": quantity,
            "unit_price": unit_price,
            "total_price": total_price,
        }
        name = _optional_text(item.get("name"))
        if name:
            line["name"] = name
        normalized.append(line)
    return normalized


def _sale_type(value: Any) -> str:
    if value is None:
        return SALE_TYPE_TABLE
    sale_type = str(value).strip().lower()
    if sale_type not in SALE_TYPES:
        raise InvalidInput(f"sale type must be one of: {', '.join(SALE_TYPES)}")
    return sale_type


def _sale_date(value: Any) -> datetime:
    if not value:
        raise InvalidInput("Sale date is required")
    if isinstance(value, datetime):
        return parse_iso_datetime(value.isoformat())
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str):
        raise InvalidInput("Sale date must be an ISO-8601 datetime")
    try:
        parsed = parse_iso_datetime(value)
    except ValueError:
        raise InvalidInput("Sale date must be an ISO-8601 datetime")
    if parsed is None:
        raise InvalidInput("Sale date is required")
    return parsed


def validate_sale(payload: Any) -> dict:
    """
    Validate and normalize a sale payload.

    Fails with InvalidInput when saleNumber is empty, items is empty or not a
    list, totalAmount is negative, or saleDate is missing; and per item when
    productId/quantity are not positive integers or unitPrice/totalPrice are
    negative.
    """
    payload = _require_payload(payload)

    sale_number = _field(payload, "sale_number")
    if not isinstance(sale_number, str) or not sale_number.strip():
        raise InvalidInput("Sale number is required and must be a valid string")

    items = validate_line_items(payload.get("items"))

    try:
        total_amount = coerce_money(_field(payload, "total_amount"), "Total amount")
    except InvalidInput:
        raise InvalidInput("Total amount must be a valid positive number")

    return {
        "sale_number": sale_number.strip(),
        "sale_type": _sale_type(_field(payload, "sale_type")),
        "table_number": _optional_text(_field(payload, "table_number")),
        "customer_name": _optional_text(_field(payload, "customer_name")),
        "customer_phone": _optional_text(_field(payload, "customer_phone")),
        "total_amount": total_amount,
        "tax_amount": coerce_money(_field(payload, "tax_amount"), "Tax amount", required=False),
        "discount_amount": coerce_money(_field(payload, "discount_amount"), "Discount amount", required=False),
        "payment_method": _optional_text(_field(payload, "payment_method")) or "cash",
        "sale_date": _sale_date(_field(payload, "sale_date")),
        "items": items,
    }


def validate_pending_bill(payload: Any, *, partial: bool = False) -> dict:
    """
    Validate a pending bill draft.

    partial=True (update) keeps the same rules but tolerates a missing
    bill number, which is immutable once assigned.
    """
    payload = _require_payload(payload)

    bill_number = _optional_text(_field(payload, "bill_number"))
    items = validate_line_items(payload.get("items"), label="Bill items")

    total_amount = coerce_money(_field(payload, "total_amount"), "Total amount")
    subtotal_raw = _field(payload, "subtotal")
    subtotal = coerce_money(subtotal_raw, "Subtotal") if subtotal_raw is not None else total_amount

    bill = {
        "sale_type": _sale_type(_field(payload, "sale_type")),
        "table_number": _optional_text(_field(payload, "table_number")),
        "customer_name": _optional_text(_field(payload, "customer_name")),
        "customer_phone": _optional_text(_field(payload, "customer_phone")),
        "items": items,
        "subtotal": subtotal,
        "tax_amount": coerce_money(_field(payload, "tax_amount"), "Tax amount", required=False),
        "discount_amount": coerce_money(_field(payload, "discount_amount"), "Discount amount", required=False),
        "total_amount": total_amount,
        "payment_method": _optional_text(_field(payload, "payment_method")) or "cash",
        "notes": _optional_text(payload.get("notes")),
    }
    if not partial:
        bill["bill_number"] = bill_number
    return bill


def _required_date(value: Any, label: str) -> date:
    try:
        parsed = parse_iso_date(value)
    except ValueError:
        raise InvalidInput(f"{label} must be an ISO-8601 date")
    if parsed is None:
        raise InvalidInput(f"{label} is required")
    return parsed


def validate_spending(payload: Any) -> dict:
    payload = _require_payload(payload)
    return {
        "description": _required_text(payload.get("description"), "Spending description"),
        "amount": coerce_money(payload.get("amount"), "Spending amount"),
        "category": _required_text(payload.get("category"), "Spending category"),
        "spending_date": _required_date(_field(payload, "spending_date"), "Spending date"),
        "payment_method": _optional_text(_field(payload, "payment_method")) or "cash",
        "notes": _optional_text(payload.get("notes")),
    }


def validate_counter_balance(payload: Any, *, require_date: bool = True) -> dict:
    payload = _require_payload(payload)
    balance = {
        "opening_balance": coerce_money(_field(payload, "opening_balance"), "Opening balance", required=False),
        "closing_balance": coerce_money(_field(payload, "closing_balance"), "Closing balance", required=False),
        "notes": _optional_text(payload.get("notes")),
    }
    if require_date:
        balance["balance_date"] = _required_date(_field(payload, "balance_date"), "Balance date")
    return balance


def _range_bound(value: Any, *, end: bool, utc: bool, tz: tzinfo | None) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date) or (isinstance(value, str) and len(value.strip()) == 10):
        # A bare date covers the whole day
        day = parse_iso_date(value)
        start_of_day, end_of_day = utc_day_bounds(day, tz) if utc else day_bounds(day)
        return end_of_day if end else start_of_day
    if isinstance(value, str):
        return parse_iso_datetime(value)
    raise ValueError(value)


def parse_date_range(
    start: Any,
    end: Any,
    *,
    utc: bool = False,
    tz: tzinfo | None = None,
) -> tuple[datetime | None, datetime | None]:
    """
    Inclusive range; either bound may be omitted.

    By default a bare date gives wall-clock bounds, which suits DATE
    columns. With utc=True a bare date covers that day in `tz` (None is
    the host's local time) and comes back as UTC-naive datetimes for
    comparing with stored timestamps.
    """
    try:
        start_dt = _range_bound(start, end=False, utc=utc, tz=tz)
        end_dt = _range_bound(end, end=True, utc=utc, tz=tz)
    except ValueError:
        raise InvalidInput("date range bounds must be ISO-8601 dates or datetimes")
    if start_dt and end_dt and start_dt > end_dt:
        raise InvalidInput("date range start must not be after end")
    return start_dt, end_dt
