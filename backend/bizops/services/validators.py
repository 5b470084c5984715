"""
Input validation for free-text replies and slash-command arguments.

Every parser returns the cleaned value or raises ValidationFailed with a
message that can go straight back to the chat.
"""
import re
from datetime import date
from decimal import Decimal, InvalidOperation

from bizops.core.exceptions import ValidationFailed

ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")

# Replies that mean "leave this field empty"
SKIP_MARKERS = {"-", "skip", "omitir"}
# Reply that means "keep the current value" while editing
KEEP_MARKER = "!"

MAX_QTY = 10_000


def _to_decimal(raw: str) -> Decimal | None:
    text = (raw or "").strip().replace(",", ".")
    if not text:
        return None
    try:
        value = Decimal(text)
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def parse_positive_int(raw: str, field: str = "Quantity", maximum: int = MAX_QTY) -> int:
    """Accept "3" or "3.0"; reject words, zero, negatives and fractions."""
    value = _to_decimal(raw)
    if value is None or value <= 0 or value != value.to_integral_value():
        raise ValidationFailed(f"❌ {field} must be a whole number greater than zero.")
    if value > maximum:
        raise ValidationFailed(f"❌ {field} can't be more than {maximum}.")
    return int(value)


def parse_non_negative_int(raw: str, field: str = "Stock") -> int:
    value = _to_decimal(raw)
    if value is None or value < 0 or value != value.to_integral_value():
        raise ValidationFailed(f"❌ {field} must be a whole number (0 or more).")
    return int(value)


def parse_price(raw: str, field: str = "Price") -> Decimal:
    value = _to_decimal(raw)
    if value is None or value <= 0:
        raise ValidationFailed(f"❌ {field} must be a positive number.")
    return value.quantize(Decimal("0.01"))


def parse_iso_date(raw: str) -> date:
    """A real calendar date written as YYYY-MM-DD."""
    text = (raw or "").strip()
    match = ISO_DATE.match(text)
    if not match:
        raise ValidationFailed("❌ Invalid date. Use the format YYYY-MM-DD (e.g. 2025-03-07).")
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        raise ValidationFailed(f"❌ {text} is not a real date. Use YYYY-MM-DD.")


def required_text(raw: str, field: str = "Name", max_length: int = 255) -> str:
    text = clean_text(raw)
    if not text:
        raise ValidationFailed(f"❌ {field} can't be empty.")
    if len(text) > max_length:
        raise ValidationFailed(f"❌ {field} is too long (max {max_length} characters).")
    return text


def optional_text(raw: str, max_length: int = 512) -> str | None:
    """Free text where a skip marker (or nothing) means no value."""
    text = clean_text(raw)
    if not text or text.lower() in SKIP_MARKERS:
        return None
    return text[:max_length]


def clean_text(raw: str) -> str:
    return (raw or "").strip().replace("<", "").replace(">", "")


def is_skip(raw: str) -> bool:
    return clean_text(raw).lower() in SKIP_MARKERS


def parse_args(text: str) -> list[str]:
    """
    Arguments of a slash command, separated by `|`.

    >>> parse_args("/new_client Ana | 555-1234 | Main St 12")
    ['Ana', '555-1234', 'Main St 12']
    """
    text = text or ""
    idx = text.find(" ")
    if idx == -1:
        return []
    return [part.strip() for part in text[idx + 1:].split("|") if part.strip()]


def parse_product_line(text: str) -> dict:
    """
    `Name | Price | Category | SKU | Stock | Description` into product fields.

    The first five values are required; the description is optional.
    """
    parts = [part.strip() for part in (text or "").split("|")]
    if len([p for p in parts if p]) < 5 or len(parts) < 5:
        raise ValidationFailed(
            "❌ Wrong format. Send at least 5 values separated by |\n"
            "Name | Price | Category | SKU | Stock | Description"
        )
    name, price_raw, category, sku, stock_raw = parts[:5]
    description = " | ".join(p for p in parts[5:] if p) or None
    if not sku:
        raise ValidationFailed("❌ SKU can't be empty.")
    return {
        "name": required_text(name, "Name"),
        "price": parse_price(price_raw),
        "category": optional_text(category, 128),
        "external_id": clean_text(sku)[:64],
        "stock": parse_non_negative_int(stock_raw),
        "description": description,
    }
