# meditrack/services/bulk_import.py
"""
Parser for pasted/uploaded inventory lists.

One drug per line, comma separated:

    code, name, category, manufacturer, price, stock, minStockThreshold, expiryDate[, description]

Every non-blank line gets a verdict; parsing never raises. Only valid lines
carry a DrugCreate payload for batch creation.
"""
from datetime import date
from decimal import Decimal, InvalidOperation

from pydantic import ValidationError

from meditrack.core.config import get_settings
from meditrack.schemas.bulk_import import ImportLine, ImportLineError
from meditrack.schemas.drug import DrugCreate

REQUIRED_FIELD_COUNT = 8

# pydantic error types raised for a price with too many digits
_PRICE_PRECISION_ERRORS = {"decimal_max_places", "decimal_max_digits", "decimal_whole_digits"}


def _invalid(line_number: int, raw: str, reason: ImportLineError, message: str) -> ImportLine:
    return ImportLine(line_number=line_number, raw=raw, is_valid=False, reason=reason, message=message)


def _parse_number(text: str, *, integral: bool = False) -> Decimal | None:
    """
    Any finite, non-negative number Decimal accepts (".5", "5.", "1e2", "+3").
    With `integral`, the value must also be a whole number.
    """
    try:
        value = Decimal(text)
        if not value.is_finite() or value < 0:
            return None
        if integral and value != value.to_integral_value():
            return None
        # "1e2" -> 100, not 1E+2
        if value.as_tuple().exponent > 0:
            value = value.quantize(Decimal(1))
    except InvalidOperation:
        return None
    return value


def parse_line(raw: str, line_number: int) -> ImportLine:
    parts = [part.strip() for part in raw.split(",")]
    if len(parts) < REQUIRED_FIELD_COUNT:
        return _invalid(
            line_number,
            raw,
            ImportLineError.INSUFFICIENT_FIELDS,
            f"Expected at least {REQUIRED_FIELD_COUNT} fields, got {len(parts)}.",
        )

    code, name, category, manufacturer, price, stock, threshold, expiry = parts[:REQUIRED_FIELD_COUNT]
    # Anything after the eighth comma belongs to the description
    description = ", ".join(part for part in parts[REQUIRED_FIELD_COUNT:] if part)

    if not code or not name:
        return _invalid(line_number, raw, ImportLineError.INVALID_NUMERIC, "Code and name are required.")

    price_value = _parse_number(price)
    if price_value is None:
        return _invalid(line_number, raw, ImportLineError.INVALID_NUMERIC, f"Invalid price: '{price}'.")
    stock_value = _parse_number(stock, integral=True)
    if stock_value is None:
        return _invalid(line_number, raw, ImportLineError.INVALID_NUMERIC, f"Invalid stock: '{stock}'.")
    threshold_value = _parse_number(threshold, integral=True)
    if threshold_value is None:
        return _invalid(
            line_number, raw, ImportLineError.INVALID_NUMERIC, f"Invalid stock threshold: '{threshold}'."
        )

    try:
        expiry_date = date.fromisoformat(expiry)
    except ValueError:
        return _invalid(
            line_number, raw, ImportLineError.INVALID_DATE, f"Invalid expiry date: '{expiry}' (use YYYY-MM-DD)."
        )

    try:
        drug = DrugCreate(
            code=code,
            name=name,
            category=category,
            manufacturer=manufacturer,
            price=price_value,
            stock=int(stock_value),
            min_stock_threshold=int(threshold_value),
            expiry_date=expiry_date,
            description=description or get_settings().bulk_import_description,
        )
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        if first["loc"][:1] == ("price",) and first["type"] in _PRICE_PRECISION_ERRORS:
            return _invalid(
                line_number, raw, ImportLineError.INVALID_NUMERIC, f"Invalid price: '{price}' ({first['msg']})."
            )
        return _invalid(line_number, raw, ImportLineError.INVALID_FIELD, f"{location}: {first['msg']}")

    return ImportLine(line_number=line_number, raw=raw, is_valid=True, drug=drug)


def parse_bulk_text(text: str) -> list[ImportLine]:
    """Verdicts for every non-blank line of `text`, numbered from 1."""
    return [
        parse_line(raw.strip(), line_number)
        for line_number, raw in enumerate(text.splitlines(), start=1)
        if raw.strip()
    ]


def valid_payloads(lines: list[ImportLine]) -> list[DrugCreate]:
    return [line.drug for line in lines if line.is_valid and line.drug is not None]
