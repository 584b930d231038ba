"""Normalize raw order records into a flat, display-ready render context."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from receipt_core.data.labels import ENGLISH_LABELS, ReceiptLabels

FlatContext = dict[str, str | bool | int | float]

_GROUP_RE = re.compile(r"\B(?=(\d{3})+(?!\d))")
_DATETIME_FORMAT = "%d.%m.%Y %H:%M"
_DATE_FORMAT = "%d.%m.%Y"
_MONEY_FIELDS = (("total", "totalAmount"), ("paid", "paidAmount"), ("debt", "debtAmount"))


@dataclass(frozen=True)
class FromNestedObject:
    """Name taken from ``item.product.name`` or ``item.product.title``."""

    text: str


@dataclass(frozen=True)
class FromString:
    """``item.product`` was itself the product name."""

    text: str


@dataclass(frozen=True)
class FromDirectField:
    """Name taken from ``item.name``."""

    text: str


@dataclass(frozen=True)
class Fallback:
    """No name available; the generic item label is used."""

    text: str


ProductName = FromNestedObject | FromString | FromDirectField | Fallback


def prepare(
    record: Mapping[str, Any],
    *,
    now: datetime | None = None,
    labels: ReceiptLabels | None = None,
    currencies: tuple[str, str] = ("uzs", "usd"),
) -> FlatContext:
    """Build the flat render context for one record.

    Scalar record fields are copied verbatim, then derived display fields are
    laid over them. ``now`` is only read for the ``date`` default and
    ``currentYear``.
    """

    current = now or datetime.now()
    active_labels = labels or ENGLISH_LABELS
    local_currency, foreign_currency = currencies

    context: FlatContext = {
        key: value
        for key, value in record.items()
        if isinstance(value, (str, bool, int, float))
    }

    created_at = _parse_datetime(record.get("createdAt", record.get("created_at")))
    context["date"] = (created_at or current).strftime(_DATETIME_FORMAT)

    items = record.get("products")
    if isinstance(items, list):
        context["products"] = format_products(
            items, fallback_name=active_labels.item_fallback, currency=local_currency.upper()
        )
        context["productCount"] = len(items)

    branch = record.get("branch")
    branch_name = branch.get("name") if isinstance(branch, Mapping) else None
    context["branchName"] = str(branch_name) if branch_name else active_labels.branch_fallback

    context.update(_client_fields(record.get("client"), active_labels.client_placeholder))
    context.update(_money_fields(record, local_currency, foreign_currency))

    notes = record.get("notes")
    has_notes = notes is not None and str(notes).strip() != ""
    context["notes"] = str(notes) if has_notes else ""
    context["hasNotes"] = has_notes

    return_date = record.get("returnDate")
    if return_date:
        parsed_return = _parse_datetime(return_date)
        context["returnDate"] = (
            parsed_return.strftime(_DATE_FORMAT) if parsed_return else str(return_date)
        )
        context["hasReturnDate"] = True
    else:
        context["returnDate"] = ""
        context["hasReturnDate"] = False

    status = record.get("status")
    if isinstance(status, str):
        context["status"] = active_labels.statuses.get(status, status)
    payment_type = record.get("paymentType")
    if isinstance(payment_type, str):
        context["paymentType"] = active_labels.payment_types.get(payment_type, payment_type)

    context["currentYear"] = str(current.year)
    return context


def format_grouped(value: object) -> str:
    """Group digits by three with spaces, right to left over the number text.

    The rule runs over the whole token, so fractional text is grouped too:
    ``1234.5678`` becomes ``"1 234.5 678"``.
    """

    return _GROUP_RE.sub(" ", number_text(value))


def number_text(value: object) -> str:
    if value is None:
        return "0"
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def resolve_product_name(item: Mapping[str, Any], fallback: str) -> ProductName:
    """Resolve the display name of one line item, in priority order."""

    product = item.get("product")
    if isinstance(product, Mapping):
        nested = product.get("name") or product.get("title")
        if nested:
            return FromNestedObject(str(nested))
    elif isinstance(product, str) and product:
        return FromString(product)

    direct = item.get("name")
    if direct:
        return FromDirectField(str(direct))
    return Fallback(fallback)


def format_products(items: list[Any], *, fallback_name: str, currency: str) -> str:
    lines: list[str] = []
    for index, item in enumerate(items, start=1):
        entry = item if isinstance(item, Mapping) else {}
        name = resolve_product_name(entry, fallback_name)
        quantity = _number(entry.get("quantity"), default=1)
        price = _number(entry.get("price"), default=0)
        item_currency = entry.get("currency") or currency
        lines.append(
            f"{index}. {name.text}\n"
            f"   {number_text(quantity)} x {format_grouped(price)} = "
            f"{format_grouped(_multiply(quantity, price))} {item_currency}\n"
        )
    return "".join(lines)


def _client_fields(client: object, placeholder: str) -> FlatContext:
    if not isinstance(client, Mapping):
        return {"clientName": "", "clientPhone": "", "clientInfo": placeholder}

    name = str(client.get("name") or "").strip()
    phone = str(client.get("phone") or "").strip()
    if name and phone:
        info = f"{name} ({phone})"
    else:
        info = name or phone or placeholder
    return {"clientName": name, "clientPhone": phone, "clientInfo": info}


def _money_fields(record: Mapping[str, Any], local: str, foreign: str) -> FlatContext:
    fields: FlatContext = {}
    for prefix, source_key in _MONEY_FIELDS:
        amounts = _amounts_by_currency(record.get(source_key), local)
        for currency in (local, foreign):
            fields[f"{prefix}{currency.capitalize()}"] = format_grouped(amounts.get(currency, 0))
        fields[prefix] = fields[f"{prefix}{local.capitalize()}"]

    debts = _amounts_by_currency(record.get("debtAmount"), local)
    for currency in (local, foreign):
        fields[f"hasDebt{currency.capitalize()}"] = _number(debts.get(currency), default=0) > 0
    fields["hasDebt"] = fields[f"hasDebt{local.capitalize()}"]
    return fields


def _amounts_by_currency(raw: object, local: str) -> dict[str, Any]:
    if isinstance(raw, Mapping):
        return {str(key).lower(): value for key, value in raw.items()}
    if raw is None:
        return {}
    return {local: raw}


def _number(value: object, *, default: int) -> int | float | Decimal:
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float, Decimal)):
        return value
    try:
        parsed = float(str(value).replace(" ", ""))
    except ValueError:
        return default
    return int(parsed) if parsed.is_integer() else parsed


def _multiply(left: int | float | Decimal, right: int | float | Decimal) -> int | float | Decimal:
    if isinstance(left, Decimal) or isinstance(right, Decimal):
        return Decimal(str(left)) * Decimal(str(right))
    return left * right


def _parse_datetime(value: object) -> datetime | None:
    """Parse a record timestamp into local time; unusable values give None."""

    parsed: datetime | None = None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            parsed = datetime.fromtimestamp(value / 1000)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = f"{text[:-1]}+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None

    if parsed is None or parsed.tzinfo is None:
        return parsed
    try:
        return parsed.astimezone()
    except (OverflowError, OSError, ValueError):
        return None
