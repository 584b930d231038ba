"""Display labels used when preparing receipt data."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from receipt_core.utils.errors import Language


@dataclass(frozen=True)
class ReceiptLabels:
    """Fallback labels and enumeration display names for one language."""

    item_fallback: str
    branch_fallback: str
    client_placeholder: str
    statuses: Mapping[str, str]
    payment_types: Mapping[str, str]


ENGLISH_LABELS = ReceiptLabels(
    item_fallback="Item",
    branch_fallback="Main branch",
    client_placeholder="-",
    statuses=MappingProxyType(
        {
            "new": "New",
            "pending": "Pending",
            "in_progress": "In progress",
            "ready": "Ready",
            "completed": "Completed",
            "returned": "Returned",
            "cancelled": "Cancelled",
        }
    ),
    payment_types=MappingProxyType(
        {
            "cash": "Cash",
            "card": "Card",
            "transfer": "Bank transfer",
            "mixed": "Mixed",
            "debt": "On credit",
        }
    ),
)

UZBEK_LABELS = ReceiptLabels(
    item_fallback="Mahsulot",
    branch_fallback="Asosiy filial",
    client_placeholder="-",
    statuses=MappingProxyType(
        {
            "new": "Yangi",
            "pending": "Kutilmoqda",
            "in_progress": "Jarayonda",
            "ready": "Tayyor",
            "completed": "Yakunlangan",
            "returned": "Qaytarilgan",
            "cancelled": "Bekor qilingan",
        }
    ),
    payment_types=MappingProxyType(
        {
            "cash": "Naqd",
            "card": "Karta",
            "transfer": "O'tkazma",
            "mixed": "Aralash",
            "debt": "Nasiya",
        }
    ),
)

_LABELS: Mapping[str, ReceiptLabels] = MappingProxyType(
    {"en": ENGLISH_LABELS, "uz": UZBEK_LABELS}
)


def labels_for(language: Language) -> ReceiptLabels:
    """Return labels for a language, defaulting to English."""

    return _LABELS.get(language, ENGLISH_LABELS)
