"""Demonstration order records used by previews and scenario checks."""

from __future__ import annotations

from typing import Any


def sample_record() -> dict[str, Any]:
    """Return a complete order record exercising every derived field."""

    return {
        "id": "ORD-1001",
        "index": "A1001",
        "createdAt": "2024-03-15T14:30:00",
        "status": "completed",
        "paymentType": "mixed",
        "branch": {"name": "Central"},
        "client": {"name": "Jane Doe", "phone": "+998901234567"},
        "products": [
            {"product": {"name": "Drill"}, "quantity": 2, "price": 150000},
            {"product": "Ladder", "quantity": 1, "price": 90000},
            {"name": "Extension cord", "quantity": 3, "price": 12500},
        ],
        "totalAmount": {"uzs": 427500, "usd": 20},
        "paidAmount": {"uzs": 300000, "usd": 20},
        "debtAmount": {"uzs": 127500, "usd": 0},
        "notes": "Deliver after 18:00",
        "returnDate": "2024-03-22",
    }


def default_scenarios() -> list[tuple[str, dict[str, Any]]]:
    """Named records covering a full order, no debt, no notes, and a minimal order."""

    complete = sample_record()
    no_debt = {**sample_record(), "debtAmount": {"uzs": 0, "usd": 0}}
    no_notes = {**sample_record(), "notes": None}
    minimal = {
        "id": "MIN-001",
        "index": "MIN001",
        "products": [{"product": {"name": "Test Item"}, "quantity": 1, "price": 1000}],
        "totalAmount": {"uzs": 1000, "usd": 0},
        "paidAmount": {"uzs": 1000, "usd": 0},
        "debtAmount": {"uzs": 0, "usd": 0},
    }
    return [
        ("complete", complete),
        ("no-debt", no_debt),
        ("no-notes", no_notes),
        ("minimal", minimal),
    ]
