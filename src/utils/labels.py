"""
Display labels for every enumerated value in the portal.

Screens must go through these tables instead of spelling labels themselves.
"""

from typing import Dict, Optional

PRODUCT_STATUS_LABELS: Dict[str, str] = {
    "available": "Available",
    "low-stock": "Low stock",
    "out-of-stock": "Out of stock",
    "incoming": "In transit",
}

ORDER_STATUS_LABELS: Dict[str, str] = {
    "pending": "Pending",
    "preparing": "Preparing",
    "shipped": "Shipped",
}

CATEGORY_LABELS: Dict[str, str] = {
    "brake-master": "Brake master cylinder",
    "clutch-master": "Clutch master cylinder",
    "brake-slave": "Brake wheel cylinder",
    "clutch-slave": "Clutch slave cylinder",
    "brake-pads": "Brake pads",
}

ITEM_KIND_LABELS: Dict[str, str] = {
    "normal": "Normal",
    "reservation": "Reservation",
}


def _label(table: Dict[str, str], value: Optional[str]) -> str:
    if value is None:
        return "-"
    return table.get(value, value)


def product_status_label(status: str, eta: Optional[str] = None) -> str:
    """Status pill text. Incoming products show their ETA when known."""
    label = _label(PRODUCT_STATUS_LABELS, status)
    if status == "incoming" and eta and eta.strip() and eta.strip() != "-":
        return f"{label} · {eta.strip()}"
    return label


def order_status_label(status: str) -> str:
    return _label(ORDER_STATUS_LABELS, status)


def category_label(category: str) -> str:
    return _label(CATEGORY_LABELS, category)


def item_kind_label(kind: str) -> str:
    return _label(ITEM_KIND_LABELS, kind)
