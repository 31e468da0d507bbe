# provide dataclass models

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

PRODUCT_STATUSES = ("available", "low-stock", "out-of-stock", "incoming")
CATEGORIES = (
    "brake-master",
    "clutch-master",
    "brake-slave",
    "clutch-slave",
    "brake-pads",
)
ORDER_STATUSES = ("pending", "preparing", "shipped")
ITEM_KINDS = ("normal", "reservation")
BRANCHES = ("A", "B", "C")


@dataclass(frozen=True)
class User:
    username: str
    role: str  # "admin" or "client"
    client: Optional["Client"] = None


@dataclass(frozen=True)
class Client:
    client_id: int
    code: str
    name: str
    active: bool
    branch_count: int  # 1, 2 or 3


@dataclass(frozen=True)
class Product:
    pid: int
    sku: str
    brand: str
    description: str
    category: str
    status: str
    eta: Optional[str] = None  # only meaningful while status == "incoming"
    images: tuple[str, ...] = ()


@dataclass(frozen=True)
class OrderItem:
    oid: int
    line_no: int
    pid: int
    sku: str
    description: str
    branch_a: int
    branch_b: int
    branch_c: int
    kind: str  # "normal" or "reservation"
    status_text: Optional[str]  # product status label at order time
    eta_text: Optional[str]

    @property
    def pieces(self) -> int:
        return self.branch_a + self.branch_b + self.branch_c


@dataclass(frozen=True)
class Order:
    oid: int
    client_id: int
    created_at: datetime
    status: str
    comment: Optional[str] = None
    device: Optional[str] = None
    client: Optional[Client] = None
    items: List[OrderItem] = field(default_factory=list)

    @property
    def pieces(self) -> int:
        return sum(item.pieces for item in self.items)


@dataclass(frozen=True)
class OrderLineInput:
    """One requested line of an order, as submitted from a cart."""

    sku: str
    branch_a: int = 0
    branch_b: int = 0
    branch_c: int = 0

    @property
    def pieces(self) -> int:
        return self.branch_a + self.branch_b + self.branch_c
