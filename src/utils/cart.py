from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from db.models import BRANCHES, OrderLineInput, Product


def sanitize_qty(value) -> int:
    """Coerce any user input to a non-negative int. Junk becomes 0."""
    try:
        qty = int(value)
    except (TypeError, ValueError, OverflowError):
        try:
            qty = int(float(value))
        except (TypeError, ValueError, OverflowError):
            return 0
    return max(qty, 0)


def _branch_index(branch: str) -> int:
    key = str(branch).strip().upper()
    if key not in BRANCHES:
        raise ValueError(f"Unknown branch '{branch}', expected one of {BRANCHES}.")
    return BRANCHES.index(key)


@dataclass
class CartLine:
    product: Product
    branch_a: int = 0
    branch_b: int = 0
    branch_c: int = 0

    @property
    def quantities(self) -> tuple[int, int, int]:
        return self.branch_a, self.branch_b, self.branch_c

    @property
    def pieces(self) -> int:
        return self.branch_a + self.branch_b + self.branch_c

    def get(self, branch: str) -> int:
        return self.quantities[_branch_index(branch)]

    def _set(self, idx: int, qty: int) -> None:
        setattr(self, ("branch_a", "branch_b", "branch_c")[idx], qty)


class Cart:
    """
    In-memory cart of the logged-in client.

    One line per product with a quantity per branch. Only the first
    ``branch_count`` branches are ever non-zero, and a line that drops to
    zero everywhere disappears. Nothing here talks to the database; the
    cart becomes an order through ``to_order_lines()``.
    """

    def __init__(self, branch_count: int = 1) -> None:
        self.branch_count = max(1, min(int(branch_count), len(BRANCHES)))
        self._lines: Dict[int, CartLine] = {}

    def __len__(self) -> int:
        return len(self._lines)

    def __contains__(self, pid: int) -> bool:
        return pid in self._lines

    @property
    def lines(self) -> List[CartLine]:
        return list(self._lines.values())

    @property
    def is_empty(self) -> bool:
        return not self._lines

    @property
    def total_pieces(self) -> int:
        return sum(line.pieces for line in self._lines.values())

    def get(self, pid: int) -> Optional[CartLine]:
        return self._lines.get(pid)

    def add(self, product: Product) -> CartLine:
        """
        New products start with 1 piece in every enabled branch.
        Adding again only bumps branch A; other branches are edited by hand.
        """
        line = self._lines.get(product.pid)
        if line is None:
            line = CartLine(product)
            for idx in range(self.branch_count):
                line._set(idx, 1)
            self._lines[product.pid] = line
        else:
            line.branch_a += 1
        return line

    def set_qty(self, pid: int, branch: str, value) -> Optional[CartLine]:
        """
        Set one branch quantity. Returns the line, or None if it was pruned
        (or was never in the cart).
        """
        idx = _branch_index(branch)
        line = self._lines.get(pid)
        if line is None:
            return None
        qty = sanitize_qty(value) if idx < self.branch_count else 0
        line._set(idx, qty)
        if line.pieces == 0:
            del self._lines[pid]
            return None
        return line

    def adjust(self, pid: int, branch: str, delta: int) -> Optional[CartLine]:
        line = self._lines.get(pid)
        if line is None:
            return None
        return self.set_qty(pid, branch, line.get(branch) + int(delta))

    def put(self, product: Product, quantities) -> Optional[CartLine]:
        """Replace a whole line at once, e.g. when loading an existing order."""
        line = CartLine(product)
        for idx, qty in enumerate(list(quantities)[: self.branch_count]):
            line._set(idx, sanitize_qty(qty))
        if line.pieces == 0:
            self._lines.pop(product.pid, None)
            return None
        self._lines[product.pid] = line
        return line

    def remove(self, pid: int) -> None:
        self._lines.pop(pid, None)

    def clear(self) -> None:
        self._lines.clear()

    def to_order_lines(self) -> List[OrderLineInput]:
        return [
            OrderLineInput(
                sku=line.product.sku,
                branch_a=line.branch_a,
                branch_b=line.branch_b,
                branch_c=line.branch_c,
            )
            for line in self._lines.values()
        ]
