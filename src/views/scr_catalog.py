from typing import List

from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Input, Label, Select

import db.crud
from db.models import Product
from utils.errors import PortalError
from utils.favorites import toggle_favorite
from utils.labels import CATEGORY_LABELS, category_label, product_status_label
from utils.messages import CartChangedMessage, CatalogChangedMessage, ModeSwitchedMessage
from views.base_screen import BaseScreen
from views.modal_prod_detail import ProdDetailModal

CHIP_ALL = "all"
CHIP_FAVORITES = "favorites"


class CatalogScreen(BaseScreen):
    """
    Client catalog: text search, category chips, favorites, add to cart.
    """

    BINDINGS = [
        Binding("a", "add_to_cart", "Add to Cart", show=True),
        Binding("f", "toggle_favorite", "Favorite", show=True),
    ]

    def __init__(self):
        super().__init__()
        self._products: List[Product] = []

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Horizontal(id="hort-catalog-filters"):
            yield Input(
                id="input-search", placeholder="Search by code, brand, model..."
            )
            yield Select(
                [("All", CHIP_ALL), ("★ Favorites", CHIP_FAVORITES)]
                + [(label, key) for key, label in CATEGORY_LABELS.items()],
                value=CHIP_ALL,
                allow_blank=False,
                id="select-chip",
            )
            yield Button("Clear", id="btn-clear-search")
        yield DataTable(id="table-catalog")
        yield Label("", id="label-catalog-count")

    def on_mount(self):
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("ID", "★", "SKU", "Brand", "Description", "Type", "Status")
        self.query_one("#input-search").focus()

    @on(Input.Changed, "#input-search")
    @on(Select.Changed, "#select-chip")
    @on(ScreenResume)
    @on(ModeSwitchedMessage)
    @on(CatalogChangedMessage)
    def handle_filter_change(self) -> None:
        self.update_results()

    @on(Button.Pressed, "#btn-clear-search")
    def handle_clear(self) -> None:
        self.query_one("#input-search", Input).value = ""

    @work(exclusive=True)
    async def update_results(self) -> None:
        query = self.query_one("#input-search", Input).value
        chip = self.query_one("#select-chip", Select).value
        category = chip if chip in CATEGORY_LABELS else None

        try:
            products = await db.crud.list_products(text=query, category=category)
        except PortalError as e:
            self.notify_error(e)
            return

        favorites = self.app.state.favorites
        if chip == CHIP_FAVORITES:
            products = [p for p in products if favorites.get_favorite(p.pid)]
        self._products = products

        table = self.query_one(DataTable)
        table.clear()
        for p in products:
            table.add_row(
                p.pid,
                "★" if favorites.get_favorite(p.pid) else "",
                p.sku,
                p.brand,
                p.description,
                category_label(p.category),
                product_status_label(p.status, p.eta),
            )
        count_label = self.query_one("#label-catalog-count", Label)
        if products:
            count_label.update(f"{len(products)} product(s)")
        else:
            count_label.update("No products match the filter.")

    def _selected_product(self) -> Product | None:
        table = self.query_one(DataTable)
        if table.row_count == 0 or table.cursor_row is None:
            return None
        pid = table.get_row_at(table.cursor_row)[0]
        return next((p for p in self._products if p.pid == pid), None)

    @on(DataTable.RowSelected, "#table-catalog")
    def handle_row_selected(self) -> None:
        self.open_detail()

    @work()
    async def open_detail(self) -> None:
        prod = self._selected_product()
        if prod is None:
            return
        if await self.app.push_screen_wait(ProdDetailModal(prod)):
            self.post_message(CartChangedMessage())
        self.update_results()

    def action_add_to_cart(self) -> None:
        prod = self._selected_product()
        if prod is None:
            return
        if prod.status == "out-of-stock":
            self.notify(f"{prod.sku} is out of stock.", severity="warning")
            return
        self.app.state.cart.add(prod)
        verb = "Reserved" if prod.status == "incoming" else "Added"
        self.notify(f"{verb} {prod.sku} ({self.app.state.cart.total_pieces} pcs in cart).")
        self.post_message(CartChangedMessage())

    def action_toggle_favorite(self) -> None:
        prod = self._selected_product()
        if prod is None:
            return
        toggle_favorite(self.app.state.favorites, prod.pid)
        self.update_results()
