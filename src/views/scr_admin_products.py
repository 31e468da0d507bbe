from typing import List, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Input, Label, Select

import db.crud
from db.models import CATEGORIES, PRODUCT_STATUSES, Product
from utils.errors import PortalError
from utils.labels import (
    CATEGORY_LABELS,
    PRODUCT_STATUS_LABELS,
    category_label,
    product_status_label,
)
from utils.messages import CatalogChangedMessage, ModeSwitchedMessage
from views.base_screen import BaseScreen
from views.modal_dialog import DialogModal

FILTER_ALL = "all"


class AdminProductsScreen(BaseScreen):
    """
    Catalog maintenance: search and filter, then create, edit or delete.
    """

    current_pid: Optional[int] = None

    def __init__(self) -> None:
        super().__init__()
        self._products: List[Product] = []

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Horizontal(id="hort-admin-filters"):
            yield Input(id="input-search", placeholder="Search by code, brand, model...")
            yield Select(
                [("All types", FILTER_ALL)]
                + [(label, key) for key, label in CATEGORY_LABELS.items()],
                value=FILTER_ALL,
                allow_blank=False,
                id="select-filter-category",
            )
            yield Select(
                [("All statuses", FILTER_ALL)]
                + [(label, key) for key, label in PRODUCT_STATUS_LABELS.items()],
                value=FILTER_ALL,
                allow_blank=False,
                id="select-filter-status",
            )
        yield DataTable(id="table-products")
        with Vertical(id="vert-admin-form"):
            yield Label("New product", id="label-form-title")
            with Horizontal(classes="form-row"):
                yield Input(placeholder="SKU", id="input-sku")
                yield Input(placeholder="Brand", id="input-brand")
                yield Input(placeholder="Description / model", id="input-description")
            with Horizontal(classes="form-row"):
                yield Select(
                    [(label, key) for key, label in CATEGORY_LABELS.items()],
                    value=CATEGORIES[0],
                    allow_blank=False,
                    id="select-category",
                )
                yield Select(
                    [(label, key) for key, label in PRODUCT_STATUS_LABELS.items()],
                    value=PRODUCT_STATUSES[0],
                    allow_blank=False,
                    id="select-status",
                )
                yield Input(placeholder="ETA (in transit only)", id="input-eta")
            with Horizontal(classes="form-row"):
                yield Input(placeholder="Photos, comma separated", id="input-images")
            with Horizontal(id="hort-form-buttons"):
                yield Button("New", id="btn-new")
                yield Button("Delete", id="btn-delete", variant="error", disabled=True)
                yield Button("Save", id="btn-save", variant="success")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("ID", "SKU", "Brand", "Description", "Type", "Status", "Photos")
        self._sync_eta_input()

    @on(Input.Changed, "#input-search")
    @on(Select.Changed, "#select-filter-category")
    @on(Select.Changed, "#select-filter-status")
    @on(ScreenResume)
    @on(ModeSwitchedMessage)
    @on(CatalogChangedMessage)
    def handle_filter_change(self) -> None:
        self.update_results()

    @work(exclusive=True)
    async def update_results(self) -> None:
        category = self.query_one("#select-filter-category", Select).value
        status = self.query_one("#select-filter-status", Select).value
        try:
            products = await db.crud.list_products(
                text=self.query_one("#input-search", Input).value,
                category=category if category in CATEGORIES else None,
                status=status if status in PRODUCT_STATUSES else None,
            )
        except PortalError as e:
            self.notify_error(e)
            return
        self._products = products

        table = self.query_one(DataTable)
        table.clear()
        for p in products:
            table.add_row(
                p.pid,
                p.sku,
                p.brand,
                p.description,
                category_label(p.category),
                product_status_label(p.status, p.eta),
                len(p.images),
            )

    @on(DataTable.RowSelected, "#table-products")
    def handle_row_selected(self, event: DataTable.RowSelected) -> None:
        pid = event.data_table.get_row_at(event.cursor_row)[0]
        prod = next((p for p in self._products if p.pid == pid), None)
        if prod is not None:
            self._load_form(prod)

    def _load_form(self, prod: Optional[Product]) -> None:
        self.current_pid = prod.pid if prod else None
        self.query_one("#label-form-title", Label).update(
            f"Editing product #{prod.pid}" if prod else "New product"
        )
        self.query_one("#input-sku", Input).value = prod.sku if prod else ""
        self.query_one("#input-brand", Input).value = prod.brand if prod else ""
        self.query_one("#input-description", Input).value = prod.description if prod else ""
        self.query_one("#select-category", Select).value = (
            prod.category if prod else CATEGORIES[0]
        )
        self.query_one("#select-status", Select).value = (
            prod.status if prod else PRODUCT_STATUSES[0]
        )
        self.query_one("#input-eta", Input).value = (prod.eta or "") if prod else ""
        self.query_one("#input-images", Input).value = ", ".join(prod.images) if prod else ""
        self.query_one("#btn-delete", Button).disabled = prod is None
        self._sync_eta_input()
        self.query_one("#input-sku", Input).focus()

    @on(Select.Changed, "#select-status")
    def _sync_eta_input(self) -> None:
        status = self.query_one("#select-status", Select).value
        self.query_one("#input-eta", Input).disabled = status != "incoming"

    def _form_fields(self) -> dict:
        return {
            "sku": self.query_one("#input-sku", Input).value,
            "brand": self.query_one("#input-brand", Input).value,
            "description": self.query_one("#input-description", Input).value,
            "category": self.query_one("#select-category", Select).value,
            "status": self.query_one("#select-status", Select).value,
            "eta": self.query_one("#input-eta", Input).value,
            "images": self.query_one("#input-images", Input).value,
        }

    @on(Button.Pressed, "#btn-new")
    def handle_new(self) -> None:
        self._load_form(None)

    @on(Button.Pressed, "#btn-save")
    @work(exclusive=True, group="save")
    async def handle_save(self) -> None:
        try:
            prod = await db.crud.save_product(self._form_fields(), self.current_pid)
        except PortalError as e:
            self.notify_error(e)
            return
        self.notify(f"Product {prod.sku} saved.")
        self._load_form(prod)
        self.post_message(CatalogChangedMessage())

    @on(Button.Pressed, "#btn-delete")
    @work()
    async def handle_delete(self) -> None:
        if self.current_pid is None:
            return
        sku = self.query_one("#input-sku", Input).value
        if not await self.app.push_screen_wait(
            DialogModal(
                f"Delete product {sku}? This cannot be undone.",
                primary_text="Delete",
                secondary_text="Cancel",
                tone="error",
            )
        ):
            return
        try:
            await db.crud.delete_product(self.current_pid)
        except PortalError as e:
            self.notify_error(e)
            return
        self.notify(f"Product {sku} deleted.")
        self._load_form(None)
        self.post_message(CatalogChangedMessage())
