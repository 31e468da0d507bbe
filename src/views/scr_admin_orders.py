from dataclasses import replace
from typing import List

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, MarkdownViewer, Select

import db.crud
from db.models import BRANCHES, ORDER_STATUSES, Order
from utils import lifecycle
from utils.errors import PortalError
from utils.labels import ORDER_STATUS_LABELS, order_status_label
from utils.messages import ModeSwitchedMessage, OrdersChangedMessage
from utils.optimistic import optimistic_update
from views.base_screen import BaseScreen
from views.modal_dialog import DialogModal
from views.scr_client_orders import render_order_md

FILTER_ALL = "all"


class AdminOrdersScreen(BaseScreen):
    """
    Every order of every client. The admin advances an order one status at a
    time and may delete it once shipped.
    """

    def __init__(self) -> None:
        super().__init__()
        self._orders: List[Order] = []

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield MarkdownViewer(id="md-order-detail", show_table_of_contents=False)
            yield DataTable(id="table-orders")
        with Horizontal(id="hort-table-control"):
            yield Select(
                [("All statuses", FILTER_ALL)]
                + [(label, key) for key, label in ORDER_STATUS_LABELS.items()],
                value=FILTER_ALL,
                allow_blank=False,
                id="select-status",
            )
            yield Button("Refresh", id="btn-refresh")
            yield Button("Advance", id="btn-advance", variant="primary", disabled=True)
            yield Button("Delete", id="btn-delete", variant="error", disabled=True)

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Order No", "Date", "Client", "Pieces", "Device", "Status")

    @on(Button.Pressed, "#btn-refresh")
    @on(Select.Changed, "#select-status")
    @on(ModeSwitchedMessage)
    @on(ScreenResume)
    @on(OrdersChangedMessage)
    def handle_refresh(self):
        self.load_orders()

    async def _reload(self) -> None:
        orders = await db.crud.list_orders()
        status = self.query_one("#select-status", Select).value
        if status in ORDER_STATUSES:
            orders = [o for o in orders if o.status == status]
        self._orders = orders
        self._fill_table()

    @work(exclusive=True, group="orders")
    async def load_orders(self) -> None:
        try:
            await self._reload()
        except PortalError as e:
            self.notify_error(e)

    def _fill_table(self) -> None:
        table = self.query_one(DataTable)
        keep_row = table.cursor_row or 0
        table.clear()
        for o in self._orders:
            table.add_row(
                o.oid,
                f"{o.created_at:%Y-%m-%d %H:%M}",
                f"{o.client.code} {o.client.name}",
                o.pieces,
                o.device or "Not recorded",
                order_status_label(o.status),
            )
        if self._orders:
            table.cursor_coordinate = (min(keep_row, len(self._orders) - 1), 0)
        self._render_detail()

    @on(DataTable.RowHighlighted)
    def handle_row_highlight(self) -> None:
        self._render_detail()

    def _selected_order(self) -> Order | None:
        table = self.query_one(DataTable)
        if table.row_count == 0 or table.cursor_row is None:
            return None
        oid = table.get_row_at(table.cursor_row)[0]
        return next((o for o in self._orders if o.oid == oid), None)

    def _render_detail(self) -> None:
        order = self._selected_order()
        btn_advance = self.query_one("#btn-advance", Button)
        btn_delete = self.query_one("#btn-delete", Button)
        viewer = self.query_one("#md-order-detail", MarkdownViewer)
        if order is None:
            btn_advance.disabled = True
            btn_delete.disabled = True
            viewer.document.update("### No order selected.")
            return

        can_advance = order.status != lifecycle.TERMINAL_STATUS
        btn_advance.disabled = not can_advance
        if can_advance:
            btn_advance.label = f"Mark {order_status_label(lifecycle.next_status(order.status))}"
        else:
            btn_advance.label = "Advance"
        btn_delete.disabled = not lifecycle.can_delete(order.status)
        viewer.document.update(render_order_md(order, len(BRANCHES)))

    @on(Button.Pressed, "#btn-advance")
    @work(exclusive=True, group="advance")  # a refresh must not cancel a running advance
    async def handle_advance(self) -> None:
        order = self._selected_order()
        if order is None:
            return
        target = lifecycle.next_status(order.status)

        def apply() -> None:
            self._orders = [
                replace(o, status=target) if o.oid == order.oid else o for o in self._orders
            ]
            self._fill_table()

        try:
            await optimistic_update(
                apply,
                lambda: db.crud.advance_order_status(order.oid, target),
                self._reload,
            )
        except PortalError as e:
            self.notify_error(e)
            return
        self.notify(f"Order #{order.oid} is now {order_status_label(target).lower()}.")

    @on(Button.Pressed, "#btn-delete")
    @work()
    async def handle_delete(self) -> None:
        order = self._selected_order()
        if order is None:
            return
        if not await self.app.push_screen_wait(
            DialogModal(
                f"Delete order #{order.oid}? This cannot be undone.",
                primary_text="Delete",
                secondary_text="Cancel",
                tone="error",
            )
        ):
            return
        try:
            await db.crud.delete_order(order.oid)
        except PortalError as e:
            self.notify_error(e)
        else:
            self.notify(f"Order #{order.oid} deleted.")
        self.load_orders()
