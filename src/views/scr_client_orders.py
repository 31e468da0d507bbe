from typing import List

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, MarkdownViewer

import db.crud
from db.models import BRANCHES, Order
from utils import lifecycle
from utils.errors import PortalError
from utils.labels import item_kind_label, order_status_label
from utils.messages import ModeSwitchedMessage, OrdersChangedMessage
from utils.pure import generate_markdown_table
from views.base_screen import BaseScreen
from views.modal_edit_order import EditOrderModal


def render_order_md(order: Order, branch_count: int) -> str:
    """Markdown detail of one order, shared by the client and admin screens."""
    branches = list(BRANCHES[:branch_count])
    header = (
        f"### Order #{order.oid} · {order_status_label(order.status)}\n"
        f"Client: {order.client.code} {order.client.name}  \n"
        f"Date: {order.created_at:%Y-%m-%d %H:%M}  \n"
        f"Device: {order.device or 'Not recorded'}  \n"
        f"Comment: {order.comment or '-'}\n\n"
    )
    rows = [
        [
            item.sku,
            item.description,
            *(item.branch_a, item.branch_b, item.branch_c)[:branch_count],
            item.pieces,
            item_kind_label(item.kind),
            item.status_text,
            item.eta_text,
        ]
        for item in order.items
    ]
    md_table = generate_markdown_table(
        ["SKU", "Description", *branches, "Pieces", "Type", "Status", "ETA"],
        rows,
        ["l", "l", *(["c"] * len(branches)), "c", "l", "l", "l"],
    )
    return header + md_table + f"\n\n**Total pieces:** {order.pieces}"


class ClientOrdersScreen(BaseScreen):
    """
    The logged-in client's orders, newest first.

    Layout:
    - Markdown detail of the highlighted order at the top.
    - Orders table below. Pending orders can be edited.
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
            yield Button("Refresh", id="btn-refresh")
            yield Button("Edit Order", id="btn-edit", variant="primary", disabled=True)

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Order No", "Date", "Status", "Lines", "Pieces")

    @on(Button.Pressed, "#btn-refresh")
    @on(ModeSwitchedMessage)
    @on(ScreenResume)
    @on(OrdersChangedMessage)
    def handle_refresh(self):
        self.load_orders()

    @work(exclusive=True, group="orders")
    async def load_orders(self) -> None:
        try:
            orders = await db.crud.list_orders(self.app.state.client_id)
        except PortalError as e:
            self.notify_error(e)
            return
        self._orders = orders

        table = self.query_one(DataTable)
        table.clear()
        for o in orders:
            table.add_row(
                o.oid,
                f"{o.created_at:%Y-%m-%d %H:%M}",
                order_status_label(o.status),
                len(o.items),
                o.pieces,
            )
        if orders:
            table.cursor_coordinate = (0, 0)
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
        btn_edit = self.query_one("#btn-edit", Button)
        viewer = self.query_one("#md-order-detail", MarkdownViewer)
        if order is None:
            btn_edit.disabled = True
            md = (
                "### You have no orders yet."
                if not self._orders
                else "### Select an order to view its details."
            )
            viewer.document.update(md)
            return

        btn_edit.disabled = not lifecycle.can_edit(order.status)
        viewer.document.update(render_order_md(order, self.app.state.branch_count))

    @on(Button.Pressed, "#btn-edit")
    @work()
    async def handle_edit(self) -> None:
        order = self._selected_order()
        if order is None:
            return
        if not lifecycle.can_edit(order.status):
            self.notify("Only pending orders can be edited.", severity="warning")
            return
        if await self.app.push_screen_wait(EditOrderModal(order)):
            self.post_message(OrdersChangedMessage())
