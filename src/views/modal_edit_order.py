from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Button, Label

from db.crud import get_products_by_sku, revise_order_items
from db.models import Order
from utils.cart import Cart
from utils.errors import PortalError
from utils.messages import CartChangedMessage
from views.scr_cart import CartLineRemovedMessage, CartLineWidget


class EditOrderModal(ModalScreen[bool]):
    """
    Revise the quantities of a pending order.

    The items are loaded into a scratch Cart so the same branch rules apply
    as when ordering. Returns True when the order was saved.
    """

    def __init__(self, order: Order) -> None:
        super().__init__()
        self._order = order
        self._draft = Cart(order.client.branch_count if order.client else 1)

    def compose(self) -> ComposeResult:
        with Vertical(id="vert-edit-order"):
            yield Label(f"Edit order #{self._order.oid}", id="label-edit-title")
            yield VerticalScroll(id="vertscroll-edit-lines")
            yield Label("", id="label-edit-total")
            with Horizontal():
                yield Button("Go Back", id="btn-quit")
                yield Button("Save Changes", id="btn-save", variant="primary")

    async def on_mount(self):
        try:
            products = await get_products_by_sku(item.sku for item in self._order.items)
        except PortalError as e:
            self.notify(e.message, severity="error")
            self.dismiss(False)
            return
        for item in self._order.items:
            prod = products.get(item.sku)
            if prod is not None:
                self._draft.put(prod, (item.branch_a, item.branch_b, item.branch_c))
        self.render_lines()

    @on(CartLineRemovedMessage)
    @work(exclusive=True)
    async def render_lines(self) -> None:
        scroll = self.query_one("#vertscroll-edit-lines")
        await scroll.remove_children()
        await scroll.mount_all([CartLineWidget(self._draft, line) for line in self._draft.lines])
        self.update_total()

    @on(CartChangedMessage)
    def update_total(self) -> None:
        self.query_one("#label-edit-total", Label).update(
            f"Total pieces: {self._draft.total_pieces}"
        )

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(False)

    @on(Button.Pressed, "#btn-save")
    @work(exclusive=True)
    async def handle_save(self) -> None:
        try:
            order = await revise_order_items(
                self._order.oid,
                self._draft.to_order_lines(),
                client_id=self.app.state.client_id,
            )
        except PortalError as e:
            self.notify(e.message, severity="error")
            return
        self.notify(f"Order #{order.oid} updated ({order.pieces} pieces).")
        self.dismiss(True)

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(False)
