from textual import on, work
from textual.app import ComposeResult
from textual.containers import Container, Horizontal, HorizontalGroup, VerticalScroll
from textual.events import ScreenResume
from textual.message import Message
from textual.widgets import Button, Input, Label, Rule

from db.models import BRANCHES
from utils.cart import Cart, CartLine
from utils.errors import PortalError
from utils.labels import product_status_label
from utils.messages import CartChangedMessage, ModeSwitchedMessage, OrdersChangedMessage
from views.base_screen import BaseScreen
from views.modal_dialog import DialogModal
from views.modal_submit_order import SubmitOrderModal


class CartLineRemovedMessage(Message):
    """A line widget's product left the cart (removed or all branches at 0)."""

    bubble = True


class CartLineWidget(HorizontalGroup):
    """
    One cart line: product info plus one quantity input per enabled branch.
    Works on any Cart, so the order editor reuses it.
    """

    def __init__(self, cart: Cart, line: CartLine):
        super().__init__()
        self.cart = cart
        self.line = line

    def compose(self):
        prod = self.line.product
        with Container(classes="div-cart-item"):
            yield Label(prod.sku, classes="label-item-sku")
            yield Label(f"{prod.brand} · {prod.description}", classes="label-item-desc")
            yield Label(product_status_label(prod.status, prod.eta), classes="label-item-status")
        with Horizontal(classes="div-branch-qtys"):
            for branch in BRANCHES[: self.cart.branch_count]:
                yield Label(branch, classes="label-branch")
                yield Input(
                    str(self.line.get(branch)),
                    type="integer",
                    name=branch,
                    classes="input-branch-qty",
                )
            yield Button("Remove", classes="btn-line-remove", variant="error")

    @on(Input.Submitted)
    @on(Input.Blurred)
    def handle_qty_commit(self, event: Input.Submitted | Input.Blurred) -> None:
        pid = self.line.product.pid
        line = self.cart.set_qty(pid, event.input.name, event.value)
        if line is None:
            self.post_message(CartLineRemovedMessage())
            return
        event.input.value = str(line.get(event.input.name))
        self.post_message(CartChangedMessage())

    @on(Button.Pressed, ".btn-line-remove")
    def handle_remove(self) -> None:
        self.cart.remove(self.line.product.pid)
        self.post_message(CartLineRemovedMessage())


class CartScreen(BaseScreen):
    """
    The client's cart, split per branch, and order submission.
    """

    def __init__(self) -> None:
        super().__init__()

    def compose(self) -> ComposeResult:
        yield from super().compose()
        yield Label("", id="label-cart-hint")
        yield VerticalScroll(id="vertscroll-content")
        yield Label("Total pieces: 0", id="label-cart-total")
        yield Rule(line_style="dashed")
        with Horizontal(id="hort-buttons"):
            yield Button("Clear Cart", id="btn-clear-cart")
            yield Button("Send Order", id="btn-checkout", variant="primary")

    async def on_mount(self):
        self.rebuild_lines()

    @on(CartLineRemovedMessage)
    @on(ModeSwitchedMessage)
    @on(ScreenResume)
    @on(OrdersChangedMessage)
    @work(exclusive=True)  # must exclusive, else might race cond and gen duplicate
    async def rebuild_lines(self):
        try:
            # the admin may have changed the client's branches meanwhile
            await self.app.state.refresh_client()
        except PortalError as e:
            self.notify_error(e)
        cart: Cart = self.app.state.cart
        branches = ", ".join(BRANCHES[: cart.branch_count])
        self.query_one("#label-cart-hint", Label).update(
            f"Quantities per branch ({branches}). A line with every branch at 0 is removed."
        )

        content = self.query_one("#vertscroll-content")
        await content.remove_children()
        await content.mount_all([CartLineWidget(cart, line) for line in cart.lines])
        content.set_class(cart.is_empty, "no-items")
        self.update_total()
        self.post_message(CartChangedMessage())

    @on(CartChangedMessage)
    def update_total(self) -> None:
        cart: Cart = self.app.state.cart
        self.query_one("#label-cart-total", Label).update(
            f"Total pieces: {cart.total_pieces} in {len(cart)} line(s)"
        )

    @on(Button.Pressed, "#btn-clear-cart")
    @work()
    async def handle_clear_cart(self) -> None:
        if self.app.state.cart.is_empty:
            self.app.notify("Cart is empty.", severity="warning")
            return

        remove_confirmed = await self.app.push_screen_wait(
            DialogModal(
                "Do you really want to remove all items from cart?",
                primary_text="Yes",
                secondary_text="No",
                tone="error",
            )
        )
        if remove_confirmed:
            self.app.state.cart.clear()
            self.rebuild_lines()

    @on(Button.Pressed, "#btn-checkout")
    @work()
    async def handle_checkout(self) -> None:
        if self.app.state.cart.is_empty:
            self.app.notify("Cart is empty.", severity="warning")
            return

        if await self.app.push_screen_wait(SubmitOrderModal()):
            self.post_message(OrdersChangedMessage())
        self.rebuild_lines()
