from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, MarkdownViewer

from db.crud import create_order
from db.models import BRANCHES
from utils.errors import PortalError
from utils.labels import product_status_label
from utils.pure import device_label, generate_markdown_table
from views.modal_dialog import DialogModal


class SubmitOrderModal(ModalScreen[bool]):
    """
    Order summary with an optional comment, then sends the cart.
    Returns True when the order was stored (and the cart emptied), False if not.
    """

    def __init__(self):
        super().__init__()

    def compose(self) -> ComposeResult:
        with Vertical():
            yield MarkdownViewer("", show_table_of_contents=False)
            yield Label("Comment (optional)")
            yield Input(placeholder="Deliver before Friday", id="input-comment")
            yield Label("Device")
            yield Input(device_label(), id="input-device")
            with Horizontal():
                yield Button("Go Back", id="btn-quit")
                yield Button("Send Order", id="btn-submit", variant="primary")

    async def on_mount(self):
        state = self.app.state
        cart = state.cart
        branches = list(BRANCHES[: cart.branch_count])
        headers = ["SKU", "Description", *branches, "Pieces", "Status"]
        rows = [
            [
                line.product.sku,
                line.product.description,
                *line.quantities[: cart.branch_count],
                line.pieces,
                product_status_label(line.product.status, line.product.eta),
            ]
            for line in cart.lines
        ]
        aligns = ["l", "l", *(["c"] * len(branches)), "c", "l"]
        header_md = f"### Order Summary for {state.client.name}\n\n"
        md = generate_markdown_table(headers, rows, aligns)
        md += f"\n\n**Total pieces:** {cart.total_pieces}"
        if any(line.product.status == "incoming" for line in cart.lines):
            md += "\n\n_Products in transit are stored as reservations._"
        await self.query_one(MarkdownViewer).document.update(header_md + md)
        self.query_one("#input-comment").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(False)

    @on(Button.Pressed, "#btn-submit")
    @work(exclusive=True)
    async def handle_submit(self):
        if not await self.app.push_screen_wait(
            DialogModal(
                "Send this order? It can be edited while it is pending.",
                primary_text="Yes",
                secondary_text="No",
                tone="positive",
            )
        ):
            return

        state = self.app.state
        try:
            order = await create_order(
                state.cart.to_order_lines(),
                client_id=state.client_id,
                comment=self.query_one("#input-comment", Input).value,
                device=self.query_one("#input-device", Input).value,
            )
        except PortalError as e:
            self.notify(e.message, severity="error")
            return

        state.cart.clear()
        self.notify(f"Order #{order.oid} sent ({order.pieces} pieces).")
        self.dismiss(True)

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(False)
