from textual import events, on
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Label, MarkdownViewer

from db.models import Product
from utils.favorites import toggle_favorite
from utils.labels import category_label, product_status_label
from utils.pure import generate_markdown_table


class ProdDetailModal(ModalScreen[bool]):
    """
    Product detail with its photos, the favorite star and the add button.
    Returns True if the cart changed, False if not.
    """

    def __init__(self, product: Product) -> None:
        super().__init__()
        self._prod = product

    def compose(self) -> ComposeResult:
        with Horizontal(id="hort-prod-detail"):
            yield MarkdownViewer("", show_table_of_contents=False)
            with Vertical(id="vert-prod-actions"):
                yield Label("", id="label-prod-in-cart")
                yield Button("☆ Favorite", id="btn-favorite")
                with Horizontal():
                    yield Button("Go Back", id="btn-quit")
                    yield Button("Add to Cart", id="btn-addcart", variant="primary")

    async def on_mount(self):
        prod = self._prod
        table_rows = [
            ["SKU", prod.sku],
            ["Brand", prod.brand],
            ["Description", prod.description],
            ["Type", category_label(prod.category)],
            ["Status", product_status_label(prod.status, prod.eta)],
        ]
        md = f"### {prod.sku}\n\n" + generate_markdown_table(
            ["Attribute", "Value"], table_rows, ["l", "l"]
        )
        if prod.images:
            md += f"\n\n#### Photos ({len(prod.images)})\n\n"
            md += "\n".join(f"- `{ref}`" for ref in prod.images)
        else:
            md += "\n\n_No photos yet._"
        await self.query_one(MarkdownViewer).document.update(md)

        order_btn = self.query_one("#btn-addcart", Button)
        if prod.status == "out-of-stock":
            order_btn.label = "Out of Stock"
            order_btn.disabled = True
            order_btn.variant = "warning"
        elif prod.status == "incoming":
            order_btn.label = "Reserve"

        self._refresh_labels()
        order_btn.focus()

    def _refresh_labels(self) -> None:
        state = self.app.state
        fav = state.favorites.get_favorite(self._prod.pid)
        self.query_one("#btn-favorite", Button).label = "★ Favorite" if fav else "☆ Favorite"
        line = state.cart.get(self._prod.pid)
        in_cart = (
            "In cart: " + " / ".join(str(q) for q in line.quantities[: state.cart.branch_count])
            if line
            else "Not in cart"
        )
        self.query_one("#label-prod-in-cart", Label).update(in_cart)

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(False)

    @on(Button.Pressed, "#btn-favorite")
    def handle_favorite(self):
        toggle_favorite(self.app.state.favorites, self._prod.pid)
        self._refresh_labels()

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(False)

    @on(Button.Pressed, "#btn-addcart")
    def handle_addcart(self):
        self.app.state.cart.add(self._prod)
        self.app.notify(f"{self._prod.sku} added to cart.")
        self.dismiss(True)
