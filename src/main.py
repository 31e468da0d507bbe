from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import LoadingIndicator

from utils.messages import ModeSwitchedMessage, QuitRequestedMessage, UserLogoutMessage
from utils.state import GlobalState
from views.scr_admin_clients import AdminClientsScreen
from views.scr_admin_orders import AdminOrdersScreen
from views.scr_admin_products import AdminProductsScreen
from views.scr_cart import CartScreen
from views.scr_catalog import CatalogScreen
from views.scr_client_orders import ClientOrdersScreen
from views.scr_login import LoginScreen


class PortalApp(App):
    BINDINGS = [
        Binding("ctrl+t", "switch_light", "Toggle Theme", show=True),
    ]

    MODES = {
        "catalog": CatalogScreen,
        "cart": CartScreen,
        "my_orders": ClientOrdersScreen,
        "adm_orders": AdminOrdersScreen,
        "adm_products": AdminProductsScreen,
        "adm_clients": AdminClientsScreen,
    }

    ADMIN_MODES = {
        "adm_orders": "Orders",
        "adm_products": "Catalog",
        "adm_clients": "Clients",
    }
    CLIENT_MODES = {
        "catalog": "Catalog",
        "cart": "Cart",
        "my_orders": "My Orders",
    }

    CSS_PATH = [
        "views/styles/index.tcss",
        "views/styles/login.tcss",
        "views/styles/catalog.tcss",
        "views/styles/cart.tcss",
        "views/styles/orders.tcss",
        "views/styles/admin.tcss",
    ]

    state: GlobalState

    def __init__(self, state: GlobalState | None = None):
        super().__init__()
        self.state = state or GlobalState()

    def compose(self) -> ComposeResult:
        yield LoadingIndicator()

    async def on_mount(self) -> None:
        self.main_flow()

    def action_switch_light(self):
        if self.theme == "textual-dark":
            self.theme = "solarized-light"
        else:
            self.theme = "textual-dark"
        self.notify(f"Theme changed to {self.theme}")

    @on(UserLogoutMessage)
    @work
    async def handle_user_logout(self):
        self.state.logout()
        self.notify("Logout successful.")
        self.main_flow()

    @on(QuitRequestedMessage)
    def handle_quit(self):
        self.exit()

    @work
    async def main_flow(self):
        await self.push_screen_wait(LoginScreen())
        if self.state.role == "client":
            self.post_message(ModeSwitchedMessage(self.current_mode, "catalog"))
            await self.switch_mode("catalog")
        elif self.state.role == "admin":
            self.post_message(ModeSwitchedMessage(self.current_mode, "adm_orders"))
            await self.switch_mode("adm_orders")


def run() -> None:
    PortalApp().run()


if __name__ == "__main__":
    run()
