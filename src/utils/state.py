from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional

import db.crud as crud
from db.models import Client
from utils.cart import Cart
from utils.config import settings
from utils.favorites import FavoriteStore, JsonFavoriteStore


def _default_favorites() -> FavoriteStore:
    return JsonFavoriteStore(settings.FAVORITES_PATH)


@dataclass
class GlobalState:
    """
    Centralized application state shared by screens.

    Fields:
      - username: login name, the client code for clients
      - role: "admin" | "client" | None before login
      - client: the logged-in Client (role == "client" only)
      - cart: the client's in-memory cart, sized to the client's branches
      - favorites: on-device favorite store, injectable for tests
    """

    username: Optional[str] = None
    role: Optional[Literal["admin", "client"]] = None
    client: Optional[Client] = None
    cart: Cart = field(default_factory=Cart)
    favorites: FavoriteStore = field(default_factory=_default_favorites)

    @property
    def client_id(self) -> Optional[int]:
        return self.client.client_id if self.client else None

    @property
    def branch_count(self) -> int:
        return self.client.branch_count if self.client else 1

    async def login(self, username: str, password: str) -> bool:
        """Resolve credentials and start a fresh session. False if rejected."""
        user = await crud.login(username, password)
        if user is None:
            return False
        self.username = user.username
        self.role = user.role
        self.client = user.client
        self.cart = Cart(self.branch_count)
        return True

    async def refresh_client(self) -> None:
        """Reload the client record, e.g. after the admin changed its branches."""
        if self.client is None:
            return
        client = await crud.get_client(self.client.client_id)
        if client is None:
            return
        self.client = client
        if client.branch_count != self.cart.branch_count:
            # re-apply the branch limit to what is already in the cart
            old_lines = self.cart.lines
            self.cart = Cart(client.branch_count)
            for line in old_lines:
                self.cart.put(line.product, line.quantities)

    def logout(self) -> None:
        """
        End the session. The cart is not persisted and is dropped here.
        This is only called upon logging out
        """
        self.username = None
        self.role = None
        self.client = None
        self.cart = Cart()
