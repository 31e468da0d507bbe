from textual.message import Message


class QuitRequestedMessage(Message):
    """
    posted to the app once the user confirmed quitting
    """

    bubble = True


class UserLogoutMessage(Message):
    """
    posted by the sidebar after the logout confirmation
    """

    bubble = True


class UserLoginMessage(Message):
    """
    Fired after a successful login so screens can refresh
    """

    bubble = True


class CartChangedMessage(Message):
    """
    Fired whenever a line is added, edited or removed from the in-memory cart.
    Cart screen and sidebar badge listen to it.

    If posted from outside CartScreen, make sure to post at App level
    """

    bubble = True


class OrdersChangedMessage(Message):
    """
    Fired when an order is created, revised, advanced or deleted.
    Listened to by the client's orders screen and the admin order board.
    """

    bubble = True


class CatalogChangedMessage(Message):
    """
    Fired after the admin saves or deletes a product.
    """

    bubble = True


class ModeSwitchedMessage(Message):
    """
    fired whenever switch_mode is called
    must be fired from app level
    """

    bubble = True

    def __init__(self, old_mode: str, new_mode: str) -> None:
        super().__init__()
        self.old_mode = old_mode
        self.new_mode = new_mode
