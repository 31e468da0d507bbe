from typing import List, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, Checkbox, DataTable, Input, Label, Select

import db.crud
from db.models import BRANCHES, Client
from utils.errors import PortalError
from utils.messages import ModeSwitchedMessage
from views.base_screen import BaseScreen
from views.modal_dialog import DialogModal


class AdminClientsScreen(BaseScreen):
    """
    Client accounts. The client code is also the login user.
    """

    current_client_id: Optional[int] = None

    def __init__(self) -> None:
        super().__init__()
        self._clients: List[Client] = []

    def compose(self) -> ComposeResult:
        yield from super().compose()
        yield DataTable(id="table-clients")
        with Vertical(id="vert-admin-form"):
            yield Label("New client", id="label-form-title")
            with Horizontal(classes="form-row"):
                yield Input(placeholder="Code (login user)", id="input-code")
                yield Input(placeholder="Business name", id="input-name")
            with Horizontal(classes="form-row"):
                yield Select(
                    [(f"{n} branch(es): {', '.join(BRANCHES[:n])}", n) for n in range(1, 4)],
                    value=1,
                    allow_blank=False,
                    id="select-branch-count",
                )
                yield Checkbox("Active", value=True, id="chk-active")
            with Horizontal(id="hort-form-buttons"):
                yield Button("New", id="btn-new")
                yield Button("Delete", id="btn-delete", variant="error", disabled=True)
                yield Button("Save", id="btn-save", variant="success")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("ID", "Code", "Name", "Branches", "Active")

    @on(ScreenResume)
    @on(ModeSwitchedMessage)
    def handle_refresh(self) -> None:
        self.load_clients()

    @work(exclusive=True)
    async def load_clients(self) -> None:
        try:
            clients = await db.crud.list_clients()
        except PortalError as e:
            self.notify_error(e)
            return
        self._clients = clients

        table = self.query_one(DataTable)
        table.clear()
        for c in clients:
            table.add_row(
                c.client_id,
                c.code,
                c.name,
                c.branch_count,
                "Yes" if c.active else "No",
            )

    @on(DataTable.RowSelected, "#table-clients")
    def handle_row_selected(self, event: DataTable.RowSelected) -> None:
        client_id = event.data_table.get_row_at(event.cursor_row)[0]
        client = next((c for c in self._clients if c.client_id == client_id), None)
        if client is not None:
            self._load_form(client)

    def _load_form(self, client: Optional[Client]) -> None:
        self.current_client_id = client.client_id if client else None
        self.query_one("#label-form-title", Label).update(
            f"Editing client #{client.client_id}" if client else "New client"
        )
        self.query_one("#input-code", Input).value = client.code if client else ""
        self.query_one("#input-name", Input).value = client.name if client else ""
        self.query_one("#select-branch-count", Select).value = (
            client.branch_count if client else 1
        )
        self.query_one("#chk-active", Checkbox).value = client.active if client else True
        self.query_one("#btn-delete", Button).disabled = client is None
        self.query_one("#input-code", Input).focus()

    @on(Button.Pressed, "#btn-new")
    def handle_new(self) -> None:
        self._load_form(None)

    @on(Button.Pressed, "#btn-save")
    @work(exclusive=True, group="save")
    async def handle_save(self) -> None:
        fields = {
            "code": self.query_one("#input-code", Input).value,
            "name": self.query_one("#input-name", Input).value,
            "branch_count": self.query_one("#select-branch-count", Select).value,
            "active": self.query_one("#chk-active", Checkbox).value,
        }
        try:
            client = await db.crud.save_client(fields, self.current_client_id)
        except PortalError as e:
            self.notify_error(e)
            return
        self.notify(f"Client {client.code} saved.")
        self._load_form(client)
        self.load_clients()

    @on(Button.Pressed, "#btn-delete")
    @work()
    async def handle_delete(self) -> None:
        if self.current_client_id is None:
            return
        code = self.query_one("#input-code", Input).value
        if not await self.app.push_screen_wait(
            DialogModal(
                f"Delete client {code}? This cannot be undone.",
                primary_text="Delete",
                secondary_text="Cancel",
                tone="error",
            )
        ):
            return
        try:
            await db.crud.delete_client(self.current_client_id)
        except PortalError as e:
            self.notify_error(e)
            return
        self.notify(f"Client {code} deleted.")
        self._load_form(None)
        self.load_clients()
