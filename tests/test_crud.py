import os
import sys
import tempfile
import unittest
from datetime import datetime

import aiosqlite

from db import crud
from db import database as db_database
from db.models import OrderLineInput
from utils.config import settings
from utils.errors import (
    DuplicateError,
    InvalidTransitionError,
    NotFoundError,
    OrderLockedError,
    OrderNotDeletableError,
    PersistenceError,
    ReferencedError,
    UnknownSkuError,
    ValidationError,
)

# Ensure project src/ is on sys.path for imports
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
src_path = os.path.join(ROOT, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)


class CrudTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        # Point the DB to a temporary file and force re-initialization
        self.temp_dir = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self.temp_dir.name, "test.sqlite")
        db_database.DB_PATH = self.db_path
        db_database.SEED = True
        db_database._initialized = False

    async def asyncSetUp(self):
        # Touch initialization by opening a connection
        async with db_database.connect() as conn:
            cur = await conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table';"
            )
            await cur.fetchall()
            await cur.close()

    def tearDown(self):
        self.temp_dir.cleanup()

    async def _count(self, table: str) -> int:
        async with db_database.connect() as conn:
            cur = await conn.execute(f"SELECT COUNT(*) FROM {table};")
            (n,) = await cur.fetchone()
            await cur.close()
        return n

    # ---------- Auth ----------

    async def test_login_admin_and_clients(self):
        admin = await crud.login(settings.ADMIN_USER, settings.ADMIN_PASSWORD)
        self.assertIsNotNone(admin)
        self.assertEqual(admin.role, "admin")
        self.assertIsNone(admin.client)
        self.assertIsNone(await crud.login(settings.ADMIN_USER, "wrong"))

        user = await crud.login("C001", "anything")
        self.assertEqual(user.role, "client")
        self.assertEqual(user.client.client_id, 1)
        self.assertEqual(user.client.branch_count, 2)

        # inactive and unknown codes are rejected
        self.assertIsNone(await crud.login("C003", "pw"))
        self.assertIsNone(await crud.login("C999", "pw"))
        self.assertIsNone(await crud.login("   ", "pw"))

    # ---------- Clients ----------

    async def test_client_crud(self):
        clients = await crud.list_clients()
        self.assertEqual([c.code for c in clients], ["C001", "C002", "C003", "C004"])
        self.assertEqual((await crud.get_client_by_code(" C002 ")).branch_count, 3)
        self.assertIsNone(await crud.get_client(999))

        new = await crud.save_client(
            {"name": " Frenos Express ", "code": "C010", "active": True, "branch_count": "2"}
        )
        self.assertEqual(new.name, "Frenos Express")
        self.assertEqual(new.branch_count, 2)

        updated = await crud.save_client(
            {"name": "Frenos Express", "code": "C010", "active": False, "branch_count": 1},
            new.client_id,
        )
        self.assertFalse(updated.active)
        self.assertEqual(updated.branch_count, 1)

        with self.assertRaises(DuplicateError):
            await crud.save_client({"name": "Dup", "code": "C001", "branch_count": 1})
        with self.assertRaises(ValidationError):
            await crud.save_client({"name": "Bad", "code": "C011", "branch_count": 4})
        with self.assertRaises(ValidationError):
            await crud.save_client({"name": "", "code": "C012", "branch_count": 1})
        with self.assertRaises(NotFoundError):
            await crud.save_client({"name": "Ghost", "code": "C013", "branch_count": 1}, 999)

    async def test_delete_client(self):
        with self.assertRaises(ReferencedError):
            await crud.delete_client(1)  # has orders
        await crud.delete_client(4)
        self.assertIsNone(await crud.get_client(4))
        with self.assertRaises(NotFoundError):
            await crud.delete_client(4)

    # ---------- Products ----------

    async def test_list_products_filters(self):
        all_products = await crud.list_products()
        pids = [p.pid for p in all_products]
        self.assertEqual(pids, sorted(pids))
        self.assertEqual(len(pids), 7)

        toyota = await crud.list_products(text="  TOYOTA ")
        self.assertEqual([p.pid for p in toyota], [1, 2, 5, 7])

        masters = await crud.list_products(category="brake-master")
        self.assertEqual([p.pid for p in masters], [1, 2, 3])

        incoming = await crud.list_products(status="incoming")
        self.assertEqual([p.sku for p in incoming], ["47201-60460"])
        self.assertEqual(incoming[0].eta, "25 January")
        self.assertEqual(len(incoming[0].images), 2)

        self.assertEqual(
            await crud.list_products(text="tiida", category="clutch-master"), []
        )
        with self.assertRaises(ValidationError):
            await crud.list_products(category="wipers")
        with self.assertRaises(ValidationError):
            await crud.list_products(status="lost")

    async def test_product_lookup(self):
        self.assertEqual((await crud.get_product(3)).sku, "47210-AD200")
        self.assertIsNone(await crud.get_product(999))
        found = await crud.get_products_by_sku(["47201-04150", "NOPE", "47201-04150"])
        self.assertEqual(list(found), ["47201-04150"])
        self.assertEqual(await crud.get_products_by_sku([]), {})

    async def test_save_product(self):
        prod = await crud.save_product(
            {
                "sku": "46010-1M200",
                "brand": "Nissan",
                "description": "Tsuru III master",
                "category": "brake-master",
                "status": "available",
                "eta": "next week",  # dropped, the product is not in transit
                "images": "a.png, b.png\nc.png",
            }
        )
        self.assertIsNone(prod.eta)
        self.assertEqual(prod.images, ("a.png", "b.png", "c.png"))

        prod = await crud.save_product(
            {
                "sku": "46010-1M200",
                "brand": "Nissan",
                "description": "Tsuru III master",
                "category": "brake-master",
                "status": "incoming",
                "eta": " 3 March ",
                "images": [],
            },
            prod.pid,
        )
        self.assertEqual(prod.status, "incoming")
        self.assertEqual(prod.eta, "3 March")
        self.assertEqual(prod.images, ())

        fields = {
            "sku": "47201-04150",
            "brand": "Toyota",
            "description": "dup",
            "category": "brake-master",
            "status": "available",
        }
        with self.assertRaises(DuplicateError):
            await crud.save_product(fields)
        with self.assertRaises(ValidationError):
            await crud.save_product({**fields, "sku": "X-1", "category": "wipers"})
        with self.assertRaises(ValidationError):
            await crud.save_product({**fields, "sku": "X-1", "status": "lost"})
        with self.assertRaises(ValidationError):
            await crud.save_product({**fields, "sku": "X-1", "brand": " "})
        with self.assertRaises(NotFoundError):
            await crud.save_product({**fields, "sku": "X-1"}, 999)

    async def test_delete_product(self):
        with self.assertRaises(ReferencedError):
            await crud.delete_product(1)  # in seeded order #1
        await crud.delete_product(6)
        self.assertIsNone(await crud.get_product(6))
        with self.assertRaises(NotFoundError):
            await crud.delete_product(6)

    # ---------- Orders: creation ----------

    async def test_create_order_reservation(self):
        when = datetime(2025, 11, 7, 8, 30)
        order = await crud.create_order(
            [OrderLineInput("47201-60460", 2, 1, 0)],
            client_id=1,
            comment="  urgent ",
            device="Terminal (Linux)",
            when=when,
        )
        self.assertEqual(order.status, "pending")
        self.assertEqual(order.client_id, 1)
        self.assertEqual(order.created_at, when)
        self.assertEqual(order.comment, "urgent")
        self.assertEqual(order.device, "Terminal (Linux)")
        self.assertEqual(len(order.items), 1)

        item = order.items[0]
        self.assertEqual(item.pid, 2)
        self.assertEqual((item.branch_a, item.branch_b, item.branch_c), (2, 1, 0))
        self.assertEqual(item.kind, "reservation")
        self.assertEqual(item.status_text, "In transit")
        self.assertEqual(item.eta_text, "25 January")
        self.assertEqual(order.pieces, 3)

        # stored, not only returned
        again = await crud.get_order(order.oid)
        self.assertEqual(again.items, order.items)

    async def test_create_order_normal_items_and_zero_lines(self):
        order = await crud.create_order(
            [
                OrderLineInput("47201-04150", 1, 0, 0),
                OrderLineInput("30620-50J00", 0, 0, 0),  # dropped
                OrderLineInput(" 04465-0K240 ", 0, 2, 0),
            ],
            client_id=1,
        )
        self.assertEqual([i.sku for i in order.items], ["47201-04150", "04465-0K240"])
        self.assertEqual([i.line_no for i in order.items], [1, 2])
        self.assertTrue(all(i.kind == "normal" for i in order.items))
        self.assertEqual(order.items[1].status_text, "Low stock")
        self.assertIsNone(order.items[1].eta_text)
        self.assertIsNone(order.comment)

    async def test_create_order_unknown_sku_is_atomic(self):
        before = await self._count("orders")
        with self.assertRaises(UnknownSkuError) as ctx:
            await crud.create_order(
                [
                    OrderLineInput("47201-04150", 1, 0, 0),
                    OrderLineInput("DOES-NOT-EXIST", 1, 0, 0),
                ],
                client_id=1,
            )
        self.assertEqual(ctx.exception.skus, ["DOES-NOT-EXIST"])
        self.assertIn("DOES-NOT-EXIST", ctx.exception.message)
        self.assertEqual(await self._count("orders"), before)
        self.assertEqual(await self._count("order_items"), 4)

    async def test_create_order_rejects_bad_lines(self):
        before = await self._count("orders")
        with self.assertRaises(ValidationError):
            await crud.create_order([], client_id=1)
        with self.assertRaises(ValidationError):
            await crud.create_order([OrderLineInput("47201-04150", 0, 0, 0)], client_id=1)
        with self.assertRaises(ValidationError):
            await crud.create_order([OrderLineInput("47201-04150", 2, -1, 0)], client_id=1)
        with self.assertRaises(ValidationError):
            await crud.create_order([OrderLineInput("47201-04150", "2", 0, 0)], client_id=1)
        with self.assertRaises(ValidationError):
            await crud.create_order([OrderLineInput("  ", 1, 0, 0)], client_id=1)
        self.assertEqual(await self._count("orders"), before)

    async def test_create_order_client_resolution(self):
        lines = [OrderLineInput("47201-04150", 1, 0, 0)]
        with self.assertRaises(ValidationError):
            await crud.create_order(lines, allow_default_client=False)

        order = await crud.create_order(lines, allow_default_client=True)
        self.assertEqual(order.client_id, 1)  # first active client

        with self.assertRaises(ValidationError):
            await crud.create_order(lines, client_id=3)  # inactive
        with self.assertRaises(NotFoundError):
            await crud.create_order(lines, client_id=999)

    async def test_create_order_masks_missing_branches(self):
        # C004 has one branch, so B and C quantities are discarded
        order = await crud.create_order(
            [
                OrderLineInput("47201-04150", 1, 2, 3),
                OrderLineInput("04465-0K240", 0, 5, 0),  # nothing left for branch A
            ],
            client_id=4,
        )
        self.assertEqual(len(order.items), 1)
        item = order.items[0]
        self.assertEqual((item.branch_a, item.branch_b, item.branch_c), (1, 0, 0))

        before = await self._count("orders")
        with self.assertRaises(ValidationError):
            await crud.create_order([OrderLineInput("47201-04150", 0, 4, 4)], client_id=4)
        self.assertEqual(await self._count("orders"), before)

    # ---------- Orders: listing ----------

    async def test_list_orders(self):
        orders = await crud.list_orders()
        self.assertEqual([o.oid for o in orders], [3, 2, 1])
        self.assertEqual(orders[2].client.code, "C001")
        self.assertEqual(orders[2].pieces, 7)
        self.assertEqual(orders[2].device, "Terminal")
        self.assertIsNone(orders[1].device)

        mine = await crud.list_orders(1)
        self.assertEqual([o.oid for o in mine], [3, 1])
        self.assertEqual(await crud.list_orders(4), [])
        self.assertIsNone(await crud.get_order(999))

    # ---------- Orders: lifecycle ----------

    async def test_advance_order_status(self):
        order = await crud.advance_order_status(3)
        self.assertEqual(order.status, "preparing")
        order = await crud.advance_order_status(3, "shipped")
        self.assertEqual(order.status, "shipped")
        with self.assertRaises(InvalidTransitionError):
            await crud.advance_order_status(3)
        self.assertEqual((await crud.get_order(3)).status, "shipped")

    async def test_advance_order_status_rejects_skips(self):
        with self.assertRaises(InvalidTransitionError):
            await crud.advance_order_status(3, "shipped")
        with self.assertRaises(InvalidTransitionError):
            await crud.advance_order_status(2, "pending")
        with self.assertRaises(NotFoundError):
            await crud.advance_order_status(999)
        self.assertEqual((await crud.get_order(3)).status, "pending")

    async def test_delete_order(self):
        with self.assertRaises(OrderNotDeletableError):
            await crud.delete_order(3)  # pending
        with self.assertRaises(OrderNotDeletableError):
            await crud.delete_order(2)  # preparing

        await crud.delete_order(1)
        self.assertIsNone(await crud.get_order(1))
        self.assertEqual(await self._count("order_items"), 2)
        with self.assertRaises(NotFoundError):
            await crud.delete_order(1)

    async def test_revise_order_items(self):
        order = await crud.revise_order_items(
            3,
            [OrderLineInput("47210-AD200", 3, 1, 9), OrderLineInput("47201-60460", 0, 2, 0)],
            client_id=1,
        )
        # C001 has two branches, C is masked
        self.assertEqual(
            [(i.sku, i.branch_a, i.branch_b, i.branch_c) for i in order.items],
            [("47210-AD200", 3, 1, 0), ("47201-60460", 0, 2, 0)],
        )
        self.assertEqual(order.items[1].kind, "reservation")

        with self.assertRaises(NotFoundError):
            await crud.revise_order_items(3, [OrderLineInput("47210-AD200", 1)], client_id=2)
        with self.assertRaises(OrderLockedError):
            await crud.revise_order_items(2, [OrderLineInput("31410-SDA-A01", 1)])
        with self.assertRaises(ValidationError):
            await crud.revise_order_items(3, [], client_id=1)
        with self.assertRaises(UnknownSkuError):
            await crud.revise_order_items(3, [OrderLineInput("NOPE", 1)], client_id=1)

        # failed revisions leave the stored items alone
        self.assertEqual(len((await crud.get_order(3)).items), 2)

    async def test_revise_rejects_order_advanced_meanwhile(self):
        orig_resolve = crud._resolve_skus

        async def resolve_then_admin_advances(conn, lines):
            # another session moves the order on after the status was read
            async with aiosqlite.connect(self.db_path) as other:
                await other.execute("UPDATE orders SET status = 'preparing' WHERE oid = 3;")
                await other.commit()
            return await orig_resolve(conn, lines)

        try:
            crud._resolve_skus = resolve_then_admin_advances  # type: ignore
            with self.assertRaises(OrderLockedError):
                await crud.revise_order_items(3, [OrderLineInput("47210-AD200", 9)], client_id=1)
        finally:
            crud._resolve_skus = orig_resolve  # restore

        order = await crud.get_order(3)
        self.assertEqual(order.status, "preparing")
        self.assertEqual([(i.sku, i.branch_a) for i in order.items], [("47210-AD200", 1)])

    # ---------- Storage errors ----------

    async def test_sqlite_errors_become_persistence_errors(self):
        with self.assertRaises(PersistenceError) as ctx:
            async with db_database.connect() as conn:
                await conn.execute("SELECT * FROM no_such_table;")
        self.assertIsNotNone(ctx.exception.original_exception)
        self.assertNotIn("no_such_table", ctx.exception.message)

    async def test_unopenable_database_is_a_persistence_error(self):
        # a directory cannot be opened as a database file
        db_database.DB_PATH = self.temp_dir.name
        with self.assertRaises(PersistenceError) as ctx:
            await crud.list_orders()
        self.assertIsInstance(ctx.exception.original_exception, aiosqlite.Error)

    # ---------- tiny helper coverage ----------

    def test__to_int_helper(self):
        self.assertEqual(crud._to_int("3"), 3)
        self.assertIsNone(crud._to_int("nan"))
        self.assertIsNone(crud._to_int(None))
