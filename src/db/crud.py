# src/db/crud.py
from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import aiosqlite

from db import models
from db.database import connect
from utils import lifecycle
from utils.config import settings
from utils.errors import (
    DuplicateError,
    InvalidTransitionError,
    NoActiveClientError,
    NotFoundError,
    OrderLockedError,
    OrderNotDeletableError,
    ReferencedError,
    UnknownSkuError,
    ValidationError,
)
from utils.labels import product_status_label
from utils.logger import get_logger

_logger = get_logger(__name__)

_PRODUCT_COLS = "pid, sku, brand, description, category, status, eta, images"
_CLIENT_COLS = "client_id, code, name, active, branch_count"


def _to_int(val) -> Optional[int]:
    try:
        return int(val)
    except (TypeError, ValueError):
        return None


def _clean(val) -> str:
    return str(val if val is not None else "").strip()


def _is_unique_violation(exc: aiosqlite.IntegrityError) -> bool:
    return "UNIQUE" in str(exc).upper()


def _row_to_client(row) -> models.Client:
    return models.Client(
        client_id=int(row[0]),
        code=row[1],
        name=row[2],
        active=bool(row[3]),
        branch_count=int(row[4]),
    )


def _row_to_product(row) -> models.Product:
    try:
        images = tuple(json.loads(row[7] or "[]"))
    except ValueError:
        images = ()
    return models.Product(
        pid=int(row[0]),
        sku=row[1],
        brand=row[2],
        description=row[3],
        category=row[4],
        status=row[5],
        eta=row[6],
        images=images,
    )


# ---------------------------
# Auth
# ---------------------------


async def login(username: str, password: str) -> Optional[models.User]:
    """Return the logged-in User, or None.

    ``admin`` is checked against the configured credential. Anybody else logs
    in with their client code and must be active; client passwords are not
    verified since there is no credential store yet.
    """
    username = _clean(username)
    if not username:
        return None
    if username == settings.ADMIN_USER:
        if password == settings.ADMIN_PASSWORD:
            return models.User(username=username, role="admin")
        return None
    client = await get_client_by_code(username)
    if client is None or not client.active:
        return None
    return models.User(username=username, role="client", client=client)


# ---------------------------
# Clients
# ---------------------------


async def list_clients() -> List[models.Client]:
    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT {_CLIENT_COLS} FROM clients ORDER BY client_id;"
        )
        rows = await cur.fetchall()
        await cur.close()
    return [_row_to_client(row) for row in rows]


async def get_client(client_id: int) -> Optional[models.Client]:
    async with connect() as conn:
        return await _fetch_client(conn, client_id)


async def get_client_by_code(code: str) -> Optional[models.Client]:
    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT {_CLIENT_COLS} FROM clients WHERE code = ?;", (_clean(code),)
        )
        row = await cur.fetchone()
        await cur.close()
    return _row_to_client(row) if row else None


async def _fetch_client(
    conn: aiosqlite.Connection, client_id: int
) -> Optional[models.Client]:
    cur = await conn.execute(
        f"SELECT {_CLIENT_COLS} FROM clients WHERE client_id = ?;", (client_id,)
    )
    row = await cur.fetchone()
    await cur.close()
    return _row_to_client(row) if row else None


async def _first_active_client(conn: aiosqlite.Connection) -> Optional[models.Client]:
    cur = await conn.execute(
        f"SELECT {_CLIENT_COLS} FROM clients WHERE active = 1 ORDER BY client_id LIMIT 1;"
    )
    row = await cur.fetchone()
    await cur.close()
    return _row_to_client(row) if row else None


def _validate_client_fields(fields: Mapping[str, Any]) -> Dict[str, Any]:
    name = _clean(fields.get("name"))
    code = _clean(fields.get("code"))
    if not name or not code:
        raise ValidationError("Name and code are required.")
    branch_count = _to_int(fields.get("branch_count", 1))
    if branch_count not in (1, 2, 3):
        raise ValidationError("Branch count must be 1, 2 or 3.")
    return {
        "name": name,
        "code": code,
        "active": 1 if fields.get("active", True) else 0,
        "branch_count": branch_count,
    }


async def save_client(
    fields: Mapping[str, Any], client_id: Optional[int] = None
) -> models.Client:
    """Create a client, or update it when ``client_id`` is given."""
    data = _validate_client_fields(fields)
    async with connect() as conn:
        try:
            if client_id:
                res = await conn.execute(
                    """
                    UPDATE clients
                    SET name = ?, code = ?, active = ?, branch_count = ?
                    WHERE client_id = ?;
                    """,
                    (data["name"], data["code"], data["active"], data["branch_count"], client_id),
                )
                if res.rowcount == 0:
                    raise NotFoundError(f"Client #{client_id} does not exist.")
            else:
                res = await conn.execute(
                    "INSERT INTO clients(name, code, active, branch_count) VALUES (?, ?, ?, ?);",
                    (data["name"], data["code"], data["active"], data["branch_count"]),
                )
                client_id = res.lastrowid
        except aiosqlite.IntegrityError as exc:
            if _is_unique_violation(exc):
                raise DuplicateError(
                    f"A client with code '{data['code']}' already exists.", exc
                ) from exc
            raise
        await conn.commit()
        return await _fetch_client(conn, client_id)


async def delete_client(client_id: int) -> None:
    async with connect() as conn:
        if await _fetch_client(conn, client_id) is None:
            raise NotFoundError(f"Client #{client_id} no longer exists.")
        cur = await conn.execute(
            "SELECT COUNT(*) FROM orders WHERE client_id = ?;", (client_id,)
        )
        (order_cnt,) = await cur.fetchone()
        await cur.close()
        if order_cnt:
            raise ReferencedError(
                f"Client #{client_id} has {order_cnt} order(s) and cannot be deleted."
            )
        await conn.execute("DELETE FROM clients WHERE client_id = ?;", (client_id,))
        await conn.commit()
    _logger.info(f"Client #{client_id} deleted")


# ---------------------------
# Products
# ---------------------------


async def list_products(
    text: Optional[str] = None,
    category: Optional[str] = None,
    status: Optional[str] = None,
) -> List[models.Product]:
    """
    Catalog listing ordered by pid.
    ``text`` is a case-insensitive substring over SKU, brand and description;
    ``category`` and ``status`` are exact filters.
    """
    where: List[str] = []
    params: List[Any] = []

    phrase = _clean(text).lower()
    if phrase:
        like = f"%{phrase}%"
        where.append("(LOWER(sku) LIKE ? OR LOWER(brand) LIKE ? OR LOWER(description) LIKE ?)")
        params.extend([like, like, like])
    if category:
        if category not in models.CATEGORIES:
            raise ValidationError(f"Unknown category '{category}'.")
        where.append("category = ?")
        params.append(category)
    if status:
        if status not in models.PRODUCT_STATUSES:
            raise ValidationError(f"Unknown product status '{status}'.")
        where.append("status = ?")
        params.append(status)

    where_clause = " AND ".join(where) if where else "1 = 1"
    async with connect() as conn:
        cur = await conn.execute(
            f"""
            SELECT {_PRODUCT_COLS}
            FROM products
            WHERE {where_clause}
            ORDER BY pid;
            """,
            tuple(params),
        )
        rows = await cur.fetchall()
        await cur.close()
    return [_row_to_product(row) for row in rows]


async def get_product(pid: int) -> Optional[models.Product]:
    """Fetch a product by pid."""
    async with connect() as conn:
        return await _fetch_product(conn, pid)


async def _fetch_product(
    conn: aiosqlite.Connection, pid: int
) -> Optional[models.Product]:
    cur = await conn.execute(
        f"SELECT {_PRODUCT_COLS} FROM products WHERE pid = ?;", (pid,)
    )
    row = await cur.fetchone()
    await cur.close()
    return _row_to_product(row) if row else None


async def get_products_by_sku(skus: Iterable[str]) -> Dict[str, models.Product]:
    async with connect() as conn:
        return await _fetch_products_by_sku(conn, skus)


async def _fetch_products_by_sku(
    conn: aiosqlite.Connection, skus: Iterable[str]
) -> Dict[str, models.Product]:
    wanted = list(dict.fromkeys(skus))
    if not wanted:
        return {}
    placeholders = ", ".join("?" * len(wanted))
    cur = await conn.execute(
        f"SELECT {_PRODUCT_COLS} FROM products WHERE sku IN ({placeholders});",
        tuple(wanted),
    )
    rows = await cur.fetchall()
    await cur.close()
    products = (_row_to_product(row) for row in rows)
    return {p.sku: p for p in products}


def _split_images(images) -> List[str]:
    if images is None:
        return []
    if isinstance(images, str):
        images = images.replace("\n", ",").split(",")
    return [s for s in (_clean(x) for x in images) if s]


def _validate_product_fields(fields: Mapping[str, Any]) -> Dict[str, Any]:
    sku = _clean(fields.get("sku"))
    brand = _clean(fields.get("brand"))
    description = _clean(fields.get("description"))
    if not sku:
        raise ValidationError("SKU is required.")
    if not brand:
        raise ValidationError("Brand is required.")
    if not description:
        raise ValidationError("Description is required.")

    category = fields.get("category")
    if category not in models.CATEGORIES:
        raise ValidationError("Invalid product category.")
    status = fields.get("status")
    if status not in models.PRODUCT_STATUSES:
        raise ValidationError("Invalid product status.")

    # an ETA only makes sense for products on their way
    eta = _clean(fields.get("eta")) if status == "incoming" else ""

    return {
        "sku": sku,
        "brand": brand,
        "description": description,
        "category": category,
        "status": status,
        "eta": eta or None,
        "images": json.dumps(_split_images(fields.get("images"))),
    }


async def save_product(
    fields: Mapping[str, Any], pid: Optional[int] = None
) -> models.Product:
    """Create a product, or update it when ``pid`` is given."""
    data = _validate_product_fields(fields)
    values = (
        data["sku"],
        data["brand"],
        data["description"],
        data["category"],
        data["status"],
        data["eta"],
        data["images"],
    )
    async with connect() as conn:
        try:
            if pid:
                res = await conn.execute(
                    """
                    UPDATE products
                    SET sku = ?, brand = ?, description = ?, category = ?,
                        status = ?, eta = ?, images = ?
                    WHERE pid = ?;
                    """,
                    values + (pid,),
                )
                if res.rowcount == 0:
                    raise NotFoundError(f"Product #{pid} does not exist.")
            else:
                res = await conn.execute(
                    """
                    INSERT INTO products(sku, brand, description, category, status, eta, images)
                    VALUES (?, ?, ?, ?, ?, ?, ?);
                    """,
                    values,
                )
                pid = res.lastrowid
        except aiosqlite.IntegrityError as exc:
            if _is_unique_violation(exc):
                raise DuplicateError(
                    f"A product with SKU '{data['sku']}' already exists.", exc
                ) from exc
            raise
        await conn.commit()
        return await _fetch_product(conn, pid)


async def delete_product(pid: int) -> None:
    """Delete a product that no order has ever referenced."""
    async with connect() as conn:
        if await _fetch_product(conn, pid) is None:
            raise NotFoundError(f"Product #{pid} no longer exists.")
        cur = await conn.execute(
            "SELECT COUNT(*) FROM order_items WHERE pid = ?;", (pid,)
        )
        (item_cnt,) = await cur.fetchone()
        await cur.close()
        if item_cnt:
            raise ReferencedError("The product appears in existing orders and cannot be deleted.")
        await conn.execute("DELETE FROM products WHERE pid = ?;", (pid,))
        await conn.commit()
    _logger.info(f"Product #{pid} deleted")


# ---------------------------
# Orders
# ---------------------------


def _validate_lines(lines: Sequence[models.OrderLineInput]) -> List[models.OrderLineInput]:
    """Structural checks, then drop the lines that order nothing."""
    if not lines:
        raise ValidationError("The order has no items.")
    for line in lines:
        if not _clean(line.sku):
            raise ValidationError("Every item needs a SKU.")
        for qty in (line.branch_a, line.branch_b, line.branch_c):
            if not isinstance(qty, int) or isinstance(qty, bool):
                raise ValidationError("Quantities must be whole numbers.")
            if qty < 0:
                raise ValidationError("Quantities cannot be negative.")
    kept = [line for line in lines if line.pieces > 0]
    if not kept:
        raise ValidationError("The order has no valid quantities (all are zero).")
    return kept


def _mask_branches(
    lines: Sequence[models.OrderLineInput], branch_count: int
) -> List[models.OrderLineInput]:
    """Zero the branches the client does not have and drop emptied lines."""
    masked = [
        models.OrderLineInput(
            sku=_clean(line.sku),
            branch_a=line.branch_a,
            branch_b=line.branch_b if branch_count >= 2 else 0,
            branch_c=line.branch_c if branch_count >= 3 else 0,
        )
        for line in lines
    ]
    kept = [line for line in masked if line.pieces > 0]
    if not kept:
        raise ValidationError(
            "The order has no valid quantities for the client's branches."
        )
    return kept


async def _resolve_skus(
    conn: aiosqlite.Connection, lines: Sequence[models.OrderLineInput]
) -> Dict[str, models.Product]:
    skus = list(dict.fromkeys(_clean(line.sku) for line in lines))
    products = await _fetch_products_by_sku(conn, skus)
    missing = [sku for sku in skus if sku not in products]
    if missing:
        raise UnknownSkuError(missing)
    return products


async def _resolve_client(
    conn: aiosqlite.Connection, client_id: Optional[int], allow_default: bool
) -> models.Client:
    if client_id is None:
        if not allow_default:
            raise ValidationError("The order needs a client.")
        client = await _first_active_client(conn)
        if client is None:
            raise NoActiveClientError()
        return client
    client = await _fetch_client(conn, client_id)
    if client is None:
        raise NotFoundError(f"Client #{client_id} does not exist.")
    if not client.active:
        raise ValidationError(f"Client {client.code} is not active.")
    return client


async def _insert_items(
    conn: aiosqlite.Connection,
    oid: int,
    lines: Sequence[models.OrderLineInput],
    products: Mapping[str, models.Product],
) -> None:
    for line_no, line in enumerate(lines, start=1):
        prod = products[line.sku]
        incoming = prod.status == "incoming"
        await conn.execute(
            """
            INSERT INTO order_items(oid, line_no, pid, branch_a, branch_b, branch_c,
                                    kind, status_text, eta_text)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                oid,
                line_no,
                prod.pid,
                line.branch_a,
                line.branch_b,
                line.branch_c,
                "reservation" if incoming else "normal",
                product_status_label(prod.status),
                prod.eta if incoming else None,
            ),
        )


async def create_order(
    lines: Sequence[models.OrderLineInput],
    client_id: Optional[int] = None,
    comment: Optional[str] = None,
    device: Optional[str] = None,
    when: Optional[datetime] = None,
    allow_default_client: Optional[bool] = None,
) -> models.Order:
    """
    Validate a cart and store it as a pending order, all or nothing.

    Without ``client_id`` the order goes to the first active client, but only
    when the development fallback is enabled.
    """
    kept = _validate_lines(lines)
    if allow_default_client is None:
        allow_default_client = settings.DEFAULT_CLIENT_FALLBACK
    when = when or datetime.now()

    async with connect() as conn:
        products = await _resolve_skus(conn, kept)
        client = await _resolve_client(conn, client_id, allow_default_client)
        kept = _mask_branches(kept, client.branch_count)

        res = await conn.execute(
            """
            INSERT INTO orders(client_id, created_at, status, comment, device)
            VALUES (?, ?, ?, ?, ?);
            """,
            (
                client.client_id,
                when.isoformat(sep=" ", timespec="seconds"),
                lifecycle.INITIAL_STATUS,
                _clean(comment) or None,
                _clean(device) or None,
            ),
        )
        oid = res.lastrowid
        await _insert_items(conn, oid, kept, products)
        await conn.commit()

        order = await _fetch_order(conn, oid)
    _logger.info(
        f"Order #{oid} created for client {client.code}: "
        f"{len(order.items)} item(s), {order.pieces} piece(s)"
    )
    return order


async def revise_order_items(
    oid: int,
    lines: Sequence[models.OrderLineInput],
    client_id: Optional[int] = None,
) -> models.Order:
    """
    Replace the items of a pending order. When ``client_id`` is given the
    order must belong to that client.
    """
    kept = _validate_lines(lines)
    async with connect() as conn:
        order = await _fetch_order(conn, oid)
        if order is None or (client_id is not None and order.client_id != client_id):
            raise NotFoundError(f"Order #{oid} not found.")
        if not lifecycle.can_edit(order.status):
            raise OrderLockedError()

        products = await _resolve_skus(conn, kept)
        kept = _mask_branches(kept, order.client.branch_count)

        # takes the write lock; fails if the order left pending since the read
        res = await conn.execute(
            "UPDATE orders SET status = status WHERE oid = ? AND status = ?;",
            (oid, lifecycle.INITIAL_STATUS),
        )
        if res.rowcount == 0:
            raise OrderLockedError()
        await conn.execute("DELETE FROM order_items WHERE oid = ?;", (oid,))
        await _insert_items(conn, oid, kept, products)
        await conn.commit()

        order = await _fetch_order(conn, oid)
    _logger.info(f"Order #{oid} revised: {len(order.items)} item(s)")
    return order


async def _fetch_orders(
    conn: aiosqlite.Connection, where_clause: str = "1 = 1", params: tuple = ()
) -> List[models.Order]:
    cur = await conn.execute(
        f"""
        SELECT o.oid, o.client_id, o.created_at, o.status, o.comment, o.device,
               c.client_id, c.code, c.name, c.active, c.branch_count
        FROM orders o
        JOIN clients c ON c.client_id = o.client_id
        WHERE {where_clause}
        ORDER BY o.created_at DESC, o.oid DESC;
        """,
        params,
    )
    order_rows = await cur.fetchall()
    await cur.close()
    if not order_rows:
        return []

    oids = [row[0] for row in order_rows]
    placeholders = ", ".join("?" * len(oids))
    cur = await conn.execute(
        f"""
        SELECT oi.oid, oi.line_no, oi.pid, p.sku, p.description,
               oi.branch_a, oi.branch_b, oi.branch_c, oi.kind, oi.status_text, oi.eta_text
        FROM order_items oi
        JOIN products p ON p.pid = oi.pid
        WHERE oi.oid IN ({placeholders})
        ORDER BY oi.oid, oi.line_no;
        """,
        tuple(oids),
    )
    item_rows = await cur.fetchall()
    await cur.close()

    items_by_oid: Dict[int, List[models.OrderItem]] = {oid: [] for oid in oids}
    for row in item_rows:
        items_by_oid[row[0]].append(
            models.OrderItem(
                oid=row[0],
                line_no=row[1],
                pid=row[2],
                sku=row[3],
                description=row[4],
                branch_a=row[5],
                branch_b=row[6],
                branch_c=row[7],
                kind=row[8],
                status_text=row[9],
                eta_text=row[10],
            )
        )

    return [
        models.Order(
            oid=row[0],
            client_id=row[1],
            created_at=datetime.fromisoformat(row[2]),
            status=row[3],
            comment=row[4],
            device=row[5],
            client=_row_to_client(row[6:11]),
            items=items_by_oid[row[0]],
        )
        for row in order_rows
    ]


async def _fetch_order(conn: aiosqlite.Connection, oid: int) -> Optional[models.Order]:
    orders = await _fetch_orders(conn, "o.oid = ?", (oid,))
    return orders[0] if orders else None


async def list_orders(client_id: Optional[int] = None) -> List[models.Order]:
    """All orders (or one client's), newest first, with client and items."""
    async with connect() as conn:
        if client_id is None:
            return await _fetch_orders(conn)
        return await _fetch_orders(conn, "o.client_id = ?", (client_id,))


async def get_order(oid: int) -> Optional[models.Order]:
    async with connect() as conn:
        return await _fetch_order(conn, oid)


async def advance_order_status(oid: int, target: Optional[str] = None) -> models.Order:
    """
    Move an order one step along pending -> preparing -> shipped.
    ``target``, when given, must be exactly the next status.
    """
    async with connect() as conn:
        cur = await conn.execute("SELECT status FROM orders WHERE oid = ?;", (oid,))
        row = await cur.fetchone()
        await cur.close()
        if not row:
            raise NotFoundError(f"Order #{oid} not found.")
        current = row[0]
        new_status = lifecycle.check_transition(current, target)

        # conditional on the status we read, so two advances cannot skip a step
        res = await conn.execute(
            "UPDATE orders SET status = ? WHERE oid = ? AND status = ?;",
            (new_status, oid, current),
        )
        if res.rowcount == 0:
            raise InvalidTransitionError(
                f"Order #{oid} was changed by someone else, reload and try again."
            )
        await conn.commit()
        order = await _fetch_order(conn, oid)
    _logger.info(f"Order #{oid}: {current} -> {new_status}")
    return order


async def delete_order(oid: int) -> None:
    """Delete a shipped order together with its items."""
    async with connect() as conn:
        cur = await conn.execute("SELECT status FROM orders WHERE oid = ?;", (oid,))
        row = await cur.fetchone()
        await cur.close()
        if not row:
            raise NotFoundError(f"Order #{oid} not found.")
        if not lifecycle.can_delete(row[0]):
            raise OrderNotDeletableError()
        await conn.execute("DELETE FROM order_items WHERE oid = ?;", (oid,))
        await conn.execute("DELETE FROM orders WHERE oid = ?;", (oid,))
        await conn.commit()
    _logger.info(f"Order #{oid} deleted")
