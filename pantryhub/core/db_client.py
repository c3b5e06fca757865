"""SQLite item store with key/index lookups over JSON attribute maps."""

import asyncio
import json
import logging
import threading
from pathlib import Path

import aiosqlite

from pantryhub.core.config import settings
from pantryhub.core.errors import StorageError
from pantryhub.core.schema import TABLES, AttributeMap, TableDefinition, create_index_sql, create_table_sql, get_table


logger = logging.getLogger(__name__)


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    path_str = db_path or settings.sqlite_db_path
    return Path(path_str).resolve()


def _string_attribute(item: AttributeMap, attribute: str) -> str | None:
    """Return the string value of a key or index attribute, or None if absent."""
    value = item.get(attribute)
    if not isinstance(value, dict):
        return None
    text = value.get("S")
    return text if isinstance(text, str) else None


def _key_values(table: TableDefinition, key: dict[str, str]) -> list[str]:
    """Order the values of a primary key, rejecting partial or unknown keys."""
    if set(key) != set(table.key_attributes):
        msg = f"Key for {table.name} must contain exactly {list(table.key_attributes)}, got {sorted(key)}"
        raise ValueError(msg)
    return [key[attribute] for attribute in table.key_attributes]


def _decode_item(table: TableDefinition, raw: str) -> AttributeMap:
    try:
        item = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.error("item_decode_failed", extra={"table": table.name})
        msg = f"Stored item in {table.name} is not valid JSON"
        raise StorageError(msg) from e
    if not isinstance(item, dict):
        msg = f"Stored item in {table.name} is not an attribute map"
        raise StorageError(msg)
    return item


_db_connections: dict[tuple[int, int, str], tuple[asyncio.AbstractEventLoop, aiosqlite.Connection]] = {}


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Get or create a cached connection for the current thread, loop, and db path."""
    thread_id = threading.get_ident()
    loop = asyncio.get_running_loop()
    loop_id = id(loop)
    path = get_db_path(db_path)
    cache_key = (thread_id, loop_id, str(path))

    cached = _db_connections.get(cache_key)
    if cached is not None:
        cached_loop, cached_conn = cached
        if cached_loop is loop:
            return cached_conn
        # A closed loop's id was reused, drop the stale connection
        _db_connections.pop(cache_key, None)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        conn = await aiosqlite.connect(str(path))
        await conn.execute("PRAGMA journal_mode = WAL")
    except (aiosqlite.Error, OSError) as e:
        logger.error("db_connect_failed", extra={"db_path": str(path), "error": str(e)})
        msg = f"Failed to open item store at {path}"
        raise StorageError(msg) from e

    # Another task may have connected while this one was awaiting
    existing = _db_connections.get(cache_key)
    if existing is not None and existing[0] is loop:
        await conn.close()
        return existing[1]

    _db_connections[cache_key] = (loop, conn)
    logger.info(
        "Created new SQLite connection",
        extra={"db_path": str(path), "thread_id": thread_id, "loop_id": loop_id},
    )
    return conn


async def close_connection(*, db_path: str | None = None) -> None:
    """Close the cached SQLite connection for the current thread, loop, and db path."""
    thread_id = threading.get_ident()
    loop = asyncio.get_running_loop()
    path = get_db_path(db_path)
    cache_key = (thread_id, id(loop), str(path))

    cached = _db_connections.pop(cache_key, None)
    if cached is None:
        return

    try:
        await cached[1].close()
        logger.info("Closed SQLite connection", extra={"thread_id": thread_id, "db_path": str(path)})
    except aiosqlite.Error as e:
        logger.warning("Error closing SQLite connection", extra={"error": str(e), "db_path": str(path)})


async def init_db(*, db_path: str | None = None) -> None:
    """Create every missing table and secondary index. Safe to call repeatedly."""
    conn = await get_connection(db_path=db_path)
    try:
        for table in TABLES.values():
            await conn.execute(create_table_sql(table))
            for index in table.indexes:
                await conn.execute(create_index_sql(table, index))
        await conn.commit()
    except aiosqlite.Error as e:
        logger.error("init_db_failed", extra={"error": str(e)})
        msg = f"Failed to provision tables: {e}"
        raise StorageError(msg) from e

    logger.info("Tables provisioned", extra={"tables": list(TABLES)})


async def put_item(*, table: str, item: AttributeMap) -> None:
    """Write an item, replacing any existing item with the same primary key."""
    definition = get_table(table)

    values = []
    for attribute in definition.indexed_attributes:
        value = _string_attribute(item, attribute)
        if value is None and attribute in definition.key_attributes:
            msg = f"Item for {table} is missing string key attribute '{attribute}'"
            raise ValueError(msg)
        values.append(value)
    values.append(json.dumps(item))

    columns = ", ".join(f'"{attribute}"' for attribute in definition.indexed_attributes)
    placeholders = ", ".join("?" for _ in range(len(definition.indexed_attributes) + 1))
    query = f'INSERT OR REPLACE INTO "{table}" ({columns}, item) VALUES ({placeholders})'  # noqa: S608 - table is validated

    try:
        conn = await get_connection()
        await conn.execute(query, values)
        await conn.commit()
    except aiosqlite.Error as e:
        logger.error("put_item_failed", extra={"table": table, "error": str(e)})
        msg = f"Failed to put item in {table}"
        raise StorageError(msg) from e

    logger.info("Put item", extra={"table": table})


async def get_item(*, table: str, key: dict[str, str]) -> AttributeMap | None:
    """Fetch a single item by primary key, returning None if it does not exist."""
    definition = get_table(table)
    key_values = _key_values(definition, key)
    where_clause = " AND ".join(f'"{attribute}" = ?' for attribute in definition.key_attributes)
    query = f'SELECT item FROM "{table}" WHERE {where_clause}'  # noqa: S608 - table is validated

    try:
        conn = await get_connection()
        cursor = await conn.execute(query, key_values)
        row = await cursor.fetchone()
    except aiosqlite.Error as e:
        logger.error("get_item_failed", extra={"table": table, "error": str(e)})
        msg = f"Failed to get item from {table}"
        raise StorageError(msg) from e

    if row is None:
        return None
    return _decode_item(definition, row[0])


async def delete_item(*, table: str, key: dict[str, str]) -> bool:
    """Delete an item by primary key. Returns False if there was nothing to delete."""
    definition = get_table(table)
    key_values = _key_values(definition, key)
    where_clause = " AND ".join(f'"{attribute}" = ?' for attribute in definition.key_attributes)
    query = f'DELETE FROM "{table}" WHERE {where_clause}'  # noqa: S608 - table is validated

    try:
        conn = await get_connection()
        cursor = await conn.execute(query, key_values)
        await conn.commit()
    except aiosqlite.Error as e:
        logger.error("delete_item_failed", extra={"table": table, "error": str(e)})
        msg = f"Failed to delete item from {table}"
        raise StorageError(msg) from e

    deleted = cursor.rowcount > 0
    logger.info("Deleted item", extra={"table": table, "deleted": deleted})
    return deleted


async def query(
    *,
    table: str,
    index: str,
    partition_value: str,
    sort_value: str | None = None,
) -> list[AttributeMap]:
    """Return the items whose index partition (and optionally sort) attribute matches.

    Items come back in index sort-key order, then primary-key order.
    """
    definition = get_table(table)
    index_definition = definition.get_index(index)

    conditions = [f'"{index_definition.partition_key}" = ?']
    params = [partition_value]
    if sort_value is not None:
        if index_definition.sort_key is None:
            msg = f"Index {index} on {table} has no sort key"
            raise ValueError(msg)
        conditions.append(f'"{index_definition.sort_key}" = ?')
        params.append(sort_value)

    order_columns = [index_definition.sort_key] if index_definition.sort_key else []
    order_columns.extend(attribute for attribute in definition.key_attributes if attribute not in order_columns)
    order_by = ", ".join(f'"{attribute}"' for attribute in order_columns)

    sql = f'SELECT item FROM "{table}" WHERE {" AND ".join(conditions)} ORDER BY {order_by}'  # noqa: S608 - table is validated

    try:
        conn = await get_connection()
        cursor = await conn.execute(sql, params)
        rows = await cursor.fetchall()
    except aiosqlite.Error as e:
        logger.error("query_failed", extra={"table": table, "index": index, "error": str(e)})
        msg = f"Failed to query {index} on {table}"
        raise StorageError(msg) from e

    items = [_decode_item(definition, row[0]) for row in rows]
    logger.info("Queried items", extra={"table": table, "index": index, "count": len(items)})
    return items


async def scan(*, table: str) -> list[AttributeMap]:
    """Return every item in a table in primary-key order."""
    definition = get_table(table)
    order_by = ", ".join(f'"{attribute}"' for attribute in definition.key_attributes)
    sql = f'SELECT item FROM "{table}" ORDER BY {order_by}'  # noqa: S608 - table is validated

    try:
        conn = await get_connection()
        cursor = await conn.execute(sql)
        rows = await cursor.fetchall()
    except aiosqlite.Error as e:
        logger.error("scan_failed", extra={"table": table, "error": str(e)})
        msg = f"Failed to scan {table}"
        raise StorageError(msg) from e

    items = [_decode_item(definition, row[0]) for row in rows]
    logger.info("Scanned items", extra={"table": table, "count": len(items)})
    return items
