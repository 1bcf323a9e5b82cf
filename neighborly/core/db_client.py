"""SQLite entity store client with CRUD and conditional update operations."""

import asyncio
import json
import logging
import re
import threading
import weakref
from collections.abc import Awaitable
from datetime import datetime
from pathlib import Path
from typing import Any, TypeVar

import aiosqlite

from neighborly.core.config import settings


logger = logging.getLogger(__name__)

T = TypeVar("T")


class StoreError(RuntimeError):
    """Raised when the entity store fails to complete an operation."""


class RecordNotFoundError(StoreError, KeyError):
    """Raised when a record does not exist in the requested collection."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class StoreTimeoutError(StoreError, TimeoutError):
    """Raised when a store call exceeds its caller-supplied bound."""


class StoreConstraintError(StoreError):
    """Raised when a write violates a table constraint (unique index, CHECK)."""


def _validate_collection_name(collection: str) -> None:
    """Validate that a collection name contains only alphanumeric characters and underscores."""
    if not re.match(r"^[a-zA-Z_][a-zA-Z0-9_]*$", collection):
        msg = f"Invalid collection name: {collection}. Only alphanumeric characters and underscores are allowed."
        raise ValueError(msg)


def _validate_field_name(field: str) -> None:
    if not re.match(r"^[a-zA-Z_][a-zA-Z0-9_]*$", field):
        msg = f"Invalid field name: {field}"
        raise ValueError(msg)


def sanitize_param(value: str | int | float | bool | None) -> str:
    """Escape a value for safe embedding in filter queries via json.dumps."""
    return json.dumps(str(value))[1:-1]


def _convert_record_ids(record: dict[str, Any]) -> dict[str, Any]:
    """Convert integer ID and foreign key fields to strings for Pydantic compatibility."""
    converted = record.copy()
    for key, value in converted.items():
        if isinstance(value, int) and (key == "id" or key.endswith("_id")):
            converted[key] = str(value)
    return converted


def _parse_record_id(collection: str, record_id: str) -> int:
    """Translate an opaque record id into the integer primary key used by SQLite."""
    try:
        return int(record_id)
    except (TypeError, ValueError):
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg) from None


def _serialize_values(data: dict[str, Any]) -> list[Any]:
    values = []
    for val in data.values():
        if isinstance(val, datetime):
            values.append(val.isoformat())
        elif isinstance(val, dict | list):
            values.append(json.dumps(val))
        else:
            values.append(val)
    return values


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    path_str = db_path or settings.sqlite_db_path
    return Path(path_str).resolve()


async def call_with_timeout(awaitable: Awaitable[T], *, timeout: float | None) -> T:
    """Await a store call, converting an exceeded bound into StoreTimeoutError.

    A timeout of None waits indefinitely.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except TimeoutError as e:
        if isinstance(e, StoreTimeoutError):
            raise
        msg = f"Entity store call exceeded {timeout}s"
        logger.error("store_call_timeout", extra={"timeout": timeout})
        raise StoreTimeoutError(msg) from e


def _parse_value(value: str) -> str | int | bool:
    """Parse a string value to the appropriate Python type for SQLite."""
    if value.isdigit():
        return int(value)

    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False

    return value


def _parse_single_comparison(comparison: str) -> tuple[str, str | int | bool]:
    """Parse a single comparison expression into a SQL condition and parameter."""
    match = re.match(
        r"""(\w+)\s*(!=|=)\s*(['"])((?:\\.|(?!\3).)*)\3\s*$""",
        comparison,
    )
    if not match:
        msg = f"Invalid filter syntax: {comparison}"
        raise ValueError(msg)

    field = match.group(1)
    op = match.group(2)
    # Values arrive escaped by sanitize_param
    raw_value = re.sub(r"\\(.)", r"\1", match.group(4))

    return f"{field} {op} ?", _parse_value(raw_value)


def _split_and_conditions(filter_query: str) -> list[str]:
    """Split filter query by && outside of quoted values."""
    parts = []
    current = ""
    quote = ""
    escaped = False

    for char in filter_query:
        current += char
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif quote:
            if char == quote:
                quote = ""
        elif char in "'\"":
            quote = char
        elif current.endswith("&&"):
            parts.append(current[:-2].strip())
            current = ""

    if current.strip():
        parts.append(current.strip())

    return parts


def parse_filter(filter_query: str) -> tuple[str, list[str | int | bool]]:
    """Parse filter syntax (``field = "v" && field != "w"``) into a SQL WHERE clause and parameters."""
    if not filter_query:
        return "", []

    conditions = []
    params = []
    for part in _split_and_conditions(filter_query):
        cond, value = _parse_single_comparison(part)
        conditions.append(cond)
        params.append(value)

    return " AND ".join(conditions), params


def _parse_sort(sort: str) -> str:
    """Translate "-field" / "+field" / "field DESC" into a safe ORDER BY clause."""
    default = "id ASC"
    if not sort:
        return default

    sort = sort.strip()
    if sort.startswith(("-", "+")):
        direction = "DESC" if sort.startswith("-") else "ASC"
        sort = f"{sort[1:]} {direction}"

    if re.match(r"^[A-Za-z_][A-Za-z0-9_]*\s*(ASC|DESC)?$", sort, re.IGNORECASE):
        return f"{sort}, id ASC" if not sort.startswith("id ") else sort

    logger.warning("Invalid sort parameter, using default", extra={"sort": sort})
    return default


_db_connections: dict[tuple[int, int, str], aiosqlite.Connection] = {}
_db_lock = asyncio.Lock()
# Serializes execute+commit pairs on a shared connection
_write_locks: "weakref.WeakKeyDictionary[Any, asyncio.Lock]" = weakref.WeakKeyDictionary()


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Get or create a cached connection for the current thread, loop, and db path."""
    thread_id = threading.get_ident()
    loop = asyncio.get_running_loop()
    loop_id = id(loop)
    path = get_db_path(db_path)
    cache_key = (thread_id, loop_id, str(path))

    if cache_key in _db_connections:
        return _db_connections[cache_key]

    async with _db_lock:
        # Double-check after acquiring lock
        if cache_key in _db_connections:
            return _db_connections[cache_key]

        path.parent.mkdir(parents=True, exist_ok=True)

        conn = await aiosqlite.connect(str(path))
        await conn.execute("PRAGMA journal_mode = WAL")

        _db_connections[cache_key] = conn

        logger.info(
            "Created new SQLite connection",
            extra={"db_path": str(path), "thread_id": thread_id, "loop_id": loop_id},
        )
        return conn


async def close_connection(*, db_path: str | None = None) -> None:
    """Close the cached SQLite connection for the current thread, loop, and db path."""
    thread_id = threading.get_ident()
    loop_id = id(asyncio.get_running_loop())
    path = get_db_path(db_path)
    cache_key = (thread_id, loop_id, str(path))

    conn = _db_connections.pop(cache_key, None)
    if conn is None:
        return

    try:
        await conn.close()
        logger.info("Closed SQLite connection", extra={"db_path": str(path)})
    except Exception as e:
        logger.warning("Error closing SQLite connection", extra={"error": str(e), "db_path": str(path)})


async def _write(conn: aiosqlite.Connection, query: str, values: list[Any]) -> aiosqlite.Cursor:
    """Execute and commit one write statement as a unit.

    A write cancelled between execute and commit (e.g. by call_with_timeout)
    is rolled back so that the next commit on the shared connection cannot
    pick it up.
    """
    lock = _write_locks.setdefault(conn, asyncio.Lock())
    async with lock:
        try:
            cursor = await conn.execute(query, values)
            await conn.commit()
        except asyncio.CancelledError:
            await asyncio.shield(conn.rollback())
            logger.warning("Rolled back cancelled write", extra={"query": query})
            raise
        except aiosqlite.IntegrityError:
            await conn.rollback()
            raise
        return cursor


async def init_db(*, db_path: str | None = None) -> None:
    """Initialize the database schema by delegating to schema.init_db()."""
    from neighborly.core import schema

    await schema.init_db(db_path=db_path)


async def create_record(*, collection: str, data: dict[str, Any]) -> dict[str, Any]:
    """Insert a new record and return it with its assigned id."""
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        columns = list(data.keys())
        for column in columns:
            _validate_field_name(column)
        columns_str = ", ".join(columns)
        placeholders_str = ", ".join("?" for _ in columns)

        query = f"INSERT INTO {collection} ({columns_str}) VALUES ({placeholders_str})"  # noqa: S608 - names are validated
        cursor = await _write(conn, query, _serialize_values(data))

        record_id = cursor.lastrowid
        result = await get_record(collection=collection, record_id=str(record_id))

        logger.info("Created record", extra={"collection": collection, "record_id": record_id})
        return result
    except Exception as e:
        if isinstance(e, aiosqlite.OperationalError) and "no such table" in str(e):
            msg = f"Table '{collection}' does not exist. Call init_db() first."
            logger.error("Table not found", extra={"collection": collection})
            raise StoreError(msg) from e
        if isinstance(e, aiosqlite.IntegrityError):
            logger.warning("create_record_constraint", extra={"collection": collection, "error": str(e)})
            msg = f"Constraint violated in {collection}: {e}"
            raise StoreConstraintError(msg) from e
        logger.error("create_record_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Failed to create record in {collection}: {e}"
        raise StoreError(msg) from e


async def get_record(*, collection: str, record_id: str) -> dict[str, Any]:
    """Fetch a single record by ID, raising RecordNotFoundError if not found."""
    try:
        _validate_collection_name(collection)
        pk = _parse_record_id(collection, record_id)
        conn = await get_connection()

        query = f"SELECT * FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, (pk,))
        row = await cursor.fetchone()

        if row is None:
            msg = f"Record not found in {collection}: {record_id}"
            raise RecordNotFoundError(msg)

        columns = [description[0] for description in cursor.description]
        record = dict(zip(columns, row, strict=True))

        logger.debug("Retrieved record", extra={"collection": collection, "record_id": record_id})
        return _convert_record_ids(record)
    except RecordNotFoundError:
        raise
    except Exception as e:
        logger.error("get_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        msg = f"Failed to get record from {collection}: {e}"
        raise StoreError(msg) from e


async def update_record(*, collection: str, record_id: str, data: dict[str, Any]) -> dict[str, Any]:
    """Update a record by ID and return the updated record."""
    if not data:
        msg = "Empty update payload"
        raise ValueError(msg)

    try:
        _validate_collection_name(collection)
        pk = _parse_record_id(collection, record_id)
        conn = await get_connection()

        for key in data:
            _validate_field_name(key)
        set_clause = ", ".join(f"{key} = ?" for key in data)
        values = [*_serialize_values(data), pk]

        query = f"UPDATE {collection} SET {set_clause} WHERE id = ?"  # noqa: S608 - names are validated
        cursor = await _write(conn, query, values)

        if cursor.rowcount == 0:
            msg = f"Record not found in {collection}: {record_id}"
            raise RecordNotFoundError(msg)

        logger.info("Updated record", extra={"collection": collection, "record_id": record_id})
        return await get_record(collection=collection, record_id=record_id)
    except RecordNotFoundError:
        raise
    except Exception as e:
        if isinstance(e, aiosqlite.IntegrityError):
            logger.warning("update_record_constraint", extra={"collection": collection, "error": str(e)})
            msg = f"Constraint violated in {collection}: {e}"
            raise StoreConstraintError(msg) from e
        logger.error("update_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        msg = f"Failed to update record in {collection}: {e}"
        raise StoreError(msg) from e


async def update_record_if(
    *,
    collection: str,
    record_id: str,
    data: dict[str, Any],
    expected: dict[str, Any],
) -> dict[str, Any] | None:
    """Update a record only while every field in ``expected`` still holds.

    The condition and the write are a single UPDATE statement, so two callers
    racing on the same row cannot both succeed.

    Returns:
        The updated record, or None if the row exists but the condition no longer holds

    Raises:
        RecordNotFoundError: If the record does not exist
        StoreError: For other failures
    """
    if not data or not expected:
        msg = "Conditional update needs both a payload and an expected state"
        raise ValueError(msg)

    try:
        _validate_collection_name(collection)
        pk = _parse_record_id(collection, record_id)
        conn = await get_connection()

        for key in (*data, *expected):
            _validate_field_name(key)
        set_clause = ", ".join(f"{key} = ?" for key in data)
        where_clause = " AND ".join(f"{key} = ?" for key in expected)
        values = [*_serialize_values(data), pk, *_serialize_values(expected)]

        query = f"UPDATE {collection} SET {set_clause} WHERE id = ? AND {where_clause}"  # noqa: S608 - names are validated
        cursor = await _write(conn, query, values)
        matched = cursor.rowcount > 0
    except RecordNotFoundError:
        raise
    except Exception as e:
        logger.error(
            "update_record_if_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)}
        )
        msg = f"Failed to conditionally update record in {collection}: {e}"
        raise StoreError(msg) from e

    if not matched:
        # Raises RecordNotFoundError when the row is gone entirely
        await get_record(collection=collection, record_id=record_id)
        logger.info("Conditional update skipped", extra={"collection": collection, "record_id": record_id})
        return None

    logger.info("Conditionally updated record", extra={"collection": collection, "record_id": record_id})
    return await get_record(collection=collection, record_id=record_id)


async def delete_record(*, collection: str, record_id: str) -> None:
    """Delete a record by ID, raising RecordNotFoundError if not found."""
    try:
        _validate_collection_name(collection)
        pk = _parse_record_id(collection, record_id)
        conn = await get_connection()

        query = f"DELETE FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await _write(conn, query, [pk])

        if cursor.rowcount == 0:
            msg = f"Record not found in {collection}: {record_id}"
            raise RecordNotFoundError(msg)

        logger.info("Deleted record", extra={"collection": collection, "record_id": record_id})
    except RecordNotFoundError:
        raise
    except Exception as e:
        logger.error("delete_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        msg = f"Failed to delete record from {collection}: {e}"
        raise StoreError(msg) from e


async def list_records(
    *,
    collection: str,
    page: int = 1,
    per_page: int = 50,
    filter_query: str = "",
    sort: str = "",
) -> list[dict[str, Any]]:
    """List records with optional filtering, sorting, and pagination."""
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        where_clause = ""
        params: list[Any] = []
        if filter_query:
            where_clause, params = parse_filter(filter_query)
            where_clause = f"WHERE {where_clause}"

        order_by = _parse_sort(sort)
        offset = (page - 1) * per_page

        query = f"SELECT * FROM {collection} {where_clause} ORDER BY {order_by} LIMIT ? OFFSET ?"  # noqa: S608 - collection is validated
        params.extend([per_page, offset])

        cursor = await conn.execute(query, params)
        rows = await cursor.fetchall()

        columns = [description[0] for description in cursor.description]
        records = [_convert_record_ids(dict(zip(columns, row, strict=True))) for row in rows]

        logger.debug("Listed records", extra={"collection": collection, "count": len(records)})
        return records
    except Exception as e:
        logger.error("list_records_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Failed to list records from {collection}: {e}"
        raise StoreError(msg) from e


async def list_all_records(
    *,
    collection: str,
    filter_query: str = "",
    sort: str = "",
    per_page: int = 50,
) -> list[dict[str, Any]]:
    """Walk every page of a listing and return all matching records.

    Pages are fetched until one comes back shorter than ``per_page``.
    """
    if per_page < 1:
        msg = "per_page must be positive"
        raise ValueError(msg)

    records: list[dict[str, Any]] = []
    page = 1
    while True:
        batch = await list_records(
            collection=collection, page=page, per_page=per_page, filter_query=filter_query, sort=sort
        )
        records.extend(batch)
        if len(batch) < per_page:
            break
        page += 1

    logger.debug("Listed all records", extra={"collection": collection, "count": len(records), "pages": page})
    return records


async def get_first_record(*, collection: str, filter_query: str) -> dict[str, Any] | None:
    """Return the first record matching the filter, or None."""
    records = await list_records(collection=collection, filter_query=filter_query, per_page=1)
    return records[0] if records else None
