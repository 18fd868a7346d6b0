"""SQLite database client wrapper with CRUD operations."""

import asyncio
import json
import logging
import re
import sqlite3
import threading
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, NoReturn

import aiosqlite

from src.core.config import settings


logger = logging.getLogger(__name__)


class DatabaseError(RuntimeError):
    """Raised when a store operation fails unexpectedly."""


class RecordNotFoundError(KeyError):
    """Raised when a record does not exist."""


class UniqueConstraintError(DatabaseError):
    """Raised when a write violates a UNIQUE constraint."""


# Columns stored as JSON text
_JSON_FIELDS = {"audit_log", "location"}


def _validate_collection_name(collection: str) -> None:
    """Validate that a collection name contains only alphanumeric characters and underscores."""
    if not re.match(r"^[a-zA-Z_][a-zA-Z0-9_]*$", collection):
        msg = f"Invalid collection name: {collection}. Only alphanumeric characters and underscores are allowed."
        raise ValueError(msg)


def sanitize_param(value: str | int | float | bool | None) -> str:
    """Escape a value for safe embedding in filter queries via json.dumps."""
    return json.dumps(str(value))[1:-1]


def now_iso() -> str:
    """Current UTC time as an ISO 8601 string."""
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def _parse_record_id(record_id: str, collection: str) -> int:
    if not str(record_id).isdigit():
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg)
    return int(record_id)


def _convert_record(record: dict[str, Any]) -> dict[str, Any]:
    """Convert integer ID and foreign key fields to strings and decode JSON columns."""
    converted = record.copy()
    for key, value in converted.items():
        if isinstance(value, int) and (key == "id" or key.endswith("_id")):
            converted[key] = str(value)
        elif key in _JSON_FIELDS and isinstance(value, str):
            converted[key] = json.loads(value)
    return converted


def _to_db_value(val: Any) -> Any:
    if isinstance(val, datetime):
        return val.isoformat()
    if isinstance(val, dict | list):
        return json.dumps(val)
    return val


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    path_str = db_path or settings.sqlite_db_path
    return Path(path_str).resolve()


def _parse_value(value: str, *, is_like: bool = False) -> str | int | float | bool | None:
    """Parse a string value to the appropriate Python type for SQLite."""
    if is_like:
        escaped = value.replace("%", "\\%").replace("_", "\\_")
        return f"%{escaped}%"

    if value.isdigit():
        return int(value)
    if value.replace(".", "", 1).isdigit():
        return float(value)

    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False

    return value


def _get_sql_operator(op: str) -> str:
    """Map filter operator to SQL operator."""
    op_map = {
        "=": "=",
        "!=": "!=",
        ">": ">",
        "<": "<",
        ">=": ">=",
        "<=": "<=",
        "~": "LIKE",
    }
    sql_op = op_map.get(op)
    if not sql_op:
        msg = f"Unsupported operator: {op}"
        raise ValueError(msg)
    return sql_op


def _parse_single_comparison(comparison: str) -> tuple[str, str | int | float | bool | None]:
    """Parse a single comparison expression into a SQL condition and parameter."""
    match = re.match(
        r"""(\w+)\s*(!=|>=|<=|=|>|<|~)\s*(['"])([^'"]*)\3""",
        comparison,
    )
    if not match:
        msg = f"Invalid filter syntax: {comparison}"
        raise ValueError(msg)

    field = match.group(1)
    op = match.group(2)
    raw_value = match.group(4)

    sql_op = _get_sql_operator(op)
    is_like = sql_op == "LIKE"
    value = _parse_value(raw_value, is_like=is_like)

    if is_like:
        return f"{field} LIKE ? ESCAPE '\\'", value
    return f"{field} {sql_op} ?", value


def _parse_or_group(or_group: str) -> tuple[str, list[str | int | float | bool | None]]:
    """Parse a parenthesized OR group into a SQL condition and parameters."""
    inner = or_group[1:-1]
    or_parts = [p.strip() for p in inner.split("||")]
    or_conditions = []
    or_params = []

    for part in or_parts:
        cond, value = _parse_single_comparison(part)
        or_conditions.append(cond)
        or_params.append(value)

    return f"({' OR '.join(or_conditions)})", or_params


def _split_and_conditions(filter_query: str) -> list[str]:
    """Split filter query by && while preserving parenthesized groups."""
    parts = []
    current = ""
    paren_depth = 0

    for char in filter_query:
        if char == "(":
            paren_depth += 1
        elif char == ")":
            paren_depth -= 1

        current += char

        if paren_depth == 0 and current.endswith("&&"):
            parts.append(current[:-2].strip())
            current = ""

    if current.strip():
        parts.append(current.strip())

    return parts


def parse_filter(filter_query: str) -> tuple[str, list[str | int | float | bool | None]]:
    """Parse filter syntax into a SQL WHERE clause and parameter list.

    Syntax: ``field = "value" && (other = "a" || other = "b")``.
    """
    if not filter_query:
        return "", []

    parts = _split_and_conditions(filter_query)
    conditions = []
    params = []

    for raw_part in parts:
        part = raw_part.strip()

        if part.startswith("(") and part.endswith(")"):
            cond, cond_params = _parse_or_group(part)
            conditions.append(cond)
            params.extend(cond_params)
        else:
            cond, value = _parse_single_comparison(part)
            conditions.append(cond)
            params.append(value)

    return " AND ".join(conditions), params


def _build_where(filter_query: str, where: dict[str, Any] | None) -> tuple[str, list[Any]]:
    """Combine a filter string with ``field = ?`` equality conditions.

    Values in ``where`` are bound as parameters and never parsed, so they may
    contain quotes or ``&&``.
    """
    clause, params = parse_filter(filter_query)
    conditions = [clause] if clause else []
    params = list(params)

    for field, value in (where or {}).items():
        if not re.match(r"^[A-Za-z_][A-Za-z0-9_]*$", field):
            msg = f"Invalid field name: {field}"
            raise ValueError(msg)
        conditions.append(f"{field} = ?")
        params.append(_to_db_value(value))

    return " AND ".join(conditions), params


def _parse_sort(sort: str) -> str:
    """Translate ``field`` / ``-field`` into an ORDER BY clause."""
    safe_sort = "id ASC"
    if sort:
        if re.match(r"^-?[A-Za-z_][A-Za-z0-9_]*$", sort.strip()):
            field = sort.strip()
            # id breaks ties between rows written in the same instant
            safe_sort = f"{field[1:]} DESC, id DESC" if field.startswith("-") else f"{field} ASC, id ASC"
        else:
            logger.warning("Invalid sort parameter, using default", extra={"sort": sort})
    return safe_sort


_db_connections: dict[tuple[int, int, str], aiosqlite.Connection] = {}
_db_lock = asyncio.Lock()

# Dedicated connection of the transaction running in the current task, if any
_tx_connection: ContextVar[aiosqlite.Connection | None] = ContextVar("_tx_connection", default=None)


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Get or create a cached connection for the current thread, loop, and db path.

    Inside ``transaction()`` the transaction's own connection is returned instead.
    """
    tx_conn = _tx_connection.get()
    if tx_conn is not None:
        return tx_conn

    thread_id = threading.get_ident()
    loop = asyncio.get_event_loop()
    loop_id = id(loop)
    path = get_db_path(db_path)
    cache_key = (thread_id, loop_id, str(path))

    if cache_key in _db_connections:
        cached_conn = _db_connections[cache_key]
        if not loop.is_closed():
            return cached_conn
        async with _db_lock:
            _db_connections.pop(cache_key, None)

    async with _db_lock:
        # Double-check after acquiring lock
        if cache_key in _db_connections:
            return _db_connections[cache_key]

        path.parent.mkdir(parents=True, exist_ok=True)

        # Autocommit; multi-statement units go through transaction()
        conn = await aiosqlite.connect(str(path), isolation_level=None)
        await conn.execute("PRAGMA foreign_keys = ON")
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
    loop = asyncio.get_event_loop()
    loop_id = id(loop)
    path = get_db_path(db_path)
    cache_key = (thread_id, loop_id, str(path))

    if cache_key not in _db_connections:
        return

    try:
        async with _db_lock:
            if cache_key in _db_connections:
                conn = _db_connections[cache_key]
                await conn.close()
                del _db_connections[cache_key]
                logger.info(
                    "Closed SQLite connection",
                    extra={"thread_id": thread_id, "loop_id": loop_id, "db_path": str(path)},
                )
    except Exception as e:
        logger.warning(
            "Error closing SQLite connection",
            extra={"error": str(e), "thread_id": thread_id, "loop_id": loop_id},
        )


async def _commit(conn: aiosqlite.Connection) -> None:
    """Commit unless the connection belongs to an open transaction."""
    if conn is not _tx_connection.get():
        await conn.commit()


@asynccontextmanager
async def transaction(*, db_path: str | None = None) -> AsyncIterator[None]:
    """Run the enclosed db_client calls as one atomic unit.

    Uses a dedicated connection so concurrent requests never share the
    transaction. Commits on success, rolls back on any exception.
    """
    if _tx_connection.get() is not None:
        # Nested: join the outer transaction
        yield
        return

    path = get_db_path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = await aiosqlite.connect(str(path), isolation_level=None)
    await conn.execute("PRAGMA foreign_keys = ON")
    token = _tx_connection.set(conn)
    try:
        await conn.execute("BEGIN IMMEDIATE")
        try:
            yield
        except BaseException:
            await conn.rollback()
            logger.warning("Transaction rolled back", extra={"db_path": str(path)})
            raise
        await conn.commit()
    finally:
        _tx_connection.reset(token)
        await conn.close()


async def init_db(*, db_path: str | None = None) -> None:
    """Initialize the database schema by delegating to schema.init_db()."""
    from src.core import schema

    await schema.init_db(db_path=db_path)


def _raise_database_error(operation: str, collection: str, e: Exception) -> NoReturn:
    if isinstance(e, aiosqlite.OperationalError) and "no such table" in str(e):
        msg = f"Table '{collection}' does not exist. Call init_db() first."
        logger.error("Table not found", extra={"collection": collection})
        raise DatabaseError(msg) from e
    if isinstance(e, sqlite3.IntegrityError) and "UNIQUE" in str(e):
        msg = f"Duplicate value in {collection}: {e}"
        raise UniqueConstraintError(msg) from e
    logger.error(f"{operation}_failed", extra={"collection": collection, "error": str(e)})
    msg = f"Failed to {operation.replace('_', ' ')} in {collection}: {e}"
    raise DatabaseError(msg) from e


async def create_record(*, collection: str, data: dict[str, Any]) -> dict[str, Any]:
    """Insert a new record and return it with its assigned id and timestamps."""
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        now = now_iso()
        row = {"created": now, "updated": now, **data}

        columns = list(row.keys())
        columns_str = ", ".join(columns)
        placeholders_str = ", ".join("?" for _ in columns)
        values = [_to_db_value(row[key]) for key in columns]

        query = f"INSERT INTO {collection} ({columns_str}) VALUES ({placeholders_str})"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, values)
        await _commit(conn)

        record_id = cursor.lastrowid
        result = await get_record(collection=collection, record_id=str(record_id))

        logger.info("Created record", extra={"collection": collection, "record_id": record_id})
        return result
    except (RecordNotFoundError, DatabaseError):
        raise
    except Exception as e:
        _raise_database_error("create_record", collection, e)


async def get_record(*, collection: str, record_id: str) -> dict[str, Any]:
    """Fetch a single record by ID, raising RecordNotFoundError if not found."""
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        query = f"SELECT * FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, (_parse_record_id(record_id, collection),))
        row = await cursor.fetchone()

        if row is None:
            msg = f"Record not found in {collection}: {record_id}"
            raise RecordNotFoundError(msg)

        columns = [description[0] for description in cursor.description]
        record = dict(zip(columns, row, strict=True))

        logger.debug("Retrieved record", extra={"collection": collection, "record_id": record_id})
        return _convert_record(record)
    except RecordNotFoundError:
        raise
    except Exception as e:
        logger.error("get_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        msg = f"Failed to get record from {collection}: {e}"
        raise DatabaseError(msg) from e


async def update_record(*, collection: str, record_id: str, data: dict[str, Any]) -> dict[str, Any]:
    """Update a record by ID and return the updated record."""
    updated = await update_record_if(collection=collection, record_id=record_id, data=data, expected={})
    if updated is None:
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg)
    return updated


async def update_record_if(
    *,
    collection: str,
    record_id: str,
    data: dict[str, Any],
    expected: dict[str, Any],
) -> dict[str, Any] | None:
    """Update a record only if its current values match ``expected``.

    The check and the write are one ``UPDATE ... WHERE`` statement, so two
    concurrent callers expecting the same value cannot both succeed.

    Returns:
        The updated record, or None if the record exists but did not match

    Raises:
        RecordNotFoundError: If the record does not exist
    """
    if not data:
        msg = "Empty update payload"
        raise ValueError(msg)

    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        row = {**data, "updated": now_iso()}
        set_clause = ", ".join(f"{key} = ?" for key in row)
        values = [_to_db_value(val) for val in row.values()]

        where_clause = "id = ?"
        values.append(_parse_record_id(record_id, collection))
        for key, val in expected.items():
            where_clause += f" AND {key} = ?"
            values.append(_to_db_value(val))

        query = f"UPDATE {collection} SET {set_clause} WHERE {where_clause}"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, values)
        await _commit(conn)

        if cursor.rowcount == 0:
            # Raises RecordNotFoundError when the row is gone
            await get_record(collection=collection, record_id=record_id)
            logger.info(
                "Conditional update did not match",
                extra={"collection": collection, "record_id": record_id, "expected": list(expected)},
            )
            return None

        logger.info("Updated record", extra={"collection": collection, "record_id": record_id})
        return await get_record(collection=collection, record_id=record_id)
    except (RecordNotFoundError, DatabaseError):
        raise
    except Exception as e:
        _raise_database_error("update_record", collection, e)


async def delete_record(*, collection: str, record_id: str) -> None:
    """Delete a record by ID, raising RecordNotFoundError if not found."""
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        query = f"DELETE FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, (_parse_record_id(record_id, collection),))
        await _commit(conn)

        if cursor.rowcount == 0:
            msg = f"Record not found in {collection}: {record_id}"
            raise RecordNotFoundError(msg)

        logger.info("Deleted record", extra={"collection": collection, "record_id": record_id})
    except RecordNotFoundError:
        raise
    except Exception as e:
        logger.error("delete_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        msg = f"Failed to delete record from {collection}: {e}"
        raise DatabaseError(msg) from e


async def delete_records(*, collection: str, filter_query: str) -> int:
    """Delete every record matching the filter and return how many were removed."""
    if not filter_query:
        msg = "Refusing to delete without a filter"
        raise ValueError(msg)

    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        where_clause, params = parse_filter(filter_query)
        query = f"DELETE FROM {collection} WHERE {where_clause}"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, params)
        await _commit(conn)

        logger.info("Deleted records", extra={"collection": collection, "count": cursor.rowcount})
        return cursor.rowcount
    except Exception as e:
        logger.error("delete_records_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Failed to delete records from {collection}: {e}"
        raise DatabaseError(msg) from e


async def list_records(
    *,
    collection: str,
    page: int = 1,
    per_page: int | None = 50,
    filter_query: str = "",
    where: dict[str, Any] | None = None,
    sort: str = "",
) -> list[dict[str, Any]]:
    """List records with optional filtering, sorting (``-field`` for descending), and paging.

    ``per_page=None`` returns every matching record.
    """
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        where_clause, params = _build_where(filter_query, where)
        if where_clause:
            where_clause = f"WHERE {where_clause}"

        safe_sort = _parse_sort(sort)
        query = f"SELECT * FROM {collection} {where_clause} ORDER BY {safe_sort}"  # noqa: S608 - collection is validated
        if per_page is not None:
            query += " LIMIT ? OFFSET ?"
            params.extend([per_page, (page - 1) * per_page])

        cursor = await conn.execute(query, params)
        rows = await cursor.fetchall()

        columns = [description[0] for description in cursor.description]
        records = [_convert_record(dict(zip(columns, row, strict=True))) for row in rows]

        logger.debug("Listed records", extra={"collection": collection, "count": len(records)})
        return records
    except Exception as e:
        logger.error("list_records_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Failed to list records from {collection}: {e}"
        raise DatabaseError(msg) from e


async def get_first_record(
    *,
    collection: str,
    filter_query: str = "",
    where: dict[str, Any] | None = None,
) -> dict[str, Any] | None:
    """Return the first record matching the filter and ``where`` equalities, or None."""
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        where_clause, params = _build_where(filter_query, where)

        if where_clause:
            query = f"SELECT * FROM {collection} WHERE {where_clause} LIMIT 1"  # noqa: S608 - collection is validated
        else:
            query = f"SELECT * FROM {collection} LIMIT 1"  # noqa: S608 - collection is validated

        cursor = await conn.execute(query, params)
        row = await cursor.fetchone()

        if row is None:
            return None

        columns = [description[0] for description in cursor.description]
        record = dict(zip(columns, row, strict=True))

        return _convert_record(record)
    except Exception as e:
        logger.error(
            "get_first_record_failed", extra={"collection": collection, "filter_query": filter_query, "error": str(e)}
        )
        msg = f"Failed to get first record from {collection}: {e}"
        raise DatabaseError(msg) from e
