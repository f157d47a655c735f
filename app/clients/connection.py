"""
Process-wide cache of durable store handles.

Serverless runtimes reuse a warm process across invocations, so the first
invocation builds the store handle and later ones pick it up without
reconnecting. Handles are never torn down.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Union
from urllib.parse import parse_qs, urlsplit

from app.clients.dynamodb import DynamoDBClient
from app.clients.sqlite_store import SQLiteStore
from app.core.errors import PersistenceError

logger = logging.getLogger(__name__)

ConnectionHandle = Union[SQLiteStore, DynamoDBClient]


_connections: Dict[str, ConnectionHandle] = {}
_lock = threading.Lock()


def _connect_sqlite(uri: str) -> SQLiteStore:
    path = uri[len("sqlite:///"):]
    if not path:
        raise PersistenceError("SQLite store URI must include a file path.")
    return SQLiteStore(path)


def _connect_dynamodb(uri: str) -> DynamoDBClient:
    parts = urlsplit(uri)
    table_name = parts.netloc or parts.path.lstrip("/")
    if not table_name:
        raise PersistenceError("DynamoDB store URI must include a table name.")
    region = parse_qs(parts.query).get("region", ["us-east-1"])[0]
    return DynamoDBClient(table_name, region_name=region)


_CONNECTORS: Dict[str, Callable[[str], ConnectionHandle]] = {
    "sqlite": _connect_sqlite,
    "dynamodb": _connect_dynamodb,
}


def _open(uri: str) -> ConnectionHandle:
    scheme = uri.split(":", 1)[0].lower()
    connector = _CONNECTORS.get(scheme)
    if connector is None:
        raise PersistenceError(f"Unsupported verification store scheme: {scheme!r}")
    try:
        return connector(uri)
    except PersistenceError:
        raise
    except Exception as exc:
        raise PersistenceError(f"Failed to open {scheme} store.") from exc


def get_connection(uri: str) -> ConnectionHandle:
    """
    Return the store handle for ``uri``, opening it on first use.

    The lookup is repeated under the lock so concurrent first callers wait for
    the one in-flight initialization instead of opening a second handle.
    """
    handle = _connections.get(uri)
    if handle is not None:
        return handle

    with _lock:
        handle = _connections.get(uri)
        if handle is None:
            handle = _open(uri)
            _connections[uri] = handle
            logger.info("Opened verification store", extra={"scheme": uri.split(":", 1)[0]})
    return handle


def reset_connections() -> None:
    """Forget cached handles. Only meant for tests."""
    with _lock:
        _connections.clear()


__all__ = ["ConnectionHandle", "get_connection", "reset_connections"]
