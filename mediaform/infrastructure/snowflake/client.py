"""
Snowflake connections for the submission record store.

create_snowflake_connection hands out a real connection (password or
key-pair auth) or an in-memory one whose cursor understands exactly the
statements FormRepository issues.
"""

import base64
import logging
import threading
from contextlib import contextmanager
from typing import Generator, Optional

from .repositories.forms import SnowflakeConfig, SnowflakeConnection

logger = logging.getLogger(__name__)


class SnowflakeConnectionError(Exception):
    """The record store could not be reached."""
    pass


def _load_private_key(
    key_path: Optional[str] = None,
    key_base64: Optional[str] = None,
) -> bytes:
    """Unencrypted PEM key, from a file or base64 text, as PKCS8 DER bytes."""
    from cryptography.hazmat.backends import default_backend
    from cryptography.hazmat.primitives import serialization

    if key_path:
        with open(key_path, 'rb') as key_file:
            pem = key_file.read()
    elif key_base64:
        pem = base64.b64decode(key_base64)
    else:
        raise SnowflakeConnectionError("No private key configured")

    key = serialization.load_pem_private_key(pem, password=None, backend=default_backend())
    return key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def _connect_params(config: SnowflakeConfig) -> dict:
    params = {
        'account': config.account,
        'user': config.user,
        'database': config.database,
        'schema': config.schema,
        'warehouse': config.warehouse,
        'role': config.role,
    }

    if config.private_key_path or config.private_key_base64:
        params['private_key'] = _load_private_key(
            config.private_key_path,
            config.private_key_base64,
        )
    elif config.password:
        params['password'] = config.password
    else:
        raise SnowflakeConnectionError(
            "Either password or a private key must be provided"
        )

    return params


@contextmanager
def get_snowflake_connection(config: SnowflakeConfig) -> Generator[SnowflakeConnection, None, None]:
    """Open a real connection and close it when the block exits."""
    import snowflake.connector

    params = _connect_params(config)
    try:
        conn = snowflake.connector.connect(**params)
    except snowflake.connector.errors.DatabaseError as e:
        logger.error(
            "Snowflake connection failed",
            extra={"error": str(e), "account": config.account}
        )
        raise SnowflakeConnectionError(f"Database connection failed: {e}")

    logger.debug(
        "Opened Snowflake connection",
        extra={
            "account": config.account,
            "auth": "key-pair" if 'private_key' in params else "password",
        }
    )

    try:
        yield conn
    finally:
        try:
            conn.close()
        except Exception as e:
            logger.warning("Error closing Snowflake connection", extra={"error": str(e)})


# ---------------------------------------------------------------------------
# In-memory connection
# ---------------------------------------------------------------------------

class MockSnowflakeCursor:
    """
    Recognises the form_submissions INSERT and SELECT, the table DDL and
    SELECT 1. Anything else yields no rows.
    """

    def __init__(self, rows: dict[str, tuple], lock: threading.Lock) -> None:
        self._rows = rows
        self._lock = lock
        self._results: list = []
        self._rowcount = 0

    def execute(self, query: str, params: Optional[tuple] = None) -> 'MockSnowflakeCursor':
        statement = query.upper().strip()
        self._results = []

        if 'INSERT INTO FORM_SUBMISSIONS' in statement:
            if params:
                with self._lock:
                    self._rows[str(params[0])] = tuple(params)
                self._rowcount = 1
        elif 'FROM FORM_SUBMISSIONS' in statement:
            with self._lock:
                self._results = list(self._rows.values())
        elif statement.startswith('SELECT 1'):
            self._results = [(1,)]

        return self

    def fetchone(self):
        return self._results[0] if self._results else None

    def fetchall(self) -> list:
        return self._results

    def close(self) -> None:
        pass

    @property
    def rowcount(self) -> int:
        return self._rowcount


class MockSnowflakeConnection:
    """
    Rows live in a dict keyed by submission id, in insertion order.

    Repositories use cursors from worker threads, hence the lock.
    """

    def __init__(self) -> None:
        self._rows: dict[str, tuple] = {}
        self._lock = threading.Lock()
        logger.info("Initialized mock Snowflake connection (in-memory)")

    def cursor(self) -> MockSnowflakeCursor:
        return MockSnowflakeCursor(self._rows, self._lock)

    def commit(self) -> None:
        pass

    def close(self) -> None:
        pass

    def _row_count(self) -> int:
        return len(self._rows)


@contextmanager
def create_snowflake_connection(
    config: Optional[SnowflakeConfig] = None,
    mock_mode: bool = False,
) -> Generator[SnowflakeConnection, None, None]:
    """
    Yield a connection for the configured mode.

    mock_mode gives a fresh in-memory connection; otherwise config is
    required.
    """
    if mock_mode:
        yield MockSnowflakeConnection()
        return

    if config is None:
        raise ValueError("config is required when not in mock mode")

    with get_snowflake_connection(config) as conn:
        yield conn
