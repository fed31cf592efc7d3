"""
=========================================
Driver registry and builder checkout pool.
=========================================

A Connection names a driver and hands out DB builders. It never opens a
database connection; executing the rendered statements is the caller's job.

Classes:
    Connection: Factory and idle pool of DB builders for one driver

Functions:
    get_connection: Cached Connection per driver name
    clear_connections: Drop every cached Connection

Example:
    >>> from buildsqlx.connection import get_connection
    >>>
    >>> conn = get_connection('mysql')
    >>> with conn.checkout() as db:
    ...     sql, args = db.table('users').where('id', '=', 1).query()
"""

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from buildsqlx.query_builder import DB
from core.config import config
from core.logger import get_logger

logger = get_logger(__name__)


class Connection:
    """Builder factory for one driver.

    Attributes:
        driver: Driver name, reported by DB.target
        pool_size: Maximum number of idle builders kept for reuse
    """

    def __init__(self, driver: str, pool_size: Optional[int] = None):
        self.driver = driver
        self.pool_size = config.pool_size if pool_size is None else pool_size
        self._idle: List[DB] = []
        self._lock = threading.Lock()

    def db(self) -> DB:
        """Return a new builder owned by the caller."""
        return DB(connection=self)

    @contextmanager
    def checkout(self) -> Iterator[DB]:
        """Lend a builder exclusively for the duration of the block.

        On exit the builder is fully reset, union branches included, and
        returned to the idle pool if there is room.

        Example:
            >>> with conn.checkout() as db:
            ...     sql, args = db.table('posts').count()
        """
        with self._lock:
            db = self._idle.pop() if self._idle else None

        if db is None:
            db = self.db()
            logger.debug(f"Created builder for driver {self.driver}")

        try:
            yield db
        finally:
            db.builder.reset(keep_union=False)
            with self._lock:
                if len(self._idle) < self.pool_size:
                    self._idle.append(db)

    @property
    def idle_count(self) -> int:
        with self._lock:
            return len(self._idle)

    def __repr__(self) -> str:
        return f"Connection(driver={self.driver!r}, idle={self.idle_count})"


_connections: Dict[str, Connection] = {}
_connections_lock = threading.Lock()


def get_connection(driver: Optional[str] = None) -> Connection:
    """Return the cached Connection for driver, creating it on first use.

    Args:
        driver: Driver name, defaults to config.driver

    Returns:
        Connection shared by every caller asking for the same driver
    """
    driver = driver or config.driver
    with _connections_lock:
        conn = _connections.get(driver)
        if conn is None:
            conn = Connection(driver)
            _connections[driver] = conn
            logger.debug(f"Registered connection for driver {driver}")
        return conn


def clear_connections() -> None:
    """Forget every cached Connection."""
    with _connections_lock:
        _connections.clear()
