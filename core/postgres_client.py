"""
PostgreSQL Client for Python Microservices

Async PostgreSQL access over an asyncpg connection pool, with service
discovery for the database location and dict rows for repositories.

Usage:
    from core.postgres_client import get_postgres_client

    db = get_postgres_client("campaign_service")

    async with db:
        rows = await db.query("SELECT * FROM campaign.email_campaigns WHERE organization_id = $1", [org_id])
"""

import logging
from typing import Any, Dict, List, Optional, TYPE_CHECKING

import asyncpg

from core.config import InfraConfig, get_settings

if TYPE_CHECKING:
    from core.config_manager import ConfigManager

logger = logging.getLogger(__name__)


def _rows_affected(status: str) -> int:
    """Parse the row count out of a command tag like 'UPDATE 3'"""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (ValueError, AttributeError, IndexError):
        return 0


class AsyncPostgresClient:
    """
    Async PostgreSQL client.

    The pool is created lazily on first ``async with`` and kept for the
    lifetime of the client; exiting the context does not close it.
    Statements use asyncpg's ``$n`` placeholders.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 5432,
        database: str = "postgres",
        username: str = "postgres",
        password: str = "",
        min_pool_size: int = 1,
        max_pool_size: int = 10,
        user_id: Optional[str] = None,
    ):
        self.host = host
        self.port = port
        self.database = database
        self.username = username
        self.password = password
        self.min_pool_size = min_pool_size
        self.max_pool_size = max_pool_size
        self.user_id = user_id
        self._pool: Optional[asyncpg.Pool] = None

    async def connect(self) -> None:
        """Create the connection pool if it does not exist yet"""
        if self._pool is not None:
            return
        self._pool = await asyncpg.create_pool(
            host=self.host,
            port=self.port,
            database=self.database,
            user=self.username,
            password=self.password,
            min_size=self.min_pool_size,
            max_size=self.max_pool_size,
            server_settings={"application_name": self.user_id or "campaign_service"},
        )
        logger.info(f"PostgreSQL pool created: {self.host}:{self.port}/{self.database}")

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False

    async def query(self, sql: str, params: Optional[List[Any]] = None) -> List[Dict[str, Any]]:
        """Execute query and return all rows as dicts"""
        await self.connect()
        async with self._pool.acquire() as conn:
            records = await conn.fetch(sql, *(params or []))
        return [dict(record) for record in records]

    async def query_row(self, sql: str, params: Optional[List[Any]] = None) -> Optional[Dict[str, Any]]:
        """Execute query and return the first row, or None"""
        await self.connect()
        async with self._pool.acquire() as conn:
            record = await conn.fetchrow(sql, *(params or []))
        return dict(record) if record else None

    async def execute(self, sql: str, params: Optional[List[Any]] = None) -> int:
        """Execute a statement and return the number of affected rows"""
        await self.connect()
        async with self._pool.acquire() as conn:
            status = await conn.execute(sql, *(params or []))
        return _rows_affected(status)

    async def execute_batch(self, operations: List[Dict[str, Any]]) -> List[int]:
        """Execute statements in one transaction

        Args:
            operations: List of {'sql': str, 'params': List} dictionaries

        Returns:
            Affected row count of each statement; nothing is applied if one fails
        """
        await self.connect()
        results = []
        async with self._pool.acquire() as conn:
            async with conn.transaction():
                for op in operations:
                    status = await conn.execute(op["sql"], *(op.get("params") or []))
                    results.append(_rows_affected(status))
        return results

    async def close(self):
        """Close the pool"""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("PostgreSQL pool closed")


# Singleton instances per service
_postgres_clients: Dict[str, AsyncPostgresClient] = {}


def get_postgres_client(
    service_name: str,
    config: Optional["ConfigManager"] = None,
    infra: Optional[InfraConfig] = None,
) -> AsyncPostgresClient:
    """
    Get or create the PostgreSQL client for a service.

    Host and port go through service discovery; credentials and pool size
    come from the infrastructure settings.
    """
    from core.config_manager import ConfigManager

    if service_name in _postgres_clients:
        return _postgres_clients[service_name]

    if config is None:
        config = ConfigManager(service_name)
    infra = infra or get_settings().infrastructure

    host, port = config.discover_service(
        service_name="postgres_service",
        default_host=infra.postgres_host,
        default_port=infra.postgres_port,
        env_host_key="POSTGRES_HOST",
        env_port_key="POSTGRES_PORT",
    )

    client = AsyncPostgresClient(
        host=host,
        port=port,
        database=infra.postgres_db,
        username=infra.postgres_user,
        password=infra.postgres_password,
        min_pool_size=infra.postgres_min_pool_size,
        max_pool_size=infra.postgres_max_pool_size,
        user_id=service_name,
    )
    _postgres_clients[service_name] = client
    logger.info(f"PostgreSQL client initialized for {service_name}: {host}:{port}/{infra.postgres_db}")
    return client
