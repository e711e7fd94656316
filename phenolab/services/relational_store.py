"""
Relational Store - PostgreSQL entity registry

Every entity created through the write path gets one row in
core.entity_records, keyed by the same URI used in the graph and document
stores.
"""
import logging
from contextlib import contextmanager
from typing import Optional

import asyncpg

from phenolab.exceptions import BackendUnavailableError, QueryError

logger = logging.getLogger(__name__)


class RelationalStore:
    """Entity registry records"""

    def __init__(self, db_pool: asyncpg.Pool):
        self.db_pool = db_pool

    @contextmanager
    def _translate_errors(self):
        try:
            yield
        except (asyncpg.PostgresConnectionError, asyncpg.InterfaceError, OSError) as e:
            raise BackendUnavailableError('postgres', str(e)) from e
        except asyncpg.UniqueViolationError as e:
            raise QueryError(f"Record already exists: {e}") from e

    async def insert_record(self, uri: str, entity_type: str, label: Optional[str] = None) -> None:
        with self._translate_errors():
            async with self.db_pool.acquire() as conn:
                await conn.execute("""
                    INSERT INTO core.entity_records (uri, entity_type, label, created_at)
                    VALUES ($1, $2, $3, NOW())
                """, uri, entity_type, label)
        logger.debug(f"🗃️ Registered {entity_type} {uri}")

    async def delete_record(self, uri: str) -> bool:
        with self._translate_errors():
            async with self.db_pool.acquire() as conn:
                result = await conn.execute(
                    "DELETE FROM core.entity_records WHERE uri = $1", uri
                )
        return int(result.split()[-1]) > 0

    async def get_record(self, uri: str) -> Optional[dict]:
        with self._translate_errors():
            async with self.db_pool.acquire() as conn:
                row = await conn.fetchrow("""
                    SELECT uri, entity_type, label, created_at
                    FROM core.entity_records
                    WHERE uri = $1
                """, uri)
        return dict(row) if row else None

