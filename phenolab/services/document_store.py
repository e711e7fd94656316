"""
Document Store - PostgreSQL JSONB collections

One table per collection: {schema}.{collection}(uri TEXT PRIMARY KEY,
doc JSONB, created_at TIMESTAMPTZ). Filters are JSONB containment documents
(doc @> filter), plus optional regex and timestamp-range conditions on
top-level or nested text fields.

Collections: images, provenances, annotations
"""
import json
import logging
import re
from contextlib import contextmanager
from typing import Dict, List, Optional, Sequence, Tuple

import asyncpg

from phenolab.exceptions import BackendUnavailableError, QueryError
from phenolab.utils.datetime_utils import DateLike, to_datetime

logger = logging.getLogger(__name__)

IDENTIFIER = re.compile(r'^[a-z_][a-z0-9_]*$')

# Path of a field inside a document, e.g. ('configuration', 'date')
FieldPath = Sequence[str]


class DocumentStore:
    """JSONB document collections on the shared PostgreSQL pool"""

    def __init__(self, db_pool: asyncpg.Pool, schema: str = 'documents'):
        self.db_pool = db_pool
        self.schema = self._identifier(schema)

    @staticmethod
    def _identifier(name: str) -> str:
        if not IDENTIFIER.match(name or ''):
            raise QueryError(f"Invalid collection or schema name: {name!r}")
        return name

    def _table(self, collection: str) -> str:
        return f"{self.schema}.{self._identifier(collection)}"

    @contextmanager
    def _translate_errors(self):
        try:
            yield
        except (asyncpg.PostgresConnectionError, asyncpg.InterfaceError, OSError) as e:
            raise BackendUnavailableError('postgres', str(e)) from e
        except asyncpg.InvalidRegularExpressionError as e:
            raise QueryError(f"Invalid regular expression: {e}") from e
        except asyncpg.UndefinedTableError as e:
            raise QueryError(f"Unknown collection: {e}") from e

    @staticmethod
    def _where(
        filter_doc: Optional[dict] = None,
        regex: Optional[Dict[str, str]] = None,
        date_range: Optional[Tuple[FieldPath, Optional[DateLike], Optional[DateLike]]] = None,
    ) -> Tuple[str, list]:
        """Build a WHERE clause and its positional arguments"""
        conditions, args = [], []

        if filter_doc:
            args.append(json.dumps(filter_doc))
            conditions.append(f"doc @> ${len(args)}::jsonb")

        for field, pattern in (regex or {}).items():
            try:
                re.compile(pattern)
            except re.error as e:
                raise QueryError(f"Invalid pattern {pattern!r}: {e}") from e
            args.append(field)
            args.append(pattern)
            conditions.append(f"doc ->> ${len(args) - 1}::text ~* ${len(args)}")

        if date_range:
            path, start, end = date_range
            try:
                start_dt = to_datetime(start)
                end_dt = to_datetime(end, end_of_day=True)
            except ValueError as e:
                raise QueryError(f"Invalid date range bound: {e}") from e
            if start_dt and end_dt and start_dt > end_dt:
                raise QueryError(f"Date range start {start_dt} is after end {end_dt}")
            if start_dt is not None:
                args.extend([list(path), start_dt])
                conditions.append(f"(doc #>> ${len(args) - 1}::text[])::timestamptz >= ${len(args)}")
            if end_dt is not None:
                args.extend([list(path), end_dt])
                conditions.append(f"(doc #>> ${len(args) - 1}::text[])::timestamptz <= ${len(args)}")

        where = ("WHERE " + " AND ".join(conditions)) if conditions else ""
        return where, args

    # =========================================================================
    # READ OPERATIONS
    # =========================================================================

    async def find(
        self,
        collection: str,
        filter_doc: Optional[dict] = None,
        regex: Optional[Dict[str, str]] = None,
        date_range: Optional[Tuple[FieldPath, Optional[DateLike], Optional[DateLike]]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[dict]:
        """Documents matching every given condition, ordered by uri"""
        where, args = self._where(filter_doc, regex, date_range)
        sql = f"SELECT doc FROM {self._table(collection)} {where} ORDER BY uri"
        if limit is not None:
            args.append(limit)
            sql += f" LIMIT ${len(args)}"
        if offset:
            args.append(offset)
            sql += f" OFFSET ${len(args)}"

        logger.debug(f"Document query: {sql} {args}")
        with self._translate_errors():
            async with self.db_pool.acquire() as conn:
                rows = await conn.fetch(sql, *args)
        return [json.loads(row['doc']) for row in rows]

    async def count(
        self,
        collection: str,
        filter_doc: Optional[dict] = None,
        regex: Optional[Dict[str, str]] = None,
        date_range: Optional[Tuple[FieldPath, Optional[DateLike], Optional[DateLike]]] = None,
    ) -> int:
        where, args = self._where(filter_doc, regex, date_range)
        with self._translate_errors():
            async with self.db_pool.acquire() as conn:
                return await conn.fetchval(
                    f"SELECT count(*) FROM {self._table(collection)} {where}", *args
                )

    async def find_by_uri(self, collection: str, uri: str) -> Optional[dict]:
        with self._translate_errors():
            async with self.db_pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"SELECT doc FROM {self._table(collection)} WHERE uri = $1", uri
                )
        return json.loads(row['doc']) if row else None

    # =========================================================================
    # WRITE OPERATIONS
    # =========================================================================

    async def insert_one(self, collection: str, doc: dict) -> str:
        """Insert a document keyed by its 'uri'. Returns the uri."""
        uri = doc.get('uri')
        if not uri:
            raise QueryError("Documents need a 'uri' before insertion")

        with self._translate_errors():
            async with self.db_pool.acquire() as conn:
                await conn.execute(f"""
                    INSERT INTO {self._table(collection)} (uri, doc, created_at)
                    VALUES ($1, $2::jsonb, NOW())
                """, uri, json.dumps(doc))
        logger.debug(f"📄 Inserted {collection} document {uri}")
        return uri

    async def delete_one(self, collection: str, uri: str) -> bool:
        """Delete a document. Returns False if it did not exist."""
        with self._translate_errors():
            async with self.db_pool.acquire() as conn:
                result = await conn.execute(
                    f"DELETE FROM {self._table(collection)} WHERE uri = $1", uri
                )
        return int(result.split()[-1]) > 0
