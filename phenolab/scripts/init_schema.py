#!/usr/bin/env python3
"""
Initialize storage schemas
==========================

Creates the PostgreSQL tables backing the document and relational stores,
and the Neo4j constraints used by the graph store. Safe to re-run.

Usage:
    python -m phenolab.scripts.init_schema              # everything
    python -m phenolab.scripts.init_schema --only pg    # PostgreSQL only
    python -m phenolab.scripts.init_schema --only graph # Neo4j only
"""
import argparse
import asyncio
import logging
from pathlib import Path

from dotenv import load_dotenv

env_path = Path(__file__).parent.parent.parent / '.env'
load_dotenv(env_path)

from phenolab.config.database import create_graph_store, create_postgres_pool
from phenolab.config.settings import get_settings
from phenolab.utils.logging_config import setup_logging

logger = logging.getLogger('init-schema')

COLLECTIONS = ('images', 'provenances', 'annotations')


def document_ddl(schema: str) -> list:
    statements = [f"CREATE SCHEMA IF NOT EXISTS {schema}"]
    for collection in COLLECTIONS:
        statements.append(f"""
            CREATE TABLE IF NOT EXISTS {schema}.{collection} (
                uri TEXT PRIMARY KEY,
                doc JSONB NOT NULL,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            )
        """)
        statements.append(
            f"CREATE INDEX IF NOT EXISTS {collection}_doc_gin "
            f"ON {schema}.{collection} USING GIN (doc jsonb_path_ops)"
        )
    return statements


RELATIONAL_DDL = [
    "CREATE SCHEMA IF NOT EXISTS core",
    """
    CREATE TABLE IF NOT EXISTS core.entity_records (
        uri TEXT PRIMARY KEY,
        entity_type TEXT NOT NULL,
        label TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    "CREATE INDEX IF NOT EXISTS entity_records_type ON core.entity_records (entity_type)",
]


async def init_postgres(settings):
    pool = await create_postgres_pool(settings)
    try:
        async with pool.acquire() as conn:
            async with conn.transaction():
                for statement in document_ddl(settings.documents_schema) + RELATIONAL_DDL:
                    await conn.execute(statement)
        logger.info(f"✅ PostgreSQL schema ready ({len(COLLECTIONS)} collections + entity registry)")
    finally:
        await pool.close()


async def init_graph(settings):
    graph = await create_graph_store(settings)
    try:
        await graph.initialize_constraints()
    finally:
        await graph.close()


async def run(args):
    settings = get_settings()
    if args.only in (None, 'pg'):
        await init_postgres(settings)
    if args.only in (None, 'graph'):
        await init_graph(settings)


def main():
    parser = argparse.ArgumentParser(description='Initialize storage schemas')
    parser.add_argument('--only', choices=['pg', 'graph'],
                        help='Initialize only one backend')
    args = parser.parse_args()

    setup_logging()
    asyncio.run(run(args))


if __name__ == '__main__':
    main()
