"""
Database Configuration
======================

Connection factories for the three stores, built from Settings.
Pools and drivers are process-level handles; connections and sessions
are acquired per call by the store adapters.
"""
from typing import Optional

from phenolab.config.settings import Settings, get_settings


def postgres_pool_kwargs(settings: Optional[Settings] = None) -> dict:
    """Convert settings to asyncpg.create_pool kwargs."""
    settings = settings or get_settings()
    return {
        'host': settings.postgres_host,
        'port': settings.postgres_port,
        'user': settings.postgres_user,
        'password': settings.postgres_password,
        'database': settings.postgres_db,
        'min_size': settings.postgres_min_pool,
        'max_size': settings.postgres_max_pool,
    }


async def create_postgres_pool(settings: Optional[Settings] = None):
    """Create PostgreSQL connection pool from settings."""
    import asyncpg
    return await asyncpg.create_pool(**postgres_pool_kwargs(settings))


async def create_graph_store(settings: Optional[Settings] = None):
    """Create and connect the Neo4j graph store from settings."""
    from phenolab.services.graph_store import GraphStore
    settings = settings or get_settings()
    store = GraphStore(
        uri=settings.neo4j_uri,
        user=settings.neo4j_user,
        password=settings.neo4j_password,
        database=settings.neo4j_database,
    )
    await store.connect()
    return store
