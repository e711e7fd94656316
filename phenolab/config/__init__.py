"""
Configuration module for settings and store connections.
"""
from .settings import Settings, get_settings
from .database import (
    postgres_pool_kwargs,
    create_postgres_pool,
    create_graph_store,
)

__all__ = [
    'Settings',
    'get_settings',
    'postgres_pool_kwargs',
    'create_postgres_pool',
    'create_graph_store',
]
