"""
Logging setup for scripts and service entry points.

Library modules only create `logger = logging.getLogger(__name__)`;
the process entry point calls setup_logging() once.
"""
import logging
import os

LOG_FORMAT = '%(asctime)s [%(name)s] %(levelname)s: %(message)s'


def setup_logging(level: str = None) -> None:
    """Configure root logging from LOG_LEVEL (default INFO)."""
    level_name = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=LOG_FORMAT,
    )
    # The Neo4j driver is chatty at INFO
    logging.getLogger('neo4j').setLevel(logging.WARNING)
