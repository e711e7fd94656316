"""
Pytest configuration for phenolab tests.

Stores are in-memory fakes (see fakes.py); identifiers come from a
deterministic generator so tests can predict URIs when they need to.
"""
import itertools

import pytest

from phenolab.config.settings import Settings
from phenolab.services.data_access import DataAccess
from phenolab.tests.fakes import (
    BASE_URI,
    FakeDocumentStore,
    FakeGraphStore,
    FakeRelationalStore,
    seed_schema,
)
from phenolab.utils.id_generator import IdentifierAllocator


def pytest_configure(config):
    """Configure pytest with asyncio marker."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as an async test."
    )


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        base_uri=BASE_URI,
        default_page_size=20,
        max_page_size=5000,
        id_max_attempts=5,
    )


@pytest.fixture
def graph():
    return seed_schema(FakeGraphStore())


@pytest.fixture
def documents():
    return FakeDocumentStore()


@pytest.fixture
def relational():
    return FakeRelationalStore()


@pytest.fixture
def sequential_ids():
    """generate() replacement: ev_000000000001, ti_000000000002, ..."""
    from phenolab.utils.id_generator import PREFIXES
    counter = itertools.count(1)
    return lambda entity_type: f"{PREFIXES[entity_type][0]}_{next(counter):012d}"


@pytest.fixture
def allocator(graph, settings, sequential_ids):
    return IdentifierAllocator(graph.exists_uri, settings.base_uri, generate=sequential_ids)


@pytest.fixture
def access(graph, documents, relational, settings):
    return DataAccess(graph, documents, relational, settings)
