"""
Tests for identifier generation and allocation.
"""
from unittest.mock import AsyncMock

import pytest

from phenolab.exceptions import IdentifierExhaustedError
from phenolab.utils.id_generator import (
    IdentifierAllocator,
    build_uri,
    generate_id,
    get_id_type,
    short_id_of,
    validate_id,
)

BASE = "http://www.phenome-fppn.fr/test"


class TestGeneration:
    def test_format(self):
        short_id = generate_id('event')
        assert short_id.startswith('ev_')
        assert len(short_id) == 15
        assert validate_id(short_id)

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            generate_id('spaceship')

    def test_ids_differ(self):
        assert len({generate_id('image') for _ in range(200)}) == 200

    def test_build_uri(self):
        assert build_uri(BASE + "/", 'provenance', 'pv_000000000abc') == \
            f"{BASE}/id/provenances/pv_000000000abc"

    def test_type_from_uri(self):
        uri = build_uri(BASE, 'annotation')
        assert get_id_type(uri) == 'annotation'
        assert short_id_of(uri).startswith('an_')
        assert get_id_type(f"{BASE}/plots/plot-42") is None
        assert not validate_id("ev_TOOSHORT")


class TestAllocator:
    @pytest.mark.asyncio
    async def test_redraws_on_collision(self):
        exists = AsyncMock(side_effect=[True, True, False])
        draws = iter(["ev_000000000001", "ev_000000000002", "ev_000000000003"])
        allocator = IdentifierAllocator(exists, BASE, generate=lambda entity_type: next(draws))

        uri = await allocator.allocate('event')

        assert uri == f"{BASE}/id/events/ev_000000000003"
        assert exists.await_count == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        exists = AsyncMock(return_value=True)
        allocator = IdentifierAllocator(exists, BASE, max_attempts=4)

        with pytest.raises(IdentifierExhaustedError):
            await allocator.allocate('event')
        assert exists.await_count == 4

    @pytest.mark.asyncio
    async def test_uri_taken_checks_registry(self, access, relational):
        uri = f"{BASE}/id/events/ev_000000000009"
        assert not await access.uri_taken(uri)

        await relational.insert_record(uri, 'event')
        assert await access.uri_taken(uri)
