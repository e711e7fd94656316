"""
Tests for GraphStore write primitives with a mocked Neo4j driver, and the
literal matching shared with the in-memory double.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest

from phenolab.query.terms import Literal, Triple
from phenolab.services.graph_store import GraphStore
from phenolab.tests.fakes import ACC_PINOT, FakeGraphStore
from phenolab.vocabulary import RDFS_LABEL


def connected_store(tx) -> GraphStore:
    session = MagicMock()
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=False)
    session.begin_transaction = AsyncMock(return_value=tx)

    store = GraphStore("bolt://localhost:7687", "neo4j", "secret", "neo4j")
    store.driver = MagicMock()
    store.driver.session.return_value = session
    return store


def broken_rollback_tx() -> MagicMock:
    tx = MagicMock()
    tx.commit = AsyncMock()
    tx.rollback = AsyncMock(side_effect=RuntimeError("connection reset"))
    return tx


class TestRollback:
    @pytest.mark.asyncio
    async def test_failed_rollback_keeps_original_error(self, caplog):
        tx = broken_rollback_tx()
        store = connected_store(tx)

        with pytest.raises(ValueError, match="bad entity"):
            async with store.transaction():
                raise ValueError("bad entity")

        tx.rollback.assert_awaited_once()
        tx.commit.assert_not_awaited()
        assert "rollback failed" in caplog.text

    @pytest.mark.asyncio
    async def test_failed_batch_rollback_keeps_original_error(self):
        tx = broken_rollback_tx()
        tx.run = AsyncMock(side_effect=ValueError("bad statement"))
        store = connected_store(tx)

        with pytest.raises(ValueError, match="bad statement"):
            await store.insert_triples([Triple(ACC_PINOT, RDFS_LABEL, Literal("Pinot"))])

        tx.rollback.assert_awaited_once()


class TestLiteralDelete:
    @pytest.mark.asyncio
    async def test_cypher_matches_datatype_and_language(self):
        store = GraphStore("bolt://localhost:7687", "neo4j", "secret", "neo4j")
        store._run_batch = AsyncMock(return_value=[[]])

        await store.delete_triples([
            Triple(ACC_PINOT, RDFS_LABEL, Literal("Pinot noir", language="fr")),
        ])

        (statement, params), = store._run_batch.call_args.args[0]
        assert "datatype: row.dt, language: row.lang" in statement
        assert params['rows'] == [{
            's': ACC_PINOT, 'p': RDFS_LABEL, 'v': "Pinot noir", 'dt': '', 'lang': 'fr',
        }]

    @pytest.mark.asyncio
    async def test_same_value_other_language_survives(self):
        graph = FakeGraphStore()
        graph.add(ACC_PINOT, RDFS_LABEL, Literal("Pinot noir", language="en"))
        graph.add(ACC_PINOT, RDFS_LABEL, Literal("Pinot noir", language="fr"))

        await graph.delete_triples([
            Triple(ACC_PINOT, RDFS_LABEL, Literal("Pinot noir", language="fr")),
        ])

        remaining = [o for s, p, o in graph.triples if p == RDFS_LABEL]
        assert remaining == [Literal("Pinot noir", language="en")]

    @pytest.mark.asyncio
    async def test_untyped_delete_leaves_typed_literal(self):
        graph = FakeGraphStore()
        graph.add(ACC_PINOT, RDFS_LABEL, Literal("42", datatype="xsd:integer"))

        await graph.delete_triples([Triple(ACC_PINOT, RDFS_LABEL, Literal("42"))])

        assert len(graph.triples) == 1
