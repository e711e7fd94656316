"""
Graph Store - Neo4j triple storage

Triples are stored as a property graph:

- (:Resource {uri})-[:REL {predicate}]->(:Resource {uri})     resource links
- (:Resource {uri})-[:REL {predicate}]->(:Literal {value, datatype, language})

Searches arrive as Query objects (phenolab.query) and are rendered to Cypher;
everything else (batched inserts/deletes, relation sets, fan-out lookups,
type hierarchy checks) is plain parameterized Cypher.

Sessions are opened per call. transaction() yields a view of the store bound
to one explicit transaction, used for atomic batch writes.
"""
import logging
from contextlib import asynccontextmanager, contextmanager
from typing import Dict, Iterable, List, Optional, Set, Tuple

from neo4j import AsyncGraphDatabase, AsyncDriver
from neo4j.exceptions import ClientError, ServiceUnavailable, SessionExpired

from phenolab.exceptions import BackendUnavailableError, QueryError
from phenolab.query.builder import Query
from phenolab.query.terms import IRI, Literal, Triple
from phenolab.vocabulary import RDF_TYPE, RDFS_LABEL, RDFS_SUBCLASS_OF

logger = logging.getLogger(__name__)

Statement = Tuple[str, Dict]


class GraphStore:
    """Neo4j-backed triple store"""

    def __init__(
        self,
        uri: str = None,
        user: str = None,
        password: str = None,
        database: str = None
    ):
        """Initialize Neo4j connection settings (defaults from Settings)"""
        if uri is None or user is None or password is None:
            from phenolab.config.settings import get_settings
            settings = get_settings()
            uri = uri or settings.neo4j_uri
            user = user or settings.neo4j_user
            password = password or settings.neo4j_password
            database = database or settings.neo4j_database

        self.uri = uri
        self.user = user
        self.password = password
        self.database = database

        self.driver: Optional[AsyncDriver] = None

    async def connect(self):
        """Establish connection to Neo4j"""
        if not self.driver:
            with self._translate_errors():
                self.driver = AsyncGraphDatabase.driver(
                    self.uri,
                    auth=(self.user, self.password)
                )
                # Verify connectivity
                await self.driver.verify_connectivity()
            logger.info(f"✅ Connected to Neo4j at {self.uri}")

    async def close(self):
        """Close Neo4j connection"""
        if self.driver:
            await self.driver.close()
            self.driver = None
            logger.info("🔌 Closed Neo4j connection")

    async def initialize_constraints(self):
        """Create uniqueness constraints and indexes (idempotent)"""
        statements = [
            "CREATE CONSTRAINT resource_uri IF NOT EXISTS FOR (r:Resource) REQUIRE r.uri IS UNIQUE",
            "CREATE INDEX literal_value IF NOT EXISTS FOR (l:Literal) ON (l.value)",
            "CREATE INDEX rel_predicate IF NOT EXISTS FOR ()-[r:REL]-() ON (r.predicate)",
        ]
        # Schema statements cannot share a transaction
        for statement in statements:
            await self._execute_write(statement)
        logger.info(f"✅ Graph constraints initialized ({len(statements)} statements)")

    # ===== Execution primitives =====

    @contextmanager
    def _translate_errors(self):
        try:
            yield
        except (ServiceUnavailable, SessionExpired) as e:
            raise BackendUnavailableError('neo4j', str(e)) from e
        except ClientError as e:
            raise QueryError(f"Graph store rejected query: {e.message}") from e

    async def _run_batch(self, statements: List[Statement]) -> List[List[Dict]]:
        """Run statements in one transaction, return each statement's rows"""
        if self.driver is None:
            raise BackendUnavailableError('neo4j', 'not connected')

        results = []
        with self._translate_errors():
            async with self.driver.session(database=self.database) as session:
                tx = await session.begin_transaction()
                try:
                    for query, parameters in statements:
                        result = await tx.run(query, parameters or {})
                        results.append(await result.data())
                    await tx.commit()
                except Exception:
                    await self._rollback(tx)
                    raise
        return results

    @staticmethod
    async def _rollback(tx) -> None:
        """Roll back tx; a failing rollback is logged so the original error propagates"""
        try:
            await tx.rollback()
        except Exception as e:
            logger.error(f"❌ Graph rollback failed: {e}")

    async def _execute_read(self, query: str, parameters: Dict = None) -> List[Dict]:
        """Execute read query"""
        return (await self._run_batch([(query, parameters)]))[0]

    async def _execute_write(self, query: str, parameters: Dict = None) -> List[Dict]:
        """Execute write query"""
        return (await self._run_batch([(query, parameters)]))[0]

    @asynccontextmanager
    async def transaction(self):
        """
        Explicit transaction: commit on clean exit, rollback on exception.

        Yields a GraphTransaction exposing the same API as this store.
        """
        if self.driver is None:
            raise BackendUnavailableError('neo4j', 'not connected')

        async with self.driver.session(database=self.database) as session:
            with self._translate_errors():
                tx = await session.begin_transaction()
            view = GraphTransaction(self, tx)
            try:
                yield view
            except Exception:
                logger.info("↩️ Rolling back graph transaction")
                await self._rollback(tx)
                raise
            with self._translate_errors():
                await tx.commit()
            logger.debug("Committed graph transaction")

    # ===== Query objects =====

    async def query(self, query: Query) -> List[Dict]:
        """Run a row query; one dict per row keyed by selected variables"""
        cypher, params = query.to_cypher()
        logger.debug(f"Graph query:\n{cypher}\n{params}")
        return await self._execute_read(cypher, params)

    async def count(self, query: Query) -> int:
        """Run the count form of a query"""
        if not query.is_count:
            raise QueryError("count() needs a count query (QueryBuilder.as_count_query)")
        rows = await self.query(query)
        return int(rows[0]['count']) if rows else 0

    # ===== Triple writes =====

    @staticmethod
    def _split(triples: Iterable[Triple]) -> Tuple[List[Dict], List[Dict]]:
        resources, literals = [], []
        for t in triples:
            if isinstance(t.object, IRI):
                resources.append({'s': t.subject, 'p': t.predicate, 'o': t.object.value})
            elif isinstance(t.object, Literal):
                literals.append({
                    's': t.subject,
                    'p': t.predicate,
                    'v': str(t.object.value),
                    'dt': t.object.datatype or '',
                    'lang': t.object.language or '',
                })
            else:
                raise QueryError(f"Cannot store triple object {t.object!r}")
        return resources, literals

    async def insert_triples(self, triples: Iterable[Triple]) -> int:
        """Insert triples in one transaction. Existing triples are kept as-is."""
        resources, literals = self._split(triples)
        statements = []
        if resources:
            statements.append(("""
                UNWIND $rows AS row
                MERGE (s:Resource {uri: row.s})
                MERGE (o:Resource {uri: row.o})
                MERGE (s)-[r:REL {predicate: row.p}]->(o)
                ON CREATE SET r.created_at = datetime()
            """, {'rows': resources}))
        if literals:
            statements.append(("""
                UNWIND $rows AS row
                MERGE (s:Resource {uri: row.s})
                MERGE (s)-[:REL {predicate: row.p}]->
                      (:Literal {value: row.v, datatype: row.dt, language: row.lang})
            """, {'rows': literals}))
        if statements:
            await self._run_batch(statements)
            logger.debug(f"➕ Inserted {len(resources) + len(literals)} triple(s)")
        return len(resources) + len(literals)

    async def delete_triples(self, triples: Iterable[Triple]) -> int:
        """Delete triples in one transaction. Missing triples are ignored."""
        resources, literals = self._split(triples)
        statements = []
        if resources:
            statements.append(("""
                UNWIND $rows AS row
                MATCH (:Resource {uri: row.s})-[r:REL {predicate: row.p}]->(:Resource {uri: row.o})
                DELETE r
            """, {'rows': resources}))
        if literals:
            statements.append(("""
                UNWIND $rows AS row
                MATCH (:Resource {uri: row.s})-[:REL {predicate: row.p}]->
                      (o:Literal {value: row.v, datatype: row.dt, language: row.lang})
                DETACH DELETE o
            """, {'rows': literals}))
        if statements:
            await self._run_batch(statements)
            logger.debug(f"➖ Deleted {len(resources) + len(literals)} triple(s)")
        return len(resources) + len(literals)

    # ===== Relation sets and fan-out lookups =====

    async def objects(self, subject: str, predicate: str) -> Set[str]:
        """URIs linked from subject under predicate"""
        rows = await self._execute_read("""
            MATCH (:Resource {uri: $subject})-[:REL {predicate: $predicate}]->(o:Resource)
            RETURN DISTINCT o.uri AS uri
        """, {'subject': subject, 'predicate': predicate})
        return {row['uri'] for row in rows}

    async def subjects(self, predicate: str, obj: str) -> Set[str]:
        """URIs linking to obj under predicate"""
        rows = await self._execute_read("""
            MATCH (s:Resource)-[:REL {predicate: $predicate}]->(:Resource {uri: $object})
            RETURN DISTINCT s.uri AS uri
        """, {'predicate': predicate, 'object': obj})
        return {row['uri'] for row in rows}

    async def related_resources(
        self,
        subject: str,
        predicate: str,
        inverse: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict]:
        """
        Resources linked to subject (or linking to it when inverse), with
        their types and labels. Rows: {uri, types, labels}.
        """
        link = ("(o:Resource)-[:REL {predicate: $predicate}]->(:Resource {uri: $subject})"
                if inverse else
                "(:Resource {uri: $subject})-[:REL {predicate: $predicate}]->(o:Resource)")
        query = f"""
            MATCH {link}
            OPTIONAL MATCH (o)-[:REL {{predicate: $rdf_type}}]->(t:Resource)
            OPTIONAL MATCH (o)-[:REL {{predicate: $label}}]->(l:Literal)
            RETURN o.uri AS uri,
                   collect(DISTINCT t.uri) AS types,
                   collect(DISTINCT l.value) AS labels
            ORDER BY uri
        """
        params = {
            'subject': subject,
            'predicate': predicate,
            'rdf_type': RDF_TYPE,
            'label': RDFS_LABEL,
        }
        if limit is not None:
            query += "\nLIMIT $limit"
            params['limit'] = limit
        return await self._execute_read(query, params)

    async def properties_of(
        self,
        subject: str,
        exclude: Iterable[str] = (),
        limit: Optional[int] = None,
    ) -> List[Dict]:
        """
        Every statement about subject except those under excluded predicates.

        Rows: {predicate, value, is_resource, value_type}; value_type is the
        rdf:type of a resource value.
        """
        query = """
            MATCH (:Resource {uri: $subject})-[r:REL]->(o)
            WHERE NOT r.predicate IN $exclude
            OPTIONAL MATCH (o:Resource)-[:REL {predicate: $rdf_type}]->(t:Resource)
            RETURN r.predicate AS predicate,
                   coalesce(o.uri, o.value) AS value,
                   o:Resource AS is_resource,
                   head(collect(t.uri)) AS value_type
            ORDER BY predicate, value
        """
        params = {'subject': subject, 'exclude': list(exclude), 'rdf_type': RDF_TYPE}
        if limit is not None:
            query += "\nLIMIT $limit"
            params['limit'] = limit
        return await self._execute_read(query, params)

    async def literal_values(self, subject: str, predicate: str) -> List[str]:
        """Literal values of subject under predicate"""
        rows = await self._execute_read("""
            MATCH (:Resource {uri: $subject})-[:REL {predicate: $predicate}]->(o:Literal)
            RETURN o.value AS value
            ORDER BY value
        """, {'subject': subject, 'predicate': predicate})
        return [row['value'] for row in rows]

    # ===== Identity and schema primitives =====

    async def exists_uri(self, uri: str) -> bool:
        """True when uri takes part in at least one stored triple"""
        rows = await self._execute_read("""
            MATCH (r:Resource {uri: $uri})
            WHERE EXISTS { (r)-[:REL]-() }
            RETURN count(r) > 0 AS found
        """, {'uri': uri})
        return bool(rows and rows[0]['found'])

    async def is_subtype_of(self, candidate: str, root: str) -> bool:
        """candidate equals root or reaches it through subClassOf links"""
        if candidate == root:
            return True
        rows = await self._execute_read("""
            MATCH (c:Resource {uri: $candidate})
            RETURN EXISTS {
                MATCH (c)-[sub:REL*1..]->(:Resource {uri: $root})
                WHERE all(r IN sub WHERE r.predicate = $subclass)
            } AS found
        """, {'candidate': candidate, 'root': root, 'subclass': RDFS_SUBCLASS_OF})
        return bool(rows and rows[0]['found'])


class GraphTransaction(GraphStore):
    """GraphStore view bound to one open Neo4j transaction"""

    def __init__(self, store: GraphStore, tx):
        super().__init__(store.uri, store.user, store.password, store.database)
        self.driver = store.driver
        self._tx = tx

    async def _run_batch(self, statements: List[Statement]) -> List[List[Dict]]:
        results = []
        with self._translate_errors():
            for query, parameters in statements:
                result = await self._tx.run(query, parameters or {})
                results.append(await result.data())
        return results

    @asynccontextmanager
    async def transaction(self):
        # Already inside one; nested blocks join it
        yield self
