"""
phenolab - data-access coordination layer for phenotyping experiment data

Entities (events, experiments, images, provenances, germplasm) are described
by data spread over three stores that share no transaction boundary:

- Graph store (Neo4j): types, relations, attached properties, time instants
- Document store (PostgreSQL JSONB): image metadata, provenances, annotations
- Relational store (PostgreSQL): one registry record per created entity

Reads go through repositories (query building + fan-out hydration).
Writes go through the WriteCoordinator (ordered steps + compensation).
"""

__version__ = "0.4.0"
