"""
Cypher rendering of Query objects for the Neo4j graph store.

Storage layout:
    (:Resource {uri})-[:REL {predicate}]->(:Resource {uri})
    (:Resource {uri})-[:REL {predicate}]->(:Literal {value, datatype, language})
"""
from typing import Dict, Tuple

from phenolab.exceptions import QueryError
from phenolab.query.terms import IRI, Literal, Var


class CypherContext:
    """Parameter and node-variable bookkeeping for one rendering."""

    def __init__(self):
        self.params: Dict[str, object] = {}
        self._nodes: Dict[str, str] = {}

    def param(self, value) -> str:
        name = f"p{len(self.params)}"
        self.params[name] = value
        return f"${name}"

    def bind(self, variable: str) -> str:
        return self._nodes.setdefault(variable, f"v_{variable}")

    def node(self, variable: str) -> str:
        if variable not in self._nodes:
            raise QueryError(f"Variable {variable!r} is not bound")
        return self._nodes[variable]

    def value(self, variable: str) -> str:
        node = self.node(variable)
        return f"coalesce({node}.uri, {node}.value)"

    def node_pattern(self, term) -> str:
        if isinstance(term, Var):
            return f"({self.bind(term.name)})"
        if isinstance(term, IRI):
            return f"(:Resource {{uri: {self.param(term.value)}}})"
        if isinstance(term, Literal):
            return f"(:Literal {{value: {self.param(term.value)}}})"
        raise QueryError(f"Cannot render term {term!r}")


def _projection(ctx: CypherContext, query, variable: str) -> str:
    # Non-aggregated projections are the implicit grouping keys
    function = query.aggregate_of(variable)
    value = ctx.value(variable)
    return f"{function}({value}) AS {variable}" if function else f"{value} AS {variable}"


def render(query) -> Tuple[str, dict]:
    """Render a Query to (cypher, parameters)."""
    ctx = CypherContext()
    lines = []

    for pattern in query.patterns:
        subject = ctx.node_pattern(pattern.subject)
        obj = ctx.node_pattern(pattern.object)
        lines.append(
            f"MATCH {subject}-[:REL {{predicate: {ctx.param(pattern.predicate)}}}]->{obj}"
        )

    if query.filters:
        lines.append("WHERE " + "\n  AND ".join(
            f"({clause.to_cypher(ctx)})" for clause in query.filters
        ))

    if query.is_count:
        lines.append(f"RETURN count(DISTINCT {ctx.node(query.count_variable)}) AS count")
        return "\n".join(lines), ctx.params

    projection = ", ".join(_projection(ctx, query, v) for v in query.select)
    lines.append(f"RETURN {'DISTINCT ' if query.distinct else ''}{projection}")
    # Aliases only: after DISTINCT, non-projected variables are out of scope
    lines.append("ORDER BY " + ", ".join(query.select))
    if query.offset:
        lines.append(f"SKIP {ctx.param(query.offset)}")
    if query.limit is not None:
        lines.append(f"LIMIT {ctx.param(query.limit)}")

    return "\n".join(lines), ctx.params
