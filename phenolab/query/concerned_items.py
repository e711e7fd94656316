"""
Concerned-item filters, shared by every entity type that has concerned items
(events, images).
"""
from typing import Optional

from phenolab.query.builder import QueryBuilder
from phenolab.query.filters import RegexFilter
from phenolab.vocabulary import RDFS_LABEL

CONCERNED_ITEM_URI = "concernedItemUri"
CONCERNED_ITEM_LABEL = "concernedItemLabel"


def add_concerned_item_filters(
    builder: QueryBuilder,
    subject: str,
    relation: str,
    item_uri: Optional[str] = None,
    item_label: Optional[str] = None,
) -> QueryBuilder:
    """
    Restrict subject to entities linked by relation to a matching item.

    Nothing is added when neither filter is given, so entities without
    concerned items still match an unfiltered search.
    """
    if item_uri is None and item_label is None:
        return builder

    builder.add_triple_pattern(f"?{subject}", relation, f"?{CONCERNED_ITEM_URI}")
    if item_uri is not None:
        builder.add_filter(RegexFilter(CONCERNED_ITEM_URI, item_uri))
    if item_label is not None:
        builder.add_triple_pattern(f"?{CONCERNED_ITEM_URI}", RDFS_LABEL, f"?{CONCERNED_ITEM_LABEL}")
        builder.add_filter(RegexFilter(CONCERNED_ITEM_LABEL, item_label))
    return builder
