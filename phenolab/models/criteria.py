"""
Search criteria value object
"""
from dataclasses import dataclass
from typing import Optional

from phenolab.utils.datetime_utils import DateLike


@dataclass(frozen=True)
class SearchCriteria:
    """
    Optional filter inputs shared by every repository search.

    A field left as None means "no constraint" - never "match nothing".
    Patterns (uri, label, related_item_*, comment) are case-insensitive
    regular expressions matched anywhere in the value.

    page is zero-based; page_size=None means the configured default and
    page_size=0 means the configured maximum (unbounded fetch).
    """
    uri: Optional[str] = None
    rdf_type: Optional[str] = None
    label: Optional[str] = None
    related_item_uri: Optional[str] = None
    related_item_label: Optional[str] = None
    start: Optional[DateLike] = None
    end: Optional[DateLike] = None
    page: int = 0
    page_size: Optional[int] = None

    # Store-specific extras
    language: Optional[str] = None      # germplasm label language tag
    comment: Optional[str] = None       # provenance comment pattern
    json_filter: Optional[dict] = None  # provenance metadata containment
    sensor: Optional[str] = None        # image shooting sensor URI

    @property
    def has_date_range(self) -> bool:
        return self.start is not None or self.end is not None
