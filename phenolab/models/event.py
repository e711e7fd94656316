"""
Event domain model
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Set

from phenolab.models.annotation import Annotation
from phenolab.models.entity import ConcernedItem, Entity, concerned_uris


@dataclass
class Event(Entity):
    """
    Something that happened to one or more concerned items at an instant
    (a move, a treatment, a failure...).

    Graph: type, instant, concerned-item links, attached properties.
    Document store: annotations targeting the event.
    Relational store: registry record.
    """
    date_time: Optional[datetime] = None
    concerned_items: List[ConcernedItem] = field(default_factory=list)
    annotations: List[Annotation] = field(default_factory=list)

    @property
    def concerned_item_uris(self) -> Set[str]:
        return concerned_uris(self.concerned_items)
