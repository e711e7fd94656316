"""
Germplasm domain model
"""
from dataclasses import dataclass
from typing import Optional

from phenolab.models.entity import Entity


@dataclass
class Germplasm(Entity):
    """Plant material (accession, lot, variety) described in the graph"""
    label: Optional[str] = None
    language: Optional[str] = None
    species: Optional[str] = None
