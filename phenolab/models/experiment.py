"""
Experiment domain model
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional

from phenolab.models.entity import Entity
from phenolab.vocabulary import OESO_EXPERIMENT


@dataclass
class Experiment(Entity):
    """
    Experiment held in the graph store.

    variables: measured variables (experiment -measures-> variable)
    sensors: sensors taking part (sensor -participatesIn-> experiment)
    Both map URI -> label.
    """
    rdf_type: Optional[str] = OESO_EXPERIMENT
    label: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    variables: Dict[str, Optional[str]] = field(default_factory=dict)
    sensors: Dict[str, Optional[str]] = field(default_factory=dict)
