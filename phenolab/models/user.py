"""
Caller identity as seen by the data-access layer
"""
from dataclasses import dataclass
from typing import Optional


@dataclass
class User:
    """Authenticated caller. Session handling happens upstream."""
    uri: str
    email: Optional[str] = None
    admin: bool = False
