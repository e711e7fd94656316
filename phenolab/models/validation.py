"""
Validation error records
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ReasonCode(Enum):
    """Why a value was rejected"""
    UNKNOWN_URI = "unknown_uri"
    UNKNOWN_TYPE = "unknown_type"
    WRONG_TYPE = "wrong_type"
    UNKNOWN_PROPERTY = "unknown_property"
    WRONG_DOMAIN = "wrong_domain"
    WRONG_RANGE = "wrong_range"
    MISSING_FIELD = "missing_field"
    WRONG_VALUE = "wrong_value"
    NOT_AUTHORIZED = "not_authorized"


@dataclass(frozen=True)
class ValidationError:
    """
    One rejected value.

    Collected by the ValidationPipeline, never raised on its own.
    entity_index is the position of the offending entity in the batch.
    """
    value: Any
    reason: ReasonCode
    message: str
    entity_index: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "value": self.value,
            "reason": self.reason.value,
            "message": self.message,
            "entity_index": self.entity_index,
        }
