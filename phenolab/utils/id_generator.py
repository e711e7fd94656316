"""
Resource identifier allocation for phenolab entities.

URI format: {base_uri}/id/{segment}/{prefix}_{base36_random}
- .../id/events/ev_xxxxxxxxxxxx       - event
- .../id/experiments/ex_xxxxxxxxxxxx  - experiment
- .../id/images/im_xxxxxxxxxxxx       - image
- .../id/provenances/pv_xxxxxxxxxxxx  - provenance
- .../id/annotations/an_xxxxxxxxxxxx  - annotation
- .../id/instants/ti_xxxxxxxxxxxx     - time instant

12 chars base36 = 36^12 ~ 4.7e18 unique IDs per type. The random part comes
from `secrets`, and every draw is checked against the identity service
before it is handed out, so concurrent requests never need a shared counter.
"""
import logging
import re
import secrets
from typing import Awaitable, Callable, Optional

from phenolab.exceptions import IdentifierExhaustedError

logger = logging.getLogger(__name__)

# Base36 alphabet (lowercase letters + digits)
ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
BASE = len(ALPHABET)  # 36
RANDOM_LENGTH = 12

# entity type -> (prefix, path segment)
PREFIXES = {
    'event': ('ev', 'events'),
    'experiment': ('ex', 'experiments'),
    'image': ('im', 'images'),
    'provenance': ('pv', 'provenances'),
    'annotation': ('an', 'annotations'),
    'instant': ('ti', 'instants'),
}

# Reverse mapping for validation
PREFIX_TO_TYPE = {prefix: entity_type for entity_type, (prefix, _) in PREFIXES.items()}

ID_PATTERN = re.compile(r'^(ev|ex|im|pv|an|ti)_[0-9a-z]{12}$')


def _random_base36(length: int = RANDOM_LENGTH) -> str:
    """Generate random base36 string"""
    return ''.join(ALPHABET[secrets.randbelow(BASE)] for _ in range(length))


def generate_id(entity_type: str) -> str:
    """
    Generate a new short ID for the given entity type.

    Args:
        entity_type: One of the keys of PREFIXES

    Returns:
        Short ID like 'ev_x5b8r2yjq0a1'

    Raises:
        ValueError: If entity_type is invalid
    """
    if entity_type not in PREFIXES:
        raise ValueError(f"Invalid entity type: {entity_type}. "
                         f"Must be one of: {list(PREFIXES.keys())}")

    prefix, _ = PREFIXES[entity_type]
    return f"{prefix}_{_random_base36()}"


def build_uri(base_uri: str, entity_type: str, short_id: Optional[str] = None) -> str:
    """Build a resource URI under base_uri for entity_type."""
    if entity_type not in PREFIXES:
        raise ValueError(f"Invalid entity type: {entity_type}")
    _, segment = PREFIXES[entity_type]
    return f"{base_uri.rstrip('/')}/id/{segment}/{short_id or generate_id(entity_type)}"


def validate_id(id_str: str) -> bool:
    """Check if a string is a valid short ID."""
    if not id_str or not isinstance(id_str, str):
        return False
    return bool(ID_PATTERN.match(id_str))


def short_id_of(uri: str) -> Optional[str]:
    """Last path segment of a phenolab URI if it is a valid short ID."""
    if not uri:
        return None
    tail = uri.rstrip('/').rsplit('/', 1)[-1]
    return tail if validate_id(tail) else None


def get_id_type(uri: str) -> Optional[str]:
    """
    Extract the entity type from a phenolab URI or short ID.

    Returns:
        Entity type ('event', 'image', etc.) or None if not a phenolab ID
    """
    short_id = uri if validate_id(uri) else short_id_of(uri)
    if not short_id:
        return None
    return PREFIX_TO_TYPE.get(short_id.split('_', 1)[0])


class IdentifierAllocator:
    """
    Hands out collision-free URIs scoped by entity type.

    exists_uri is the identity service lookup. A draw that already exists
    is discarded and redrawn, up to max_attempts times.
    """

    def __init__(
        self,
        exists_uri: Callable[[str], Awaitable[bool]],
        base_uri: str,
        max_attempts: int = 5,
        generate: Callable[[str], str] = generate_id,
    ):
        self.exists_uri = exists_uri
        self.base_uri = base_uri
        self.max_attempts = max_attempts
        self._generate = generate

    async def allocate(self, entity_type: str) -> str:
        for attempt in range(1, self.max_attempts + 1):
            uri = build_uri(self.base_uri, entity_type, self._generate(entity_type))
            if not await self.exists_uri(uri):
                return uri
            logger.warning(f"⚠️ Identifier collision on {uri} (attempt {attempt})")

        raise IdentifierExhaustedError(
            f"No free {entity_type} identifier after {self.max_attempts} attempts"
        )
