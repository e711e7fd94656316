"""
Validation Pipeline - aggregate every failure of a batch

A validator is an async callable (entity, index) -> list[ValidationError].
For each entity the validators run in order and all their errors are kept:
nothing short-circuits except the access check, which gates the whole
batch and raises AuthorizationError before any data check runs.

Usual order for a writable entity type:
1. identity_exists     (only when a URI is supplied, i.e. update path)
2. type_exists         (type known to the schema, under the root concept)
3. nested(...)         (concerned items, annotations... recursive)
4. attached_properties_compatible  (domain/range of every property)
"""
import logging
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from phenolab.exceptions import AuthorizationError
from phenolab.models.user import User
from phenolab.models.validation import ReasonCode, ValidationError
from phenolab.services.schema_service import SchemaService

logger = logging.getLogger(__name__)

Validator = Callable[[Any, int], Awaitable[List[ValidationError]]]


def require_admin(user: Optional[User]) -> None:
    """Default access check: only administrators may validate or write."""
    if user is None or not user.admin:
        raise AuthorizationError(
            f"User {user.uri if user else '<anonymous>'} is not allowed to administer data"
        )


class ValidationPipeline:
    """Ordered validators plus an access check"""

    def __init__(
        self,
        validators: Sequence[Validator],
        access_check: Callable[[Optional[User]], None] = require_admin,
    ):
        self.validators = list(validators)
        self.access_check = access_check

    async def validate_each(self, entities: Sequence[Any], user: Optional[User]) -> List[List[ValidationError]]:
        """Errors per entity, in batch order (empty list = valid)"""
        self.access_check(user)

        report = []
        for index, entity in enumerate(entities):
            errors: List[ValidationError] = []
            for validator in self.validators:
                errors.extend(await validator(entity, index))
            report.append(errors)

        invalid = sum(1 for errors in report if errors)
        if invalid:
            logger.info(f"🔍 Validation: {invalid}/{len(report)} entities rejected")
        return report

    async def validate(self, entities: Sequence[Any], user: Optional[User]) -> List[ValidationError]:
        """Every error of the batch, flattened. Empty means valid."""
        return [e for errors in await self.validate_each(entities, user) for e in errors]


def _get(entity: Any, path: str) -> Any:
    value = entity
    for part in path.split('.'):
        value = getattr(value, part, None)
        if value is None:
            return None
    return value


# =============================================================================
# VALIDATORS
# =============================================================================

def identity_exists(schema: SchemaService, what: str = "entity") -> Validator:
    """Supplied URI must resolve; entities without a URI are skipped."""
    async def check(entity, index):
        if entity.uri is None or await schema.exists_uri(entity.uri):
            return []
        return [ValidationError(entity.uri, ReasonCode.UNKNOWN_URI,
                                f"Unknown {what} URI: {entity.uri}", index)]
    return check


def type_exists(schema: SchemaService, root_type: str, what: str = "entity") -> Validator:
    """rdf_type is required, known to the schema and under root_type."""
    async def check(entity, index):
        rdf_type = entity.rdf_type
        if not rdf_type:
            return [ValidationError(None, ReasonCode.MISSING_FIELD,
                                    f"{what} type is required", index)]
        if not await schema.type_exists(rdf_type):
            return [ValidationError(rdf_type, ReasonCode.UNKNOWN_TYPE,
                                    f"Unknown {what} type: {rdf_type}", index)]
        if not await schema.is_subtype_of(rdf_type, root_type):
            return [ValidationError(rdf_type, ReasonCode.WRONG_TYPE,
                                    f"{rdf_type} is not a subtype of {root_type}", index)]
        return []
    return check


def required_field(attribute: str, what: Optional[str] = None) -> Validator:
    """Attribute (dotted path allowed) must be set and non-empty."""
    async def check(entity, index):
        value = _get(entity, attribute)
        if value is None or value == "" or value == [] or value == {}:
            return [ValidationError(None, ReasonCode.MISSING_FIELD,
                                    f"{what or attribute} is required", index)]
        return []
    return check


def resource_exists(schema: SchemaService, what: str = "resource") -> Validator:
    """For nested items carrying a 'uri'."""
    async def check(item, index):
        if await schema.exists_uri(item.uri):
            return []
        return [ValidationError(item.uri, ReasonCode.UNKNOWN_URI,
                                f"Unknown {what}: {item.uri}", index)]
    return check


def nested(attribute: str, validators: Sequence[Validator]) -> Validator:
    """
    Run validators over every element of a collection attribute.

    Nested errors keep their own reason code and are reported under the
    index of the parent entity.
    """
    async def check(entity, index):
        errors = []
        for item in getattr(entity, attribute, None) or []:
            for validator in validators:
                errors.extend(await validator(item, index))
        return errors
    return check


def instance_of(
    schema: SchemaService,
    attribute: str,
    root_type: str,
    what: str = "resource",
    required: bool = False,
) -> Validator:
    """URI found at attribute exists and has a type under root_type."""
    async def check(entity, index):
        uri = _get(entity, attribute)
        if uri is None:
            if required:
                return [ValidationError(None, ReasonCode.MISSING_FIELD,
                                        f"{what} is required", index)]
            return []
        if not await schema.exists_uri(uri):
            return [ValidationError(uri, ReasonCode.UNKNOWN_URI,
                                    f"Unknown {what}: {uri}", index)]
        if not await schema.is_instance_of(uri, root_type):
            return [ValidationError(uri, ReasonCode.WRONG_TYPE,
                                    f"{uri} is not a {what}", index)]
        return []
    return check


def annotation_valid(schema: SchemaService) -> Validator:
    """Annotations need a body and, when given, a known motivation."""
    async def check(annotation, index):
        errors = []
        if not annotation.body_values:
            errors.append(ValidationError(None, ReasonCode.MISSING_FIELD,
                                          "Annotation body is required", index))
        if annotation.motivated_by and not await schema.exists_uri(annotation.motivated_by):
            errors.append(ValidationError(annotation.motivated_by, ReasonCode.UNKNOWN_URI,
                                          f"Unknown motivation: {annotation.motivated_by}", index))
        return errors
    return check


def attached_properties_compatible(schema: SchemaService) -> Validator:
    """
    Every attached property references a known predicate whose domain
    accepts the entity type and whose range accepts the value type.
    Literal values are only checked against the domain.
    """
    async def check(entity, index):
        errors = []
        # Unknown types are reported by type_exists(); no domain can accept them
        type_known = (bool(entity.properties and entity.rdf_type)
                      and await schema.type_exists(entity.rdf_type))
        for prop in entity.properties:
            signature = await schema.property_domain_range(prop.predicate)
            if signature is None:
                errors.append(ValidationError(prop.predicate, ReasonCode.UNKNOWN_PROPERTY,
                                              f"Unknown property: {prop.predicate}", index))
                continue

            domain, range_ = signature
            if domain and type_known and not await schema.is_subtype_of(entity.rdf_type, domain):
                errors.append(ValidationError(
                    prop.predicate, ReasonCode.WRONG_DOMAIN,
                    f"{prop.predicate} does not apply to {entity.rdf_type} (domain {domain})",
                    index,
                ))
            if range_ and prop.is_reference and not await schema.is_subtype_of(prop.value_type, range_):
                errors.append(ValidationError(
                    prop.value, ReasonCode.WRONG_RANGE,
                    f"{prop.value} of type {prop.value_type} is out of the range {range_} "
                    f"of {prop.predicate}",
                    index,
                ))
        return errors
    return check
