"""
Validation of incoming categories, products and their property values.

Validators return a list of violation messages (empty = valid) and never
stop at the first problem. :func:`validate_or_raise` runs a set of
validators over a whole batch and raises one :class:`ValidationError`
listing every violation, so a save is rejected before anything is written.

Property-value rules run on entities whose dependencies and inheritance
have already been applied: required and dictionary constraints live on the
inherited definitions.
"""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Iterable
from typing import Any, Protocol

from catalog_spine.core.errors import ErrorContext, ValidationError
from catalog_spine.core.logging import get_logger
from catalog_spine.domain.models import (
    CatalogProduct,
    Category,
    HasProperties,
    Property,
    PropertyValueType,
)

logger = get_logger(__name__)

CODE_MAX_LENGTH = 64
NAME_MAX_LENGTH = 1024

# Characters that would break urls and search queries built from codes
_RESERVED_CODE_CHARS = re.compile(r"[$+;=%{}\[\]|\\/@ ~#!^*&?:'<>,]")


class Validator(Protocol):
    def validate(self, entity: Any) -> list[str]:
        ...


def _check_code(code: str | None) -> list[str]:
    if not code:
        return ["code is required"]
    violations = []
    if len(code) > CODE_MAX_LENGTH:
        violations.append(f"code must be at most {CODE_MAX_LENGTH} characters")
    if _RESERVED_CODE_CHARS.search(code):
        violations.append(f"code {code!r} contains reserved characters")
    return violations


class CategoryValidator:
    def validate(self, category: Category) -> list[str]:
        violations = []
        if not category.name:
            violations.append("name is required")
        elif len(category.name) > NAME_MAX_LENGTH:
            violations.append(f"name must be at most {NAME_MAX_LENGTH} characters")
        violations.extend(_check_code(category.code))
        if not category.catalog_id:
            violations.append("catalog id is required")
        return violations


class ProductValidator:
    def validate(self, product: CatalogProduct) -> list[str]:
        violations = []
        if not product.name:
            violations.append("name is required")
        elif len(product.name) > NAME_MAX_LENGTH:
            violations.append(f"name must be at most {NAME_MAX_LENGTH} characters")
        if product.code and len(product.code) > CODE_MAX_LENGTH:
            violations.append(f"code must be at most {CODE_MAX_LENGTH} characters")
        if not product.catalog_id:
            violations.append("catalog id is required")
        return violations


class PropertyValuesValidator:
    """Checks the values an entity carries against their property definitions."""

    def validate(self, owner: HasProperties) -> list[str]:
        violations: list[str] = []
        for prop in owner.properties:
            violations.extend(self._validate_property(prop))
        return violations

    def _validate_property(self, prop: Property) -> list[str]:
        name = prop.name or prop.id
        values = [v for v in prop.values if v.value not in (None, "")]
        violations = []

        # Definitions that belong to another level are not this entity's to fill
        if prop.required and not prop.is_read_only and not values:
            violations.append(f"property {name} is required")

        if prop.dictionary and prop.dictionary_values:
            aliases = {(d.alias or d.value or "").lower() for d in prop.dictionary_values}
            for value in values:
                alias = (value.alias or str(value.value)).lower()
                if alias not in aliases:
                    violations.append(f"property {name}: {alias!r} is not a dictionary value")

        if not prop.multivalue:
            per_language = Counter((v.language_code or "").lower() for v in values if not v.is_inherited)
            for language, count in per_language.items():
                if count > 1:
                    suffix = f" for language {language}" if language else ""
                    violations.append(f"property {name} accepts a single value{suffix}")

        for value in values:
            if not _is_valid_number(value.value, prop.value_type):
                violations.append(f"property {name}: {value.value!r} is not a valid {prop.value_type.value}")
        return violations


def _is_valid_number(raw: Any, value_type: PropertyValueType) -> bool:
    if value_type is PropertyValueType.NUMBER:
        try:
            float(raw)
        except (TypeError, ValueError):
            return False
    elif value_type is PropertyValueType.INTEGER:
        if isinstance(raw, bool):
            return False
        if isinstance(raw, float):
            return raw.is_integer()
        try:
            int(str(raw))
        except ValueError:
            return False
    return True


def _label(entity: Any) -> str:
    return getattr(entity, "id", None) or getattr(entity, "name", None) or "<new>"


def validate_or_raise(entities: Iterable[Any], *validators: Validator, entity_type: str) -> None:
    """Run every validator over every entity; raise once with all violations.

    Raises:
        ValidationError: at least one rule failed.
    """
    violations: list[str] = []
    for entity in entities:
        label = _label(entity)
        for validator in validators:
            violations.extend(f"{entity_type} {label}: {message}" for message in validator.validate(entity))

    if violations:
        logger.warning("validation.failed", entity_type=entity_type, violations=len(violations))
        raise ValidationError(
            f"{len(violations)} validation error(s) in {entity_type} batch",
            violations=violations,
            context=ErrorContext(entity_type=entity_type, operation="save"),
        )


__all__ = [
    "Validator",
    "CategoryValidator",
    "ProductValidator",
    "PropertyValuesValidator",
    "validate_or_raise",
    "CODE_MAX_LENGTH",
    "NAME_MAX_LENGTH",
]
