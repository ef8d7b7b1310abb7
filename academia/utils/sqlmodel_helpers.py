"""Helpers to move request payloads into SQLModel table rows.

Table models are not validated on assignment, so values coming from JSON
(ISO dates, enum strings) are cast to the annotated python types before they
reach the session. Primary keys and audit columns are never overwritten.
"""

from __future__ import annotations

from typing import Any, Dict, Type, TypeVar

from pydantic import TypeAdapter, ValidationError
from sqlmodel import SQLModel


TModel = TypeVar("TModel", bound=SQLModel)

PROTECTED_FIELDS = frozenset({"id", "created_at"})


def _coerce_field_value(model: Type[TModel], field_name: str, value: Any) -> Any:
    """Cast *value* to the annotation of ``model.field_name``.

    Unknown fields and values that fail to validate are returned untouched;
    the database layer reports them if they are really wrong.
    """

    if value is None:
        return None

    field = model.model_fields.get(field_name)
    if field is None:
        return value

    try:
        return TypeAdapter(field.annotation).validate_python(value)
    except ValidationError:
        return value


def normalize_payload_for_model(model: Type[TModel], data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        key: _coerce_field_value(model, key, value)
        for key, value in data.items()
        if key not in PROTECTED_FIELDS
    }


def apply_partial_update(instance: TModel, data: Dict[str, Any]) -> TModel:
    """Coerce *data* and assign it onto *instance*; returns the instance."""

    coerced = normalize_payload_for_model(type(instance), data)
    for key, value in coerced.items():
        setattr(instance, key, value)
    return instance
