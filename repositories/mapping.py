"""
repositories/mapping.py
-----------------------
Translation between storage rows and domain entities.

Rows are copied field by field onto a fresh entity. Keys the entity type does
not know are ignored; fields the row does not carry keep the entity's defaults.
"""

import dataclasses
import inspect
import typing
from typing import Any, ClassVar, Iterable, Mapping, TypeVar

T = TypeVar("T")


def entity_fields(entity_type: type) -> frozenset[str]:
    """
    Names of the fields an entity type accepts from a row.

    Dataclasses contribute their init fields. Plain classes contribute their
    annotations, ``__slots__`` and public non-callable class attributes,
    collected across the MRO. ``ClassVar`` annotations and UPPER_CASE class
    constants are not fields.
    """
    if dataclasses.is_dataclass(entity_type):
        return frozenset(f.name for f in dataclasses.fields(entity_type) if f.init)

    names: set[str] = set()
    class_vars: set[str] = set()
    for klass in entity_type.__mro__:
        if klass is object:
            continue
        for name, annotation in inspect.get_annotations(klass).items():
            (class_vars if _is_class_var(annotation) else names).add(name)
        slots = klass.__dict__.get("__slots__", ())
        names.update([slots] if isinstance(slots, str) else slots)
        names.update(
            name
            for name, value in klass.__dict__.items()
            if not name.startswith("_")
            and not name.isupper()
            and not callable(value)
            and not isinstance(value, (property, staticmethod, classmethod))
        )
    return frozenset(names - class_vars)


def row_to_entity(row: Mapping[str, Any], entity_type: type[T]) -> T:
    """
    Build a new `entity_type` instance from a single row.

    Dataclasses are constructed through ``__init__`` when the row carries
    every required field, so defaults and ``__post_init__`` apply. When a
    required field is missing the instance is assembled field by field
    instead: row values and defaults are set, missing required fields are
    left unset, then ``__post_init__`` runs. Other classes are instantiated
    without arguments and populated attribute by attribute.
    """
    if dataclasses.is_dataclass(entity_type):
        known = entity_fields(entity_type)
        values = {k: v for k, v in row.items() if k in known}
        if _required_fields(entity_type) <= values.keys():
            return entity_type(**values)
        return _assemble_dataclass(entity_type, values)

    entity = entity_type()
    known = entity_fields(entity_type) | _instance_fields(entity)
    for member, value in row.items():
        if member in known:
            setattr(entity, member, value)
    return entity


def rows_to_entities(rows: Iterable[Mapping[str, Any]], entity_type: type[T]) -> list[T]:
    """Map every row in order."""
    return [row_to_entity(row, entity_type) for row in rows]


def entity_to_row(entity: Any) -> dict[str, Any]:
    """
    Flatten an entity back into a row dict (shallow; values are not copied).
    Only fields `row_to_entity` would accept, and that are set, are included.
    """
    if dataclasses.is_dataclass(entity) and not isinstance(entity, type):
        return {
            f.name: getattr(entity, f.name)
            for f in dataclasses.fields(entity)
            if f.init and hasattr(entity, f.name)
        }

    names = entity_fields(type(entity)) | _instance_fields(entity)
    return {name: getattr(entity, name) for name in sorted(names) if hasattr(entity, name)}


def _instance_fields(entity: Any) -> set[str]:
    return {k for k in getattr(entity, "__dict__", {}) if not k.startswith("_")}


def _required_fields(entity_type: type) -> set[str]:
    return {
        f.name
        for f in dataclasses.fields(entity_type)
        if f.init
        and f.default is dataclasses.MISSING
        and f.default_factory is dataclasses.MISSING
    }


def _assemble_dataclass(entity_type: type[T], values: Mapping[str, Any]) -> T:
    # object.__setattr__ also works for frozen and slotted dataclasses
    entity = object.__new__(entity_type)
    for f in dataclasses.fields(entity_type):
        if f.name in values:
            value = values[f.name]
        elif f.default is not dataclasses.MISSING:
            value = f.default
        elif f.default_factory is not dataclasses.MISSING:
            value = f.default_factory()
        else:
            continue
        object.__setattr__(entity, f.name, value)
    post_init = getattr(entity, "__post_init__", None)
    if post_init is not None:
        post_init()
    return entity


def _is_class_var(annotation: Any) -> bool:
    if isinstance(annotation, str):
        return annotation.split("[", 1)[0].strip() in ("ClassVar", "typing.ClassVar")
    return annotation is ClassVar or typing.get_origin(annotation) is ClassVar
