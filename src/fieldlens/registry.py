"""Per-type field registries and explicit registration of foreign record types."""

import copy
import dataclasses
from collections.abc import Iterator, Mapping
from operator import attrgetter
from types import MappingProxyType
from typing import Any, Callable

from loguru import logger

from .fields import Computed, FieldBase, Getter, Setter, create_field

# Registries for classes that are not Record subclasses, keyed by class
_REGISTRIES: dict[type, "FieldRegistry"] = {}


class FieldRegistry(Mapping):
    """
    Immutable mapping from field name to bound field for one record type.

    A registry is built once per record type and shared by every lens over
    instances of that type. Its keys are the only keys a lens accepts, and
    each entry carries the accessor pair the lens dispatches through, so the
    set of known keys and the get/set dispatch cannot drift apart.
    """

    def __init__(self, owner: type, fields: Mapping[str, FieldBase]):
        for name, field in fields.items():
            if not field.readable:
                raise TypeError(
                    f"Field '{name}' of {owner.__qualname__} is not bound to a getter"
                )
        self._owner = owner
        self._fields = MappingProxyType(dict(fields))

    @property
    def owner(self) -> type:
        return self._owner

    def __getitem__(self, key: str) -> FieldBase:
        return self._fields[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def type_for(self, key: str) -> Any:
        """Return the declared annotation for ``key``, or None if unknown."""
        field = self._fields.get(key)
        return None if field is None else field.annotation

    def readable_keys(self) -> list[str]:
        return [name for name, field in self._fields.items() if field.readable]

    def writable_keys(self) -> list[str]:
        return [name for name, field in self._fields.items() if field.writable]

    def __repr__(self) -> str:
        return f"FieldRegistry({self._owner.__qualname__}, keys={list(self._fields)})"


def _attribute_setter(name: str) -> Setter:
    def setter(record, value):
        setattr(record, name, value)
        return record

    return setter


def _dataclass_replace_setter(name: str) -> Setter:
    def setter(record, value):
        return dataclasses.replace(record, **{name: value})

    return setter


def _namedtuple_setter(name: str) -> Setter:
    def setter(record, value):
        return record._replace(**{name: value})

    return setter


def _is_frozen_dataclass(cls: type) -> bool:
    return dataclasses.is_dataclass(cls) and cls.__dataclass_params__.frozen  # type: ignore[attr-defined]


def _is_namedtuple(cls: type) -> bool:
    return issubclass(cls, tuple) and hasattr(cls, "_replace")


def setter_factory_for(cls: type) -> Callable[[str], Setter]:
    """Pick how fields of ``cls`` are written: in place or by replacing the value."""
    if _is_frozen_dataclass(cls):
        return _dataclass_replace_setter
    if _is_namedtuple(cls):
        return _namedtuple_setter
    return _attribute_setter


def build_registry(
    owner: type,
    fields: Mapping[str, FieldBase],
    setter_factory: Callable[[str], Setter] | None = None,
) -> FieldRegistry:
    """
    Bind accessors to a copy of each field and freeze them into a registry.

    Stored fields get an attribute getter and a setter from
    ``setter_factory``. Computed fields only get their function as a getter.
    """
    if setter_factory is None:
        setter_factory = setter_factory_for(owner)

    bound: dict[str, FieldBase] = {}
    for name, field in fields.items():
        field = copy.copy(field)
        if isinstance(field, Computed):
            bound[name] = field.bind(name, field.func)
        else:
            getter: Getter = attrgetter(name)
            bound[name] = field.bind(name, getter, setter_factory(name))

    return FieldRegistry(owner, bound)


def register_lens(
    cls: type | None = None,
    fields: Mapping[str, Any] | None = None,
    *,
    computed: Mapping[str, tuple[Any, Getter]] | None = None,
):
    """
    Register the lens-accessible fields of a class that is not a Record.

    Parameters
    ----------
    cls : type, optional
        The record class. When omitted, a class decorator is returned.
    fields : Mapping[str, Any]
        Field name to declared annotation, for stored fields.
    computed : Mapping[str, tuple[Any, Callable]], optional
        Field name to ``(annotation, func)`` for derived, read-only fields.

    Returns
    -------
    FieldRegistry
        The registry now used for ``cls`` (or a decorator if ``cls`` is None).

    Examples
    --------
        >>> from dataclasses import dataclass
        >>> @dataclass(frozen=True)
        ... class Point:
        ...     x: int
        ...     y: int
        >>> registry = register_lens(
        ...     Point,
        ...     {"x": int, "y": int},
        ...     computed={"norm": (float, lambda p: (p.x**2 + p.y**2) ** 0.5)},
        ... )
    """
    if cls is None:

        def decorator(target: type) -> type:
            register_lens(target, fields, computed=computed)
            return target

        return decorator

    if fields is None:
        raise TypeError("register_lens() requires an explicit fields mapping")
    if isinstance(getattr(cls, "_registry", None), FieldRegistry):
        raise TypeError(
            f"{cls.__qualname__} is a Record and declares its fields in its class body"
        )

    declared: dict[str, FieldBase] = {
        name: create_field(annotation) for name, annotation in fields.items()
    }
    for name, (annotation, func) in (computed or {}).items():
        if name in declared:
            raise TypeError(
                f"Field '{name}' of {cls.__qualname__} is declared both stored and computed"
            )
        declared[name] = Computed(func, annotation)

    registry = build_registry(cls, declared)
    if cls in _REGISTRIES:
        logger.warning(f"Replacing lens registry for {cls.__qualname__}")
    _REGISTRIES[cls] = registry
    logger.debug(f"Registered lens for {cls.__qualname__} with keys {list(registry)}")
    return registry


def registry_for(cls: type) -> FieldRegistry | None:
    """Return the registry for a Record subclass or a registered class."""
    own = getattr(cls, "_registry", None)
    if isinstance(own, FieldRegistry):
        return own
    for klass in cls.__mro__:
        if klass in _REGISTRIES:
            return _REGISTRIES[klass]
    return None
