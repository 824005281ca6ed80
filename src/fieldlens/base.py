"""Core `Record` class with metaclass-built field registries."""

import inspect
from typing import Any, Callable, ClassVar, get_origin

from .fields import _MISSING, Computed, FieldBase, FieldInfo, Setter, create_field
from .lens import RecordLens
from .registry import FieldRegistry, build_registry

# Names used by Record itself, which fields may not shadow
_RESERVED = frozenset({"lens", "fields", "registry", "replace"})

_MUTABLE_DEFAULTS = (list, dict, set)


def _record_replace_setter(name: str) -> Setter:
    def setter(record, value):
        return record.replace(**{name: value})

    return setter


class RecordMeta(type):
    """
    Metaclass that builds the field registry of each Record subclass.

    Fields are declared with type annotations, optionally with Field() for
    metadata, and derived fields with @computed:

        class Person(Record):
            name: str
            birthday: datetime
            nickname: str | None = None

            @computed
            def age(self) -> int:
                ...

    Fields of base classes are inherited; redeclaring a name overrides it.
    """

    def __new__(mcs, name, bases, namespace, frozen=None, **kwargs):
        cls = super().__new__(mcs, name, bases, namespace, **kwargs)

        if frozen is None:
            frozen = any(getattr(base, "_frozen", False) for base in bases)
        cls._frozen = bool(frozen)

        fields: dict[str, FieldBase] = {}

        # Inherited fields, most distant ancestor first
        for base in reversed(cls.__mro__[1:]):
            base_registry = base.__dict__.get("_registry")
            if isinstance(base_registry, FieldRegistry):
                fields.update(base_registry)

        # Own annotations only, with string annotations resolved
        annotations = inspect.get_annotations(cls, eval_str=True)

        for field_name, type_hint in annotations.items():
            # Skip private attributes and classvars
            if field_name.startswith("_") or get_origin(type_hint) is ClassVar:
                continue
            if field_name in _RESERVED:
                raise TypeError(
                    f"Field '{field_name}' of {name}: the name is reserved by Record"
                )

            class_value = cls.__dict__.get(field_name, _MISSING)

            # Case 1: FieldInfo from Field() function
            if isinstance(class_value, FieldInfo):
                field = create_field(type_hint, **class_value.to_field_kwargs())

            # Case 2: raw default value or no value
            else:
                kwargs: dict[str, Any] = {}
                if class_value is not _MISSING:
                    if isinstance(class_value, _MUTABLE_DEFAULTS):
                        raise TypeError(
                            f"Field '{field_name}' of {name}: mutable default "
                            f"{type(class_value).__name__} is not allowed, "
                            f"use Field(default_factory=...)"
                        )
                    kwargs["default"] = class_value
                field = create_field(type_hint, **kwargs)

            # Defaults live on the field, not on the class
            if class_value is not _MISSING:
                delattr(cls, field_name)
            fields[field_name] = field

        for attr, value in list(cls.__dict__.items()):
            if isinstance(value, FieldInfo):
                raise TypeError(
                    f"Field '{attr}' of {name}: Field() requires a type annotation"
                )
            if isinstance(value, property) and getattr(value.fget, "_is_computed", False):
                fields[attr] = _computed_field(name, attr, value.fget)

        setter_factory = _record_replace_setter if cls._frozen else None
        cls._registry = build_registry(cls, fields, setter_factory)
        return cls

    def __init__(cls, name, bases, namespace, frozen=None, **kwargs):
        super().__init__(name, bases, namespace, **kwargs)


def _computed_field(record_name: str, attr: str, func: Callable) -> Computed:
    if attr in _RESERVED:
        raise TypeError(
            f"Computed field '{attr}' of {record_name}: the name is reserved by Record"
        )
    hints = inspect.get_annotations(func, eval_str=True)
    if "return" not in hints:
        raise TypeError(
            f"Computed field '{attr}' of {record_name} needs a return annotation"
        )
    return Computed(func, hints["return"], description=inspect.getdoc(func))


class Record(metaclass=RecordMeta):
    """
    Base class for records exposed through lenses.

    Subclass `Record` and annotate its fields. The metaclass collects them,
    once per class, into the `FieldRegistry` that every lens over an
    instance dispatches through.

    Examples
    --------
        >>> from datetime import datetime, timezone
        >>> from fieldlens import Record, computed
        >>> class Person(Record):
        ...     name: str
        ...     birthday: datetime
        ...
        ...     @computed
        ...     def age(self) -> int:
        ...         return datetime.now(timezone.utc).year - self.birthday.year
        >>> mary = Person(name="Mary", birthday=datetime(1970, 1, 1, tzinfo=timezone.utc))
        >>> lens = mary.lens
        >>> lens.set("name", "Mary Jane")
        >>> mary.name
        'Mary Jane'
        >>> lens.set("age", 99)  # computed, ignored
        >>> lens.get("unknownField", "x")
        'x'

    Frozen records never change in place. A lens over one keeps the updated
    copy:

        >>> class Point(Record, frozen=True):
        ...     x: int
        ...     y: int
        >>> lens = Point(x=1, y=2).lens
        >>> lens["x"] = 5
        >>> lens.value()
        Point(x=5, y=2)
    """

    _registry: ClassVar[FieldRegistry]
    _frozen: ClassVar[bool] = False

    def __init__(self, **values: Any):
        cls = type(self)
        stored = cls._stored_names()

        unknown = set(values) - set(stored)
        if unknown:
            raise TypeError(f"{cls.__name__}() got unexpected field(s): {sorted(unknown)}")

        for field_name in stored:
            field = cls._registry[field_name]
            if field_name in values:
                value = values[field_name]
            elif field.has_default:
                value = field.make_default()
            else:
                raise TypeError(f"{cls.__name__}() missing required field '{field_name}'")
            object.__setattr__(self, field_name, value)

    @classmethod
    def _stored_names(cls) -> list[str]:
        return [
            name
            for name, field in cls._registry.items()
            if not isinstance(field, Computed)
        ]

    def _stored_values(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in self._stored_names()}

    def __setattr__(self, name: str, value: Any) -> None:
        if self._frozen:
            raise AttributeError(
                f"cannot assign to field '{name}' of frozen {type(self).__name__}"
            )
        super().__setattr__(name, value)

    def __delattr__(self, name: str) -> None:
        if self._frozen:
            raise AttributeError(
                f"cannot delete field '{name}' of frozen {type(self).__name__}"
            )
        super().__delattr__(name)

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._stored_values() == other._stored_values()  # type: ignore[attr-defined]

    def __hash__(self) -> int:
        if not self._frozen:
            raise TypeError(f"unhashable type: '{type(self).__name__}'")
        return hash((type(self), tuple(self._stored_values().values())))

    def __repr__(self) -> str:
        args = ", ".join(f"{k}={v!r}" for k, v in self._stored_values().items())
        return f"{type(self).__name__}({args})"

    @property
    def lens(self) -> RecordLens:
        """Return a new lens over this record."""
        return RecordLens(self, type(self)._registry)

    def replace(self, **changes: Any):
        """Return a copy of this record with ``changes`` applied."""
        values = self._stored_values()
        values.update(changes)
        return type(self)(**values)

    @classmethod
    def fields(cls) -> dict[str, FieldBase]:
        """
        Return all fields of this record type, computed ones included.

        Returns
        -------
        dict[str, FieldBase]
            Dictionary mapping field names to Field instances.

        Examples
        --------
            >>> class UserRecord(Record):
            ...     id: int
            ...     name: str
            >>> list(UserRecord.fields())
            ['id', 'name']
        """
        return dict(cls._registry)

    @classmethod
    def registry(cls) -> FieldRegistry:
        """Return the registry shared by all lenses over this record type."""
        return cls._registry


def computed(func: Callable) -> property:
    """
    Decorator declaring a derived, read-only field.

    The function must carry a return annotation, which becomes the field's
    declared type. The decorated name behaves as a property on instances and
    is readable, never writable, through a lens.

    Examples
    --------
        >>> class Rectangle(Record):
        ...     width: float
        ...     height: float
        ...
        ...     @computed
        ...     def area(self) -> float:
        ...         return self.width * self.height
    """
    # Mark the function as a computed field
    func._is_computed = True  # type: ignore[attr-defined]
    return property(func)
