"""Field descriptors with declared types, capabilities and bound accessors."""

from datetime import date, datetime
from typing import Any, Callable, get_origin

import polars as pl

from ._typing import matches, unwrap_optional

# Sentinel value to distinguish "no default provided" from "default is None"
_MISSING = object()

# Type mapping from Python types to Field classes (populated at module end)
_TYPE_MAP: dict[type, type["FieldBase"]] = {}

Getter = Callable[[Any], Any]
Setter = Callable[[Any, Any], Any]


class FieldInfo:
    """
    Stores field metadata from Field() calls in a Record class body.

    The Record metaclass merges this with the field class chosen from the
    type annotation. Users should call Field(), not this class directly.
    """

    def __init__(
        self,
        *,
        default: Any = _MISSING,
        default_factory: Callable[[], Any] | None = None,
        description: str | None = None,
        readonly: bool = False,
    ):
        if default is not _MISSING and default_factory is not None:
            raise TypeError("Field() accepts either default or default_factory, not both")

        self.default = default
        self.default_factory = default_factory
        self.description = description
        self.readonly = readonly

    def to_field_kwargs(self) -> dict[str, Any]:
        """Convert to kwargs dict for Field subclass constructors."""
        kwargs: dict[str, Any] = {"readonly": self.readonly}
        if self.default is not _MISSING:
            kwargs["default"] = self.default
        if self.default_factory is not None:
            kwargs["default_factory"] = self.default_factory
        if self.description is not None:
            kwargs["description"] = self.description
        return kwargs


def Field(  # noqa: N802 - Capitalized to match Pydantic's Field() API
    default: Any = _MISSING,
    *,
    default_factory: Callable[[], Any] | None = None,
    description: str | None = None,
    readonly: bool = False,
) -> Any:
    """
    Declare field metadata for a Record class body.

    Parameters
    ----------
    default : Any, optional
        Default value used when the field is omitted at construction.
    default_factory : Callable, optional
        Zero-argument callable producing a fresh default (for lists, dicts...).
    description : str, optional
        Human-readable description of this field.
    readonly : bool, default False
        Expose the field through lenses for reading only. Lens writes to a
        read-only field are silent no-ops.

    Returns
    -------
    FieldInfo
        A FieldInfo instance that will be processed by the Record metaclass.

    Examples
    --------
        >>> from fieldlens import Field, Record
        >>> class Account(Record):
        ...     id: int = Field(readonly=True)
        ...     owner: str
        ...     tags: list[str] = Field(default_factory=list)
        ...     note: str | None = Field(default=None, description="Free text")
    """
    return FieldInfo(
        default=default,
        default_factory=default_factory,
        description=description,
        readonly=readonly,
    )


class FieldBase:
    """
    Base field class for lens registries.

    A field knows its declared annotation and nullability, and holds the
    accessor pair bound when its record type is registered. The pair drives
    the field's capabilities: a field with a getter is readable, a field with
    a setter that is not read-only is writable.

    Parameters
    ----------
    nullable : bool, default False
        Accept None as a value for this field.
    default : Any, optional
        Default value used by Record construction.
    default_factory : Callable, optional
        Callable producing a fresh default value.
    description : str, optional
        Human-readable description of this field.
    readonly : bool, default False
        Never writable through a lens, even when a setter is bound.
    """

    def __init__(
        self,
        *,
        nullable: bool = False,
        default: Any = _MISSING,
        default_factory: Callable[[], Any] | None = None,
        description: str | None = None,
        readonly: bool = False,
    ):
        self.nullable = nullable
        self.default = default
        self.default_factory = default_factory
        self.description = description
        self.readonly = readonly
        self.name: str | None = None  # Set when the field is bound
        self.annotation: Any = None  # Declared type hint, as written

        self._getter: Getter | None = None
        self._setter: Setter | None = None

    def get_python_type(self) -> Any:
        """Return the Python type for this field."""
        raise NotImplementedError

    def get_polars_dtype(self):
        """Return the Polars dtype for this field."""
        raise NotImplementedError

    @property
    def readable(self) -> bool:
        return self._getter is not None

    @property
    def writable(self) -> bool:
        return self._setter is not None and not self.readonly

    @property
    def has_default(self) -> bool:
        return self.default is not _MISSING or self.default_factory is not None

    def make_default(self) -> Any:
        """Return the default value, calling default_factory if one is set."""
        if self.default_factory is not None:
            return self.default_factory()
        if self.default is _MISSING:
            raise RuntimeError(f"Field '{self.name}' has no default")
        return self.default

    def bind(self, name: str, getter: Getter, setter: Setter | None = None):
        """
        Attach the accessor pair used to reach this field on a record.

        A bound field belongs to a registry and is locked: its attributes can
        no longer be reassigned. Rebinding a copy is allowed.
        """
        object.__setattr__(self, "name", name)
        object.__setattr__(self, "_getter", getter)
        object.__setattr__(self, "_setter", setter)
        object.__setattr__(self, "_locked", True)
        return self

    def __setattr__(self, attr: str, value: Any) -> None:
        if self.__dict__.get("_locked", False):
            raise AttributeError(
                f"Field '{self.name}' is bound to a registry and cannot be modified"
            )
        super().__setattr__(attr, value)

    def __delattr__(self, attr: str) -> None:
        if self.__dict__.get("_locked", False):
            raise AttributeError(
                f"Field '{self.name}' is bound to a registry and cannot be modified"
            )
        super().__delattr__(attr)

    def read(self, record: Any) -> Any:
        """Read this field's current value from ``record``."""
        if self._getter is None:
            raise RuntimeError(
                f"{self.__class__.__name__} '{self.name}' is not bound to a record type"
            )
        return self._getter(record)

    def write(self, record: Any, value: Any) -> Any:
        """
        Store ``value`` on ``record`` and return the record holding it.

        Mutable records are updated in place and returned as-is. Value-like
        records (frozen records, frozen dataclasses, namedtuples) come back as
        an updated copy.
        """
        if not self.writable:
            raise RuntimeError(f"Field '{self.name}' is not writable")
        result = self._setter(record, value)  # type: ignore[misc]
        return record if result is None else result

    def accepts(self, value: Any) -> bool:
        """Check whether ``value`` matches the declared type of this field."""
        if value is None:
            return self.nullable
        return matches(value, self.get_python_type())

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, annotation={self.annotation!r})"


class Integer(FieldBase):
    """Integer field. ``bool`` values are not accepted."""

    def get_python_type(self):
        return int

    def get_polars_dtype(self):
        return pl.Int64


class Float(FieldBase):
    """Float field. Plain ``int`` values are accepted as well."""

    def get_python_type(self):
        return float

    def get_polars_dtype(self):
        return pl.Float64


class String(FieldBase):
    """String field."""

    def get_python_type(self):
        return str

    def get_polars_dtype(self):
        return pl.Utf8


class Boolean(FieldBase):
    def get_python_type(self):
        return bool

    def get_polars_dtype(self):
        return pl.Boolean


class Datetime(FieldBase):
    """Datetime field for datetime.datetime values."""

    def get_python_type(self):
        return datetime

    def get_polars_dtype(self):
        return pl.Datetime


class Date(FieldBase):
    """
    Date field for datetime.date values.

    ``datetime`` instances are rejected even though they subclass ``date``.
    """

    def get_python_type(self):
        return date

    def get_polars_dtype(self):
        return pl.Date


class Object(FieldBase):
    """
    Field of any other declared type: classes, unions, parameterized generics.

    Parameters
    ----------
    python_type : Any
        The declared value type with ``None`` already stripped.
    **kwargs
        Additional arguments passed to `FieldBase`.

    Examples
    --------
        >>> from decimal import Decimal
        >>> from typing import Literal
        >>> from fieldlens import Record
        >>> class Order(Record):
        ...     lines: list[str]
        ...     status: Literal["open", "closed"]
        ...     total: Decimal
    """

    def __init__(self, python_type: Any, **kwargs):
        super().__init__(**kwargs)
        self.python_type = python_type

    def get_python_type(self):
        return self.python_type

    def get_polars_dtype(self):
        # Let Polars infer nested dtypes for generics such as list[str]
        if get_origin(self.python_type) is not None:
            return None
        return pl.Object


class Computed(FieldBase):
    """
    Derived field computed from a record's other fields.

    Computed fields are always read-only: they are bound with a getter and
    never with a setter.

    Parameters
    ----------
    func : Callable
        Function taking the record and returning the derived value.
    annotation : Any
        Declared type of the derived value.
    **kwargs
        Additional arguments passed to `FieldBase` (description).
    """

    def __init__(self, func: Getter, annotation: Any, **kwargs):
        kwargs["readonly"] = True
        super().__init__(**kwargs)
        self.func = func
        self.annotation = annotation
        self._value_field = create_field(annotation)
        self.nullable = self._value_field.nullable

    def get_python_type(self):
        return self._value_field.get_python_type()

    def get_polars_dtype(self):
        return self._value_field.get_polars_dtype()


# Populate type mapping from Python types to Field classes
# This is used to create fields from type annotations
_TYPE_MAP.update(
    {
        int: Integer,
        str: String,
        float: Float,
        bool: Boolean,
        datetime: Datetime,
        date: Date,
    }
)


def get_field_class_for_type(python_type: Any) -> type[FieldBase] | None:
    """
    Get the dedicated Field class for a Python type.

    Parameters
    ----------
    python_type : Any
        A Python type (int, str, float, bool, datetime, date).

    Returns
    -------
    type[FieldBase] | None
        The corresponding Field class, or None if the type has none.
    """
    try:
        return _TYPE_MAP.get(python_type)
    except TypeError:  # unhashable annotation
        return None


def create_field(annotation: Any, **kwargs) -> FieldBase:
    """
    Create the field instance for a declared annotation.

    ``T | None`` marks the field nullable. Types without a dedicated field
    class produce an `Object` field.
    """
    actual_type, nullable = unwrap_optional(annotation)
    if nullable:
        kwargs["nullable"] = True

    field_class = get_field_class_for_type(actual_type)
    if field_class is None:
        field: FieldBase = Object(actual_type, **kwargs)
    else:
        field = field_class(**kwargs)

    field.annotation = annotation
    return field
