"""The lens contract and its registry-driven implementation."""

from abc import ABC, abstractmethod
from typing import Any, Protocol, runtime_checkable

from loguru import logger

from ._typing import matches
from .fields import FieldBase
from .registry import FieldRegistry, registry_for


class Lens(ABC):
    """
    Uniform, string-keyed access to the named fields of one record.

    Lens operations never raise for an unknown key or a type mismatch.
    ``get`` answers with the caller's default and ``set`` does nothing, so a
    caller that needs to know whether an access took effect must pass a
    distinguishable default or compare values before and after a write.

    Indexing is shorthand for the same calls:

        >>> lens["name"]                     # get("name")
        >>> lens["age", -1]                  # get("age", -1)
        >>> lens["age", -1, int]             # get("age", -1, as_type=int)
        >>> lens["name"] = "Mary Jane"       # set("name", "Mary Jane")
    """

    @abstractmethod
    def value(self, as_type: Any = None) -> Any:
        """Return the wrapped record, or None if it is not an ``as_type``."""

    @abstractmethod
    def type_for(self, key: str) -> Any:
        """Return the declared type of ``key``, or None if it is not a field."""

    @abstractmethod
    def get(self, key: str, default: Any = None, as_type: Any = None) -> Any:
        """Return the value of ``key``, or ``default`` on any mismatch."""

    @abstractmethod
    def set(self, key: str, value: Any, as_type: Any = None) -> None:
        """Overwrite ``key`` with ``value``, or do nothing on any mismatch."""

    @abstractmethod
    def keys(self) -> list[str]:
        """Return the known keys in declaration order."""

    def has_property(self, name: str) -> bool:
        return self.type_for(name) is not None

    def __contains__(self, name: object) -> bool:
        return self.has_property(name)  # type: ignore[arg-type]

    def __getitem__(self, key):
        if isinstance(key, tuple):
            return self.get(*key)
        return self.get(key)

    def __setitem__(self, key, value: Any) -> None:
        # Mirrors the read forms: lens[k, d] = v and lens[k, d, T] = v.
        # The default plays no part in a write.
        if isinstance(key, tuple):
            as_type = key[2] if len(key) > 2 else None
            self.set(key[0], value, as_type=as_type)
            return
        self.set(key, value)


@runtime_checkable
class Lensable(Protocol):
    """Anything that hands out a lens over itself."""

    @property
    def lens(self) -> Lens: ...


class RecordLens(Lens):
    """
    Lens over one record, dispatching through its type's FieldRegistry.

    Mutable records are updated in place, so the caller's reference sees
    every successful ``set``. Value-like records (frozen records, frozen
    dataclasses, namedtuples) are replaced by an updated copy held by the
    lens: read it back with ``value()``.

    Parameters
    ----------
    record : Any
        The record to wrap.
    registry : FieldRegistry, optional
        Registry to dispatch through. Looked up from the record's type when
        omitted.

    Raises
    ------
    TypeError
        If no registry is given and the record's type has none.
    """

    def __init__(self, record: Any, registry: FieldRegistry | None = None):
        if registry is None:
            registry = registry_for(type(record))
            if registry is None:
                raise TypeError(
                    f"No lens registered for {type(record).__qualname__}; "
                    f"subclass Record or call register_lens()"
                )
        self._record = record
        self._registry = registry

    @property
    def registry(self) -> FieldRegistry:
        return self._registry

    @property
    def _record_name(self) -> str:
        return type(self._record).__qualname__

    def _field(self, key: Any) -> FieldBase | None:
        if not isinstance(key, str):
            return None
        return self._registry.get(key)

    def value(self, as_type: Any = None) -> Any:
        if as_type is not None and not matches(self._record, as_type):
            return None
        return self._record

    def type_for(self, key: str) -> Any:
        if not isinstance(key, str):
            return None
        return self._registry.type_for(key)

    def keys(self) -> list[str]:
        return list(self._registry)

    def get(self, key: str, default: Any = None, as_type: Any = None) -> Any:
        field = self._field(key)
        if field is None:
            logger.debug(f"{self._record_name}: get of unknown key {key!r}")
            return default

        value = field.read(self._record)
        if as_type is not None and not matches(value, as_type):
            logger.debug(
                f"{self._record_name}.{key}: {type(value).__name__} value "
                f"does not match requested type {as_type!r}"
            )
            return default
        return value

    def set(self, key: str, value: Any, as_type: Any = None) -> None:
        field = self._field(key)
        if field is None:
            logger.debug(f"{self._record_name}: set of unknown key {key!r} ignored")
            return
        if not field.writable:
            logger.debug(f"{self._record_name}.{key}: field is read-only, set ignored")
            return

        if as_type is not None:
            current = field.read(self._record)
            slot_matches = matches(current, as_type) or (
                current is None and field.nullable
            )
            if not slot_matches or not matches(value, as_type):
                logger.debug(
                    f"{self._record_name}.{key}: requested type {as_type!r} "
                    f"does not fit the field, set ignored"
                )
                return

        if not field.accepts(value):
            logger.debug(
                f"{self._record_name}.{key}: {type(value).__name__} value does not "
                f"match declared type {field.annotation!r}, set ignored"
            )
            return

        self._record = field.write(self._record, value)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._record!r})"


def lens_for(record: Any) -> RecordLens:
    """
    Return a lens over ``record``.

    Raises
    ------
    TypeError
        If the record's type is neither a Record nor registered.
    """
    return RecordLens(record)
