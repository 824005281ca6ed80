"""Runtime matching of values against declared field annotations."""

import sys
import types
from datetime import date, datetime
from functools import lru_cache
from typing import Any, Union, get_args, get_origin

from pydantic import ConfigDict, TypeAdapter, ValidationError

_NONE_TYPE = type(None)

# Subclasses that must not satisfy a declaration of their parent type
_EXCLUDED: dict[type, tuple[type, ...]] = {
    int: (bool,),
    date: (datetime,),
}

# Types accepted in place of the declared one (bool is never widened)
_WIDENED: dict[type, tuple[type, ...]] = {
    float: (int,),
}


def is_union(type_hint: Any) -> bool:
    """Return True for ``Union[...]``, ``Optional[...]`` and ``X | Y`` hints."""
    origin = get_origin(type_hint)
    # Python 3.10+ uses types.UnionType for X | Y syntax
    return origin is Union or (
        sys.version_info >= (3, 10) and isinstance(type_hint, types.UnionType)
    )


def unwrap_optional(type_hint: Any) -> tuple[Any, bool]:
    """
    Split a declared annotation into its value type and nullability.

    ``str | None`` gives ``(str, True)``, ``int | str | None`` gives
    ``(int | str, True)`` and a plain ``str`` gives ``(str, False)``.
    """
    if not is_union(type_hint):
        return type_hint, False

    args = get_args(type_hint)
    non_none_types = tuple(a for a in args if a is not _NONE_TYPE)
    nullable = len(non_none_types) != len(args)

    if len(non_none_types) == 1:
        return non_none_types[0], nullable
    return Union[non_none_types], nullable  # type: ignore[return-value]


@lru_cache(maxsize=None)
def _adapter(type_hint: Any) -> TypeAdapter:
    return TypeAdapter(
        type_hint, config=ConfigDict(strict=True, arbitrary_types_allowed=True)
    )


def _matches_generic(value: Any, type_hint: Any) -> bool:
    origin = get_origin(type_hint)
    # Cheap container check first, so pydantic only sees plausible values
    if isinstance(origin, type) and not isinstance(value, origin):
        return False
    try:
        _adapter(type_hint).validate_python(value)
    except ValidationError:
        return False
    return True


def matches(value: Any, type_hint: Any) -> bool:
    """
    Check whether ``value`` can stand in a slot declared as ``type_hint``.

    Plain classes use ``isinstance`` with two exclusions (``bool`` is not an
    ``int`` and ``datetime`` is not a ``date``) and one widening (an ``int`` is
    accepted as a ``float``). Unions match when any member matches.
    Parameterized generics such as ``list[str]`` or ``Literal["a", "b"]`` are
    checked with a strict pydantic ``TypeAdapter``.
    """
    if type_hint is Any or type_hint is object:
        return True
    if type_hint is None or type_hint is _NONE_TYPE:
        return value is None
    if is_union(type_hint):
        return any(matches(value, arm) for arm in get_args(type_hint))
    if get_origin(type_hint) is not None:
        return _matches_generic(value, type_hint)

    # typing.NewType wraps a real type
    supertype = getattr(type_hint, "__supertype__", None)
    if supertype is not None:
        return matches(value, supertype)

    if not isinstance(type_hint, type):
        return False
    if isinstance(value, _EXCLUDED.get(type_hint, ())):
        return False
    try:
        if isinstance(value, type_hint):
            return True
    except TypeError:
        # Protocols without @runtime_checkable refuse isinstance checks
        return False
    return not isinstance(value, bool) and isinstance(
        value, _WIDENED.get(type_hint, ())
    )
