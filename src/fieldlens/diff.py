"""Key-by-key comparison and patching of records through their lenses."""

from typing import Any, Iterable, Mapping

from .lens import Lens, lens_for


class _Absent:
    def __repr__(self) -> str:
        return "ABSENT"


# Stands in for the value of a key the record's type does not know
ABSENT: Any = _Absent()


def _as_lens(target: Any) -> Lens:
    if isinstance(target, Lens):
        return target
    return lens_for(target)


def diff(a: Any, b: Any, keys: Iterable[str] | None = None) -> dict[str, tuple[Any, Any]]:
    """
    Compare two records (or lenses) key by key.

    The records do not need to share a type. A key known to only one side is
    reported with `ABSENT` on the other.

    Parameters
    ----------
    a, b : Any
        Records or lenses to compare.
    keys : Iterable[str], optional
        Keys to compare. Defaults to the keys of ``a`` followed by the keys
        of ``b`` not already seen.

    Returns
    -------
    dict[str, tuple[Any, Any]]
        ``{key: (value_in_a, value_in_b)}`` for every key whose values differ.
    """
    left, right = _as_lens(a), _as_lens(b)

    if keys is None:
        keys = list(left.keys())
        keys.extend(key for key in right.keys() if key not in keys)

    changes: dict[str, tuple[Any, Any]] = {}
    for key in keys:
        old = left.get(key, ABSENT)
        new = right.get(key, ABSENT)
        if old is ABSENT and new is ABSENT:
            continue
        if old is ABSENT or new is ABSENT or old != new:
            changes[key] = (old, new)
    return changes


def patch(target: Any, changes: Mapping[str, Any]) -> list[str]:
    """
    Write ``changes`` through a lens and report which keys took effect.

    Lens writes never raise, so each key is read before and after its write.
    Value-like records (frozen records, frozen dataclasses, namedtuples) are
    only updated in the lens's copy: pass a lens over them and read the
    result from ``lens.value()``.

    Returns
    -------
    list[str]
        Keys whose value changed to the requested value, in ``changes``
        order. Unknown keys, read-only fields, type mismatches and writes of
        the value already held are absent.

    Raises
    ------
    TypeError
        If ``target`` is a value-like record rather than a lens, since its
        update would be unreachable.
    """
    lens = _as_lens(target)
    applied = []
    for key, value in changes.items():
        before = lens.get(key, ABSENT)
        lens.set(key, value)
        after = lens.get(key, ABSENT)
        if after is not ABSENT and after != before and after == value:
            applied.append(key)

    if target is not lens and lens.value() is not target:
        raise TypeError(
            f"{type(target).__qualname__} is updated by replacement; "
            f"pass a lens to patch() and read lens.value()"
        )
    return applied
