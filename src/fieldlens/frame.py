"""Columnar projection of lens-accessible records into Polars DataFrames."""

from typing import Any, Iterable, Sequence

import polars as pl
from loguru import logger

from .lens import RecordLens, lens_for


def _as_record_lens(record: Any) -> RecordLens:
    if isinstance(record, RecordLens):
        return record
    return lens_for(record)


def _dtype_for(lenses: Sequence[RecordLens], key: str):
    """Polars dtype of the first registry that declares ``key``."""
    for lens in lenses:
        field = lens.registry.get(key)
        if field is not None:
            return field.get_polars_dtype()
    return None


def to_frame(
    records: Iterable[Any], keys: Sequence[str] | None = None
) -> pl.DataFrame:
    """
    Project records, possibly of different types, into a DataFrame by key.

    Parameters
    ----------
    records : Iterable
        Record instances (or lenses over them) whose types have registries.
    keys : Sequence[str], optional
        Columns to select. Defaults to every key of every record, in first
        seen order.

    Returns
    -------
    pl.DataFrame
        One row per record, one column per key. A record whose type does not
        know a key, or whose value does not fit the column dtype, contributes
        a null.

    Raises
    ------
    TypeError
        If a record's type has no lens registry.

    Examples
    --------
        >>> from fieldlens import Record
        >>> from fieldlens.frame import to_frame
        >>> class City(Record):
        ...     name: str
        ...     population: int
        >>> df = to_frame([City(name="Oslo", population=709_000)])
        >>> df.columns
        ['name', 'population']
    """
    lenses = [_as_record_lens(record) for record in records]

    if keys is None:
        keys = []
        for lens in lenses:
            keys.extend(key for key in lens.keys() if key not in keys)

    columns = []
    for key in keys:
        dtype = _dtype_for(lenses, key)
        values = [lens.get(key) for lens in lenses]
        if dtype is None:
            logger.debug(f"Inferring dtype for column '{key}'")
        columns.append(pl.Series(key, values, dtype=dtype, strict=False))

    return pl.DataFrame(columns)
