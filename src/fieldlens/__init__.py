"""
fieldlens: string-keyed, type-checked access to record fields

Declare fields once per type. Reach them by name. Never crash on a bad key.
"""

from .base import Record, computed
from .diff import ABSENT, diff, patch
from .fields import (
    Computed,
    Field,
    FieldBase,
    FieldInfo,
)
from .frame import to_frame
from .lens import Lens, Lensable, RecordLens, lens_for
from .registry import FieldRegistry, register_lens, registry_for

__version__ = "0.1.0"

__all__ = [
    # Core
    "Record",
    "Field",
    "computed",
    "Lens",
    "RecordLens",
    "Lensable",
    "lens_for",
    # Registration
    "FieldRegistry",
    "register_lens",
    "registry_for",
    # Generic consumers
    "diff",
    "patch",
    "to_frame",
    "ABSENT",
    # Internal (for advanced use)
    "FieldBase",
    "FieldInfo",
    "Computed",
]
