"""Template state model."""

from __future__ import annotations

from .category import CategoryBindings, TemplateCategory, UnknownCategoryError, normalize_path
from .record import RecordKey, RecordStatus, TemplateRecord, new_record

__all__ = [
    "CategoryBindings",
    "RecordKey",
    "RecordStatus",
    "TemplateCategory",
    "TemplateRecord",
    "UnknownCategoryError",
    "new_record",
    "normalize_path",
]
