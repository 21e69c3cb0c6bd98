"""Database table types."""

from .asset import Asset
from .imported_post import ImportedPost
from .option_entry import OptionEntry
from .stored_object import ObjectMeta, StoredObject

__all__ = [
    "Asset",
    "ImportedPost",
    "ObjectMeta",
    "OptionEntry",
    "StoredObject",
]
