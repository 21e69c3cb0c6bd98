from .object_store import ObjectStore, md5_hex
from .types import DataKind, ObjectIndexEntry

__all__ = [
    "DataKind",
    "ObjectIndexEntry",
    "ObjectStore",
    "md5_hex",
]
