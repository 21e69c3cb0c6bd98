from .asset_db import AssetDatabase
from .kv_store import KeyValueStore
from .object_db import ObjectDatabase
from .post_db import PostDatabase
from .sqlalchemy_core import SqlalchemyCore

__all__ = [
    "AssetDatabase",
    "KeyValueStore",
    "ObjectDatabase",
    "PostDatabase",
    "SqlalchemyCore",
]
