"""
Object-store connections.
"""

from docpublisher.connections.s3 import S3Connection, translate_error
from docpublisher.connections.storage import MAX_DELETE_BATCH, BaseStorageConnection, ObjectStore, chunked

__all__ = [
    "ObjectStore",
    "BaseStorageConnection",
    "S3Connection",
    "MAX_DELETE_BATCH",
    "chunked",
    "translate_error",
]
