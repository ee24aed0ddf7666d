"""Record and upload persistence adapters."""

from studylens.providers.store.local_upload_store import LocalUploadStore
from studylens.providers.store.sqlite_record_store import SQLiteRecordStore

__all__ = ["LocalUploadStore", "SQLiteRecordStore"]
