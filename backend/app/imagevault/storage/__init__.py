from imagevault.storage.object_store import ObjectStore, S3ObjectStore

__all__ = ["ObjectStore", "S3ObjectStore"]
