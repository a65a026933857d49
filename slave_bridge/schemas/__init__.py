from .remote_schemas import (
    ContentResponse,
    DeleteBatchResult,
    RemoteDeleteRequest,
    SlaveResponse,
    UploadCredential,
    UploadPolicy,
)

__all__ = [
    "ContentResponse",
    "DeleteBatchResult",
    "RemoteDeleteRequest",
    "SlaveResponse",
    "UploadCredential",
    "UploadPolicy",
]
