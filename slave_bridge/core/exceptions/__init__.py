# slave_bridge/core/exceptions/__init__.py

from .base_exception import (
    BaseBusinessException,
    NotFoundException,
)
from .remote_exceptions import (
    UnsupportedOperationError,
    EncodingError,
    SigningError,
    TransportError,
    ResponseFormatError,
    RemoteOperationError,
)

__all__ = [
    "BaseBusinessException",
    "NotFoundException",

    "UnsupportedOperationError",
    "EncodingError",
    "SigningError",
    "TransportError",
    "ResponseFormatError",
    "RemoteOperationError",
]
