from .errors import (
    EncoderFailedError,
    HeaderError,
    InvalidBoundaryError,
    TreeStreamError,
)

__all__ = [
    "EncoderFailedError",
    "HeaderError",
    "InvalidBoundaryError",
    "TreeStreamError",
]
