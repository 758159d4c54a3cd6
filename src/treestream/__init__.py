from .domain.errors import (
    EncoderFailedError,
    HeaderError,
    InvalidBoundaryError,
    TreeStreamError,
)
from .ports.filetree import DirectoryEntry, Entry, FileEntry, FileTree
from .services.stream_encoder import (
    DEFAULT_CHUNK_SIZE,
    StreamEncoder,
    random_boundary,
    validate_boundary,
)

__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "DirectoryEntry",
    "EncoderFailedError",
    "Entry",
    "FileEntry",
    "FileTree",
    "HeaderError",
    "InvalidBoundaryError",
    "StreamEncoder",
    "TreeStreamError",
    "random_boundary",
    "validate_boundary",
]
