from .stream_encoder import (
    DEFAULT_CHUNK_SIZE,
    LeafContent,
    NestedContent,
    StreamEncoder,
    random_boundary,
    validate_boundary,
)


__all__ = [
    'DEFAULT_CHUNK_SIZE',
    'LeafContent',
    'NestedContent',
    'StreamEncoder',
    'random_boundary',
    'validate_boundary',
]
