# Licensed under the Apache License, Version 2.0


class TreeStreamError(Exception):
    """Base exception for encoder errors."""


class HeaderError(TreeStreamError):
    """A part header could not be built (nothing was queued)."""


class InvalidBoundaryError(HeaderError, ValueError):
    """Boundary token is malformed or collides with an enclosing stream."""


class EncoderFailedError(TreeStreamError):
    """The encoder already raised once and cannot make further progress."""
