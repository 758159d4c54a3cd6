# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from __future__ import annotations

import io
import logging
import secrets
import string
from typing import Callable, FrozenSet, Iterator, Optional, Union, cast

from ..domain.errors import (
    EncoderFailedError,
    HeaderError,
    InvalidBoundaryError,
    TreeStreamError,
)
from ..ports.filetree import DirectoryEntry, Entry, FileEntry, FileTree

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 65536

_BOUNDARY_CHARS = frozenset(string.ascii_letters + string.digits + "'()+_,-./:=? ")
_TSPECIALS = frozenset('()<>@,;:\\"/[]?= ')
_CRLF = b"\r\n"


def random_boundary() -> str:
    """60 hex chars from 30 random bytes."""
    return secrets.token_hex(30)


def validate_boundary(boundary: str) -> str:
    """
    Check a boundary against RFC 2046: 1-70 chars from the bchars set,
    not ending with a space. Returns the boundary unchanged.
    """
    if not isinstance(boundary, str) or not 1 <= len(boundary) <= 70:
        raise InvalidBoundaryError(f"invalid boundary length: {boundary!r}")
    if any(ch not in _BOUNDARY_CHARS for ch in boundary) or boundary.endswith(" "):
        raise InvalidBoundaryError(f"invalid boundary character in {boundary!r}")
    return boundary


def _param(boundary: str) -> str:
    if any(ch in _TSPECIALS for ch in boundary):
        return f'"{boundary}"'
    return boundary


class LeafContent:
    """Child content backed by a leaf entry's reader."""

    def __init__(self, entry: FileEntry) -> None:
        self.entry = entry

    def readinto(self, view: memoryview) -> int:
        data = self.entry.read(len(view))
        if data is None:
            raise TreeStreamError(
                f"{self.entry.name!r} has no data ready; leaf readers must block"
            )
        n = len(data)
        if n > len(view):
            raise TreeStreamError(
                f"{self.entry.name!r} returned {n} bytes for a {len(view)} byte read"
            )
        view[:n] = data
        return n

    def close(self) -> None:
        self.entry.close()


class NestedContent:
    """Child content backed by a nested encoder over a directory."""

    def __init__(self, encoder: "StreamEncoder") -> None:
        self.encoder = encoder

    def close(self) -> None:
        self.encoder.close()


ChildContent = Union[LeafContent, NestedContent]


class StreamEncoder(io.RawIOBase):
    """
    Lazily encodes a FileTree as a MIME multipart byte stream.

    Each entry becomes one part with a Content-Disposition and a Content-Type
    header. Directories become a part whose body is a nested multipart/mixed
    stream produced by another StreamEncoder with its own boundary.

    Notes:
      * Nothing is read from the tree until bytes are requested, and leaf
        content is read at most one caller buffer at a time.
      * The top-level Content-Type header is the caller's to send; see
        `content_type`.
      * Once a read raises, the encoder is unusable (EncoderFailedError).
    """

    def __init__(
        self,
        source: FileTree,
        form: bool = True,
        *,
        boundary: Optional[str] = None,
        boundary_factory: Callable[[], str] = random_boundary,
        _enclosing: FrozenSet[str] = frozenset(),
    ) -> None:
        super().__init__()
        # set before validation: IOBase.__del__ calls close() even if __init__ raises
        self._child: Optional[ChildContent] = None
        self._header = bytearray()
        self._parts = 0
        self._done = False
        self._failure: Optional[Exception] = None
        # active nested encoders below this one, outermost first
        self._nested: list[StreamEncoder] = []

        token = boundary if boundary is not None else boundary_factory()
        self._boundary = validate_boundary(token)
        if self._boundary in _enclosing:
            raise InvalidBoundaryError(
                f"boundary {self._boundary!r} is already used by an enclosing stream"
            )
        self._source = source
        self._form = bool(form)
        self._boundary_factory = boundary_factory
        self._enclosing = _enclosing | {self._boundary}

    @property
    def boundary(self) -> str:
        return self._boundary

    @property
    def form(self) -> bool:
        return self._form

    @property
    def content_type(self) -> str:
        subtype = "form-data" if self._form else "mixed"
        return f"multipart/{subtype}; boundary={_param(self._boundary)}"

    @property
    def done(self) -> bool:
        """True once the closing boundary has been queued and fully drained."""
        return self._done and not self._header

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        """
        Fill `buffer` with the next encoded bytes.

        Returns the number of bytes written; 0 (for a non-empty buffer) only
        at end of stream. Failures from the tree are raised unchanged.
        """
        if self.closed:
            raise ValueError("I/O operation on closed encoder")
        if self._failure is not None:
            raise EncoderFailedError("encoder failed on an earlier read") from self._failure

        # released on exit so a stored failure never pins the caller's buffer
        with memoryview(buffer) as raw, raw.cast("B") as view:
            if not len(view):
                return 0
            try:
                return self._fill(view)
            except Exception as e:
                self._failure = e
                raise

    def _fill(self, view: memoryview) -> int:
        # nested encoders are driven from this loop via self._nested, never by recursive reads
        nested = self._nested
        while True:
            enc = nested[-1] if nested else self
            if enc._done and not enc._header:
                if not nested:
                    return 0
                # nested stream finished: resume its parent
                nested.pop()
                parent = nested[-1] if nested else self
                finished = cast(ChildContent, parent._child)
                parent._child = None
                finished.close()
                continue

            if enc._child is None and not enc._done:
                enc._advance()

            if enc._header:
                n = min(len(view), len(enc._header))
                view[:n] = enc._header[:n]
                del enc._header[:n]
                return n

            child = cast(ChildContent, enc._child)
            if isinstance(child, NestedContent):
                nested.append(child.encoder)
                continue

            n = child.readinto(view)
            if n:
                return n
            # leaf exhausted: release it and move on to the next entry
            child.close()
            enc._child = None

    def _advance(self) -> None:
        entry = self._source.next_entry()
        if entry is None:
            self._header += self._closing_delimiter()
            self._done = True
            logger.debug("closing stream %s after %d part(s)", self._boundary, self._parts)
            return

        child, header = self._start_part(entry)
        self._child = child
        self._header += header
        self._parts += 1

    def _start_part(self, entry: Entry) -> tuple[ChildContent, bytes]:
        name = entry.name
        child: ChildContent
        if entry.is_directory():
            nested = StreamEncoder(
                cast(DirectoryEntry, entry),
                form=False,
                boundary_factory=self._boundary_factory,
                _enclosing=self._enclosing,
            )
            child = NestedContent(nested)
            content_type = f"multipart/mixed; boundary={_param(nested.boundary)}"
        else:
            child = LeafContent(cast(FileEntry, entry))
            content_type = "application/octet-stream"

        if self._form:
            disposition = f'form-data; name="file"; filename="{name}"'
        else:
            disposition = f'file; filename="{name}"'

        try:
            header = (
                f"Content-Disposition: {disposition}\r\n"
                f"Content-Type: {content_type}\r\n"
                "\r\n"
            ).encode("utf-8")
        except UnicodeEncodeError as e:
            raise HeaderError(f"cannot encode header for {name!r}: {e}") from e

        logger.debug("part %d in %s: %s (%s)", self._parts + 1, self._boundary, name, content_type)
        return child, self._delimiter() + header

    def _delimiter(self) -> bytes:
        dash = b"--" + self._boundary.encode("ascii") + _CRLF
        return dash if self._parts == 0 else _CRLF + dash

    def _closing_delimiter(self) -> bytes:
        close = b"--" + self._boundary.encode("ascii") + b"--" + _CRLF
        return close if self._parts == 0 else _CRLF + close

    def iter_chunks(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        """Yield non-empty chunks of at most `chunk_size` bytes until exhausted."""
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        buf = bytearray(chunk_size)
        while True:
            n = self.readinto(buf)
            if not n:
                return
            yield bytes(buf[:n])

    def close(self) -> None:
        if not self.closed:
            # detach the whole active chain first, then close innermost-out
            chain: list[ChildContent] = []
            node: StreamEncoder = self
            while node._child is not None:
                child, node._child = node._child, None
                chain.append(child)
                if not isinstance(child, NestedContent):
                    break
                node = child.encoder
            for child in reversed(chain):
                child.close()
            self._nested = []
        super().close()
