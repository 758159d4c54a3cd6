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

import fnmatch
import logging
import os
from pathlib import Path
from typing import BinaryIO, Iterable, Iterator, Optional, Union

from ...ports.filetree import DirectoryEntry, Entry, FileEntry, FileTree
from .memory import MemoryDirectory

logger = logging.getLogger(__name__)


class LocalFile(FileEntry):
    """
    Leaf backed by a file on disk. The handle is opened on the first read
    and closed as soon as EOF is reached (or on close()).
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self._path = Path(path)
        self._fh: Optional[BinaryIO] = None
        self._eof = False

    @property
    def name(self) -> str:
        return self._path.name

    @property
    def path(self) -> Path:
        return self._path

    def read(self, size: int) -> bytes:
        if self._eof:
            return b""
        if self._fh is None:
            self._fh = open(self._path, "rb")
        chunk = self._fh.read(size)
        if not chunk:
            self.close()
            self._eof = True
        return chunk

    def close(self) -> None:
        if self._fh is not None:
            fh, self._fh = self._fh, None
            fh.close()


class LocalDirectory(DirectoryEntry):
    """
    Directory on disk, traversed lazily in name order.

    The listing is taken on the first next_entry() call. Subdirectories are
    returned as LocalDirectory instances sharing the same filters.
    """

    def __init__(
        self,
        path: Union[str, Path],
        *,
        include_hidden: bool = False,
        ignore_patterns: Optional[Iterable[str]] = None,
    ) -> None:
        self._path = Path(path)
        self._include_hidden = bool(include_hidden)
        self._ignore_patterns = tuple(ignore_patterns or ())
        self._pending: Optional[Iterator[Path]] = None

    @property
    def name(self) -> str:
        return self._path.name

    @property
    def path(self) -> Path:
        return self._path

    def _skipped(self, path: Path) -> bool:
        if not self._include_hidden and path.name.startswith("."):
            logger.debug("LocalDirectory: skipping hidden %s", path)
            return True
        name = str(path)
        for pat in self._ignore_patterns:
            if fnmatch.fnmatch(name, pat):
                logger.debug("LocalDirectory: %s ignored by %r", path, pat)
                return True
        return False

    def _listing(self) -> Iterator[Path]:
        with os.scandir(self._path) as it:
            names = sorted(e.name for e in it)
        for name in names:
            p = self._path / name
            if self._skipped(p):
                continue
            # like os.walk, never descend through a link (loops, duplicated subtrees)
            if p.is_symlink() and p.is_dir():
                logger.debug("LocalDirectory: skipping directory symlink %s", p)
                continue
            yield p

    def next_entry(self) -> Optional[Entry]:
        if self._pending is None:
            self._pending = self._listing()
        p = next(self._pending, None)
        if p is None:
            return None
        if p.is_dir():
            return LocalDirectory(
                p,
                include_hidden=self._include_hidden,
                ignore_patterns=self._ignore_patterns,
            )
        return LocalFile(p)


def open_tree(
    path: Union[str, Path],
    *,
    include_hidden: bool = False,
    ignore_patterns: Optional[Iterable[str]] = None,
) -> FileTree:
    """
    FileTree for `path`: the directory's contents, or a one-entry tree when
    `path` is a single file.
    """
    path = Path(path)
    if path.is_dir():
        return LocalDirectory(
            path, include_hidden=include_hidden, ignore_patterns=ignore_patterns
        )
    if not path.exists():
        raise FileNotFoundError(f"no such file or directory: {path}")
    return MemoryDirectory("", [LocalFile(path)])


def walk_tree(tree: FileTree, prefix: str = "") -> Iterator[tuple[str, bool]]:
    """
    Yield (relative path, is_directory) in the order an encoder would emit
    entries. Consumes the tree.
    """
    while True:
        entry = tree.next_entry()
        if entry is None:
            return
        rel = f"{prefix}{entry.name}"
        yield rel, entry.is_directory()
        if isinstance(entry, DirectoryEntry):
            yield from walk_tree(entry, prefix=f"{rel}/")
