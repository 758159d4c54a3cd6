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

from abc import ABC, abstractmethod
from typing import Optional


class Entry(ABC):
    """A single node yielded by a FileTree: either a file or a directory."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Base name used as the part's filename."""
        raise NotImplementedError

    @abstractmethod
    def is_directory(self) -> bool:
        raise NotImplementedError


class FileEntry(Entry):
    """Leaf entry exposing its byte content."""

    def is_directory(self) -> bool:
        return False

    @abstractmethod
    def read(self, size: int) -> bytes:
        """Return at most `size` bytes of content, or b"" once exhausted."""
        raise NotImplementedError

    def close(self) -> None:
        """Release any resource held for reading. Safe to call repeatedly."""


class FileTree(ABC):
    """Abstract, lazily traversed source of entries."""

    @abstractmethod
    def next_entry(self) -> Optional[Entry]:
        """
        Advance to the next entry in traversal order.

        Returns None when the tree is exhausted. Any failure is raised.
        """
        raise NotImplementedError


class DirectoryEntry(Entry, FileTree):
    """Directory entry; it is itself the FileTree over its children."""

    def is_directory(self) -> bool:
        return True
