# Licensed under the Apache License, Version 2.0
from __future__ import annotations

import io
from typing import BinaryIO, Iterable, Mapping, Optional, Union

from ...ports.filetree import DirectoryEntry, Entry, FileEntry

TreeMapping = Mapping[str, Union[bytes, str, "TreeMapping"]]


class ReaderFile(FileEntry):
    """
    Leaf over an arbitrary binary stream (socket, pipe, open file, ...).

    The stream must be blocking: a read returning None is treated as an error.
    """

    def __init__(self, name: str, stream: BinaryIO, *, close_stream: bool = True) -> None:
        self._name = name
        self._stream = stream
        self._close_stream = close_stream

    @property
    def name(self) -> str:
        return self._name

    def read(self, size: int) -> bytes:
        return self._stream.read(size)

    def close(self) -> None:
        if self._close_stream:
            self._stream.close()


class MemoryFile(ReaderFile):
    def __init__(self, name: str, data: bytes) -> None:
        super().__init__(name, io.BytesIO(data))


class MemoryDirectory(DirectoryEntry):
    """
    Directory over a fixed list of entries, yielded in list order.
    With the default empty name it doubles as a root tree.
    """

    def __init__(self, name: str = "", entries: Optional[Iterable[Entry]] = None) -> None:
        self._name = name
        self._entries = list(entries or [])
        self._pos = 0

    @property
    def name(self) -> str:
        return self._name

    def next_entry(self) -> Optional[Entry]:
        if self._pos >= len(self._entries):
            return None
        entry = self._entries[self._pos]
        self._pos += 1
        return entry


def tree_from_mapping(mapping: TreeMapping, name: str = "") -> MemoryDirectory:
    """
    Build a MemoryDirectory from a nested dict. Bytes and str values become
    files (str encoded as UTF-8), mappings become directories.
    """
    entries: list[Entry] = []
    for key, value in mapping.items():
        if isinstance(value, Mapping):
            entries.append(tree_from_mapping(value, key))
        elif isinstance(value, str):
            entries.append(MemoryFile(key, value.encode("utf-8")))
        elif isinstance(value, (bytes, bytearray)):
            entries.append(MemoryFile(key, bytes(value)))
        else:
            raise TypeError(f"unsupported value for {key!r}: {type(value).__name__}")
    return MemoryDirectory(name, entries)
