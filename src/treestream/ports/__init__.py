from .filetree import DirectoryEntry, Entry, FileEntry, FileTree

__all__ = ["DirectoryEntry", "Entry", "FileEntry", "FileTree"]
