# tests/unit/test_local_tree.py
import os
from pathlib import Path

import pytest

from treestream.adapters.tree.local_fs import LocalDirectory, LocalFile, open_tree, walk_tree
from treestream.services.stream_encoder import StreamEncoder


def write_file(p: Path, data: bytes) -> None:
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_bytes(data)


def _layout(root: Path) -> None:
    write_file(root / "b.txt", b"bee")
    write_file(root / "a.txt", b"ay")
    write_file(root / "sub" / "c.log", b"log")
    write_file(root / "sub" / "d.txt", b"dee")
    write_file(root / ".hidden" / "secret", b"s")
    write_file(root / ".env", b"X=1")
    (root / "empty").mkdir()


def test_entries_are_sorted_and_hidden_skipped(tmp_path: Path):
    _layout(tmp_path)
    listed = list(walk_tree(LocalDirectory(tmp_path)))
    assert listed == [
        ("a.txt", False),
        ("b.txt", False),
        ("empty", True),
        ("sub", True),
        ("sub/c.log", False),
        ("sub/d.txt", False),
    ]


def test_include_hidden(tmp_path: Path):
    _layout(tmp_path)
    names = [rel for rel, _ in walk_tree(LocalDirectory(tmp_path, include_hidden=True))]
    assert ".env" in names
    assert ".hidden/secret" in names


def test_ignore_patterns_apply_to_nested_entries(tmp_path: Path):
    _layout(tmp_path)
    tree = LocalDirectory(tmp_path, ignore_patterns=["*.log", "*b.txt"])
    names = [rel for rel, _ in walk_tree(tree)]
    assert "sub/c.log" not in names
    assert "b.txt" not in names
    assert "sub/d.txt" in names


def test_listing_is_lazy(tmp_path: Path):
    root = tmp_path / "data"
    root.mkdir()
    tree = LocalDirectory(root)
    # files created after construction but before the first next_entry are seen
    write_file(root / "late.txt", b"x")
    assert tree.next_entry().name == "late.txt"
    assert tree.next_entry() is None


def test_local_file_opens_lazily_and_closes_at_eof(tmp_path: Path):
    p = tmp_path / "f.bin"
    write_file(p, b"0123456789")
    f = LocalFile(p)
    assert f._fh is None
    assert f.read(4) == b"0123"
    assert f._fh is not None
    assert f.read(100) == b"456789"
    assert f.read(100) == b""
    assert f._fh is None
    assert f.read(100) == b""


def test_local_file_close_before_eof(tmp_path: Path):
    p = tmp_path / "f.bin"
    write_file(p, b"abc")
    f = LocalFile(p)
    f.read(1)
    f.close()
    assert f._fh is None
    f.close()


def test_missing_file_error_propagates(tmp_path: Path):
    f = LocalFile(tmp_path / "gone.bin")
    with pytest.raises(FileNotFoundError):
        f.read(1)


def test_open_tree_on_single_file(tmp_path: Path):
    p = tmp_path / "only.txt"
    write_file(p, b"1")
    assert list(walk_tree(open_tree(p))) == [("only.txt", False)]


def test_open_tree_on_missing_path(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        open_tree(tmp_path / "nope")


def test_directory_symlinks_are_not_followed(tmp_path: Path):
    root = tmp_path / "data"
    write_file(root / "real" / "f.txt", b"x")
    os.symlink(root, root / "loop")  # points back at an ancestor
    os.symlink(root / "real", root / "alias")  # duplicate of a sibling
    os.symlink(root / "real" / "f.txt", root / "link.txt")

    assert list(walk_tree(LocalDirectory(root))) == [
        ("link.txt", False),
        ("real", True),
        ("real/f.txt", False),
    ]

    body = StreamEncoder(LocalDirectory(root)).read()
    assert body.count(b'filename="f.txt"') == 1
    assert b'filename="loop"' not in body
    assert b'filename="link.txt"' in body
