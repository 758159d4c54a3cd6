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

from pathlib import Path
from typing import BinaryIO, List, Optional
import logging

import typer

from ..adapters.tree.local_fs import open_tree, walk_tree
from ..domain.errors import InvalidBoundaryError, TreeStreamError
from ..ports.filetree import FileTree
from ..services import DEFAULT_CHUNK_SIZE, StreamEncoder, validate_boundary

from ..logging_config import setup_logging

setup_logging()

app = typer.Typer(help="treestream CLI - encode file trees as MIME multipart streams")

logger = logging.getLogger(__name__)


def _parse_boundary(boundary: Optional[str]) -> Optional[str]:
    """Validate --boundary, turning a bad value into a Typer BadParameter."""
    if boundary is None:
        return None
    try:
        return validate_boundary(boundary)
    except InvalidBoundaryError as e:
        raise typer.BadParameter(str(e))


def _tree(path: Path, hidden: bool, ignore: Optional[List[str]]) -> FileTree:
    return open_tree(path, include_hidden=hidden, ignore_patterns=ignore or ())


def _pump(encoder: StreamEncoder, sink: BinaryIO, chunk_size: int) -> int:
    written = 0
    for chunk in encoder.iter_chunks(chunk_size):
        sink.write(chunk)
        written += len(chunk)
    return written


@app.command()
def encode(
    path: Path = typer.Option(
        ...,
        "--path",
        exists=True,
        file_okay=True,
        dir_okay=True,
        resolve_path=True,
        help="File or directory to encode",
    ),
    out: Optional[Path] = typer.Option(
        None,
        "--out",
        "--output",
        help="Write the stream to this path. If a directory is given, the file is named "
        "'<name>.multipart' inside it. Omit to write to stdout.",
        resolve_path=True,
    ),
    mixed: bool = typer.Option(
        False,
        "--mixed",
        help="Use multipart/mixed for the top level instead of multipart/form-data.",
    ),
    boundary: Optional[str] = typer.Option(
        None, "--boundary", help="Top-level boundary (random if omitted)."
    ),
    chunk_size: int = typer.Option(
        DEFAULT_CHUNK_SIZE,
        "--chunk-size",
        envvar="TREESTREAM_CHUNK_SIZE",
        help="Bytes requested from the encoder per read.",
    ),
    hidden: bool = typer.Option(False, "--hidden", help="Include dot-files and dot-directories."),
    ignore: Optional[List[str]] = typer.Option(
        None, "--ignore", help="fnmatch pattern to skip (repeatable)."
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        help="Suppress the Content-Type and summary lines.",
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose logging"),
):
    """
    Encode a file or directory tree as a multipart stream.
    """
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Verbose logging enabled")

    if chunk_size <= 0:
        raise typer.BadParameter("--chunk-size must be a positive integer")
    top_boundary = _parse_boundary(boundary)

    encoder = StreamEncoder(_tree(path, hidden, ignore), form=not mixed, boundary=top_boundary)

    target: Optional[Path] = None
    if out is not None:
        out = Path(out)
        if out.exists() and out.is_dir():
            target = out / f"{path.name or 'stream'}.multipart"
        else:
            target = out
            target.parent.mkdir(parents=True, exist_ok=True)

    opened = False
    try:
        with encoder:
            if target is None:
                written = _pump(encoder, typer.get_binary_stream("stdout"), chunk_size)
            else:
                with open(target, "wb") as fh:
                    opened = True
                    written = _pump(encoder, fh, chunk_size)
    except (OSError, TreeStreamError) as e:
        logger.debug("encode failed", exc_info=True)
        if opened:
            # a truncated stream is not a valid multipart body
            target.unlink(missing_ok=True)
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    if not quiet:
        typer.echo(f"Content-Type: {encoder.content_type}", err=True)
        where = target if target is not None else "stdout"
        typer.echo(f"Encoded {path}; wrote {written} bytes to {where}", err=True)


@app.command("list")
def list_entries(
    path: Path = typer.Option(
        ...,
        "--path",
        exists=True,
        file_okay=True,
        dir_okay=True,
        resolve_path=True,
        help="File or directory to list",
    ),
    hidden: bool = typer.Option(False, "--hidden", help="Include dot-files and dot-directories."),
    ignore: Optional[List[str]] = typer.Option(
        None, "--ignore", help="fnmatch pattern to skip (repeatable)."
    ),
):
    """
    Print entries in the order `encode` would emit them.
    """
    for rel, is_dir in walk_tree(_tree(path, hidden, ignore)):
        typer.echo(f"{rel}/" if is_dir else rel)
