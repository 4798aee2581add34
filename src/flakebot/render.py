"""Applying byte-range edits to Go source and rendering the result."""

import shutil
import subprocess
from dataclasses import dataclass, field
from typing import List, Tuple

from tree_sitter import Tree

from .errors import ParseError, RenderError
from .syntax import parse_go


@dataclass
class SourceEdits:
    """Non-overlapping replacements of byte ranges in a source buffer."""

    source: bytes
    edits: List[Tuple[int, int, bytes]] = field(default_factory=list)

    def insert(self, offset: int, text: str) -> None:
        self.edits.append((offset, offset, text.encode("utf-8")))

    def replace(self, start: int, end: int, text: str) -> None:
        self.edits.append((start, end, text.encode("utf-8")))

    def delete(self, start: int, end: int) -> None:
        self.edits.append((start, end, b""))

    def apply(self) -> bytes:
        """Return the source with all edits applied."""
        # Stable sort keeps insertions at the same offset in call order.
        ordered = sorted(enumerate(self.edits), key=lambda item: (item[1][0], item[0]))
        chunks = []
        cursor = 0
        for _, (start, end, text) in ordered:
            if start < cursor:
                raise RenderError(f"overlapping edits at byte {start}")
            chunks.append(self.source[cursor:start])
            chunks.append(text)
            cursor = end
        chunks.append(self.source[cursor:])
        return b"".join(chunks)


def line_start(source: bytes, offset: int) -> int:
    """Offset of the first byte of the line containing `offset`."""
    return source.rfind(b"\n", 0, offset) + 1


def line_end(source: bytes, offset: int) -> int:
    """Offset just past the newline ending the line containing `offset`."""
    newline = source.find(b"\n", offset)
    return len(source) if newline == -1 else newline + 1


def gofmt(source: bytes, filename: str = "<source>") -> bytes:
    """Format source with the gofmt binary."""
    binary = shutil.which("gofmt")
    if binary is None:
        raise RenderError("gofmt requested but not found on PATH")
    try:
        result = subprocess.run(
            [binary], input=source, capture_output=True, check=True
        )
    except subprocess.CalledProcessError as e:
        stderr = e.stderr.decode("utf-8", errors="replace").strip()
        raise RenderError(f"gofmt failed for {filename}: {stderr}") from e
    return result.stdout


def render(edits: SourceEdits, filename: str = "<source>", use_gofmt: bool = False) -> Tuple[str, Tree]:
    """
    Apply edits and check that the result is still valid Go.

    Args:
        edits: The edits collected for one file
        filename: Used in error messages only
        use_gofmt: Pipe the rendered text through gofmt

    Returns:
        Rendered text and the tree parsed from it
    """
    rendered = edits.apply()
    if use_gofmt:
        rendered = gofmt(rendered, filename)

    try:
        tree = parse_go(rendered, filename)
    except ParseError as e:
        raise RenderError(f"modified source of {filename} is not valid Go: {e}") from e

    return rendered.decode("utf-8"), tree
