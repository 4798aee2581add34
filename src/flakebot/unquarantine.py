"""Unquarantining Go tests by removing the quarantine conditional."""

import logging
from typing import List, Tuple

from tree_sitter import Node, Tree

from .errors import ParseError, RenderError
from .imports import remove_import
from .models import Test
from .quarantine import ENV_PACKAGE, is_quarantine_conditional
from .render import SourceEdits, line_start, render
from .syntax import first_statement, function_line, function_name, parse_go, uses_package

logger = logging.getLogger(__name__)


def _remove_statement(stmt: Node, source: bytes, edits: SourceEdits) -> None:
    """Delete a statement, along with its line when nothing else is on it."""
    start = line_start(source, stmt.start_byte)
    indent = source[start : stmt.start_byte]
    owns_line = not indent.strip()
    if not owns_line:
        start = stmt.start_byte

    end = stmt.end_byte
    while source[end : end + 1] in (b" ", b"\t", b";"):
        end += 1
    if source[end : end + 2] == b"\r\n":
        edits.delete(start, end + 2)
    elif source[end : end + 1] == b"\n":
        edits.delete(start, end + 1)
    elif owns_line:
        edits.replace(start, end, indent.decode("utf-8"))
    else:
        edits.delete(start, end)


def unquarantine_file(
    tree: Tree,
    source: bytes,
    functions: List[Node],
    filename: str = "<source>",
    use_gofmt: bool = False,
) -> Tuple[str, List[Test]]:
    """
    Remove the quarantine conditional from test functions in a parsed Go file.

    Only the first statement of each function is inspected. Functions that do
    not start with the quarantine conditional are left untouched and are not
    part of the returned tests.

    Args:
        tree: Tree parsed from `source`
        source: Original file contents
        functions: Test function declarations to unquarantine
        filename: Used in error and log messages
        use_gofmt: Pipe the rendered text through gofmt

    Returns:
        The rendered source and one Test per unquarantined function
    """
    edits = SourceEdits(source)
    tests = []
    for func in functions:
        name = function_name(func, source)
        stmt = first_statement(func)
        if not is_quarantine_conditional(stmt, source):
            logger.warning(
                "%s in %s does not start with a quarantine block, leaving it as is",
                name,
                filename,
            )
            continue
        _remove_statement(stmt, source, edits)
        tests.append(Test(name=name, original_line=function_line(func)))

    if not tests:
        return render(edits, filename, use_gofmt=use_gofmt)[0], tests

    # Drop the os import once nothing refers to the package any more.
    stripped = edits.apply()
    try:
        stripped_tree = parse_go(stripped, filename)
    except ParseError as e:
        raise RenderError(f"modified source of {filename} is not valid Go: {e}") from e

    import_edits = SourceEdits(stripped)
    if not uses_package(stripped_tree.root_node, stripped, ENV_PACKAGE):
        remove_import(stripped_tree.root_node, stripped, import_edits, ENV_PACKAGE)

    rendered, _ = render(import_edits, filename, use_gofmt=use_gofmt)
    return rendered, tests
