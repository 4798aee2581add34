"""Quarantining Go tests by prepending a conditional skip to their body.

A quarantined test starts with:

    if os.Getenv("RUN_QUARANTINED_TESTS") != "true" {
        t.Skip("Flaky test quarantined. See ticket for details.")
    } else {
        t.Logf("'RUN_QUARANTINED_TESTS' set to '%s', running quarantined test", os.Getenv("RUN_QUARANTINED_TESTS"))
    }

The unquarantine matcher recognises exactly this condition, so the
environment variable name and the shape of the condition must not change
without updating `is_quarantine_conditional`.
"""

import logging
from typing import Dict, List, Tuple

from tree_sitter import Node, Tree

from .imports import add_import
from .models import Test
from .render import SourceEdits, line_end, render
from .syntax import (
    first_statement,
    function_declarations,
    function_line,
    function_name,
    has_import,
    named_children,
    node_text,
    test_param,
    test_param_name,
)

logger = logging.getLogger(__name__)

RUN_QUARANTINED_TESTS_ENV_VAR = "RUN_QUARANTINED_TESTS"
SKIP_REASON = "Flaky test quarantined. See ticket for details."
FALLBACK_PARAM_NAME = "t"
ENV_PACKAGE = "os"


def quarantine_marker(param_name: str, indent: str = "\t", newline: str = "\n") -> str:
    """Source text of the quarantine conditional for a test parameter."""
    env = RUN_QUARANTINED_TESTS_ENV_VAR
    lines = [
        f'if {ENV_PACKAGE}.Getenv("{env}") != "true" {{',
        f'\t{param_name}.Skip("{SKIP_REASON}")',
        "} else {",
        f"\t{param_name}.Logf(\"'{env}' set to '%s', running quarantined test\", "
        f'{ENV_PACKAGE}.Getenv("{env}"))',
        "}",
    ]
    return newline.join(indent + line for line in lines)


def is_quarantine_conditional(stmt: Node, source: bytes) -> bool:
    """
    Check whether a statement is the quarantine conditional.

    The statement must be an `if` without initializer whose condition is
    exactly `os.Getenv("RUN_QUARANTINED_TESTS") != "true"`.
    """
    if stmt is None or stmt.type != "if_statement":
        return False
    if stmt.child_by_field_name("initializer") is not None:
        return False

    cond = stmt.child_by_field_name("condition")
    if cond is None or cond.type != "binary_expression":
        return False
    operator = cond.child_by_field_name("operator")
    if operator is None or operator.type != "!=":
        return False

    right = cond.child_by_field_name("right")
    if not _is_string_literal(right, source, "true"):
        return False

    call = cond.child_by_field_name("left")
    if call is None or call.type != "call_expression":
        return False
    func = call.child_by_field_name("function")
    if func is None or func.type != "selector_expression":
        return False
    operand = func.child_by_field_name("operand")
    if operand is None or operand.type != "identifier" or node_text(operand, source) != ENV_PACKAGE:
        return False
    if node_text(func.child_by_field_name("field"), source) != "Getenv":
        return False

    arguments = call.child_by_field_name("arguments")
    args = named_children(arguments) if arguments is not None else []
    return len(args) == 1 and _is_string_literal(args[0], source, RUN_QUARANTINED_TESTS_ENV_VAR)


def _is_string_literal(node: Node, source: bytes, value: str) -> bool:
    return (
        node is not None
        and node.type == "interpreted_string_literal"
        and node_text(node, source) == f'"{value}"'
    )


def _ensure_param_name(func: Node, source: bytes, edits: SourceEdits) -> str:
    """Name of the test parameter, naming it in the signature when needed."""
    name = test_param_name(func, source)
    if name and name != "_":
        return name

    param = test_param(func)
    name_node = param.child_by_field_name("name")
    if name_node is not None:
        edits.replace(name_node.start_byte, name_node.end_byte, FALLBACK_PARAM_NAME)
    else:
        edits.insert(param.child_by_field_name("type").start_byte, f"{FALLBACK_PARAM_NAME} ")
    return FALLBACK_PARAM_NAME


def _prepend_marker(func: Node, source: bytes, edits: SourceEdits, param_name: str) -> None:
    body = func.child_by_field_name("body")
    after_brace = body.start_byte + 1
    rest_of_line = source[after_brace : line_end(source, after_brace)]
    rest = rest_of_line.strip()
    newline = "\r\n" if rest_of_line.endswith(b"\r\n") else "\n"
    marker = quarantine_marker(param_name, newline=newline)

    if not rest or rest.startswith(b"//"):
        # Usual layout: the marker gets its own lines right below the brace line.
        edits.insert(line_end(source, after_brace), f"{marker}{newline}")
    elif rest.startswith(b"}"):
        edits.insert(after_brace, f"{newline}{marker}{newline}")
    else:
        leading = len(rest_of_line) - len(rest_of_line.lstrip(b" \t"))
        edits.replace(after_brace, after_brace + leading, f"{newline}{marker}{newline}\t")
        if body.start_point[0] == body.end_point[0]:
            # One-line body: the closing brace moves to its own line.
            closing = body.end_byte - 1
            start = closing
            while source[start - 1 : start] in (b" ", b"\t"):
                start -= 1
            edits.replace(start, closing, newline)


def quarantine_file(
    tree: Tree,
    source: bytes,
    functions: List[Node],
    filename: str = "<source>",
    use_gofmt: bool = False,
) -> Tuple[str, List[Test]]:
    """
    Quarantine test functions in a parsed Go file.

    Args:
        tree: Tree parsed from `source`
        source: Original file contents
        functions: Test function declarations to quarantine
        filename: Used in error and log messages
        use_gofmt: Pipe the rendered text through gofmt

    Returns:
        The rendered source and one Test per quarantined function, with the
        line of the function before and after the edit
    """
    root = tree.root_node
    edits = SourceEdits(source)

    if functions and not has_import(root, source, ENV_PACKAGE, unnamed=True):
        add_import(root, source, edits, ENV_PACKAGE)

    original_lines: Dict[str, int] = {}
    for func in functions:
        name = function_name(func, source)
        original_lines[name] = function_line(func)
        if is_quarantine_conditional(first_statement(func), source):
            logger.warning(
                "%s in %s is already quarantined, adding another quarantine block",
                name,
                filename,
            )
        param_name = _ensure_param_name(func, source, edits)
        _prepend_marker(func, source, edits, param_name)

    rendered, new_tree = render(edits, filename, use_gofmt=use_gofmt)

    # Formatting and import growth shift lines, so read them from the new tree.
    rendered_bytes = rendered.encode("utf-8")
    tests = []
    for func in function_declarations(new_tree.root_node):
        name = function_name(func, rendered_bytes)
        if name in original_lines:
            tests.append(
                Test(
                    name=name,
                    original_line=original_lines[name],
                    modified_line=function_line(func),
                )
            )
    return rendered, tests
