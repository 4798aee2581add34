"""Parsing Go source with tree-sitter and locating test functions."""

from typing import Iterable, Iterator, List, Optional

import tree_sitter_go as tsgo
from tree_sitter import Language, Node, Parser, Tree

from .errors import ParseError

GO_LANGUAGE = Language(tsgo.language())

TEST_PREFIX = "Test"
FUZZ_PREFIX = "Fuzz"

# Function name prefix -> the testing type its single parameter must point to
_TEST_CONTEXT_TYPES = {
    TEST_PREFIX: "T",
    FUZZ_PREFIX: "F",
}


def parse_go(source: bytes, filename: str = "<source>") -> Tree:
    """
    Parse Go source code into a syntax tree.

    Args:
        source: Raw file contents
        filename: Used in error messages only

    Returns:
        The tree-sitter tree

    Raises:
        ParseError: If the source contains syntax errors
    """
    parser = Parser(GO_LANGUAGE)
    tree = parser.parse(source)
    if tree.root_node.has_error:
        line = _first_error_line(tree.root_node)
        raise ParseError(f"failed to parse {filename}: syntax error near line {line}")
    return tree


def _first_error_line(node: Node) -> int:
    for child in _walk(node):
        if child.type == "ERROR" or child.is_missing:
            return child.start_point[0] + 1
    return node.start_point[0] + 1


def _walk(node: Node) -> Iterator[Node]:
    yield node
    for child in node.children:
        yield from _walk(child)


def node_text(node: Optional[Node], source: bytes) -> str:
    if node is None:
        return ""
    return source[node.start_byte : node.end_byte].decode("utf-8")


def named_children(node: Node) -> List[Node]:
    """Named children of a node, without comments."""
    return [child for child in node.named_children if child.type != "comment"]


def function_name(func: Node, source: bytes) -> str:
    return node_text(func.child_by_field_name("name"), source)


def function_line(func: Node) -> int:
    """1-based line of the `func` keyword."""
    return func.start_point[0] + 1


def function_declarations(root: Node) -> List[Node]:
    """Top-level function declarations (methods excluded)."""
    return [child for child in root.named_children if child.type == "function_declaration"]


def _single_parameter(func: Node) -> Optional[Node]:
    params = func.child_by_field_name("parameters")
    if params is None:
        return None
    decls = named_children(params)
    if len(decls) != 1 or decls[0].type != "parameter_declaration":
        return None
    if len(decls[0].children_by_field_name("name")) > 1:
        return None
    return decls[0]


def is_test_function(func: Node, source: bytes) -> bool:
    """
    Check whether a function declaration is a Go test or fuzz entry point.

    Test functions must look like `func TestXxx(t *testing.T)` and fuzz
    functions like `func FuzzXxx(f *testing.F)`.
    """
    if func.type != "function_declaration":
        return False

    name = function_name(func, source)
    prefix = next((p for p in _TEST_CONTEXT_TYPES if name.startswith(p)), None)
    if prefix is None:
        return False

    param = _single_parameter(func)
    if param is None:
        return False

    param_type = param.child_by_field_name("type")
    if param_type is None or param_type.type != "pointer_type":
        return False

    pointee = named_children(param_type)
    if len(pointee) != 1 or pointee[0].type != "qualified_type":
        return False

    package = node_text(pointee[0].child_by_field_name("package"), source)
    type_name = node_text(pointee[0].child_by_field_name("name"), source)
    return package == "testing" and type_name == _TEST_CONTEXT_TYPES[prefix]


def find_test_functions(root: Node, source: bytes, test_names: Iterable[str]) -> List[Node]:
    """
    Find the test functions in a file that match the requested names.

    Functions whose name matches but whose signature is not a test entry point
    are ignored.

    Args:
        root: Root node of the parsed file
        source: Source the tree was parsed from
        test_names: Names of the tests to look for

    Returns:
        Matching function declarations, in file order
    """
    wanted = set(test_names)
    if not wanted:
        return []
    return [
        func
        for func in function_declarations(root)
        if function_name(func, source) in wanted and is_test_function(func, source)
    ]


def test_param(func: Node) -> Optional[Node]:
    """The parameter declaration of a matched test function."""
    return _single_parameter(func)


def test_param_name(func: Node, source: bytes) -> str:
    """Declared name of the test parameter, or "" when unnamed."""
    param = _single_parameter(func)
    if param is None:
        return ""
    return node_text(param.child_by_field_name("name"), source)


def body_statements(func: Node) -> List[Node]:
    """Statements of a function body, in order, without comments."""
    body = func.child_by_field_name("body")
    if body is None:
        return []
    statements = []
    for child in named_children(body):
        # Newer grammars wrap the statements in a statement_list node.
        if child.type == "statement_list":
            statements.extend(named_children(child))
        else:
            statements.append(child)
    return statements


def first_statement(func: Node) -> Optional[Node]:
    statements = body_statements(func)
    return statements[0] if statements else None


def import_specs(root: Node) -> List[Node]:
    """All import specs of a file, in order."""
    specs = []
    for decl in root.named_children:
        if decl.type != "import_declaration":
            continue
        for child in named_children(decl):
            if child.type == "import_spec":
                specs.append(child)
            elif child.type == "import_spec_list":
                specs.extend(c for c in named_children(child) if c.type == "import_spec")
    return specs


def import_path(spec: Node, source: bytes) -> str:
    return node_text(spec.child_by_field_name("path"), source).strip('"`')


def has_import(root: Node, source: bytes, path: str, unnamed: bool = False) -> bool:
    """Check whether a file imports `path`, optionally only without an alias."""
    return any(
        import_path(spec, source) == path
        and not (unnamed and spec.child_by_field_name("name") is not None)
        for spec in import_specs(root)
    )


def uses_package(root: Node, source: bytes, name: str) -> bool:
    """Check whether any selector in the file refers to a package name."""
    for node in _walk(root):
        if node.type == "selector_expression":
            operand = node.child_by_field_name("operand")
            if operand is not None and operand.type == "identifier" and node_text(operand, source) == name:
                return True
        elif node.type == "qualified_type":
            if node_text(node.child_by_field_name("package"), source) == name:
                return True
    return False
