"""Adding and removing import specs in Go source."""

from typing import List, Optional

from tree_sitter import Node

from .render import SourceEdits, line_end, line_start
from .syntax import import_path, named_children, node_text


def _import_declarations(root: Node) -> List[Node]:
    return [child for child in root.named_children if child.type == "import_declaration"]


def _spec_list(decl: Node) -> Optional[Node]:
    for child in named_children(decl):
        if child.type == "import_spec_list":
            return child
    return None


def _specs(decl: Node) -> List[Node]:
    spec_list = _spec_list(decl)
    parent = spec_list if spec_list is not None else decl
    return [child for child in named_children(parent) if child.type == "import_spec"]


def _newline(source: bytes) -> str:
    return "\r\n" if b"\r\n" in source else "\n"


def _is_stdlib(path: str) -> bool:
    return "." not in path.split("/")[0]


def _groups(specs: List[Node], source: bytes) -> List[List[Node]]:
    """Split specs into blocks separated by blank lines."""
    groups: List[List[Node]] = []
    for spec in specs:
        if groups and source.count(b"\n", groups[-1][-1].end_byte, spec.start_byte) <= 1:
            groups[-1].append(spec)
        else:
            groups.append([spec])
    return groups


def _indent_of(source: bytes, node: Node) -> Optional[str]:
    """Indentation before a node, or None when other code shares its line."""
    indent = source[line_start(source, node.start_byte) : node.start_byte]
    if indent.strip():
        return None
    return indent.decode("utf-8")


def _ends_line(source: bytes, node: Node) -> bool:
    rest = source[node.end_byte : line_end(source, node.end_byte)].strip()
    return not rest or rest.startswith(b"//")


def _owns_line(source: bytes, node: Node) -> bool:
    return _indent_of(source, node) is not None and _ends_line(source, node)


def add_import(root: Node, source: bytes, edits: SourceEdits, path: str) -> None:
    """
    Queue the edits that import `path` into a file.

    The import goes into the first import declaration: in sorted position
    within its standard library block when the declaration is parenthesised,
    otherwise the single import is turned into a parenthesised one. Files
    without imports get a new declaration after the package clause.
    """
    new_spec = f'"{path}"'
    nl = _newline(source)
    decls = _import_declarations(root)

    if not decls:
        package_clause = next(
            child for child in root.named_children if child.type == "package_clause"
        )
        offset = line_end(source, package_clause.end_byte)
        prefix = nl if source[offset - 1 : offset] == b"\n" else nl * 2
        edits.insert(offset, f"{prefix}import {new_spec}{nl}")
        return

    decl = decls[0]
    spec_list = _spec_list(decl)
    if spec_list is None or spec_list.start_point[0] == spec_list.end_point[0]:
        specs = [node_text(spec, source) for spec in _specs(decl)]
        specs.append(new_spec)
        specs.sort(key=lambda text: text.split()[-1].strip('"`'))
        body = "".join(f"\t{spec}{nl}" for spec in specs)
        edits.replace(decl.start_byte, decl.end_byte, f"import ({nl}{body})")
        return

    if not _specs(decl):
        # Empty block, possibly holding only comments.
        closing = line_start(source, spec_list.end_byte - 1)
        edits.insert(closing, f"\t{new_spec}{nl}")
        return

    groups = _groups(_specs(decl), source)
    group = next(
        (g for g in groups if any(_is_stdlib(import_path(spec, source)) for spec in g)),
        groups[0],
    )
    indent = _indent_of(source, group[0]) or "\t"
    for spec in group:
        if import_path(spec, source) > path:
            if _indent_of(source, spec) is None:
                edits.insert(spec.start_byte, f"{new_spec}; ")
            else:
                edits.insert(line_start(source, spec.start_byte), f"{indent}{new_spec}{nl}")
            return

    last = group[-1]
    if _ends_line(source, last):
        edits.insert(line_end(source, last.end_byte), f"{indent}{new_spec}{nl}")
    else:
        edits.insert(last.end_byte, f"; {new_spec}")


def remove_import(root: Node, source: bytes, edits: SourceEdits, path: str) -> bool:
    """
    Queue the edits that delete the unnamed import of `path`.

    A parenthesised declaration left with a single spec is collapsed back to
    a one-line import. Returns False when the file has no such import.
    """
    for decl in _import_declarations(root):
        spec_list = _spec_list(decl)
        specs = _specs(decl)
        for spec in specs:
            if import_path(spec, source) != path or spec.child_by_field_name("name") is not None:
                continue

            remaining = [other for other in specs if other is not spec]
            if not remaining:
                _delete_lines(source, edits, decl)
            elif (
                spec_list is not None
                and len(remaining) == 1
                and not any(c.type == "comment" for c in spec_list.named_children)
            ):
                edits.replace(
                    decl.start_byte,
                    decl.end_byte,
                    f"import {node_text(remaining[0], source)}",
                )
            elif _owns_line(source, spec):
                _delete_lines(source, edits, spec)
            else:
                end = spec.end_byte
                while source[end : end + 1] in (b" ", b"\t", b";"):
                    end += 1
                edits.delete(spec.start_byte, end)
            return True
    return False


def _delete_lines(source: bytes, edits: SourceEdits, node: Node) -> None:
    start = line_start(source, node.start_byte)
    end = line_end(source, node.end_byte)
    blank_before = source[:start].endswith((b"\n\n", b"\n\r\n"))
    if blank_before and source[end : end + 1] == b"\n":
        end += 1
    elif blank_before and source[end : end + 2] == b"\r\n":
        end += 2
    elif blank_before and source[end:].lstrip(b" \t").startswith(b")"):
        start -= 2 if source[:start].endswith(b"\r\n") else 1
    edits.delete(start, end)
