"""Data models for flakebot."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class Operation(str, Enum):
    """The kind of edit applied to the targeted tests."""

    QUARANTINE = "quarantine"
    UNQUARANTINE = "unquarantine"


def past_tense(operation: Operation) -> str:
    """Return the verb used in reports, e.g. "quarantined"."""
    if operation == Operation.QUARANTINE:
        return "quarantined"
    if operation == Operation.UNQUARANTINE:
        return "unquarantined"
    return "processed"


@dataclass
class TestTarget:
    """A Go package and the names of the tests to operate on in it."""

    __test__ = False  # not a pytest test class

    package: str  # import path, e.g. "github.com/owner/repo/pkg"
    tests: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class PackageInfo:
    """Facts about a single Go package, as reported by `go list`."""

    import_path: str
    name: str
    dir: str
    go_files: List[str] = field(default_factory=list)
    test_go_files: List[str] = field(default_factory=list)
    module_path: str = ""
    module_dir: str = ""

    @property
    def is_command(self) -> bool:
        return self.name == "main"

    def __str__(self) -> str:
        lines = [
            self.import_path,
            f"Name: {self.name}",
            f"Dir: {self.dir}",
        ]
        if self.go_files:
            lines.append(f"GoFiles: {self.go_files}")
        if self.test_go_files:
            lines.append(f"TestGoFiles: {self.test_go_files}")
        lines.append(f"Module: {self.module_path} ({self.module_dir})")
        lines.append(f"IsCommand: {self.is_command}")
        return "\n".join(lines)


@dataclass(frozen=True)
class Test:
    """A test function that was edited, with its 1-based line numbers."""

    __test__ = False

    name: str
    original_line: int
    # Only quarantine reports where the function ended up after re-rendering.
    modified_line: Optional[int] = None


@dataclass(frozen=True)
class File:
    """A test file with at least one successfully edited test."""

    package: str
    file: str  # relative to the repository root
    file_abs: str
    tests: List[Test] = field(default_factory=list)
    modified_source_code: str = ""

    def test_names(self) -> List[str]:
        return [test.name for test in self.tests]


@dataclass(frozen=True)
class PackageResults:
    """Outcome of an operation on one package."""

    package: str
    successes: List[File] = field(default_factory=list)
    failures: List[str] = field(default_factory=list)

    def successful_tests_count(self) -> int:
        return sum(len(file.tests) for file in self.successes)
