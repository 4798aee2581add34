"""Results of a quarantine or unquarantine run, and their reports."""

import logging
import os
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from .errors import WriteError
from .models import File, Operation, PackageResults, past_tense

logger = logging.getLogger(__name__)

PROJECT_NAME = "flakebot"


class Results:
    """Per-package results of one operation, keyed by import path."""

    def __init__(
        self,
        operation: Operation = Operation.QUARANTINE,
        packages: Optional[Dict[str, PackageResults]] = None,
    ):
        self.operation = operation
        self.packages: Dict[str, PackageResults] = dict(packages or {})

    def __getitem__(self, package: str) -> PackageResults:
        return self.packages[package]

    def __setitem__(self, package: str, result: PackageResults) -> None:
        self.packages[package] = result

    def __contains__(self, package: str) -> bool:
        return package in self.packages

    def __iter__(self) -> Iterator[str]:
        return iter(self.packages)

    def __len__(self) -> int:
        return len(self.packages)

    def values(self) -> List[PackageResults]:
        """Package results sorted by import path."""
        return [self.packages[package] for package in sorted(self.packages)]

    def for_each(self, fn: Callable[[PackageResults], None]) -> None:
        for result in self.values():
            fn(result)

    def files(self) -> List[File]:
        return [file for result in self.values() for file in result.successes]

    def __str__(self) -> str:
        return "".join(_package_string(result, self.operation) for result in self.values())

    def markdown(self, owner: str, repo: str, branch: str) -> str:
        """
        Render the results as a pull request description.

        Args:
            owner: GitHub owner of the repository
            repo: GitHub repository name
            branch: Branch holding the modified files, used for links
        """
        lines = [_markdown_heading(self.operation), ""]
        for result in self.values():
            lines.extend(_package_markdown(result, self.operation, owner, repo, branch))
        lines.append("---")
        lines.append("")
        lines.append(f"Created automatically by {PROJECT_NAME}.")
        return "\n".join(lines)


def _package_string(result: PackageResults, operation: Operation) -> str:
    parts = [result.package, "\n", "--------------------------------\n"]

    if result.successes:
        parts.append("Successes\n\n")
        for file in result.successes:
            names = file.test_names()
            if names:
                parts.append(f"{file.file}: {', '.join(names)}\n")
            else:
                parts.append(f"{file.file}: No tests {past_tense(operation)}\n")
    else:
        parts.append("\nNo successes!\n")

    if result.failures:
        parts.append("\nFailures\n\n")
        parts.extend(f"{failure}\n" for failure in result.failures)
    else:
        parts.append("\nNo failures!\n")
    return "".join(parts)


def _markdown_heading(operation: Operation) -> str:
    if operation == Operation.QUARANTINE:
        return f"# Quarantined Flaky Tests using {PROJECT_NAME}"
    if operation == Operation.UNQUARANTINE:
        return f"# Unquarantined Recovered Tests using {PROJECT_NAME}"
    return f"# Processed Tests using {PROJECT_NAME}"


def _verb(operation: Operation) -> str:
    return operation.value if isinstance(operation, Operation) else "process"


def _package_markdown(
    result: PackageResults, operation: Operation, owner: str, repo: str, branch: str
) -> List[str]:
    emoji = "🔴" if result.failures else "🟢"
    lines = [f"## `{result.package}` {emoji}", ""]

    if result.successes:
        lines.append(
            f"### Successfully {past_tense(operation)} {result.successful_tests_count()} tests"
        )
        lines.append("")
        lines.append("| File | Tests |")
        lines.append("|------|-------|")
        for file in result.successes:
            blob_url = f"https://github.com/{owner}/{repo}/blob/{branch}/{file.file}"
            links = []
            for test in file.tests:
                line = test.original_line
                if operation == Operation.QUARANTINE and test.modified_line:
                    line = test.modified_line
                links.append(f"[{test.name}]({blob_url}#L{line})")
            lines.append(f"| [{file.file}]({blob_url}) | {', '.join(links)} |")
        lines.append("")

    if result.failures:
        lines.append(
            f"### Failed to {_verb(operation)} {len(result.failures)} tests"
            " — needs manual intervention."
        )
        lines.append("")
        lines.extend(f"- {failure}" for failure in result.failures)
        lines.append("")
    return lines


def commit_info(results: Results) -> Tuple[str, Dict[str, str]]:
    """
    Build the commit for a set of results.

    Returns:
        The commit message and a mapping of repository-relative file path to
        its new contents
    """
    message = [f"{PROJECT_NAME} {_verb(results.operation)} tests"]
    updates: Dict[str, str] = {}
    for file in results.files():
        message.append(f"{file.file}: {', '.join(file.test_names())}")
        updates[file.file] = file.modified_source_code
    return "\n".join(message) + "\n", updates


def write_results_to_files(results: Results) -> None:
    """
    Write the modified source code of every successful file to disk.

    Files are written verbatim; new files get 0600 permissions.

    Raises:
        WriteError: If a file cannot be written
    """
    for file in results.files():
        try:
            fd = os.open(file.file_abs, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "wb") as handle:
                handle.write(file.modified_source_code.encode("utf-8"))
        except OSError as e:
            raise WriteError(
                f"failed to write {results.operation.value} results to {file.file_abs}: {e}"
            ) from e
        logger.debug(
            "Wrote %s results for %s to %s",
            results.operation.value,
            file.test_names(),
            file.file_abs,
        )
