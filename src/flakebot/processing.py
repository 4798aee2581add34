"""Fanning test edits out over packages and collecting the results."""

import logging
import os
import queue
import shutil
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Set, Tuple

from tree_sitter import Node, Tree

from .models import File, Operation, PackageInfo, PackageResults, Test, TestTarget
from .packages import PackagesInfo, resolve_packages
from .quarantine import quarantine_file
from .results import Results
from .syntax import find_test_functions, function_name, parse_go
from .targets import sanitize_targets
from .unquarantine import unquarantine_file

logger = logging.getLogger(__name__)

# (tree, source, functions, filename=..., use_gofmt=...) -> (rendered, tests)
Transform = Callable[..., Tuple[str, List[Test]]]


@dataclass
class ProcessOptions:
    """Options shared by quarantine and unquarantine runs."""

    build_flags: List[str] = field(default_factory=list)  # e.g. ["-tags", "integration"]
    max_workers: Optional[int] = None
    gofmt: Optional[bool] = None  # None: format when gofmt is installed

    def use_gofmt(self) -> bool:
        if self.gofmt is None:
            return shutil.which("gofmt") is not None
        return self.gofmt


def _relative_path(path: str, repo_path: str) -> str:
    try:
        return Path(path).resolve().relative_to(Path(repo_path).resolve()).as_posix()
    except ValueError:
        return path


def process_package(
    repo_path: str,
    pkg: PackageInfo,
    tests_to_process: List[str],
    transform: Transform,
    use_gofmt: bool = False,
) -> PackageResults:
    """
    Look for the requested tests in every test file of a package and edit them.

    Args:
        repo_path: Repository root, used to make file paths relative
        pkg: The package to work on
        tests_to_process: Names of the requested tests
        transform: quarantine_file or unquarantine_file
        use_gofmt: Pipe rendered files through gofmt

    Returns:
        PackageResults with one File per edited test file and the names of
        the tests that were not found

    Raises:
        ParseError: If a test file is not valid Go
        RenderError: If an edited file cannot be rendered
    """
    logger.debug(
        "Processing tests %s in package %s (test files: %s)",
        tests_to_process,
        pkg.import_path,
        pkg.test_go_files,
    )

    found: Set[str] = set()
    successes: List[File] = []
    for test_file in pkg.test_go_files:
        source = Path(test_file).read_bytes()
        tree: Tree = parse_go(source, test_file)

        functions: List[Node] = find_test_functions(tree.root_node, source, tests_to_process)
        if not functions:
            continue
        found.update(function_name(func, source) for func in functions)

        modified_source, tests = transform(
            tree, source, functions, filename=test_file, use_gofmt=use_gofmt
        )
        if not tests:
            continue

        successes.append(
            File(
                package=pkg.import_path,
                file=_relative_path(test_file, repo_path),
                file_abs=test_file,
                tests=tests,
                modified_source_code=modified_source,
            )
        )

    failures = [test for test in tests_to_process if test not in found]
    return PackageResults(package=pkg.import_path, successes=successes, failures=failures)


def process(
    packages: PackagesInfo,
    targets: Iterable[TestTarget],
    transform: Transform,
    operation: Operation,
    repo_path: str = "",
    max_workers: Optional[int] = None,
    use_gofmt: bool = False,
) -> Results:
    """
    Apply a transform to the targeted tests, one concurrent task per package.

    All tasks run to completion; if any of them failed, the first error is
    raised and no results are returned.

    Args:
        packages: Resolved packages of the repository
        targets: Requested targets, sanitized here
        transform: quarantine_file or unquarantine_file
        operation: The operation being performed, for reports and logs
        repo_path: Repository root
        max_workers: Thread pool size (defaults to one thread per package)
        use_gofmt: Pipe rendered files through gofmt

    Returns:
        Results keyed by package import path
    """
    sanitized = sanitize_targets(targets)
    runnable = []
    for target in sanitized:
        if target.package not in packages:
            logger.warning("Package %s not found, skipping", target.package)
            continue
        runnable.append(target)

    start = time.monotonic()
    logger.info("Processing tests for %s", operation.value)

    results = Results(operation=operation)
    if not runnable:
        return results

    package_results: "queue.Queue[PackageResults]" = queue.Queue(maxsize=len(runnable))

    def run(target: TestTarget) -> None:
        pkg = packages.get(target.package)
        package_results.put(
            process_package(repo_path, pkg, target.tests, transform, use_gofmt)
        )

    first_error: Optional[BaseException] = None
    with ThreadPoolExecutor(max_workers=max_workers or len(runnable)) as executor:
        futures = [executor.submit(run, target) for target in runnable]
        for future in as_completed(futures):
            error = future.exception()
            if error is not None and first_error is None:
                first_error = error

    if first_error is not None:
        raise first_error

    succeeded: List[str] = []
    failed: List[str] = []
    while not package_results.empty():
        result = package_results.get_nowait()
        results[result.package] = result
        for file in result.successes:
            succeeded.extend(f"{file.package}.{test.name}" for test in file.tests)
        failed.extend(f"{result.package}.{test}" for test in result.failures)

    logger.info(
        "Processed tests for %s in %.2fs: succeeded=%s failed=%s",
        operation.value,
        time.monotonic() - start,
        succeeded,
        failed,
    )
    return results


def _run(
    repo_path,
    targets: Iterable[TestTarget],
    operation: Operation,
    transform: Transform,
    options: Optional[ProcessOptions],
) -> Results:
    options = options or ProcessOptions()
    repo_path = os.fspath(repo_path)
    packages = resolve_packages(repo_path, options.build_flags)
    return process(
        packages,
        targets,
        transform,
        operation,
        repo_path=repo_path,
        max_workers=options.max_workers,
        use_gofmt=options.use_gofmt(),
    )


def quarantine_tests(
    repo_path, targets: Iterable[TestTarget], options: Optional[ProcessOptions] = None
) -> Results:
    """
    Find and quarantine the targeted tests in a Go repository.

    Nothing is written to disk: the modified source code is returned in the
    results, see write_results_to_files.
    """
    return _run(repo_path, targets, Operation.QUARANTINE, quarantine_file, options)


def unquarantine_tests(
    repo_path, targets: Iterable[TestTarget], options: Optional[ProcessOptions] = None
) -> Results:
    """
    Find the targeted tests and remove their quarantine block.

    Nothing is written to disk: the modified source code is returned in the
    results, see write_results_to_files.
    """
    return _run(repo_path, targets, Operation.UNQUARANTINE, unquarantine_file, options)
