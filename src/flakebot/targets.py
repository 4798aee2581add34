"""Parsing and sanitizing of test targets."""

import re
from typing import Dict, Iterable, List

from .models import TestTarget

_TEST_NAME_RE = re.compile(r"^(Test|Fuzz)[A-Za-z0-9_]*(/.*)?$")


def sanitize_targets(targets: Iterable[TestTarget]) -> List[TestTarget]:
    """
    Merge targets that name the same package and drop duplicate test names.

    Args:
        targets: Targets as submitted by the caller, possibly overlapping

    Returns:
        One target per distinct package, tests in order of first appearance
    """
    seen: Dict[str, List[str]] = {}
    for target in targets:
        tests = seen.setdefault(target.package, [])
        for test in target.tests:
            if test not in tests:
                tests.append(test)

    return [TestTarget(package=package, tests=tests) for package, tests in seen.items()]


def parse_target(target: str) -> TestTarget:
    """
    Convert "import/path.TestName" into a TestTarget.

    Args:
        target: Fully qualified test name (e.g. "github.com/owner/repo/pkg.TestFoo")

    Returns:
        TestTarget holding the single test
    """
    target = target.strip()
    last_dot = target.rfind(".")
    if last_dot == -1:
        raise ValueError(
            f"invalid target format '{target}': expected 'package.TestName'"
        )

    # Subtest names may contain dots, so prefer the split that leaves a
    # Test/Fuzz identifier on the right.
    split_at = last_dot
    index = last_dot
    while index != -1:
        if _TEST_NAME_RE.match(target[index + 1 :]):
            split_at = index
            break
        index = target.rfind(".", 0, index)

    package, test = target[:split_at], target[split_at + 1 :]
    if not package or not test:
        raise ValueError(
            f"invalid target format '{target}': expected 'package.TestName'"
        )
    return TestTarget(package=package, tests=[test])


def parse_targets(targets: Iterable[str]) -> List[TestTarget]:
    """Parse a list of fully qualified test names, skipping blanks."""
    return [parse_target(target) for target in targets if target.strip()]
