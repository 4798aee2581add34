"""
flakebot - Flaky Go Test Quarantine Bot

This package edits Go test sources in a repository checkout:
1. Resolves the repository's packages with `go list`
2. Finds the requested test and fuzz functions
3. Prepends (or removes) the RUN_QUARANTINED_TESTS skip block
4. Reports per-package successes and failures
5. Optionally writes and commits the modified files
"""

from .cli import main
from .errors import FlakebotError, GitError
from .flakebot import FlakeBot
from .git_manager import GitManager
from .models import Operation, TestTarget
from .processing import ProcessOptions, quarantine_tests, unquarantine_tests
from .results import Results

__all__ = [
    "FlakeBot",
    "FlakebotError",
    "GitError",
    "GitManager",
    "Operation",
    "ProcessOptions",
    "Results",
    "TestTarget",
    "main",
    "quarantine_tests",
    "unquarantine_tests",
]
