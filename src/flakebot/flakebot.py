"""Main FlakeBot class driving a quarantine or unquarantine run."""

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from .errors import FlakebotError
from .git_manager import GitManager
from .models import Operation, past_tense
from .processing import ProcessOptions, quarantine_tests, unquarantine_tests
from .results import Results, commit_info, write_results_to_files
from .targets import parse_targets


@dataclass
class FlakeBot:
    """Quarantines and unquarantines Go tests in one repository checkout."""

    repo_path: str = "."
    build_flags: List[str] = field(default_factory=list)
    verbose: bool = False
    gofmt: Optional[bool] = None

    def run(
        self,
        operation: Operation,
        targets: List[str],
        write: bool = False,
        commit: bool = False,
        markdown: Optional[Tuple[str, str, str]] = None,
    ) -> Results:
        """
        Run one operation end to end and report on it.

        Args:
            operation: Quarantine or unquarantine
            targets: Fully qualified test names, e.g. "example.com/m/pkg.TestFoo"
            write: Write the modified files back to disk
            commit: Commit the modified files (implies write)
            markdown: (owner, repo, branch) to print a markdown report for
        """
        print(f"🚀 Starting flakebot {operation.value}")
        print(f"📁 Repository: {self.repo_path}")
        if self.build_flags:
            print(f"🏷️ Build flags: {' '.join(self.build_flags)}")

        try:
            if operation == Operation.QUARANTINE:
                results = self.quarantine(targets)
            else:
                results = self.unquarantine(targets)

            print(f"\n{'=' * 80}")
            print(str(results), end="")
            print(f"{'=' * 80}")

            if write or commit:
                self.write(results)
            if commit:
                self.commit(results)
        except (FlakebotError, ValueError) as e:
            print(f"\n💀 FATAL: flakebot stopped due to error: {e}")
            sys.exit(1)

        if markdown:
            owner, repo, branch = markdown
            print()
            print(results.markdown(owner, repo, branch))
        return results

    def _options(self) -> ProcessOptions:
        return ProcessOptions(build_flags=list(self.build_flags), gofmt=self.gofmt)

    def quarantine(self, targets: List[str]) -> Results:
        """Quarantine the tests named by fully qualified targets."""
        parsed = parse_targets(targets)
        if self.verbose:
            print(f"🎯 Quarantining {len(targets)} tests")
        return quarantine_tests(self.repo_path, parsed, self._options())

    def unquarantine(self, targets: List[str]) -> Results:
        """Remove the quarantine block from the tests named by fully qualified targets."""
        parsed = parse_targets(targets)
        if self.verbose:
            print(f"🎯 Unquarantining {len(targets)} tests")
        return unquarantine_tests(self.repo_path, parsed, self._options())

    def write(self, results: Results) -> None:
        files = results.files()
        if not files:
            print("⚠️ No files to write")
            return
        write_results_to_files(results)
        for file in files:
            print(f"💾 Wrote {file.file}")

    def commit(self, results: Results) -> Optional[str]:
        """Commit the written files, returning the new commit hash."""
        git_manager = GitManager(Path(self.repo_path))
        if not git_manager.has_uncommitted_changes():
            print("⚠️ Nothing to commit")
            return None

        message, updates = commit_info(results)
        if not updates:
            print("⚠️ Nothing to commit")
            return None

        commit_hash = git_manager.commit_files(message, list(updates))
        print(
            f"✅ Committed {len(updates)} files with {past_tense(results.operation)} tests: "
            f"{commit_hash[:12]}"
        )
        return commit_hash
