"""Resolving the Go packages of a repository with `go list`."""

import json
import logging
import os
import shutil
import subprocess
import time
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from .errors import PackageNotFoundError, ResolutionError
from .models import PackageInfo

logger = logging.getLogger(__name__)

TEST_FILE_SUFFIX = "_test.go"

# Every file list `go list` reports for a package
_FILE_FIELDS = ("GoFiles", "CgoFiles", "TestGoFiles", "XTestGoFiles")


class PackagesInfo:
    """All packages found in a Go project, keyed by import path."""

    def __init__(self, packages: Optional[Dict[str, PackageInfo]] = None):
        self.packages: Dict[str, PackageInfo] = packages or {}

    def get(self, import_path: str) -> PackageInfo:
        """
        Get the PackageInfo for a full import path (not just the package name).

        Raises:
            PackageNotFoundError: If the package was not resolved
        """
        if import_path in self.packages:
            return self.packages[import_path]
        all_packages = "\n".join(sorted(self.packages))
        raise PackageNotFoundError(
            f"package not found: {import_path}\nall packages:\n{all_packages}"
        )

    def __contains__(self, import_path: str) -> bool:
        return import_path in self.packages

    def __len__(self) -> int:
        return len(self.packages)

    def __iter__(self) -> Iterator[str]:
        return iter(self.packages)

    def __str__(self) -> str:
        return "\n\n".join(["All packages:"] + [str(pkg) for pkg in self.packages.values()])


def find_go_mod_dirs(root_dir: Path) -> List[Path]:
    """Find every directory holding a go.mod file, skipping hidden and vendor dirs."""
    mod_dirs = []
    for dirpath, dirnames, filenames in os.walk(root_dir):
        dirnames[:] = sorted(
            d for d in dirnames if not d.startswith(".") and d != "vendor"
        )
        if "go.mod" in filenames:
            mod_dirs.append(Path(dirpath))
    return mod_dirs


def decode_go_list_output(output: str) -> Iterator[dict]:
    """Decode the stream of JSON objects printed by `go list -json`."""
    decoder = json.JSONDecoder()
    index = 0
    while True:
        while index < len(output) and output[index].isspace():
            index += 1
        if index >= len(output):
            return
        obj, index = decoder.raw_decode(output, index)
        yield obj


def package_from_go_list(entry: dict) -> PackageInfo:
    """Build a PackageInfo from one `go list -json` entry."""
    pkg_dir = entry.get("Dir", "")
    go_files: List[str] = []
    test_go_files: List[str] = []
    for field_name in _FILE_FIELDS:
        for file_name in entry.get(field_name) or []:
            path = os.path.join(pkg_dir, file_name)
            if file_name.endswith(TEST_FILE_SUFFIX):
                if path not in test_go_files:
                    test_go_files.append(path)
            elif path not in go_files:
                go_files.append(path)

    module = entry.get("Module") or {}
    return PackageInfo(
        import_path=entry.get("ImportPath", ""),
        name=entry.get("Name", ""),
        dir=pkg_dir,
        go_files=go_files,
        test_go_files=test_go_files,
        module_path=module.get("Path", ""),
        module_dir=module.get("Dir", ""),
    )


def load_module_packages(module_dir: Path, build_flags: List[str]) -> Dict[str, PackageInfo]:
    """
    List the packages of a single Go module.

    Args:
        module_dir: Directory holding the module's go.mod
        build_flags: Extra flags for the go command (e.g. ["-tags", "integration"])

    Returns:
        Import path -> PackageInfo for every package that loaded without error
    """
    go_binary = shutil.which("go")
    if go_binary is None:
        raise ResolutionError("go toolchain not found on PATH")

    cmd = [go_binary, "list", "-e", "-json", *build_flags, "./..."]
    try:
        result = subprocess.run(
            cmd, cwd=module_dir, capture_output=True, text=True, check=True
        )
    except subprocess.CalledProcessError as e:
        raise ResolutionError(
            f"failed to load packages from module {module_dir}: {e.stderr.strip()}"
        ) from e

    try:
        entries = list(decode_go_list_output(result.stdout))
    except json.JSONDecodeError as e:
        raise ResolutionError(f"unexpected go list output in {module_dir}: {e}") from e

    packages = {}
    for entry in entries:
        error = entry.get("Error")
        if error:
            logger.warning(
                "Skipping package %s: %s",
                entry.get("ImportPath", "?"),
                error.get("Err", error) if isinstance(error, dict) else error,
            )
            continue
        info = package_from_go_list(entry)
        packages[info.import_path] = info
    return packages


def resolve_packages(root_dir, build_flags: Optional[List[str]] = None) -> PackagesInfo:
    """
    Find all Go packages in a directory tree, nested modules included.

    Args:
        root_dir: Repository checkout to scan
        build_flags: Flags passed to the go command when listing packages

    Returns:
        PackagesInfo keyed by import path

    Raises:
        ResolutionError: If the root is unusable or `go list` cannot run
    """
    root = Path(root_dir).resolve()
    if not root.is_dir():
        raise ResolutionError(f"not a directory: {root_dir}")

    start = time.monotonic()
    mod_dirs = find_go_mod_dirs(root)
    if not mod_dirs:
        logger.warning("No go.mod files found in %s", root)
        return PackagesInfo()

    packages: Dict[str, PackageInfo] = {}
    for mod_dir in mod_dirs:
        packages.update(load_module_packages(mod_dir, list(build_flags or [])))

    for pkg in packages.values():
        logger.debug(
            "Found package %s (dir=%s, test files=%s)",
            pkg.import_path,
            pkg.dir,
            pkg.test_go_files,
        )
    logger.debug(
        "Found %d packages in %s in %.2fs", len(packages), root, time.monotonic() - start
    )
    return PackagesInfo(packages)
