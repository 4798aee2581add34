"""Command line interface for flakebot."""

import argparse
import logging
from importlib.metadata import version

from .flakebot import FlakeBot
from .models import Operation


def _split_targets(value: str):
    return [target.strip() for target in value.split(",") if target.strip()]


def _markdown_location(value: str):
    """Parse OWNER/REPO@BRANCH."""
    location, sep, branch = value.partition("@")
    owner, slash, repo = location.partition("/")
    if not (sep and slash and owner and repo and branch):
        raise argparse.ArgumentTypeError(
            f"invalid markdown location '{value}', expected OWNER/REPO@BRANCH"
        )
    return owner, repo, branch


def main(bot_class=FlakeBot):
    """Main function with command line argument parsing."""
    pkg_version = version("flakebot")

    parser = argparse.ArgumentParser(
        description="flakebot - Quarantine and unquarantine flaky Go tests"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"flakebot {pkg_version}",
    )
    parser.add_argument(
        "operation",
        choices=[op.value for op in Operation],
        help="Whether to quarantine tests or remove their quarantine",
    )
    parser.add_argument(
        "--repo",
        type=str,
        default=".",
        help="Path to the Go repository checkout (default: current directory)",
    )
    parser.add_argument(
        "--targets",
        "-t",
        type=_split_targets,
        required=True,
        help="Comma separated test names, e.g. 'example.com/m/pkg.TestA,example.com/m/pkg.TestB'",
    )
    parser.add_argument(
        "--tags",
        type=str,
        default=None,
        help="Build tags passed to the go command when listing packages",
    )
    parser.add_argument(
        "--write",
        action="store_true",
        help="Write the modified test files back to disk",
    )
    parser.add_argument(
        "--commit",
        action="store_true",
        help="Commit the modified test files (implies --write)",
    )
    parser.add_argument(
        "--gofmt",
        dest="gofmt",
        action="store_true",
        default=None,
        help="Format modified files with gofmt (default: when gofmt is installed)",
    )
    parser.add_argument(
        "--no-gofmt",
        dest="gofmt",
        action="store_false",
        default=None,
        help="Never run gofmt on modified files",
    )
    parser.add_argument(
        "--markdown",
        type=_markdown_location,
        default=None,
        metavar="OWNER/REPO@BRANCH",
        help="Print a markdown report linking to the files on GitHub",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show verbose output with detailed progress information",
    )

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
        )
    else:
        logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")

    build_flags = ["-tags", args.tags] if args.tags else []

    bot = bot_class(
        repo_path=args.repo,
        build_flags=build_flags,
        verbose=args.verbose,
        gofmt=args.gofmt,
    )

    bot.run(
        Operation(args.operation),
        args.targets,
        write=args.write,
        commit=args.commit,
        markdown=args.markdown,
    )
