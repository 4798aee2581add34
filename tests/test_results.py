"""Tests for result reports and writing results back to disk."""

import os
import stat

import pytest

from flakebot.errors import WriteError
from flakebot.models import File, Operation, PackageResults, Test, past_tense
from flakebot.results import Results, commit_info, write_results_to_files


def _results(operation=Operation.QUARANTINE, file_abs="/repo/pkga/a_test.go"):
    pkga = PackageResults(
        package="example.com/m/pkga",
        successes=[
            File(
                package="example.com/m/pkga",
                file="pkga/a_test.go",
                file_abs=file_abs,
                tests=[
                    Test(name="TestOne", original_line=5, modified_line=8),
                    Test(name="TestTwo", original_line=9, modified_line=18),
                ],
                modified_source_code="package pkga\n",
            )
        ],
        failures=["TestMissing"],
    )
    pkgb = PackageResults(package="example.com/m/pkgb", successes=[], failures=["TestB"])
    pkgc = PackageResults(
        package="example.com/m/pkgc",
        successes=[
            File(
                package="example.com/m/pkgc",
                file="pkgc/c_test.go",
                file_abs="/repo/pkgc/c_test.go",
                tests=[Test(name="TestC", original_line=3, modified_line=6)],
                modified_source_code="package pkgc\n",
            )
        ],
        failures=[],
    )
    # Inserted out of order on purpose: reports sort by package.
    return Results(
        operation=operation,
        packages={pkgc.package: pkgc, pkgb.package: pkgb, pkga.package: pkga},
    )


def test_mapping_protocol():
    results = Results(operation=Operation.UNQUARANTINE)
    result = PackageResults(package="example.com/m/pkg")

    results["example.com/m/pkg"] = result

    assert results["example.com/m/pkg"] is result
    assert "example.com/m/pkg" in results
    assert len(results) == 1
    assert list(results) == ["example.com/m/pkg"]


def test_for_each_visits_packages_in_order():
    seen = []
    _results().for_each(lambda result: seen.append(result.package))

    assert seen == ["example.com/m/pkga", "example.com/m/pkgb", "example.com/m/pkgc"]


def test_str():
    text = str(_results())

    assert text == (
        "example.com/m/pkga\n"
        "--------------------------------\n"
        "Successes\n\n"
        "pkga/a_test.go: TestOne, TestTwo\n"
        "\nFailures\n\n"
        "TestMissing\n"
        "example.com/m/pkgb\n"
        "--------------------------------\n"
        "\nNo successes!\n"
        "\nFailures\n\n"
        "TestB\n"
        "example.com/m/pkgc\n"
        "--------------------------------\n"
        "Successes\n\n"
        "pkgc/c_test.go: TestC\n"
        "\nNo failures!\n"
    )


def test_str_file_without_tests():
    results = Results(
        operation=Operation.UNQUARANTINE,
        packages={
            "p": PackageResults(
                package="p", successes=[File(package="p", file="p_test.go", file_abs="/p_test.go")]
            )
        },
    )

    assert "p_test.go: No tests unquarantined\n" in str(results)


def test_markdown_quarantine():
    markdown = _results().markdown("owner", "repo", "flaky-branch")
    blob = "https://github.com/owner/repo/blob/flaky-branch/pkga/a_test.go"

    assert markdown.startswith("# Quarantined Flaky Tests using flakebot\n")
    assert "## `example.com/m/pkga` 🔴" in markdown
    assert "## `example.com/m/pkgc` 🟢" in markdown
    assert "### Successfully quarantined 2 tests" in markdown
    assert "| File | Tests |" in markdown
    assert f"| [pkga/a_test.go]({blob}) | [TestOne]({blob}#L8), [TestTwo]({blob}#L18) |" in markdown
    assert "### Failed to quarantine 1 tests — needs manual intervention." in markdown
    assert "- TestMissing" in markdown
    assert markdown.endswith("\n---\n\nCreated automatically by flakebot.")


def test_markdown_unquarantine_links_original_lines():
    markdown = _results(Operation.UNQUARANTINE).markdown("owner", "repo", "main")
    blob = "https://github.com/owner/repo/blob/main/pkga/a_test.go"

    assert markdown.startswith("# Unquarantined Recovered Tests using flakebot\n")
    assert "### Successfully unquarantined 2 tests" in markdown
    assert f"[TestOne]({blob}#L5)" in markdown
    assert "### Failed to unquarantine 1 tests" in markdown


def test_markdown_package_order():
    markdown = _results().markdown("o", "r", "b")

    assert markdown.index("pkga") < markdown.index("pkgb") < markdown.index("pkgc")


def test_commit_info():
    message, updates = commit_info(_results())

    assert message == (
        "flakebot quarantine tests\n"
        "pkga/a_test.go: TestOne, TestTwo\n"
        "pkgc/c_test.go: TestC\n"
    )
    assert updates == {
        "pkga/a_test.go": "package pkga\n",
        "pkgc/c_test.go": "package pkgc\n",
    }


def test_commit_info_unquarantine():
    message, _ = commit_info(_results(Operation.UNQUARANTINE))

    assert message.startswith("flakebot unquarantine tests\n")


def test_write_results_to_files(tmp_path):
    target = tmp_path / "a_test.go"
    results = Results(
        operation=Operation.QUARANTINE,
        packages={
            "p": PackageResults(
                package="p",
                successes=[
                    File(
                        package="p",
                        file="a_test.go",
                        file_abs=str(target),
                        tests=[Test(name="TestA", original_line=1)],
                        modified_source_code="package p\r\n\n// ünïcode\n",
                    )
                ],
            )
        },
    )

    write_results_to_files(results)

    assert target.read_bytes() == "package p\r\n\n// ünïcode\n".encode("utf-8")
    assert stat.S_IMODE(os.stat(target).st_mode) == 0o600


def test_write_results_overwrites_existing_file(tmp_path):
    target = tmp_path / "a_test.go"
    target.write_text("package p\n// a much longer original file\n")
    results = _results(file_abs=str(target))
    del results.packages["example.com/m/pkgc"]

    write_results_to_files(results)

    assert target.read_text() == "package pkga\n"


def test_write_results_error(tmp_path):
    results = _results(file_abs=str(tmp_path / "missing" / "a_test.go"))

    with pytest.raises(WriteError) as exc_info:
        write_results_to_files(results)

    assert "a_test.go" in str(exc_info.value)


def test_past_tense():
    assert past_tense(Operation.QUARANTINE) == "quarantined"
    assert past_tense(Operation.UNQUARANTINE) == "unquarantined"
    assert past_tense("rename") == "processed"
