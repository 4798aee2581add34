"""Tests for target parsing and sanitization."""

import pytest

from flakebot.models import TestTarget
from flakebot.targets import parse_target, parse_targets, sanitize_targets


def test_sanitize_merges_targets_of_same_package():
    """Targets naming the same package are merged, duplicates dropped."""
    targets = [
        TestTarget("example.com/m/pkga", ["TestOne", "TestTwo"]),
        TestTarget("example.com/m/pkgb", ["TestThree"]),
        TestTarget("example.com/m/pkga", ["TestTwo", "TestFour"]),
    ]

    sanitized = sanitize_targets(targets)

    assert sanitized == [
        TestTarget("example.com/m/pkga", ["TestOne", "TestTwo", "TestFour"]),
        TestTarget("example.com/m/pkgb", ["TestThree"]),
    ]


def test_sanitize_keeps_first_appearance_order():
    targets = [
        TestTarget("b", ["TestB"]),
        TestTarget("a", ["TestA2", "TestA1"]),
        TestTarget("b", ["TestB"]),
    ]

    sanitized = sanitize_targets(targets)

    assert [t.package for t in sanitized] == ["b", "a"]
    assert sanitized[1].tests == ["TestA2", "TestA1"]


def test_sanitize_does_not_mutate_input():
    original = TestTarget("a", ["TestA"])
    sanitize_targets([original, TestTarget("a", ["TestB"])])

    assert original.tests == ["TestA"]


def test_sanitize_empty():
    assert sanitize_targets([]) == []


def test_parse_target_splits_on_last_dot():
    target = parse_target("github.com/owner/repo/pkg.TestFoo")

    assert target.package == "github.com/owner/repo/pkg"
    assert target.tests == ["TestFoo"]


def test_parse_target_fuzz():
    target = parse_target("example.com/m.FuzzParser")

    assert target.package == "example.com/m"
    assert target.tests == ["FuzzParser"]


def test_parse_target_keeps_subtest_with_dots():
    """A dot inside a subtest name does not end up in the package."""
    target = parse_target("example.com/m/pkg.TestFoo/version_1.2")

    assert target.package == "example.com/m/pkg"
    assert target.tests == ["TestFoo/version_1.2"]


def test_parse_target_strips_whitespace():
    target = parse_target("  example.com/m/pkg.TestFoo\n")

    assert target.package == "example.com/m/pkg"


@pytest.mark.parametrize("value", ["TestFoo", "example.com/m/pkg.", ".TestFoo"])
def test_parse_target_invalid(value):
    with pytest.raises(ValueError) as exc_info:
        parse_target(value)

    assert "invalid target format" in str(exc_info.value)


def test_parse_targets_skips_blank_entries():
    targets = parse_targets(["a/b.TestOne", "", "  ", "a/c.TestTwo"])

    assert targets == [TestTarget("a/b", ["TestOne"]), TestTarget("a/c", ["TestTwo"])]
