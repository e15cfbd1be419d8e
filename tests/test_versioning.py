from __future__ import annotations

import pytest

from services.versioning import VersionParseError, is_at_least, parse_version


def test_equal_versions_are_current() -> None:
    assert is_at_least("61.315.1.25959", "61.315.1.25959")


def test_older_minor_is_not_current() -> None:
    assert not is_at_least("61.314.9.9999", "61.315.1.25959")


def test_components_compare_numerically() -> None:
    assert is_at_least("61.315.10.0", "61.315.9.99999")
    assert not is_at_least("9.0.0.0", "10.0.0.0")


def test_newer_revision_is_current() -> None:
    assert is_at_least("61.315.1.25960", "61.315.1.25959")


def test_parse_tolerates_surrounding_whitespace() -> None:
    assert parse_version(" 61.315.01.25959\r\n") == (61, 315, 1, 25959)


@pytest.mark.parametrize("text", ["", None, "61.315.1", "61.315.1.25959.1", "61.x.1.2", "-1.0.0.0", "1..2.3"])
def test_parse_rejects_malformed_versions(text: str | None) -> None:
    with pytest.raises(VersionParseError):
        parse_version(text)


def test_is_at_least_propagates_parse_errors() -> None:
    with pytest.raises(VersionParseError):
        is_at_least("unknown", "61.315.1.25959")
