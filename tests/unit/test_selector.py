"""Tests for selection expressions."""

import pytest

from scene_loadtest.errors import EmptySelection, SelectionError
from scene_loadtest.models.catalog import SceneCatalog, TestDescriptor
from scene_loadtest.selector import parse_selection, select_tests
from scene_loadtest.testing.factories import catalog_entries


@pytest.fixture
def catalog() -> list[TestDescriptor]:
    """Catalog whose ordinals do not follow list position."""
    return [
        TestDescriptor(id="auth-features", name="Feature flags", ordinal=3),
        TestDescriptor(id="login", name="Login", ordinal=1),
        TestDescriptor(id="master-categories", name="Master categories", ordinal=4),
        TestDescriptor(id="auth-me", name="Current user", ordinal=2),
    ]


def _ids(tests: list[TestDescriptor]) -> list[str]:
    return [t.identifier for t in tests]


class TestParseSelection:
    """Tests for parse_selection."""

    def test_all_returns_catalog_in_order(self, catalog: list[TestDescriptor]) -> None:
        """'all' returns every entry in catalog order."""
        selected = parse_selection("all", catalog)

        assert list(selected) == catalog
        assert len(selected) == len(catalog)

    def test_all_is_case_insensitive(self, catalog: list[TestDescriptor]) -> None:
        """' ALL ' is accepted."""
        assert list(parse_selection(" ALL ", catalog)) == catalog

    def test_range_matches_ordinals_not_positions(
        self, catalog: list[TestDescriptor]
    ) -> None:
        """'1-3' resolves ordinals 1, 2, 3 in that order."""
        selected = parse_selection("1-3", catalog)

        assert _ids(selected) == ["login", "auth-me", "auth-features"]

    def test_single_ordinals(self, catalog: list[TestDescriptor]) -> None:
        """Comma separated ordinals keep the order they were given in."""
        selected = parse_selection("4,1", catalog)

        assert _ids(selected) == ["master-categories", "login"]

    def test_duplicates_are_removed(self, catalog: list[TestDescriptor]) -> None:
        """'1,1,2' yields each test once at its first occurrence."""
        selected = parse_selection("1,1,2", catalog)

        assert _ids(selected) == ["login", "auth-me"]

    def test_overlapping_ranges_are_deduplicated(
        self, catalog: list[TestDescriptor]
    ) -> None:
        """Overlapping ranges include each test once."""
        selected = parse_selection("2-3,1-4", catalog)

        assert _ids(selected) == ["auth-me", "auth-features", "login", "master-categories"]

    def test_whitespace_is_ignored(self, catalog: list[TestDescriptor]) -> None:
        """Spaces around tokens are tolerated."""
        assert _ids(parse_selection(" 1 , 2 ", catalog)) == ["login", "auth-me"]

    def test_reversed_range_with_other_tokens(
        self, catalog: list[TestDescriptor]
    ) -> None:
        """A reversed range contributes nothing but is not an error."""
        assert _ids(parse_selection("3-1,2", catalog)) == ["auth-me"]

    def test_empty_expression_raises(self, catalog: list[TestDescriptor]) -> None:
        """An empty expression is an empty selection."""
        with pytest.raises(SelectionError):
            parse_selection("", catalog)

    def test_reversed_range_alone_raises_empty(
        self, catalog: list[TestDescriptor]
    ) -> None:
        """A reversed range alone selects nothing."""
        with pytest.raises(EmptySelection):
            parse_selection("3-1", catalog)

    def test_unknown_ordinal_raises_in_strict_mode(
        self, catalog: list[TestDescriptor]
    ) -> None:
        """Unknown ordinals are rejected by default."""
        with pytest.raises(SelectionError, match="No test with number 9"):
            parse_selection("1,9", catalog)

    def test_invalid_token_raises_in_strict_mode(
        self, catalog: list[TestDescriptor]
    ) -> None:
        """Non-numeric tokens are rejected by default."""
        with pytest.raises(SelectionError, match="Invalid selection token"):
            parse_selection("1,abc", catalog)

    def test_lenient_mode_ignores_unknown_ordinals(
        self, catalog: list[TestDescriptor]
    ) -> None:
        """Lenient mode drops unknown ordinals and bad tokens."""
        selected = parse_selection("9,abc,2", catalog, strict=False)

        assert _ids(selected) == ["auth-me"]

    def test_wide_range_in_lenient_mode(self, catalog: list[TestDescriptor]) -> None:
        """Wide ranges only visit catalog ordinals."""
        selected = parse_selection("3-1000000000000,1", catalog, strict=False)

        assert _ids(selected) == ["auth-features", "master-categories", "login"]

    def test_wide_range_in_strict_mode(self, catalog: list[TestDescriptor]) -> None:
        with pytest.raises(SelectionError, match="No test with number 5"):
            parse_selection("1-1000000000000", catalog)

    def test_lenient_mode_raises_when_nothing_matches(
        self, catalog: list[TestDescriptor]
    ) -> None:
        """Lenient mode still fails when nothing is selected."""
        with pytest.raises(EmptySelection):
            parse_selection("7-9", catalog, strict=False)

    def test_all_on_empty_catalog_raises(self) -> None:
        """'all' on an empty catalog selects nothing."""
        with pytest.raises(EmptySelection):
            parse_selection("all", [])


class TestSelectTests:
    """Tests for select_tests."""

    def test_override_takes_precedence(self) -> None:
        """A single test id overrides the expression."""
        catalog = SceneCatalog(name="homepage", tests=catalog_entries("login", "auth-me"))

        selected = select_tests(catalog, "1", "auth-me")

        assert _ids(selected) == ["auth-me"]

    def test_unknown_override_raises(self) -> None:
        """An unknown override id is an empty selection."""
        catalog = SceneCatalog(name="homepage", tests=catalog_entries("login"))

        with pytest.raises(EmptySelection, match="Test 'nope' not found"):
            select_tests(catalog, test_override="nope")

    def test_uses_expression_without_override(self) -> None:
        """Without an override the expression is parsed."""
        catalog = SceneCatalog(
            name="homepage", tests=catalog_entries("login", "auth-me", "auth-features")
        )

        assert _ids(select_tests(catalog, "2-3")) == ["auth-me", "auth-features"]
