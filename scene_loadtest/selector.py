"""Selection expressions for choosing tests from a scene catalog.

An expression is ``"all"`` or a comma-separated mix of ordinals and inclusive
ranges, e.g. ``"1,3-5"``. Ordinals refer to each descriptor's ``ordinal``
field, never to its position in the catalog.
"""

import logging
from collections.abc import Sequence

from scene_loadtest.errors import EmptySelection, SelectionError
from scene_loadtest.models.catalog import SceneCatalog, TestDescriptor

log = logging.getLogger(__name__)

ALL = "all"


def parse_selection(
    expression: str,
    catalog: Sequence[TestDescriptor],
    *,
    strict: bool = True,
) -> Sequence[TestDescriptor]:
    """Resolve a selection expression against a scene's catalog.

    Args:
        expression: Selection expression (``"all"``, ``"1,2"``, ``"1-3"``)
        catalog: Descriptors of the scene
        strict: Raise on unknown ordinals and malformed tokens instead of
            ignoring them

    Returns:
        Matching descriptors, de-duplicated, in the order they were selected

    Raises:
        SelectionError: If a token is invalid (strict mode only)
        EmptySelection: If nothing was selected

    """
    expression = expression.strip()
    if expression.lower() == ALL:
        if not catalog:
            raise EmptySelection("Scene catalog is empty")
        return list(catalog)

    by_ordinal = {test.ordinal: test for test in catalog}
    selected: list[TestDescriptor] = []

    for token in (part.strip() for part in expression.split(",")):
        if not token:
            continue
        try:
            ordinals = _expand_token(token)
        except ValueError:
            if strict:
                raise SelectionError(f"Invalid selection token: {token!r}") from None
            log.debug("Ignoring invalid selection token %r", token)
            continue

        # Bounded by the catalog size, not by the width of the range.
        if strict:
            missing = next((o for o in ordinals if o not in by_ordinal), None)
            if missing is not None:
                raise SelectionError(f"No test with number {missing}")

        matching = sorted(o for o in by_ordinal if o in ordinals)
        if len(matching) < len(ordinals):
            log.debug("Ignoring unknown test numbers in %r", token)
        for ordinal in matching:
            test = by_ordinal[ordinal]
            if test not in selected:
                selected.append(test)

    if not selected:
        raise EmptySelection(f"No tests selected with: {expression!r}")

    return selected


def _expand_token(token: str) -> range:
    """Expand ``"3"`` or ``"1-4"`` into a range of ordinals."""
    if "-" in token:
        start, _, end = token.partition("-")
        return range(int(start), int(end) + 1)
    ordinal = int(token)
    return range(ordinal, ordinal + 1)


def select_tests(
    catalog: SceneCatalog,
    selection: str = ALL,
    test_override: str | None = None,
    *,
    strict: bool = True,
) -> Sequence[TestDescriptor]:
    """Choose the tests to run for a scene.

    A single-test override (a test identifier) takes precedence over the
    selection expression.
    """
    if test_override:
        test = catalog.find(test_override)
        if test is None:
            raise EmptySelection(
                f"Test '{test_override}' not found in scene '{catalog.name}'"
            )
        return [test]

    return parse_selection(selection, catalog.tests, strict=strict)
