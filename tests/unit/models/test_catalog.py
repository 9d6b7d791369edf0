"""Tests for scene catalogs."""

import pytest
from pydantic import ValidationError

from scene_loadtest.models.catalog import SceneCatalog, TestDescriptor


def test_descriptor_uses_short_keys() -> None:
    """Descriptors are read from id/name/ordinal keys."""
    descriptor = TestDescriptor.model_validate(
        {"id": "auth-me", "name": "Current user", "ordinal": 2}
    )

    assert descriptor.identifier == "auth-me"
    assert descriptor.display_name == "Current user"


def test_ordinal_must_be_positive() -> None:
    with pytest.raises(ValidationError):
        TestDescriptor(id="login", name="Login", ordinal=0)


def test_duplicate_ordinals_rejected() -> None:
    """Ordinals identify tests and must be unique."""
    with pytest.raises(ValidationError, match="Duplicate ordinals"):
        SceneCatalog(
            name="homepage",
            tests=[
                TestDescriptor(id="login", name="Login", ordinal=1),
                TestDescriptor(id="auth-me", name="Current user", ordinal=1),
            ],
        )


def test_duplicate_ids_rejected() -> None:
    with pytest.raises(ValidationError, match="Duplicate test ids"):
        SceneCatalog(
            name="homepage",
            tests=[
                TestDescriptor(id="login", name="Login", ordinal=1),
                TestDescriptor(id="login", name="Login again", ordinal=2),
            ],
        )


def test_find() -> None:
    catalog = SceneCatalog(
        name="homepage", tests=[TestDescriptor(id="login", name="Login", ordinal=1)]
    )

    assert catalog.find("login") is not None
    assert catalog.find("auth-me") is None
