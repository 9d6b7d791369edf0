"""Models for the scene test catalog."""

from collections.abc import Sequence

from pydantic import Field, field_validator

from scene_loadtest.models.base import Model


class TestDescriptor(Model):
    """A single catalog entry for a test within a scene."""

    __test__ = False

    identifier: str = Field(..., alias="id", description="Registry key of the probe")
    display_name: str = Field(..., alias="name", description="Human-readable name")
    ordinal: int = Field(..., ge=1, description="1-based number used in selections")


class SceneCatalog(Model):
    """Ordered test descriptors for one scene."""

    name: str
    tests: Sequence[TestDescriptor] = Field(default_factory=list)

    @field_validator("tests")
    @classmethod
    def _unique_entries(
        cls, tests: Sequence[TestDescriptor]
    ) -> Sequence[TestDescriptor]:
        ordinals = [test.ordinal for test in tests]
        if len(set(ordinals)) != len(ordinals):
            raise ValueError(f"Duplicate ordinals in scene catalog: {ordinals}")
        identifiers = [test.identifier for test in tests]
        if len(set(identifiers)) != len(identifiers):
            raise ValueError(f"Duplicate test ids in scene catalog: {identifiers}")
        return tests

    def find(self, identifier: str) -> TestDescriptor | None:
        """Return the descriptor with the given identifier, if any."""
        for test in self.tests:
            if test.identifier == identifier:
                return test
        return None
