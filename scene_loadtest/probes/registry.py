"""Typed dispatch table from (scene, test id) to probes."""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from scene_loadtest.errors import ProbeNotFoundError
from scene_loadtest.models.catalog import TestDescriptor
from scene_loadtest.probes.base import LoginProbe, Probe
from scene_loadtest.probes.manifest import SceneManifest


@dataclass(frozen=True, kw_only=True)
class ProbeRegistry:
    """Probes keyed by ``(scene, test_id)``, resolved once at startup."""

    probes: Mapping[tuple[str, str], Probe]
    authenticator: LoginProbe | None = None

    @classmethod
    def from_manifests(cls, manifests: Iterable[SceneManifest]) -> "ProbeRegistry":
        """Merge scene manifests; the first declared authenticator wins."""
        probes: dict[tuple[str, str], Probe] = {}
        authenticator: LoginProbe | None = None
        for manifest in manifests:
            for test_id, probe in manifest.probes.items():
                probes[(manifest.scene, test_id)] = probe
            if authenticator is None:
                authenticator = manifest.authenticator
        return cls(probes=probes, authenticator=authenticator)

    def resolve(self, scene: str, test_id: str) -> Probe:
        """Return the probe registered for a test.

        Raises:
            ProbeNotFoundError: If no probe is registered for the pair

        """
        try:
            return self.probes[(scene, test_id)]
        except KeyError:
            raise ProbeNotFoundError(
                f"No probe registered for test '{test_id}' in scene '{scene}'"
            ) from None

    def validate(self, scene: str, tests: Sequence[TestDescriptor]) -> None:
        """Fail fast if any selected test has no probe."""
        for test in tests:
            self.resolve(scene, test.identifier)

    def is_login(self, scene: str, test_id: str) -> bool:
        return isinstance(self.resolve(scene, test_id), LoginProbe)
