"""Loading of scene manifests from entry points."""

from collections.abc import Sequence
from importlib.metadata import entry_points

from scene_loadtest.probes.manifest import SceneManifest

ENTRY_POINT_GROUP = "scene_loadtest.scenes"


def load_all_manifests() -> Sequence[SceneManifest]:
    """Load every registered scene manifest, sorted by key.

    Every manifest is loaded, not only the one of the scene being run, because
    a scene may authenticate through another scene's login probe.
    """
    entries = sorted(entry_points(group=ENTRY_POINT_GROUP), key=lambda e: e.name)
    return [entry.load() for entry in entries]
