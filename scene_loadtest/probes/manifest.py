"""Scene manifest definition for the probe plugin system."""

from collections.abc import Mapping
from dataclasses import dataclass

from scene_loadtest.probes.base import LoginProbe, Probe


@dataclass(frozen=True, kw_only=True)
class SceneManifest:
    """Manifest describing the probes a scene plugin contributes.

    ``authenticator`` is the login operation the orchestrator uses to obtain
    credentials for this scene's protected probes.
    """

    scene: str
    probes: Mapping[str, Probe]
    authenticator: LoginProbe | None = None
