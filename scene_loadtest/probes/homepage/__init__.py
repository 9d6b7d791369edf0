"""Homepage scene module."""

from scene_loadtest.probes.homepage.manifest import homepage_manifest
from scene_loadtest.probes.homepage.probes import PasswordLogin

__all__ = ["PasswordLogin", "homepage_manifest"]
