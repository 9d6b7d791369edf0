"""Homepage scene manifest."""

from scene_loadtest.probes.homepage.probes import (
    auth_features,
    auth_me,
    login,
    master_categories,
)
from scene_loadtest.probes.manifest import SceneManifest

homepage_manifest = SceneManifest(
    scene="homepage",
    probes={
        "login": login,
        "auth-me": auth_me,
        "auth-features": auth_features,
        "master-categories": master_categories,
    },
    authenticator=login,
)
