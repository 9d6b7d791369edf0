"""Quotation scene manifest."""

from scene_loadtest.probes.manifest import SceneManifest
from scene_loadtest.probes.quotation.probes import (
    create_quotation,
    get_quotation_detail,
    list_quotations_myteam,
    list_quotations_mywork,
    submit_quotation,
)

quotation_manifest = SceneManifest(
    scene="quotation",
    probes={
        "list-quotations-mywork": list_quotations_mywork,
        "list-quotations-myteam": list_quotations_myteam,
        "get-quotation-detail": get_quotation_detail,
        "create-quotation": create_quotation,
        "submit-quotation": submit_quotation,
    },
)
