"""Quotation scene module."""

from scene_loadtest.probes.quotation.manifest import quotation_manifest
from scene_loadtest.probes.quotation.probes import ProbeSequence

__all__ = ["ProbeSequence", "quotation_manifest"]
