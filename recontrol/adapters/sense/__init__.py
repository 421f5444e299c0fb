"""Sense pipeline adapter (readvise internal API)."""

from recontrol.adapters.sense.readvise_client import PIPELINE_STAGES, ReadviseClient

__all__ = ["PIPELINE_STAGES", "ReadviseClient"]
