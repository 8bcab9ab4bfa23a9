# arbiter/__init__.py
# =============================================================================
# Arbiter：LLM 争议裁决引擎。 / LLM-backed dispute adjudication engine.
# =============================================================================

"""Arbiter：LLM 争议裁决引擎。 / LLM-backed dispute adjudication engine."""

__version__ = "1.0.0"

from arbiter.api.adjudicate import adjudicate

__all__ = ["adjudicate", "__version__"]
