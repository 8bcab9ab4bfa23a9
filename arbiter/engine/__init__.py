# engine/__init__.py
# =============================================================================
# 裁决引擎模块：校验、推理合成、登记与运行时编排。
# =============================================================================

from arbiter.engine.reasoning import synthesize_reasoning
from arbiter.engine.registry import CaseRegistry
from arbiter.engine.runtime import AdjudicationRuntime, ProgressCallback
from arbiter.engine.validator import validate_record

__all__ = [
    "AdjudicationRuntime",
    "CaseRegistry",
    "ProgressCallback",
    "synthesize_reasoning",
    "validate_record",
]
