# events.py
# =============================================================================
# 案件进度事件 / Case progress events
#
# AdjudicationRuntime 在每个阶段开始、结束以及失败时推送 CaseEvent，
# 供管理后台、日志汇聚等外部集成使用。
# / AdjudicationRuntime pushes a CaseEvent at each stage start and end and
#   on failure, for admin dashboards, log shipping and similar integrations.
# =============================================================================

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

STAGES = ("GENERATE", "PARSE", "VALIDATE", "REASON", "REGISTER")


@dataclass
class CaseEvent:
    """一条进度事件。 / One progress event.

    Attributes:
        type: "stage_start" / "stage_end" / "error"（失败的案件不会登记 / a failed case is not registered）。
        stage: STAGES 之一。 / One of STAGES.
        dispute_id: 案件 ID。 / Case id.
        timestamp: time.monotonic() 读数，仅用于计算间隔。 / Monotonic reading, for intervals only.
        progress: 0.0 ~ 1.0，按阶段权重累计。 / Cumulative by stage weight.
        detail: 附加数据；error 事件含 error（异常类名）与 message。
            / Extra data; error events carry ``error`` (exception class) and ``message``.
    """

    type: str
    stage: str
    dispute_id: str
    timestamp: float = field(default_factory=time.monotonic)
    progress: float = 0.0
    detail: Optional[Dict[str, Any]] = None
