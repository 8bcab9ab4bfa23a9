# adjudicate.py
# =============================================================================
# 公共 API：单案件裁决入口。
#
# 提供 adjudicate() 一键裁决函数，内部使用 AdjudicationRuntime 编排。
# 长驻服务请直接持有 AdjudicationRuntime（见 arbiter.api.http_app）。
# =============================================================================

"""公共 API：单案件裁决入口。"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Union

from arbiter.engine.registry import CaseRegistry
from arbiter.engine.runtime import AdjudicationRuntime, ProgressCallback
from arbiter.llm.router import JUDGE_ROLE, ModelRouter, make_llm_caller
from arbiter.primitives.models import CaseRequest

logger = logging.getLogger(__name__)


def build_runtime(
    llm_config: Optional[Dict[str, Any]] = None,
    config_file: Optional[str] = None,
    registry: Optional[CaseRegistry] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> AdjudicationRuntime:
    """按 LLM 配置组装运行时。 / Assemble a runtime from LLM configuration."""
    router = ModelRouter(llm_config=llm_config, config_file=config_file)
    return AdjudicationRuntime(
        llm_caller=make_llm_caller(router, JUDGE_ROLE),
        registry=registry,
        on_progress=on_progress,
    )


async def adjudicate(
    case: Union[CaseRequest, Dict[str, Any]],
    llm_config: Optional[Dict[str, Any]] = None,
    config_file: Optional[str] = None,
    registry: Optional[CaseRegistry] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> Dict[str, Any]:
    """一键裁决。

    参数：
        case: 案件请求（CaseRequest 或等价字典：claimant_type、statement_of_claim、
            dispute_category、可选 statement_of_defence / dispute_amount /
            submitted_evidence）
        llm_config: LLM 模型配置（最高优先级），角色名为 "judge"。例如：
            - 简写: {"judge": "gemini-1.5-flash"}
            - 完整: {"judge": {"model_name": "gpt-4o",
                                "url": "https://api.openai.com/v1",
                                "api_key": "sk-xxx"}}
        config_file: LLM 配置文件路径（可选，不传则自动搜索 llm_config.yaml）
        registry: 案件登记簿（可选）。传入则案件登记于此，便于调用方后续查询。
        on_progress: 进度回调函数（可选，同步或异步）。

    返回：
        完整案件字典（CaseEntry.to_dict()），其中 ai_response 为裁决记录。

    异常：
        ValueError: 案件请求字典形状错误。
        BackendError / MalformedOutput / InvalidRecord: 案件处理失败，未登记。
    """
    request = case if isinstance(case, CaseRequest) else CaseRequest.from_dict(case)
    runtime = build_runtime(
        llm_config=llm_config,
        config_file=config_file,
        registry=registry,
        on_progress=on_progress,
    )
    entry = await runtime.adjudicate(request)
    logger.info(f"裁决完成: dispute_id={entry.dispute_id}")
    return entry.to_dict()
