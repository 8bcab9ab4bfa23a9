"""裁决引擎运行时。 / Adjudication engine runtime.

职责 / Responsibilities:
1. 编排（Orchestration）：生成 → 解析 → 校验 → 推理 → 登记 / generate → parse → validate → reason → register
2. 失败隔离（Failure isolation）：任一步失败都不会登记部分案件 / a failed step never registers a partial case
3. 进度通知（Progress）：通过 on_progress 回调推送 CaseEvent / push CaseEvent via on_progress

不负责：HTTP 传输、LLM 重试策略、提示词质量。
/ Not responsible for: HTTP transport, LLM retry policy, prompt quality.
"""

import inspect
import logging
import secrets
import time
from dataclasses import replace
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, Union

from arbiter.engine.reasoning import synthesize_reasoning
from arbiter.engine.registry import CaseRegistry
from arbiter.engine.validator import validate_record
from arbiter.primitives.errors import ArbiterError, BackendError, MalformedOutput
from arbiter.primitives.events import STAGES, CaseEvent
from arbiter.primitives.models import CaseEntry, CaseRequest
from arbiter.prompts import (
    JUDGE_SYSTEM_PROMPT,
    build_decision_prompt,
    format_case_payload,
    resolve_dispute_amount,
)
from arbiter.utils.json_parser import parse_json_from_llm

logger = logging.getLogger(__name__)

# 类型别名：支持同步和异步回调 / Type alias: supports sync and async callbacks
ProgressCallback = Union[
    Callable[[CaseEvent], Awaitable[None]],
    Callable[[CaseEvent], None],
]

LLMCaller = Callable[..., Awaitable[str]]

HEALTH_CHECK_PROMPT = "Health check test"


def generate_dispute_id(now: Optional[datetime] = None) -> str:
    """生成案件 ID：年份 + 毫秒时间戳 + 随机后缀。 / Case id: year + epoch millis + random suffix."""
    now = now or datetime.now(timezone.utc)
    millis = int(now.timestamp() * 1000)
    return f"DISP-{now.year}-{millis}-{secrets.token_hex(3)}"


class AdjudicationRuntime:
    """裁决运行时编排器。 / Adjudication runtime orchestrator."""

    # 各阶段在总进度中的权重 / Stage weights in total progress (sum = 1.0)
    _STAGE_WEIGHTS = {
        "GENERATE": 0.70,  # 唯一的挂起点 / the only suspension point
        "PARSE": 0.10,
        "VALIDATE": 0.05,
        "REASON": 0.10,
        "REGISTER": 0.05,
    }

    def __init__(
        self,
        llm_caller: LLMCaller,
        registry: Optional[CaseRegistry] = None,
        system_prompt: str = JUDGE_SYSTEM_PROMPT,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self._llm_caller = llm_caller
        self._registry = registry if registry is not None else CaseRegistry()
        self._system_prompt = system_prompt
        self._on_progress = on_progress

        self._stage_offsets = {}
        offset = 0.0
        for stage in STAGES:
            self._stage_offsets[stage] = offset
            offset += self._STAGE_WEIGHTS[stage]

    @property
    def registry(self) -> CaseRegistry:
        return self._registry

    async def _emit(self, event: CaseEvent) -> None:
        """触发进度回调（支持同步和异步回调）。 / Emit progress callback (sync and async)."""
        if self._on_progress is None:
            return
        result = self._on_progress(event)
        if inspect.isawaitable(result):
            await result

    async def _stage(self, event_type: str, stage: str, dispute_id: str, **detail) -> None:
        progress = self._stage_offsets[stage]
        if event_type == "stage_end":
            progress += self._STAGE_WEIGHTS[stage]
        await self._emit(CaseEvent(
            type=event_type,
            stage=stage,
            dispute_id=dispute_id,
            progress=min(1.0, progress),
            detail=detail or None,
        ))

    async def _generate(self, prompt: str) -> str:
        """调用 LLM。任何异常或空文本都转为 BackendError，不重试。
        / Call the LLM; any exception or blank text becomes BackendError, never retried.
        """
        try:
            raw = await self._llm_caller(
                system_prompt=self._system_prompt,
                user_prompt=prompt,
            )
        except BackendError:
            raise
        except Exception as e:
            raise BackendError(f"LLM backend call failed: {e}") from e
        if not isinstance(raw, str) or not raw.strip():
            raise BackendError("LLM backend returned no text")
        return raw

    async def ping(self) -> None:
        """最小化 LLM 连通性检查。 / Minimal LLM connectivity check."""
        await self._generate(HEALTH_CHECK_PROMPT)

    async def adjudicate(
        self,
        request: CaseRequest,
        dispute_id: Optional[str] = None,
    ) -> CaseEntry:
        """处理单个案件，成功后登记并返回 CaseEntry。
        / Process one case; register and return its CaseEntry on success.

        Raises:
            BackendError / MalformedOutput / InvalidRecord / RegistryConflict:
                案件失败，不会登记；异常上带有 dispute_id。
                / The case failed and is not registered; the error carries dispute_id.
        """
        started = time.monotonic()
        received_at = datetime.now(timezone.utc)
        dispute_id = dispute_id or generate_dispute_id(received_at)
        stage = "GENERATE"
        logger.info(
            f"[{dispute_id}] 收到案件: claimant={request.claimant_type.value}, "
            f"category={request.dispute_category}"
        )
        logger.debug(f"[{dispute_id}] 案件内容:\n{format_case_payload(request, dispute_id)}")

        try:
            amount = resolve_dispute_amount(request)
            prompt = build_decision_prompt(request, dispute_id, amount, now=received_at)

            await self._stage("stage_start", stage, dispute_id)
            raw = await self._generate(prompt)
            logger.info(f"[{dispute_id}] LLM 原始响应长度: {len(raw)}")
            await self._stage("stage_end", stage, dispute_id, raw_length=len(raw))

            stage = "PARSE"
            await self._stage("stage_start", stage, dispute_id)
            decoded = parse_json_from_llm(raw)
            await self._stage("stage_end", stage, dispute_id)

            stage = "VALIDATE"
            await self._stage("stage_start", stage, dispute_id)
            record = validate_record(decoded)
            if record.dispute_id != dispute_id:
                if record.dispute_id:
                    logger.warning(
                        f"[{dispute_id}] 模型返回的 dispute_id 不一致 "
                        f"({record.dispute_id!r})，以案件 ID 为准"
                    )
                record = replace(record, dispute_id=dispute_id)
            await self._stage(
                "stage_end", stage, dispute_id, confidence=record.confidence_score,
            )

            stage = "REASON"
            await self._stage("stage_start", stage, dispute_id)
            steps = synthesize_reasoning(request, record)
            await self._stage("stage_end", stage, dispute_id, steps=len(steps))

            stage = "REGISTER"
            await self._stage("stage_start", stage, dispute_id)
            entry = CaseEntry(
                dispute_id=dispute_id,
                timestamp=received_at.isoformat(),
                request=request,
                prompt_sent=prompt,
                decision=record,
                reasoning_steps=steps,
                processing_time_ms=int((time.monotonic() - started) * 1000),
            )
            # 登记是最后一个可失败的步骤 / registering is the last step allowed to fail
            self._registry.put(dispute_id, entry)

        except ArbiterError as exc:
            if exc.dispute_id is None:
                exc.dispute_id = dispute_id
            if isinstance(exc, MalformedOutput):
                logger.error(
                    f"[{dispute_id}] LLM 响应无法解析为 JSON: {exc.message} "
                    f"(position={exc.position})\n响应预览: {exc.snippet}"
                )
            else:
                logger.error(f"[{dispute_id}] 案件处理失败 ({stage}): {exc}")
            await self._emit(CaseEvent(
                type="error",
                stage=stage,
                dispute_id=dispute_id,
                detail={"error": type(exc).__name__, "message": str(exc)},
            ))
            raise

        # 案件已登记，回调失败只记录日志 / the case is registered; a failing callback is only logged
        try:
            await self._stage("stage_end", stage, dispute_id)
        except Exception:
            logger.exception(f"[{dispute_id}] 进度回调失败 ({stage} stage_end)，案件已登记")

        logger.info(
            f"[{dispute_id}] 裁决完成: confidence={record.confidence_score}, "
            f"耗时 {entry.processing_time_ms}ms"
        )
        return entry
