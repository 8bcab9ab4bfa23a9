# http_app.py
# =============================================================================
# HTTP 接口：案件提交、健康检查与管理端查询
#
#   POST /api/dispute                      提交案件，返回裁决记录
#   GET  /api/health                       详细健康检查（LLM、登记簿、内存）
#   GET  /api/health/simple                纯文本 OK
#   GET  /api/admin/reasoning/{dispute_id} 单个案件的完整登记条目
#   GET  /api/admin/disputes               全部案件摘要
#
# 一个应用持有一个 AdjudicationRuntime，登记簿与应用同生命周期。
# / One app holds one AdjudicationRuntime; the registry lives as long as the app.
# =============================================================================

"""HTTP 接口。 / HTTP surface: dispute submission, health checks and admin listing."""

from __future__ import annotations

import logging
import os
import sys
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, status
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field

from arbiter import __version__
from arbiter.api.adjudicate import build_runtime
from arbiter.engine.runtime import AdjudicationRuntime
from arbiter.primitives.errors import ArbiterError, CaseNotFound
from arbiter.primitives.models import CaseRequest

logger = logging.getLogger(__name__)

SERVICE_NAME = "AI Judge Dispute Resolution API"

# 常驻内存峰值超过该值时 memory 检查为 warning / memory check turns "warning" above this
MEMORY_WARNING_MB = 500


class DisputeRequest(BaseModel):
    """POST /api/dispute 请求体，字段校验由 CaseRequest.from_dict 完成。
    / Request body; field rules are enforced by ``CaseRequest.from_dict``.
    """

    claimant_type: str = Field(description="'Buyer' or 'Seller'.")
    statement_of_claim: str
    dispute_category: str
    statement_of_defence: Optional[str] = None
    dispute_amount: Optional[float] = None
    submitted_evidence: List[Any] = Field(default_factory=list)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def memory_usage_mb() -> Optional[Dict[str, int]]:
    """进程常驻内存峰值（MB）；平台不支持时返回 None。
    / Peak resident memory of the process in MB, or None where unsupported.
    """
    if sys.platform == "win32":
        return None
    import resource

    peak = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # Linux 以 KB 计，macOS 以字节计 / KB on Linux, bytes on macOS
    divisor = 1024 * 1024 if sys.platform == "darwin" else 1024
    return {"rss_peak": round(peak / divisor)}


def create_app(
    runtime: Optional[AdjudicationRuntime] = None,
    *,
    llm_config: Optional[Dict[str, Any]] = None,
    config_file: Optional[str] = None,
    ping_backend: bool = True,
) -> FastAPI:
    """围绕一个运行时构建应用。 / Build the app around one runtime.

    Args:
        runtime: 已构建的运行时；不传时按 llm_config / config_file 构建。
            / A ready runtime; built from llm_config / config_file when omitted.
        ping_backend: 健康检查是否真正调用 LLM。 / Whether health checks call the LLM.
    """
    runtime = runtime or build_runtime(llm_config=llm_config, config_file=config_file)
    started = time.monotonic()

    app = FastAPI(title="arbiter", version=__version__)
    app.state.runtime = runtime

    @app.post("/api/dispute")
    async def submit_dispute(body: DisputeRequest) -> Any:
        try:
            request = CaseRequest.from_dict(body.model_dump())
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))

        try:
            entry = await runtime.adjudicate(request)
        except ArbiterError as e:
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "error": "Failed to process dispute",
                    "details": str(e),
                    "dispute_id": e.dispute_id or "N/A",
                },
            )
        return entry.decision.to_dict()

    @app.get("/api/health")
    async def health() -> JSONResponse:
        t0 = time.monotonic()
        checks: Dict[str, str] = {
            "server": "healthy",
            "llm_backend": "unknown",
            "registry": "healthy",
            "memory": "unknown",
        }
        payload: Dict[str, Any] = {
            "status": "healthy",
            "timestamp": _utc_now_iso(),
            "version": __version__,
            "service": SERVICE_NAME,
            "uptime": round(time.monotonic() - started, 3),
            "checks": checks,
        }

        if ping_backend:
            try:
                await runtime.ping()
                checks["llm_backend"] = "healthy"
            except ArbiterError as e:
                checks["llm_backend"] = "unhealthy"
                payload["llm_error"] = str(e)

        memory = memory_usage_mb()
        if memory is not None:
            payload["memory"] = memory
            checks["memory"] = "warning" if memory["rss_peak"] > MEMORY_WARNING_MB else "healthy"

        payload["stats"] = {
            "total_disputes_processed": len(runtime.registry),
            "response_time_ms": int((time.monotonic() - t0) * 1000),
        }

        if checks["llm_backend"] == "unhealthy":
            payload["status"] = "unhealthy"
        elif checks["llm_backend"] == "unknown":
            payload["status"] = "degraded"

        code = status.HTTP_503_SERVICE_UNAVAILABLE if payload["status"] == "unhealthy" else status.HTTP_200_OK
        return JSONResponse(status_code=code, content=payload)

    @app.get("/api/health/simple", response_class=PlainTextResponse)
    async def health_simple() -> str:
        return "OK"

    @app.get("/api/admin/reasoning/{dispute_id}")
    async def reasoning(dispute_id: str) -> Any:
        try:
            entry = runtime.registry.get(dispute_id)
        except CaseNotFound:
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content={"error": "Reasoning data not found for this dispute"},
            )
        return entry.to_dict()

    @app.get("/api/admin/disputes")
    async def disputes() -> List[Dict[str, Any]]:
        return [summary.to_dict() for summary in runtime.registry.list_all()]

    return app


def main() -> None:
    import uvicorn

    logging.basicConfig(
        level=os.environ.get("ARBITER_LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    host = os.environ.get("ARBITER_HOST", "0.0.0.0")
    port = int(os.environ.get("ARBITER_PORT", "3001"))
    logger.info("裁决服务启动: %s:%d", host, port)
    uvicorn.run(create_app(), host=host, port=port)


if __name__ == "__main__":
    main()
