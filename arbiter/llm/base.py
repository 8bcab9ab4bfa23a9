# base.py
# =============================================================================
# HTTP LLM 适配器基类
#
# 职责：
#   - 统一 async call(system_prompt, user_message) -> str 接口
#   - 统一 httpx 异步请求与有限次重试（传输层重试，裁决核心不重试）
#   - 重试耗尽后抛出 BackendError
#
# 子类只需实现：
#   _headers()       认证头
#   _build_request() 请求体
#   _extract_text()  从响应中提取文本
# =============================================================================

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from arbiter.primitives.errors import BackendError

logger = logging.getLogger(__name__)


class HttpLLMAdapter:
    """基于 httpx 的 LLM 适配器基类。"""

    # 日志与错误信息中的名称
    provider_label = "LLM API"

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        model: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        timeout: float = 120.0,
        max_retries: int = 3,
    ):
        self._endpoint = endpoint
        self._api_key = api_key
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._timeout = timeout
        self._max_retries = max_retries

    @property
    def model(self) -> str:
        return self._model

    def _headers(self) -> Dict[str, str]:
        raise NotImplementedError

    def _params(self) -> Dict[str, str]:
        return {}

    def _build_request(self, system_prompt: str, user_message: str) -> Dict[str, Any]:
        raise NotImplementedError

    @staticmethod
    def _extract_text(response_data: Dict[str, Any]) -> str:
        raise NotImplementedError

    @staticmethod
    def _describe_failure(error: Exception) -> str:
        if isinstance(error, httpx.HTTPStatusError):
            return f"HTTP {error.response.status_code}: {error.response.text[:200]}"
        if isinstance(error, httpx.RequestError):
            return f"请求异常 {type(error).__name__}: {error}"
        # 响应体不是合法 JSON / response body was not JSON
        return f"响应无法解码: {error}"

    async def call(self, system_prompt: str, user_message: str) -> str:
        """发送一次裁判请求，返回模型文本（可能为空字符串）。
        / Send one judge request and return the model text, possibly empty.

        HTTP 状态错误、传输错误和无法解码的响应体会重试 max_retries 次。
        / HTTP status errors, transport errors and undecodable bodies are
        retried ``max_retries`` times.

        Raises:
            BackendError: 所有尝试均失败。 / Every attempt failed.
        """
        payload = self._build_request(system_prompt, user_message)
        headers = {"Content-Type": "application/json"}
        headers.update(self._headers())
        attempts = self._max_retries + 1

        failure: Optional[Exception] = None
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            for attempt in range(1, attempts + 1):
                try:
                    reply = await client.post(
                        self._endpoint,
                        params=self._params() or None,
                        headers=headers,
                        json=payload,
                    )
                    reply.raise_for_status()
                    return self._extract_text(reply.json())
                except (httpx.HTTPStatusError, httpx.RequestError, ValueError) as e:
                    failure = e
                    logger.warning(
                        "%s 第 %d/%d 次调用失败 (%s)",
                        self.provider_label, attempt, attempts, self._describe_failure(e),
                    )

        raise BackendError(
            f"{self.provider_label} 调用在 {attempts} 次尝试后仍失败: {failure}"
        )
