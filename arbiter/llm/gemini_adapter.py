# gemini_adapter.py
# =============================================================================
# Google Gemini generateContent API 适配器
#
# 请求格式：
#   POST {base}/models/{model}:generateContent?key=<api_key>
#   {"systemInstruction": {"parts": [{"text": "..."}]},
#    "contents": [{"role": "user", "parts": [{"text": "..."}]}],
#    "generationConfig": {"temperature": 0.1, "maxOutputTokens": 4000}}
#   -> response["candidates"][0]["content"]["parts"][*]["text"]（拼接）
#
# 输出被 MAX_TOKENS 截断时仅记录警告，文本照常返回，由 JSON 恢复解析器处理。
# =============================================================================

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from arbiter.llm.base import HttpLLMAdapter

logger = logging.getLogger(__name__)

_DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiAdapter(HttpLLMAdapter):
    """Google Gemini generateContent 适配器。"""

    provider_label = "Gemini API"

    def __init__(
        self,
        api_key: str,
        model: str,
        url: Optional[str] = None,
        temperature: float = 0.1,
        max_tokens: Optional[int] = 4000,
        timeout: float = 120.0,
        max_retries: int = 3,
    ):
        super().__init__(
            endpoint=self._resolve_endpoint(url, model),
            api_key=api_key,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
            max_retries=max_retries,
        )

    @staticmethod
    def _resolve_endpoint(url: Optional[str], model: str) -> str:
        """url 为基础地址时拼接 /models/{model}:generateContent；已含 :generateContent 时直接使用。"""
        if url and ":generateContent" in url:
            return url
        base = (url or _DEFAULT_GEMINI_BASE_URL).rstrip("/")
        return f"{base}/models/{model}:generateContent"

    def _headers(self) -> Dict[str, str]:
        return {}

    def _params(self) -> Dict[str, str]:
        return {"key": self._api_key}

    def _build_request(self, system_prompt: str, user_message: str) -> Dict[str, Any]:
        generation_config: Dict[str, Any] = {"temperature": self._temperature}
        if self._max_tokens is not None:
            generation_config["maxOutputTokens"] = self._max_tokens

        body: Dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": user_message}]}],
            "generationConfig": generation_config,
        }
        if system_prompt:
            body["systemInstruction"] = {"parts": [{"text": system_prompt}]}
        return body

    @staticmethod
    def _extract_text(response_data: Dict[str, Any]) -> str:
        candidates = response_data.get("candidates") or []
        if candidates:
            candidate = candidates[0]
            finish_reason = candidate.get("finishReason")
            if finish_reason == "MAX_TOKENS":
                logger.warning("Gemini API 输出因 maxOutputTokens 被截断")
            elif finish_reason == "SAFETY":
                logger.warning("Gemini API 输出被安全过滤器拦截")

            parts = candidate.get("content", {}).get("parts", [])
            text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
            if text:
                return text

        logger.warning(
            "Gemini API 响应中未找到文本内容: %s",
            json.dumps(response_data, ensure_ascii=False)[:300],
        )
        return ""

    @classmethod
    def from_endpoint_config(cls, config) -> GeminiAdapter:
        """从 ModelEndpointConfig 创建适配器实例。

        Raises:
            ValueError: 缺少 api_key。
        """
        if not config.api_key:
            raise ValueError(
                "Gemini API 模式需要显式配置 api_key，"
                "请在 llm_config 中设置 api_key 或通过环境变量 GEMINI_API_KEY 提供。"
            )

        return cls(
            api_key=config.api_key,
            model=config.model_name,
            url=config.url,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            timeout=config.timeout or 120.0,
            max_retries=config.max_retries,
        )
