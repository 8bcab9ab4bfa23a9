# chat_completions_adapter.py
# =============================================================================
# Chat Completions 裁判后端 / Chat Completions judge backend
#
# 覆盖 OpenAI、OpenAI 兼容端点（DeepSeek、Qwen 等）以及 Azure OpenAI 部署。
# / Covers OpenAI, OpenAI-compatible endpoints (DeepSeek, Qwen, ...) and
#   Azure OpenAI deployments.
#
#   url 仅给到版本前缀时补 /chat/completions，已有 query 参数原样保留；
#   Azure 主机用 api-key 头，并在缺失时补 api-version。
#   / A bare versioned base gets /chat/completions appended and existing
#   query params survive; Azure hosts use the api-key header and get
#   api-version filled in when missing.
# =============================================================================

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from arbiter.llm.base import HttpLLMAdapter

logger = logging.getLogger(__name__)

_AZURE_HOSTS = (
    "openai.azure.com",
    "cognitiveservices.azure.com",
    "services.ai.azure.com",
)


def _on_azure(url: str) -> bool:
    host = urlparse(url).hostname or ""
    return host.endswith(_AZURE_HOSTS)


class ChatCompletionsAdapter(HttpLLMAdapter):
    """Chat Completions 后端。 / Chat Completions backend.

    json_mode 打开时要求 response_format=json_object；部分兼容端点不认识该字段，
    因此默认关闭，通过配置 extra 中的 json_mode 开启。
    / json_mode asks for response_format=json_object. Some compatible
    endpoints reject the field, so it is off unless ``json_mode`` is set in
    the config extras.
    """

    provider_label = "Chat Completions API"

    def __init__(
        self,
        url: str,
        api_key: str,
        model: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        timeout: float = 120.0,
        max_retries: int = 3,
        api_version: Optional[str] = None,
        json_mode: bool = False,
    ):
        super().__init__(
            endpoint=self._resolve_endpoint(url, api_version),
            api_key=api_key,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
            max_retries=max_retries,
        )
        self._azure = _on_azure(url)
        self._json_mode = json_mode
        if self._azure:
            logger.info("裁判后端为 Azure 部署，使用 api-key 认证: %s", self._endpoint)

    @staticmethod
    def _resolve_endpoint(url: str, api_version: Optional[str] = None) -> str:
        parts = urlparse(url)
        path = parts.path
        if "/chat/completions" not in path:
            path = f"{path.rstrip('/')}/chat/completions"

        query = parse_qs(parts.query, keep_blank_values=True)
        if api_version and _on_azure(url):
            query.setdefault("api-version", [api_version])
        return urlunparse(parts._replace(path=path, query=urlencode(query, doseq=True)))

    def _headers(self) -> Dict[str, str]:
        if self._azure:
            return {"api-key": self._api_key}
        return {"Authorization": f"Bearer {self._api_key}"}

    def _build_request(self, system_prompt: str, user_message: str) -> Dict[str, Any]:
        turns = [{"role": "user", "content": user_message}]
        if system_prompt:
            turns.insert(0, {"role": "system", "content": system_prompt})

        body: Dict[str, Any] = {
            "model": self._model,
            "messages": turns,
            "temperature": self._temperature,
        }
        if self._max_tokens is not None:
            body["max_tokens"] = self._max_tokens
        if self._json_mode:
            body["response_format"] = {"type": "json_object"}
        return body

    @staticmethod
    def _extract_text(response_data: Dict[str, Any]) -> str:
        for choice in (response_data.get("choices") or [])[:1]:
            if choice.get("finish_reason") == "length":
                # 截断文本照常返回，由 JSON 恢复解析器处理 / truncated text still goes to the recovery parser
                logger.warning("Chat Completions 输出达到 max_tokens 上限，文本可能被截断")
            text = (choice.get("message") or {}).get("content")
            if text is not None:
                return text

        logger.warning(
            "Chat Completions 响应不含文本: %s",
            json.dumps(response_data, ensure_ascii=False)[:300],
        )
        return ""

    @classmethod
    def from_endpoint_config(cls, config) -> ChatCompletionsAdapter:
        """按端点配置构建；缺少 url 或 api_key 时抛出 ValueError。
        / Build from an endpoint config; ValueError without url or api_key.
        """
        for attr in ("url", "api_key"):
            if not getattr(config, attr):
                raise ValueError(
                    f"chat_completions 模式缺少 {attr}：请在 llm_config 的 judge 角色"
                    f"（或 _default）中配置 {attr}。"
                )

        extra = getattr(config, "extra", None) or {}
        return cls(
            url=config.url,
            api_key=config.api_key,
            model=config.model_name,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            timeout=config.timeout or 120.0,
            max_retries=config.max_retries,
            api_version=config.api_version,
            json_mode=bool(extra.get("json_mode", False)),
        )
