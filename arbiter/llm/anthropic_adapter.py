# anthropic_adapter.py
# =============================================================================
# Anthropic Messages 裁判后端 / Anthropic Messages judge backend
#
#   POST {url}/messages
#   headers: x-api-key, anthropic-version
#   body:    model / max_tokens / temperature / system / messages
#   reply:   content[] 中首个 type=text 的块 / first type=text block of content[]
#
# stop_reason=max_tokens 时仅告警，截断文本交给 JSON 恢复解析器。
# / On stop_reason=max_tokens only a warning is logged; the truncated text
#   goes on to the JSON recovery parser.
# =============================================================================

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from arbiter.llm.base import HttpLLMAdapter

logger = logging.getLogger(__name__)

ANTHROPIC_MESSAGES_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_API_VERSION = "2023-06-01"
DEFAULT_MAX_TOKENS = 4096


class AnthropicAdapter(HttpLLMAdapter):
    """Anthropic Messages 后端。 / Anthropic Messages backend."""

    provider_label = "Anthropic Messages API"

    def __init__(
        self,
        api_key: str,
        model: str,
        url: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float = 120.0,
        max_retries: int = 3,
    ):
        super().__init__(
            endpoint=self._resolve_endpoint(url),
            api_key=api_key,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
            max_retries=max_retries,
        )

    @staticmethod
    def _resolve_endpoint(url: Optional[str]) -> str:
        """空 url 用官方端点；代理前缀补 /messages。 / Official endpoint for an empty url; proxies get /messages."""
        if not url:
            return ANTHROPIC_MESSAGES_URL
        if url.rstrip("/").endswith("/messages"):
            return url
        return url.rstrip("/") + "/messages"

    def _headers(self) -> Dict[str, str]:
        return {"x-api-key": self._api_key, "anthropic-version": ANTHROPIC_API_VERSION}

    def _build_request(self, system_prompt: str, user_message: str) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "model": self._model,
            "max_tokens": self._max_tokens,
            "temperature": self._temperature,
            "messages": [{"role": "user", "content": user_message}],
        }
        if system_prompt:
            body["system"] = system_prompt
        return body

    @staticmethod
    def _extract_text(response_data: Dict[str, Any]) -> str:
        if response_data.get("stop_reason") == "max_tokens":
            logger.warning("Anthropic 输出达到 max_tokens 上限，文本可能被截断")

        blocks = response_data.get("content")
        blocks = [b for b in blocks if isinstance(b, dict)] if isinstance(blocks, list) else []
        text_blocks = [b for b in blocks if b.get("type") == "text"]
        # 缺少 type 字段的旧式响应退回首块 / legacy replies without a type fall back to the first block
        chosen = text_blocks[0] if text_blocks else (blocks[0] if blocks else {})
        if "text" in chosen:
            return chosen["text"]

        logger.warning(
            "Anthropic 响应不含文本: %s",
            json.dumps(response_data, ensure_ascii=False)[:300],
        )
        return ""

    @classmethod
    def from_endpoint_config(cls, config) -> AnthropicAdapter:
        """按端点配置构建；缺少 api_key 时抛出 ValueError。
        / Build from an endpoint config; ValueError without api_key.
        """
        if not config.api_key:
            raise ValueError(
                "anthropic 模式缺少 api_key：请在 llm_config 中配置 api_key，"
                "或设置环境变量 ANTHROPIC_API_KEY。"
            )
        return cls(
            api_key=config.api_key,
            model=config.model_name,
            url=config.url,
            temperature=config.temperature,
            max_tokens=config.max_tokens or DEFAULT_MAX_TOKENS,
            timeout=config.timeout or 120.0,
            max_retries=config.max_retries,
        )
