# router.py
# =============================================================================
# 裁判模型路由 / Judge model routing
#
#   ModelRouter      角色 → 端点配置 → 适配器（按角色缓存）
#                    / role → endpoint config → adapter, cached per role
#   make_llm_caller  把角色包装成 AdjudicationRuntime 需要的调用函数
#                    / wraps a role as the caller AdjudicationRuntime expects
#
# 配置来源见 arbiter.llm.config。重试只发生在适配器的 HTTP 层，
# 调用函数与裁决运行时都不重试。
# / See arbiter.llm.config for config sources. Retries happen only in the
#   adapters' HTTP layer; neither the caller nor the runtime retries.
# =============================================================================

from __future__ import annotations

import importlib
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from arbiter.llm.config import ConfigurationError, LLMConfigLoader, ModelEndpointConfig

logger = logging.getLogger(__name__)

JUDGE_ROLE = "judge"

# api_mode → (模块, 类名)，按需导入 / api_mode → (module, class), imported on demand
_ADAPTERS: Dict[str, Tuple[str, str]] = {
    "chat_completions": ("arbiter.llm.chat_completions_adapter", "ChatCompletionsAdapter"),
    "anthropic": ("arbiter.llm.anthropic_adapter", "AnthropicAdapter"),
    "gemini": ("arbiter.llm.gemini_adapter", "GeminiAdapter"),
}


class ModelRouter:
    """按角色创建并缓存 LLM 适配器。 / Creates and caches LLM adapters per role.

    Args:
        llm_config: 代码传入的配置（最高优先级），如 ``{"judge": "gemini-1.5-flash"}``
            或 ``{"judge": {"model_name": "gpt-4o", "url": ..., "api_key": ...}}``。
            / In-code config, highest priority.
        config_file: 配置文件路径；不传时自动搜索 llm_config.yaml。
            / Config file path; llm_config.yaml is searched for when omitted.
    """

    def __init__(
        self,
        llm_config: Optional[Dict[str, Any]] = None,
        config_file: Optional[str] = None,
    ) -> None:
        self._config_loader = LLMConfigLoader(llm_config=llm_config, config_file=config_file)
        self._adapters: Dict[str, Any] = {}

        for role, row in self._config_loader.summary().items():
            logger.info(
                "裁判模型路由: %s → %s/%s (mode=%s, url=%s, key=%s)",
                role, row["platform"], row["model"], row["api_mode"], row["url"], row["api_key"],
            )

    @property
    def config_loader(self) -> LLMConfigLoader:
        return self._config_loader

    def is_configured(self, role: str = JUDGE_ROLE) -> bool:
        return self._config_loader.has_role(role)

    def get_endpoint_config(self, role: str) -> ModelEndpointConfig:
        return self._config_loader.resolve(role)

    def get_model_backend(self, role: str) -> Any:
        """返回角色的适配器，首次调用时创建。 / Return the role's adapter, creating it on first use.

        Raises:
            ConfigurationError: 配置缺失，或适配器拒绝该配置。
                / Config missing, or the adapter rejected it.
        """
        adapter = self._adapters.get(role)
        if adapter is not None:
            return adapter

        config = self.get_endpoint_config(role)
        try:
            adapter = self._create_adapter(config)
        except ValueError as e:
            raise ConfigurationError(f"角色 '{role}' 的模型配置不可用: {e}") from e

        self._adapters[role] = adapter
        logger.info(
            "裁判适配器就绪: role=%s, mode=%s, model=%s, url=%s",
            role, config.api_mode, config.model_name, config.url or "(default)",
        )
        return adapter

    @staticmethod
    def _create_adapter(config: ModelEndpointConfig) -> Any:
        target = _ADAPTERS.get(config.api_mode)
        if target is None:
            raise ConfigurationError(
                f"api_mode '{config.api_mode}' 没有对应的适配器，可选值: {' / '.join(_ADAPTERS)}"
            )
        module_name, class_name = target
        adapter_cls = getattr(importlib.import_module(module_name), class_name)
        return adapter_cls.from_endpoint_config(config)

    def clear_model_cache(self) -> None:
        self._adapters.clear()


def make_llm_caller(router: ModelRouter, role: str = JUDGE_ROLE) -> Callable[..., Awaitable[str]]:
    """把路由角色包装成 ``async (*, system_prompt, user_prompt) -> str``。

    适配器延迟到第一次调用才创建，因此配置错误在调用时抛出，
    由运行时转换为 BackendError。
    / The adapter is created on the first call, so configuration errors
    surface there and the runtime turns them into BackendError.
    """

    async def caller(*, system_prompt: str = "", user_prompt: str = "") -> str:
        adapter = router.get_model_backend(role)
        logger.info(f"[{role}] 调用裁判模型: model={adapter.model}, prompt={len(user_prompt)} chars")
        return await adapter.call(system_prompt, user_prompt)

    return caller
