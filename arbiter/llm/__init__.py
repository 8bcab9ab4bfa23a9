# llm/__init__.py
# 模型路由、LLM 配置管理与适配器 / Model routing, LLM config & adapters

from arbiter.llm.anthropic_adapter import AnthropicAdapter
from arbiter.llm.chat_completions_adapter import ChatCompletionsAdapter
from arbiter.llm.config import (
    ConfigurationError,
    LLMConfigLoader,
    ModelEndpointConfig,
)
from arbiter.llm.gemini_adapter import GeminiAdapter
from arbiter.llm.router import (
    JUDGE_ROLE,
    ModelRouter,
    make_llm_caller,
)

__all__ = [
    "AnthropicAdapter",
    "ChatCompletionsAdapter",
    "ConfigurationError",
    "GeminiAdapter",
    "JUDGE_ROLE",
    "LLMConfigLoader",
    "ModelEndpointConfig",
    "ModelRouter",
    "make_llm_caller",
]
