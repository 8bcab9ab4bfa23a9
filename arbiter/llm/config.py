# config.py
# =============================================================================
# 裁判模型配置 / Judge model configuration
#
# 配置来源（后者覆盖前者） / Sources, later wins:
#   llm_config.yaml 的 _default → llm_config.yaml 的角色节
#   → 代码传入的 _default → 代码传入的角色节
#   / file _default → file role → code _default → code role
#
# YAML 中的 ${VAR} / ${VAR:-default} 在读取时展开；api_key 仍缺失时按平台
# 读取 OPENAI_API_KEY / ANTHROPIC_API_KEY / GEMINI_API_KEY / DEEPSEEK_API_KEY。
# / ${VAR} and ${VAR:-default} in YAML are expanded on read; a still-missing
#   api_key falls back to the platform's *_API_KEY variable.
#
# 没有内置默认模型：角色解析不出 model_name 时抛出 ConfigurationError。
# / There is no built-in default model: a role that resolves without a
#   model_name raises ConfigurationError.
# =============================================================================

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """裁判模型配置缺失或不完整。 / Judge model configuration is missing or incomplete."""


VALID_API_MODES = ("chat_completions", "anthropic", "gemini")

# 模型名关键词 → 平台，按顺序匹配 / Model-name keywords → platform, matched in order
_PLATFORM_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("anthropic", ("claude",)),
    ("openai", ("gpt-", "o1-", "o3-", "chatgpt")),
    ("google", ("gemini",)),
    ("deepseek", ("deepseek",)),
    ("qwen", ("qwen", "qwq")),
)

_PLATFORM_KEY_ENV = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "google": "GEMINI_API_KEY",
    "deepseek": "DEEPSEEK_API_KEY",
}

_ENV_REF = re.compile(r"\$\{([^}]+)\}")


@dataclass
class ModelEndpointConfig:
    """一个角色解析后的端点配置，适配器经 from_endpoint_config() 消费。
    / Resolved endpoint config for one role, consumed by the adapters'
    ``from_endpoint_config()``.
    """

    model_platform: str  # openai / anthropic / google / deepseek / qwen
    model_name: str
    api_key: Optional[str] = None
    url: Optional[str] = None
    api_mode: str = "chat_completions"  # one of VALID_API_MODES
    temperature: float = 0.7
    max_tokens: Optional[int] = 4096
    timeout: Optional[float] = None
    max_retries: int = 3
    api_version: Optional[str] = None  # Azure only
    extra: Dict[str, Any] = field(default_factory=dict)  # e.g. json_mode

    @classmethod
    def from_dict(cls, data: Any) -> ModelEndpointConfig:
        """由模型名字符串或配置字典构建。 / Build from a bare model name or a config dict.

        字典中 model_name 优先于旧字段 model；未识别的键进入 extra。
        / ``model_name`` wins over the legacy ``model`` key; unrecognized
        keys land in ``extra``.
        """
        if isinstance(data, str):
            data = {"model_name": data}

        name = data.get("model_name") or data.get("model", "")
        platform = data.get("model_platform") or _infer_platform(name)
        mode = data.get("api_mode") or _infer_api_mode(platform, data.get("url"))
        if mode not in VALID_API_MODES:
            raise ValueError(
                f"api_mode '{mode}' 无效，可选值: {' / '.join(VALID_API_MODES)}"
            )

        known = {f.name for f in fields(cls)} | {"model"}
        return cls(
            model_platform=platform,
            model_name=name,
            api_key=data.get("api_key") or _api_key_from_env(platform),
            url=data.get("url"),
            api_mode=mode,
            temperature=float(data.get("temperature", cls.temperature)),
            max_tokens=data.get("max_tokens", cls.max_tokens),
            timeout=data.get("timeout"),
            max_retries=int(data.get("max_retries", cls.max_retries)),
            api_version=data.get("api_version"),
            extra={k: v for k, v in data.items() if k not in known},
        )


def _infer_platform(model_name: str) -> str:
    lowered = model_name.lower()
    for platform, keywords in _PLATFORM_KEYWORDS:
        if any(k in lowered for k in keywords):
            return platform
    logger.debug("模型 '%s' 未匹配任何平台关键词，按 openai 兼容处理", model_name)
    return "openai"


def _infer_api_mode(platform: str, url: Optional[str] = None) -> str:
    """官方 Anthropic 端点走 anthropic，Google 走 gemini，其余走 chat_completions。
    / Official Anthropic endpoint → anthropic, Google → gemini, anything else
    (including Anthropic behind a custom url) → chat_completions.
    """
    platform = (platform or "").lower()
    if platform == "google":
        return "gemini"
    if platform == "anthropic" and not url:
        return "anthropic"
    return "chat_completions"


def _api_key_from_env(platform: str) -> Optional[str]:
    env_name = _PLATFORM_KEY_ENV.get((platform or "").lower())
    return os.environ.get(env_name) if env_name else None


class LLMConfigLoader:
    """分层合并裁判模型配置。 / Layered judge model configuration.

    示例 / Example::

        {
            "_default": {"model_name": "gemini-1.5-flash", "api_key": "${GEMINI_API_KEY}"},
            "judge": {"temperature": 0.1, "max_tokens": 4000},
        }

    角色值也可以是裸模型名，如 ``{"judge": "gpt-4o"}``。
    / A role may also be a bare model name such as ``{"judge": "gpt-4o"}``.
    """

    SEARCH_PATHS = (
        Path("llm_config.yaml"),
        Path("llm_config.yml"),
        Path("config") / "llm_config.yaml",
        Path("config") / "llm_config.yml",
    )

    def __init__(
        self,
        llm_config: Optional[Dict[str, Any]] = None,
        config_file: Optional[str] = None,
    ):
        self._code_config: Dict[str, Any] = llm_config or {}
        path = self._locate(config_file)
        self._file_config: Dict[str, Any] = _read_yaml(path) if path else {}

    def _locate(self, config_file: Optional[str]) -> Optional[Path]:
        if config_file:
            path = Path(config_file)
            if path.is_file():
                logger.info("读取 LLM 配置文件: %s", path)
                return path
            # 显式指定的文件缺失时不再自动搜索 / no auto-search once a file was named
            logger.warning("LLM 配置文件不存在，忽略: %s", path)
            return None

        found = next((p for p in self.SEARCH_PATHS if p.is_file()), None)
        if found:
            logger.info("发现 LLM 配置文件: %s", found)
        else:
            logger.debug("未找到 LLM 配置文件，仅使用代码配置")
        return found

    def _layers(self, role: str) -> List[Any]:
        return [
            source.get(key, {})
            for source in (self._file_config, self._code_config)
            for key in ("_default", role)
        ]

    def resolve(self, role: str) -> ModelEndpointConfig:
        """合并各层并构建角色配置。 / Merge the layers into the role's config.

        Raises:
            ConfigurationError: 合并结果没有 model_name。 / The merge has no model_name.
        """
        merged: Dict[str, Any] = {}
        for layer in self._layers(role):
            if isinstance(layer, str):
                merged.update(model_name=layer, model_platform=_infer_platform(layer))
            elif isinstance(layer, dict):
                merged.update((k, v) for k, v in layer.items() if v is not None)

        merged["model_name"] = merged.get("model_name") or merged.get("model", "")
        if not merged["model_name"]:
            raise ConfigurationError(
                f"角色 '{role}' 未配置 model_name：请在 llm_config['{role}']、"
                f"llm_config.yaml 的 '{role}' 节或 _default 中指定模型。"
            )
        return ModelEndpointConfig.from_dict(merged)

    def has_role(self, role: str) -> bool:
        """角色是否直接配置，或可经 _default 获得模型。 / Whether the role is configured directly or through _default."""
        sources = (self._code_config, self._file_config)
        if any(role in source for source in sources):
            return True
        defaults = [source.get("_default") for source in sources]
        return any(
            isinstance(d, dict) and bool(d.get("model_name") or d.get("model"))
            for d in defaults
        )

    def all_configured_roles(self) -> List[str]:
        names = set(self._code_config) | set(self._file_config)
        return sorted(n for n in names if not n.startswith("_"))

    def summary(self) -> Dict[str, Dict[str, str]]:
        """各角色的可记录摘要，API Key 已遮蔽。 / Loggable per-role summary with masked API keys."""
        rows: Dict[str, Dict[str, str]] = {}
        for role in self.all_configured_roles():
            try:
                cfg = self.resolve(role)
            except ConfigurationError:
                continue
            rows[role] = {
                "platform": cfg.model_platform,
                "model": cfg.model_name,
                "api_mode": cfg.api_mode,
                "url": cfg.url or "(auto)",
                "api_key": _mask_key(cfg.api_key),
                "temperature": str(cfg.temperature),
            }
        return rows


def _read_yaml(path: Path) -> Dict[str, Any]:
    with path.open(encoding="utf-8") as fh:
        return _expand_env_vars(yaml.safe_load(fh) or {})


def _expand_env_vars(obj: Any) -> Any:
    """递归展开 ${VAR} 与 ${VAR:-default}；未设置且无默认值的引用保持原样。
    / Recursively expand ${VAR} and ${VAR:-default}; unset refs without a
    default are left as written.
    """
    if isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_expand_env_vars(v) for v in obj]
    if not isinstance(obj, str):
        return obj

    def substitute(match: "re.Match[str]") -> str:
        name, sep, default = match.group(1).partition(":-")
        fallback = default.strip() if sep else match.group(0)
        return os.environ.get(name.strip(), fallback)

    return _ENV_REF.sub(substitute, obj)


def _mask_key(key: Optional[str]) -> str:
    if not key:
        return "(env)"
    if len(key) <= 12:
        return f"{key[:3]}***"
    return f"{key[:8]}...{key[-4:]}"
