from __future__ import annotations

import json
import logging
import os
import tempfile
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

ENV_PROVIDER = "AIASK_PROVIDER"
ENV_API_KEY = "AIASK_API_KEY"
ENV_MODEL = "AIASK_MODEL"
ENV_OLLAMA_URL = "AIASK_OLLAMA_URL"
ENV_TIMEOUT = "AIASK_TIMEOUT"
ENV_SYSTEM_PROMPT_SUFFIX = "AIASK_SYSTEM_PROMPT_SUFFIX"

DEFAULT_TIMEOUT = 60
DEFAULT_OLLAMA_URL = "http://localhost:11434"


class ConfigError(Exception):
    pass


class ProviderName(str, Enum):
    GROK = "grok"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"
    OLLAMA = "ollama"


DEFAULT_MODELS: Dict[ProviderName, str] = {
    ProviderName.GROK: "grok-3",
    ProviderName.OPENAI: "gpt-4o",
    ProviderName.ANTHROPIC: "claude-sonnet-4-20250514",
    ProviderName.GEMINI: "gemini-2.0-flash",
    ProviderName.OLLAMA: "llama3.2",
}


class AppConfig(BaseModel):
    provider: ProviderName = ProviderName.GROK
    api_key: str = ""
    model: str = DEFAULT_MODELS[ProviderName.GROK]
    ollama_url: str = DEFAULT_OLLAMA_URL
    timeout: int = DEFAULT_TIMEOUT  # seconds, <= 0 means default
    system_prompt_suffix: str = ""

    @property
    def timeout_seconds(self) -> float:
        return float(self.timeout if self.timeout > 0 else DEFAULT_TIMEOUT)

    @property
    def base_url(self) -> str:
        if self.provider == ProviderName.GROK:
            return "https://api.x.ai/v1"
        if self.provider == ProviderName.OPENAI:
            return "https://api.openai.com/v1"
        if self.provider == ProviderName.OLLAMA:
            return (self.ollama_url or DEFAULT_OLLAMA_URL).rstrip("/") + "/v1"
        if self.provider == ProviderName.ANTHROPIC:
            return "https://api.anthropic.com"
        return "https://generativelanguage.googleapis.com"

    @property
    def usable(self) -> bool:
        return bool(self.api_key) or self.provider == ProviderName.OLLAMA


CONFIG_DIR = Path.home() / ".aiask"


def config_file() -> Path:
    return CONFIG_DIR / "config.json"


def parse_provider(value: str) -> ProviderName:
    try:
        return ProviderName(value.strip().lower())
    except ValueError:
        valid = ", ".join(p.value for p in ProviderName)
        raise ConfigError(f"unsupported provider '{value}' (valid: {valid})") from None


def _env_overrides(env: Mapping[str, str]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    if env.get(ENV_PROVIDER):
        out["provider"] = parse_provider(env[ENV_PROVIDER])
    if env.get(ENV_API_KEY):
        out["api_key"] = env[ENV_API_KEY]
    if env.get(ENV_MODEL):
        out["model"] = env[ENV_MODEL]
    if env.get(ENV_OLLAMA_URL):
        out["ollama_url"] = env[ENV_OLLAMA_URL]
    if env.get(ENV_TIMEOUT):
        try:
            out["timeout"] = int(env[ENV_TIMEOUT])
        except ValueError:
            logger.warning("ignoring non-integer %s=%r", ENV_TIMEOUT, env[ENV_TIMEOUT])
    if env.get(ENV_SYSTEM_PROMPT_SUFFIX):
        out["system_prompt_suffix"] = env[ENV_SYSTEM_PROMPT_SUFFIX]
    return out


def config_from_env(env: Optional[Mapping[str, str]] = None) -> AppConfig:
    env = os.environ if env is None else env
    overrides = _env_overrides(env)
    if "provider" in overrides and "model" not in overrides:
        overrides["model"] = DEFAULT_MODELS[overrides["provider"]]
    return AppConfig(**overrides)


def load_config(env: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Load the config file and apply AIASK_* environment overrides.

    When AIASK_PROVIDER plus a key (or ollama) is set, the file is not needed.
    """
    env = os.environ if env is None else env
    if env.get(ENV_PROVIDER):
        cfg = config_from_env(env)
        if cfg.usable:
            return cfg

    path = config_file()
    if not path.exists():
        raise ConfigError(
            "config not found. Run 'aiask config set provider <name>' to set up, "
            f"or set {ENV_PROVIDER} and {ENV_API_KEY} environment variables"
        )

    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        cfg = AppConfig(**data)
    except (OSError, json.JSONDecodeError, ValidationError, TypeError) as exc:
        raise ConfigError(f"failed to read config file {path}: {exc}") from exc

    overrides = _env_overrides(env)
    if overrides:
        cfg = cfg.model_copy(update=overrides)
    return cfg


def load_or_default() -> AppConfig:
    path = config_file()
    if not path.exists():
        return AppConfig()
    try:
        with path.open("r", encoding="utf-8") as f:
            return AppConfig(**json.load(f))
    except (OSError, json.JSONDecodeError, ValidationError, TypeError) as exc:
        raise ConfigError(f"failed to read config file {path}: {exc}") from exc


def write_json_atomic(path: Path, data: Any) -> None:
    """Write JSON with mode 0600 via a sibling temp file and an atomic rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}-", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.chmod(tmp, 0o600)
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


def save_config(config: AppConfig) -> None:
    write_json_atomic(config_file(), config.model_dump(mode="json"))


SETTABLE_KEYS = ("provider", "api_key", "model", "ollama_url", "timeout", "system_prompt_suffix")


def set_value(config: AppConfig, key: str, value: str) -> AppConfig:
    if key not in SETTABLE_KEYS:
        raise ConfigError(f"unknown config key '{key}' (valid: {', '.join(SETTABLE_KEYS)})")
    if key == "provider":
        provider = parse_provider(value)
        update: Dict[str, Any] = {"provider": provider}
        # keep an explicitly chosen model only if it belongs to the same provider
        if config.provider != provider:
            update["model"] = DEFAULT_MODELS[provider]
        return config.model_copy(update=update)
    if key == "timeout":
        try:
            return config.model_copy(update={"timeout": int(value)})
        except ValueError:
            raise ConfigError(f"timeout must be an integer number of seconds, got '{value}'") from None
    return config.model_copy(update={key: value})
