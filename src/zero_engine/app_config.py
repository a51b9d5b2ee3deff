from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

_API_KEY_ENV_VARS: dict[str, tuple[str, ...]] = {
    "gemini": ("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    "anthropic": ("ANTHROPIC_API_KEY",),
    "openai": ("OPENAI_API_KEY",),
}


@dataclass
class RuntimeEnv:
    provider_api_key: str
    provider_env_var: str


@dataclass
class AppConfig:
    provider_name: str
    model: str
    translation_model: str
    max_tokens: int
    temperature: float
    search_grounding: bool
    storage_backend: str
    store_path: str
    source_root: str | None
    source_files: list[str] | None
    standing_constraints: list[str]
    stream_idle_timeout_seconds: float
    log_level: str
    log_consumers: list | None


def load_json_config(path: Path | None = None) -> dict:
    config_path = path or Path.cwd() / "config.json"
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            return json.load(f)
    return {}


def _to_bool(value: object, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
    return bool(value)


def _to_str_list(value: object) -> list[str] | None:
    if value is None:
        return None
    if isinstance(value, str):
        value = [value]
    return [str(item).strip() for item in value if str(item).strip()]


def parse_app_config(config: dict) -> AppConfig:
    model = config.get("Model", "gemini-2.5-flash")
    return AppConfig(
        provider_name=config.get("Provider", "gemini").strip().lower(),
        model=model,
        translation_model=config.get("TranslationModel", model),
        max_tokens=int(config.get("MaxTokens", 8192)),
        temperature=float(config.get("Temperature", 1.0)),
        search_grounding=_to_bool(config.get("SearchGrounding", True), default=True),
        storage_backend=str(config.get("StorageBackend", "sqlite")).strip().lower(),
        store_path=str(config.get("StorePath", ".zero_engine/store.db")),
        source_root=str(config.get("SourceRoot", "")).strip() or None,
        source_files=_to_str_list(config.get("SourceFiles")),
        standing_constraints=_to_str_list(config.get("StandingConstraints")) or [],
        stream_idle_timeout_seconds=float(config.get("StreamIdleTimeoutSeconds", 120)),
        log_level=config.get("LogLevel", "INFO"),
        log_consumers=config.get("LogConsumers"),
    )


def resolve_runtime_env(provider_name: str) -> RuntimeEnv:
    env_vars = _API_KEY_ENV_VARS.get(provider_name, _API_KEY_ENV_VARS["gemini"])
    for env_var in env_vars:
        value = os.environ.get(env_var, "")
        if value:
            return RuntimeEnv(provider_api_key=value, provider_env_var=env_var)
    return RuntimeEnv(provider_api_key="", provider_env_var=env_vars[0])
