from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from zero_engine.app_config import AppConfig, RuntimeEnv
from zero_engine.context import AppContext
from zero_engine.engine import ZeroEngine
from zero_engine.engine_config import EngineConfig
from zero_engine.logging_config import setup_logging
from zero_engine.prompt_composer import PromptComposer
from zero_engine.provider import LLMProvider, create_provider
from zero_engine.self_awareness import DEFAULT_SOURCE_FILES, default_source_root, load_source_files
from zero_engine.sessions import KeyValueStorage, SessionStore, create_storage
from zero_engine.system_prompt import get_master_directive


@dataclass
class AppRuntime:
    engine: ZeroEngine
    storage: KeyValueStorage
    log_descriptions: list[str]
    source_file_count: int


def _resolve_store_path(store_path: str) -> str:
    path = Path(store_path)
    if not path.is_absolute():
        path = Path.cwd() / path
    return str(path)


def _build_provider(app: AppConfig, env: RuntimeEnv) -> LLMProvider | None:
    if not env.provider_api_key:
        logger.error(f"{env.provider_env_var} environment variable is required.")
        return None
    try:
        return create_provider(
            app.provider_name,
            env.provider_api_key,
            max_tokens=app.max_tokens,
            temperature=app.temperature,
        )
    except ValueError as ex:
        logger.error(f"Could not create provider: {ex}")
        return None


def bootstrap_runtime(app: AppConfig, env: RuntimeEnv) -> AppRuntime:
    """Wire storage, the source cache, the provider and the engine.

    A missing key or unknown provider does not raise here; the engine
    surfaces it as an initialization failure when ``initialize`` runs.
    """
    log_descriptions = setup_logging(level=app.log_level, consumers=app.log_consumers)

    storage = create_storage(app.storage_backend, _resolve_store_path(app.store_path))
    context = AppContext(
        session_store=SessionStore(storage),
        standing_constraints=list(app.standing_constraints),
    )

    source_root = Path(app.source_root) if app.source_root else default_source_root()
    source_files = app.source_files if app.source_files is not None else list(DEFAULT_SOURCE_FILES)
    context.source_cache = load_source_files(source_root, source_files) if source_files else None
    logger.info(f"Source cache holds {len(source_files)} file(s) from {source_root}")

    directive = get_master_directive()
    engine = ZeroEngine(
        EngineConfig(
            model=app.model,
            translation_model=app.translation_model,
            search_grounding=app.search_grounding,
            stream_idle_timeout_seconds=app.stream_idle_timeout_seconds,
            directive=directive,
        ),
        context,
        _build_provider(app, env),
        composer=PromptComposer(directive=directive, source_cache=context.source_cache),
    )

    return AppRuntime(
        engine=engine,
        storage=storage,
        log_descriptions=log_descriptions,
        source_file_count=len(source_files),
    )
