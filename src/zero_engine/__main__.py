import asyncio

from dotenv import load_dotenv
from loguru import logger

from zero_engine.app_config import load_json_config, parse_app_config, resolve_runtime_env
from zero_engine.bootstrap import bootstrap_runtime
from zero_engine.console import ZeroConsole
from zero_engine.rendering import Spinner
from zero_engine.sessions.storage import SqliteStorage


async def main() -> None:
    load_dotenv()

    app = parse_app_config(load_json_config())
    env = resolve_runtime_env(app.provider_name)
    runtime = bootstrap_runtime(app, env)
    engine = runtime.engine
    console = ZeroConsole(engine)

    print("ZERO Execution Engine (type 'exit' to quit, '/help' for commands)")
    print(f"Provider: {app.provider_name} | Model: {app.model}")
    print(f"Storage: {app.storage_backend} ({app.store_path})")
    print(f"Self-analysis sources: {runtime.source_file_count} file(s)")
    if engine.standing_constraints:
        print(f"Standing constraints: {len(engine.standing_constraints)}")
    if runtime.log_descriptions:
        print(f"Logging: {', '.join(runtime.log_descriptions)}")
    print()

    with Spinner(label=" Initializing..."):
        await engine.initialize()
    console.print_active_session()
    console.print_status()

    try:
        while True:
            prompt = console.USER_PROMPT
            if console.pending_attachment is not None:
                prompt = f"[+{console.pending_attachment.name}] {prompt}"
            try:
                user_input = input(prompt)
            except (EOFError, KeyboardInterrupt):
                break

            trimmed = user_input.strip()

            if trimmed in ("exit", "quit"):
                break

            if not trimmed and console.pending_attachment is None:
                continue

            try:
                print()
                await console.run(trimmed)
                print()
            except Exception as ex:
                logger.error(f"Unhandled error: {ex}")
    finally:
        if isinstance(runtime.storage, SqliteStorage):
            runtime.storage.close()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
