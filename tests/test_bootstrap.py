import asyncio
import unittest

from loguru import logger

from zero_engine.app_config import RuntimeEnv, parse_app_config
from zero_engine.bootstrap import bootstrap_runtime
from zero_engine.logging_config import setup_logging
from zero_engine.protocol import Stage
from zero_engine.sessions import InMemoryStorage


class BootstrapTests(unittest.TestCase):
    def tearDown(self) -> None:
        logger.remove()

    def test_missing_api_key_surfaces_as_init_error(self) -> None:
        app = parse_app_config({"StorageBackend": "memory", "LogConsumers": []})
        runtime = bootstrap_runtime(app, RuntimeEnv(provider_api_key="", provider_env_var="GEMINI_API_KEY"))

        asyncio.run(runtime.engine.initialize())

        self.assertIsInstance(runtime.storage, InMemoryStorage)
        self.assertEqual(Stage.ERROR, runtime.engine.stage)
        self.assertEqual("error_session", runtime.engine.active_session.id)

    def test_source_cache_and_constraints_are_wired(self) -> None:
        app = parse_app_config(
            {
                "StorageBackend": "memory",
                "LogConsumers": [],
                "SourceFiles": ["parsing.py", "protocol.py"],
                "StandingConstraints": ["cite sources"],
            }
        )
        runtime = bootstrap_runtime(app, RuntimeEnv(provider_api_key="", provider_env_var="GEMINI_API_KEY"))

        context = runtime.engine.context
        self.assertEqual(["parsing.py", "protocol.py"], sorted(context.source_cache))
        self.assertIn("def parse_response", context.source_cache["parsing.py"])
        self.assertEqual(["cite sources"], runtime.engine.standing_constraints)
        self.assertEqual(2, runtime.source_file_count)
        self.assertEqual([], runtime.log_descriptions)


class LoggingConfigTests(unittest.TestCase):
    def tearDown(self) -> None:
        logger.remove()

    def test_unknown_consumer_is_skipped(self) -> None:
        descriptions = setup_logging("DEBUG", [{"type": "console", "level": "warning"}, {"type": "syslog"}])
        self.assertEqual(["console (stderr, WARNING)"], descriptions)


if __name__ == "__main__":
    unittest.main()
