import unittest
from pathlib import Path

from codex_persistent_mcp.app_config import DEFAULT_ORIGIN, _to_bool, parse_app_config
from codex_persistent_mcp.runner import DEFAULT_TIMEOUT_MS


class ParseAppConfigTests(unittest.TestCase):
    def test_defaults(self) -> None:
        app = parse_app_config({}, environ={})
        home = Path.home() / ".codex"
        self.assertEqual("codex", app.codex_bin)
        self.assertEqual(DEFAULT_TIMEOUT_MS, app.default_timeout_ms)
        self.assertEqual(DEFAULT_ORIGIN, app.origin)
        self.assertTrue(app.role_card_enabled)
        self.assertEqual(str(home), app.codex_home)
        self.assertEqual(str(home / "history.jsonl"), app.history_path)
        self.assertTrue(app.register_in_history)
        self.assertFalse(app.repo_session_binding)
        self.assertEqual("Chinese", app.reply_language)
        self.assertEqual("INFO", app.log_level)
        self.assertIsNone(app.log_consumers)

    def test_env_wins_over_config_file(self) -> None:
        app = parse_app_config(
            {"CodexBin": "/opt/codex", "Origin": "from-json", "LogLevel": "warning"},
            environ={"CODEX_BIN": "/usr/bin/codex", "CODEX_PERSISTENT_MCP_ORIGIN": ""},
        )
        self.assertEqual("/usr/bin/codex", app.codex_bin)
        self.assertEqual("from-json", app.origin)
        self.assertEqual("WARNING", app.log_level)

    def test_history_path_follows_codex_home(self) -> None:
        app = parse_app_config({"CodexHome": "/data/codex"}, environ={})
        self.assertEqual(str(Path("/data/codex") / "history.jsonl"), app.history_path)

        app = parse_app_config(
            {"CodexHome": "/data/codex"},
            environ={"CODEX_PERSISTENT_MCP_CODEX_HISTORY_PATH": "/tmp/h.jsonl"},
        )
        self.assertEqual(str(Path("/tmp/h.jsonl")), app.history_path)

    def test_booleans(self) -> None:
        app = parse_app_config(
            {"RepoSession": True, "RegisterInHistory": "off"},
            environ={"CODEX_PERSISTENT_MCP_ROLE_CARD": "0"},
        )
        self.assertFalse(app.role_card_enabled)
        self.assertFalse(app.register_in_history)
        self.assertTrue(app.repo_session_binding)

    def test_timeout_is_parsed_and_clamped(self) -> None:
        self.assertEqual(DEFAULT_TIMEOUT_MS, parse_app_config({"TimeoutMs": "soon"}, environ={}).default_timeout_ms)
        self.assertEqual(1_000, parse_app_config({}, environ={"CODEX_PERSISTENT_MCP_TIMEOUT_MS": "5"}).default_timeout_ms)
        self.assertEqual(45_000, parse_app_config({"TimeoutMs": 45_000}, environ={}).default_timeout_ms)

    def test_log_consumers_come_from_config_file(self) -> None:
        consumers = [{"type": "file", "path": "x.log"}]
        self.assertEqual(consumers, parse_app_config({"LogConsumers": consumers}, environ={}).log_consumers)


class ToBoolTests(unittest.TestCase):
    def test_values(self) -> None:
        self.assertTrue(_to_bool("Yes"))
        self.assertFalse(_to_bool(" false "))
        self.assertTrue(_to_bool(None, default=True))
        self.assertFalse(_to_bool(0))


if __name__ == "__main__":
    unittest.main()
