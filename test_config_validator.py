import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from questbot.config.loader import DEFAULTS, TOKEN_ENV_VAR, apply_defaults, get_config, get_timezone
from questbot.config.validator import ConfigValidationError, validate_config


def valid_config(**overrides):
    cfg = apply_defaults({"bot_token": "token", "daily_channel_id": 1})
    cfg.update(overrides)
    return cfg


class TestValidateConfig(unittest.TestCase):
    def test_valid_config_passes(self):
        validate_config(valid_config(timezone="Europe/Berlin", ping_role_id=5, admin_ids=[1, 2]))

    def test_missing_token(self):
        cfg = valid_config()
        del cfg["bot_token"]
        with self.assertLogs(level="ERROR"), self.assertRaises(ConfigValidationError):
            validate_config(cfg)

    def test_collects_every_error(self):
        cfg = valid_config(
            timezone="Mars/Olympus",
            daily_cron="0 4 *",
            timer_cron="99 * * * *",
            guild_id="abc",
            default_xp=0,
            daily_tasks=[{"text": "ok", "xp": -1}, "junk"],
            admin_ids="1",
        )
        with self.assertLogs("questbot.config.validator", level="ERROR") as logs:
            with self.assertRaises(ConfigValidationError) as ctx:
                validate_config(cfg)
        self.assertIn("8 error(s)", str(ctx.exception))
        joined = "\n".join(logs.output)
        for fragment in ("Unknown timezone", "daily_cron", "timer_cron", "guild_id", "default_xp", "daily_tasks[0].xp", "daily_tasks[1]", "admin_ids"):
            self.assertIn(fragment, joined)

    def test_unknown_key_is_only_a_warning(self):
        with self.assertLogs("questbot.config.validator", level="WARNING") as logs:
            validate_config(valid_config(providers={}))
        self.assertTrue(any("Unknown key 'providers'" in line for line in logs.output))


class TestGetConfig(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "config.yaml"

    def tearDown(self):
        self._tmp.cleanup()

    def test_defaults_filled(self):
        self.path.write_text("bot_token: abc\ndaily_channel_id: 10\nping_role_id:\n", encoding="utf-8")
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop(TOKEN_ENV_VAR, None)
            cfg = get_config(str(self.path))
        self.assertEqual(cfg["bot_token"], "abc")
        self.assertIsNone(cfg["ping_role_id"])
        self.assertEqual(cfg["daily_tasks"], DEFAULTS["daily_tasks"])
        self.assertEqual(get_timezone(cfg).key, "UTC")

    def test_env_token_overrides_file(self):
        self.path.write_text("bot_token: from-file\n", encoding="utf-8")
        with patch.dict(os.environ, {TOKEN_ENV_VAR: "from-env"}):
            cfg = get_config(str(self.path))
        self.assertEqual(cfg["bot_token"], "from-env")

    def test_missing_file_exits(self):
        with self.assertLogs(level="ERROR"), self.assertRaises(SystemExit) as ctx:
            get_config(str(self.path))
        self.assertEqual(ctx.exception.code, 1)

    def test_invalid_config_exits(self):
        self.path.write_text("bot_token: abc\ntimezone: Nowhere/City\n", encoding="utf-8")
        with self.assertLogs(level="ERROR"), self.assertRaises(SystemExit):
            get_config(str(self.path))

    def test_non_mapping_root_exits(self):
        self.path.write_text("- a\n- b\n", encoding="utf-8")
        with self.assertLogs(level="ERROR"), self.assertRaises(SystemExit):
            get_config(str(self.path))


if __name__ == "__main__":
    unittest.main()
