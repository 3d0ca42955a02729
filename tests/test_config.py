import importlib
import os
import tempfile
import unittest
from unittest.mock import patch

from dotenv import load_dotenv

from dailypapers import env
from dailypapers.cli import _build_arg_parser
from dailypapers.config import Settings, load_settings


class SettingsTests(unittest.TestCase):
    def setUp(self) -> None:
        env.clear_cache()
        self.addCleanup(env.clear_cache)

    def test_defaults(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            settings = load_settings()
        self.assertEqual(settings, Settings())
        self.assertEqual(settings.max_scrape_days, 365)
        self.assertEqual(settings.upsert_batch_size, 20)
        self.assertEqual(settings.summary_batch_size, 5)

    def test_environment_overrides(self) -> None:
        overrides = {
            "MAX_SCRAPE_DAYS": "30",
            "DAY_DELAY_SECONDS": "0",
            "DAILYPAPERS_OPENAI_API_KEY": "sk-test",
            "SOURCE_BASE_URL": "http://localhost:9000/",
        }
        with patch.dict(os.environ, overrides, clear=True):
            settings = load_settings()
        self.assertEqual(settings.max_scrape_days, 30)
        self.assertEqual(settings.day_delay_seconds, 0.0)
        self.assertEqual(settings.openai_api_key, "sk-test")
        self.assertEqual(settings.source_base_url, "http://localhost:9000")

    def test_bad_numbers_fall_back_to_defaults(self) -> None:
        with patch.dict(os.environ, {"UPSERT_BATCH_SIZE": "lots"}, clear=True):
            settings = load_settings()
        self.assertEqual(settings.upsert_batch_size, 20)

    def test_dotenv_database_url_applies_after_cli_import(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            url = f"sqlite:///{tmp}/fromenv.sqlite"
            dotenv_path = os.path.join(tmp, ".env")
            with open(dotenv_path, "w", encoding="utf-8") as handle:
                handle.write(f"DATABASE_URL={url}\n")

            with patch.dict(os.environ, {}, clear=True):
                env.clear_cache()
                importlib.reload(importlib.import_module("dailypapers.db"))
                importlib.reload(importlib.import_module("dailypapers.cli"))
                self.assertNotIn("DATABASE_URL", env._CACHE)

                load_dotenv(dotenv_path)
                self.assertEqual(load_settings().database_url, url)


class CliParserTests(unittest.TestCase):
    def test_scrape_window_options(self) -> None:
        parser = _build_arg_parser()
        args = parser.parse_args(["scrape", "--days", "3"])
        self.assertEqual(args.days, 3)
        self.assertFalse(args.since_last)
        self.assertTrue(parser.parse_args(["scrape", "--since-last"]).since_last)

    def test_days_and_since_last_are_exclusive(self) -> None:
        with self.assertRaises(SystemExit):
            _build_arg_parser().parse_args(["scrape", "--days", "3", "--since-last"])

    def test_summarize_options(self) -> None:
        args = _build_arg_parser().parse_args(["summarize", "--limit", "4", "--oldest-first"])
        self.assertEqual(args.limit, 4)
        self.assertTrue(args.oldest_first)


if __name__ == "__main__":
    unittest.main()
