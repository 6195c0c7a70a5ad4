"""
Unit tests for loading configuration from the environment.
"""

import os
import unittest
from datetime import timedelta
from unittest import mock

from .config import load
from .errors import ConfigError

BASE_ENV = {
    "DATABASE_URL": "postgres://user:pw@db:5432/app",
    "ARCHIVER_TABLE": "events",
    "STORAGE_URL": "file:///var/lib/archive",
}


class TestLoadConfig(unittest.TestCase):

    def setUp(self):
        patcher = mock.patch(f"{__package__}.config.load_dotenv")
        patcher.start()
        self.addCleanup(patcher.stop)

    def _load(self, **overrides):
        env = {**BASE_ENV, **overrides}
        with mock.patch.dict(os.environ, env, clear=True):
            return load()

    def test_defaults(self):
        cfg = self._load()

        self.assertEqual(cfg.database_url, "postgresql://user:pw@db:5432/app")
        self.assertEqual(cfg.table, "events")
        self.assertEqual(cfg.timestamp_column, "created_at")
        self.assertEqual(cfg.retention, timedelta(days=30))
        self.assertEqual(cfg.delay, timedelta(seconds=30))
        self.assertFalse(cfg.delete)
        self.assertFalse(cfg.ignore_existing)
        self.assertIsNone(cfg.blob_token)
        self.assertEqual(cfg.fetch_size, 1000)

    def test_overrides(self):
        cfg = self._load(
            ARCHIVER_TIMESTAMP_COLUMN="inserted_at",
            ARCHIVER_RETENTION_DAYS="90",
            ARCHIVER_DELAY_SECONDS="0",
            ARCHIVER_DELETE="yes",
            ARCHIVER_IGNORE_EXISTING="1",
            ARCHIVER_FETCH_SIZE="250",
            VERCEL_BLOB_RW_TOKEN="token",
        )

        self.assertEqual(cfg.timestamp_column, "inserted_at")
        self.assertEqual(cfg.retention, timedelta(days=90))
        self.assertEqual(cfg.delay, timedelta(0))
        self.assertTrue(cfg.delete)
        self.assertTrue(cfg.ignore_existing)
        self.assertEqual(cfg.fetch_size, 250)
        self.assertEqual(cfg.blob_token, "token")

    def test_database_url_indirection(self):
        env = {k: v for k, v in BASE_ENV.items() if k != "DATABASE_URL"}
        env.update(DB_ENV_VARIABLE="HEROKU_POSTGRESQL_PURPLE_URL", HEROKU_POSTGRESQL_PURPLE_URL="postgresql://other/db")
        with mock.patch.dict(os.environ, env, clear=True):
            cfg = load()
        self.assertEqual(cfg.database_url, "postgresql://other/db")

    def test_malformed_number_falls_back(self):
        self.assertEqual(self._load(ARCHIVER_DELAY_SECONDS="soon").delay, timedelta(seconds=30))

    def test_missing_required(self):
        for name in BASE_ENV:
            env = {k: v for k, v in BASE_ENV.items() if k != name}
            with self.subTest(missing=name), mock.patch.dict(os.environ, env, clear=True):
                with self.assertRaises(ConfigError):
                    load()

    def test_negative_retention_rejected(self):
        with self.assertRaises(ConfigError):
            self._load(ARCHIVER_RETENTION_DAYS="-1")


if __name__ == "__main__":
    unittest.main()
