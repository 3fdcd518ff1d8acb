"""
Tests for secrets_manager and session_manager
"""

import json
import os
import shutil
import tempfile
import unittest
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import patch
import pytest

from secrets_manager import SecretsManager, MigrationSettings, ConfigurationError
from session_manager import SessionManager


class TestSecretsManager(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    @patch.dict(os.environ, {}, clear=True)
    def test_loads_env_file(self):
        env_file = Path(self.temp_dir) / ".env.local"
        env_file.write_text(
            "Source_Repo=my-source\n"
            "Destination_Repo=my-destination\n"
            "Migration_Api_Key=abc\n"
        )
        manager = SecretsManager(env_files=[str(env_file)])

        settings = manager.get_from_environment()

        self.assertEqual(settings.source_repo, "my-source")
        self.assertEqual(settings.destination_repo, "my-destination")
        self.assertEqual(settings.migration_api_key, "abc")
        self.assertIsNone(settings.write_api_key)

    @patch.dict(os.environ, {"Source_Repo": "from-env"}, clear=True)
    def test_environment_wins_over_file(self):
        env_file = Path(self.temp_dir) / ".env"
        env_file.write_text("Source_Repo=from-file\n")

        settings = SecretsManager(env_files=[str(env_file)]).get_from_environment()

        self.assertEqual(settings.source_repo, "from-env")

    @patch.dict(os.environ, {"Prismic_Write_API_Key": ""}, clear=True)
    def test_empty_values_are_missing(self):
        settings = SecretsManager(env_files=[]).get_from_environment()
        self.assertIsNone(settings.write_api_key)

    def test_no_env_file(self):
        manager = SecretsManager(env_files=[str(Path(self.temp_dir) / "missing.env")])
        self.assertIsNone(manager.load_env_files())

    def test_require_names_environment_variables(self):
        settings = MigrationSettings(source_repo="src")

        with pytest.raises(ConfigurationError) as excinfo:
            settings.require("source_repo", "destination_repo", "migration_api_key")

        self.assertEqual(excinfo.value.missing, ["Destination_Repo", "Migration_Api_Key"])
        self.assertIn("Destination_Repo", str(excinfo.value))

    def test_require_returns_settings(self):
        settings = MigrationSettings(source_repo="src")
        self.assertIs(settings.require("source_repo"), settings)

    def test_redacted_masks_credentials(self):
        settings = MigrationSettings(source_repo="src", source_password="secret", migration_api_key="key")

        redacted = settings.redacted()

        self.assertEqual(redacted["source_repo"], "src")
        self.assertEqual(redacted["source_password"], "***")
        self.assertEqual(redacted["migration_api_key"], "***")
        self.assertIsNone(redacted["write_api_key"])


class TestSessionManager(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.sessions = SessionManager(session_dir=Path(self.temp_dir))

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_store_and_get_token(self):
        self.assertTrue(self.sessions.store_token("source:me@example.com", "tok-123"))
        self.assertEqual(self.sessions.get_token("source:me@example.com"), "tok-123")

    def test_token_encrypted_at_rest(self):
        self.sessions.store_token("source:me@example.com", "tok-123")
        self.assertNotIn("tok-123", self.sessions.session_file.read_text())

    def test_key_reused_across_instances(self):
        self.sessions.store_token("a", "tok")
        again = SessionManager(session_dir=Path(self.temp_dir))
        self.assertEqual(again.get_token("a"), "tok")

    def test_expired_token_is_cleared(self):
        self.sessions.store_token("a", "tok")
        data = json.loads(self.sessions.session_file.read_text())
        data["a"]["expires"] = (datetime.now() - timedelta(minutes=1)).isoformat()
        self.sessions.session_file.write_text(json.dumps(data))

        self.assertIsNone(self.sessions.get_token("a"))
        self.assertEqual(self.sessions.get_session_info(), {})

    def test_undecryptable_token_is_cleared(self):
        self.sessions.store_token("a", "tok")
        (Path(self.temp_dir) / ".session_key").unlink()
        other = SessionManager(session_dir=Path(self.temp_dir))

        self.assertIsNone(other.get_token("a"))

    def test_clear_session(self):
        self.sessions.store_token("a", "tok")
        self.sessions.store_token("b", "tok")
        self.assertTrue(self.sessions.clear_token("a"))
        self.assertFalse(self.sessions.clear_token("missing"))
        self.assertEqual(list(self.sessions.get_session_info()), ["b"])

        self.sessions.clear_session()
        self.assertIsNone(self.sessions.get_token("b"))

    def test_unknown_account(self):
        self.assertIsNone(self.sessions.get_token("nobody"))
