"""
Tests for migration.orchestrator

Runs the wizard stages against a mocked Prismic API with a temporary
database, state file and asset cache
"""

import json
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock
import pytest

from migration.asset_cache import AssetCache
from migration.credentials import TokenProvider
from migration.database import MigrationDatabase
from migration.models import Asset, IdMapping
from migration.orchestrator import (
    MigrationContext,
    fetch_assets_stage,
    download_assets_stage,
    upload_assets_stage,
    build_mapping_stage,
    effective_mappings,
    check_languages_stage,
    migrate_documents_stage,
)
from migration.retry import BackoffPolicy
from migration.workflow import JsonStateStore, WizardState
from secrets_manager import MigrationSettings, ConfigurationError

SOURCE_ITEMS = [
    {"id": "s1", "filename": "hero.png", "url": "https://images.prismic.io/src/hero.png"},
    {"id": "s2", "filename": "logo.svg", "url": "https://images.prismic.io/src/logo.svg"},
]


def submit_response(status_code=201, text='{"id": "new-doc"}'):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.text = text
    return response


class OrchestratorTestCase(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        root = Path(self.temp_dir)
        self.settings = MigrationSettings(
            source_repo="src",
            destination_repo="dst",
            source_email="me@example.com",
            source_password="pw",
            write_api_key="write-key",
            migration_api_key="migration-key",
        )
        self.login = MagicMock(return_value="source-token")
        self.db = MigrationDatabase(str(root / "migration.db"))
        self.store = JsonStateStore(root / "state.json")
        self.sleep = MagicMock()
        self.destination_items = []

        self.api = MagicMock()
        self.api.list_assets.return_value = {"total": 2, "items": SOURCE_ITEMS}
        self.api.fetch_asset_inventory.side_effect = self.inventory
        self.api.download_asset.side_effect = self.download
        self.api.list_slices.return_value = []
        self.api.list_custom_types.return_value = []
        self.api.get_repository_languages.return_value = [{"id": "en-us", "name": "English"}]
        self.api.submit_document.return_value = submit_response()

        self.ctx = MigrationContext(
            settings=self.settings,
            tokens=TokenProvider(self.settings, self.login),
            db=self.db,
            state_store=self.store,
            api=self.api,
            policy=BackoffPolicy(sleep=self.sleep),
            cache=AssetCache(root / "images"),
            run_log_file=root / "logs" / "runs.jsonl",
        )

    def tearDown(self):
        self.db.close()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def inventory(self, repository, token):
        return SOURCE_ITEMS if repository == "src" else self.destination_items

    def download(self, url, path):
        path.write_bytes(url.encode())
        return path


class TestAssetStages(OrchestratorTestCase):

    def test_fetch_stores_assets_and_unlocks_download(self):
        result = fetch_assets_stage(self.ctx)

        self.assertFalse(result["allExist"])
        self.assertFalse(result["allUploaded"])
        self.assertTrue(result["enabled"]["downloadAssets"])
        self.assertFalse(result["enabled"]["uploadAssets"])
        self.assertEqual([a.id for a in self.db.get_source_assets()], ["s1", "s2"])
        self.api.list_assets.assert_called_once_with("src", "source-token")
        self.assertEqual(self.store.load(), WizardState(fetched=True))

    def test_fetch_detects_completed_upload(self):
        self.destination_items = [{"id": "d1", "filename": "hero.webp"}, {"id": "d2", "filename": "logo.svg"}]

        result = fetch_assets_stage(self.ctx)

        self.assertTrue(result["allUploaded"])
        self.assertTrue(result["enabled"]["migrateDocuments"])
        self.api.fetch_asset_inventory.assert_called_with("dst", "write-key")

    def test_fetch_requires_source_repo(self):
        self.settings.source_repo = None
        with pytest.raises(ConfigurationError):
            fetch_assets_stage(self.ctx)

    def test_download_then_refetch_is_idempotent(self):
        fetch_assets_stage(self.ctx)

        result = download_assets_stage(self.ctx)

        self.assertEqual(result["completed"], 2)
        self.assertTrue(result["allExist"])
        self.assertTrue(result["enabled"]["uploadAssets"])
        self.assertTrue(fetch_assets_stage(self.ctx)["allExist"])

        again = download_assets_stage(self.ctx)
        self.assertEqual(again["completed"], 0)
        self.assertEqual(again["skipped"], 2)

    def test_download_fetches_when_nothing_stored(self):
        download_assets_stage(self.ctx)
        self.api.list_assets.assert_called_once()

    def test_download_failure_keeps_upload_locked(self):
        self.api.download_asset.side_effect = [IOError("reset"), None]

        result = download_assets_stage(self.ctx)

        self.assertEqual(result["failures"], 1)
        self.assertFalse(result["enabled"]["uploadAssets"])
        self.assertEqual(result["failedItems"], ["s1"])

    def test_upload_only_missing_assets(self):
        self.destination_items = [{"id": "d2", "filename": "logo.svg"}]
        fetch_assets_stage(self.ctx)
        download_assets_stage(self.ctx)
        self.api.upload_asset.return_value = {"id": "d1", "filename": "hero.png"}

        result = upload_assets_stage(self.ctx)

        self.api.upload_asset.assert_called_once_with(
            "dst", "write-key", self.ctx.cache.path_for(Asset("s1", "hero.png"))
        )
        self.assertEqual(result["newAssets"], [{"prevID": "s1", "id": "d1"}])
        self.assertEqual(result["skipped"], 1)
        self.assertEqual(result["failedItems"], [])
        self.assertTrue(result["enabled"]["migrateDocuments"])
        self.assertEqual(self.db.get_mappings(origin="upload"), [IdMapping("s1", "d1")])
        self.assertEqual(self.db.get_mappings(origin="filename"), [IdMapping("s2", "d2")])

    def test_upload_requires_write_key(self):
        self.settings.write_api_key = None
        with pytest.raises(ConfigurationError) as excinfo:
            upload_assets_stage(self.ctx)
        self.assertEqual(excinfo.value.missing, ["Prismic_Write_API_Key"])

    def test_run_log_written(self):
        download_assets_stage(self.ctx)
        lines = self.ctx.run_log_file.read_text().splitlines()
        self.assertEqual({json.loads(line)["operation"] for line in lines}, {"download_assets"})


class TestMappingStages(OrchestratorTestCase):

    def test_build_mapping_stage_persists(self):
        self.destination_items = [{"id": "d1", "filename": "hero.webp"}]

        result = build_mapping_stage(self.ctx)

        self.assertEqual(result.mappings, [IdMapping("s1", "d1")])
        self.assertEqual(self.db.get_mappings(), [IdMapping("s1", "d1")])

    def test_effective_mappings_prefers_stored(self):
        self.db.add_mapping(IdMapping("s1", "stored"), origin="upload")

        self.assertEqual(effective_mappings(self.ctx), [IdMapping("s1", "stored")])
        self.api.fetch_asset_inventory.assert_not_called()

    def test_unreadable_source_token_maps_nothing(self):
        self.login.side_effect = RuntimeError("401")
        self.destination_items = [{"id": "d1", "filename": "hero.png"}]

        self.assertEqual(build_mapping_stage(self.ctx).mappings, [])


class TestDocumentStages(OrchestratorTestCase):

    def setUp(self):
        super().setUp()
        self.documents = [
            {"id": "doc1", "type": "page", "lang": "en-us",
             "data": {"title": [{"text": "Home"}], "image": {"id": "s1"}}},
            {"id": "doc2", "type": "page", "lang": "fr-fr",
             "data": {"title": [{"text": "Accueil"}], "image": {"id": "s2"}}},
        ]
        self.api.fetch_all_documents.return_value = self.documents

    def test_check_languages(self):
        report = check_languages_stage(self.ctx)

        self.assertEqual(report.missing_languages, ["fr-fr"])
        self.api.fetch_all_documents.assert_called_once_with("src")

    def test_migrate_documents_rewrites_and_records(self):
        self.db.add_mapping(IdMapping("s1", "d1"), origin="upload")
        self.db.add_mapping(IdMapping("s2", "d2"), origin="filename")

        result = migrate_documents_stage(self.ctx)

        self.assertEqual(result["totalDocuments"], 2)
        self.assertEqual(result["failures"], 0)
        self.assertEqual(result["missingLanguages"], ["fr-fr"])
        self.assertEqual(result["schema"]["slices"], {"total": 0, "inserted": 0, "rejected": 0})

        payloads = [c[0][3] for c in self.api.submit_document.call_args_list]
        self.assertEqual([p["data"]["image"]["id"] for p in payloads], ["d1", "d2"])
        self.assertEqual([p["title"] for p in payloads], ["Home", "Accueil"])
        self.api.submit_document.assert_any_call("dst", "migration-key", "source-token", payloads[0])

        self.assertEqual(self.db.get_stats()["documents_migrated"], 2)
        self.assertTrue(self.store.load().migrated)
        self.sleep.assert_called_once_with(self.ctx.document_delay)

    def test_migrate_builds_mapping_when_none_stored(self):
        self.destination_items = [{"id": "d1", "filename": "hero.png"}, {"id": "d2", "filename": "logo.svg"}]

        migrate_documents_stage(self.ctx, copy_schema=False)

        payload = self.api.submit_document.call_args_list[0][0][3]
        self.assertEqual(payload["data"]["image"]["id"], "d1")
        self.api.list_slices.assert_not_called()

    def test_migrate_records_failures(self):
        self.api.submit_document.side_effect = [submit_response(), submit_response(400, "language you provided is invalid")]

        result = migrate_documents_stage(self.ctx, copy_schema=False)

        self.assertEqual(result["failures"], 1)
        self.assertEqual(result["failedItems"], ["doc2"])
        failed = self.db.get_documents(status="failed")
        self.assertEqual([d["source_id"] for d in failed], ["doc2"])

    def test_migrate_requires_migration_key(self):
        self.settings.migration_api_key = None
        with pytest.raises(ConfigurationError):
            migrate_documents_stage(self.ctx)
        self.api.submit_document.assert_not_called()
