"""
Main orchestrator for the migration process.

Each stage function corresponds to one wizard step. Stages re-derive what
they need from the repositories, the local cache and the migration database,
so they can be invoked in any order and re-run safely.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, List, Optional

from config import ASSET_CACHE_DIR, RUN_LOG_FILE, DOCUMENT_DELAY, UPLOAD_DELAY
from logging_config import logger
from secrets_manager import MigrationSettings
from .asset_cache import AssetCache
from .asset_mapper import build_asset_id_mapping_by_filename, build_mapping, find_duplicate_prev_ids
from .asset_transfer import download_assets, upload_assets
from .credentials import TokenProvider
from .database import MigrationDatabase
from .document_migrator import migrate_documents
from .existence import all_exist_locally, all_exist_at_destination, missing_at_destination
from .languages import reconcile
from .migration_logger import MigrationLogger
from .models import Asset, assets_from_items, MappingResult, LanguageReport
from .retry import BackoffPolicy
from .schema_migrator import migrate_schema
from .workflow import JsonStateStore, mark_fetched, mark_downloaded, mark_uploaded, mark_migrated, enabled_steps


@dataclass
class MigrationContext:
    """Everything a stage needs; assembled by the CLI, replaced in tests."""
    settings: MigrationSettings
    tokens: TokenProvider
    db: MigrationDatabase
    state_store: JsonStateStore
    api: Any  # the prismic_rest module
    policy: BackoffPolicy = field(default_factory=BackoffPolicy)
    cache: Optional[AssetCache] = None
    run_log_file: Optional[Path] = RUN_LOG_FILE
    document_delay: float = DOCUMENT_DELAY
    upload_delay: float = UPLOAD_DELAY

    def __post_init__(self):
        if self.cache is None:
            root = Path(self.settings.project_path) / "images" if self.settings.project_path else ASSET_CACHE_DIR
            self.cache = AssetCache(root)


def fetch_inventory(ctx: MigrationContext, repository: str, is_destination: bool) -> List[Asset]:
    """Inventory for mapping and existence checks; unreadable means empty."""
    try:
        token = ctx.tokens.write_token() if is_destination else ctx.tokens.read_token()
    except Exception as e:
        logger.warning(f"Could not get a token for {repository}: {e}")
        return []
    return assets_from_items(ctx.api.fetch_asset_inventory(repository, token))


def fetch_assets_stage(ctx: MigrationContext) -> Dict[str, Any]:
    """Step 1: list source assets and run both idempotence checks."""
    ctx.settings.require("source_repo")
    logger.log_operation_start("fetch_assets", repository=ctx.settings.source_repo)

    response = ctx.api.list_assets(ctx.settings.source_repo, ctx.tokens.optional_read_token())
    assets = assets_from_items(response.get("items") if isinstance(response, dict) else None)
    ctx.db.replace_source_assets(a for a in assets if a.id and a.filename)

    all_exist = all_exist_locally(assets, ctx.cache)
    all_uploaded = False
    if ctx.settings.destination_repo:
        all_uploaded = all_exist_at_destination(
            assets, lambda: fetch_inventory(ctx, ctx.settings.destination_repo, True)
        )

    state = ctx.state_store.save(
        mark_fetched(ctx.state_store.load(), already_downloaded=all_exist, already_uploaded=all_uploaded)
    )
    logger.log_operation_end("fetch_assets", True, total=len(assets), allExist=all_exist, allUploaded=all_uploaded)
    return {
        "assets": response,
        "allExist": all_exist,
        "allUploaded": all_uploaded,
        "enabled": enabled_steps(state),
    }


def _source_assets(ctx: MigrationContext) -> List[Asset]:
    assets = ctx.db.get_source_assets()
    if not assets:
        logger.info("No stored asset list, fetching source assets")
        fetch_assets_stage(ctx)
        assets = ctx.db.get_source_assets()
    return assets


def download_assets_stage(ctx: MigrationContext) -> Dict[str, Any]:
    """Step 2: download every source asset not already cached."""
    assets = _source_assets(ctx)
    run_log = MigrationLogger("download_assets", ctx.run_log_file)
    result = download_assets(assets, ctx.cache, ctx.api.download_asset, run_log=run_log)
    run_log.write()

    state = ctx.state_store.load()
    if result.failures == 0:
        state = ctx.state_store.save(mark_downloaded(state))
    return {
        **result.to_dict(),
        "failedItems": run_log.failed_items(),
        "allExist": all_exist_locally(assets, ctx.cache),
        "enabled": enabled_steps(state),
    }


def upload_assets_stage(ctx: MigrationContext) -> Dict[str, Any]:
    """
    Step 3: upload assets the destination does not have yet.

    Assets already present at the destination are not uploaded again; their
    ids are mapped by filename instead.
    """
    ctx.settings.require("destination_repo", "write_api_key")
    token = ctx.tokens.write_token()
    assets = _source_assets(ctx)

    destination_assets = fetch_inventory(ctx, ctx.settings.destination_repo, True)
    to_upload = missing_at_destination(assets, destination_assets)
    upload_ids = {a.id for a in to_upload}
    present = [a for a in assets if a.id not in upload_ids]

    if present:
        logger.info(f"{len(present)} assets already exist at destination, mapping them by filename")
        for mapping in build_mapping(present, destination_assets).mappings:
            ctx.db.add_mapping(mapping, origin="filename")

    run_log = MigrationLogger("upload_assets", ctx.run_log_file)
    result = upload_assets(
        to_upload,
        ctx.cache,
        lambda path: ctx.api.upload_asset(ctx.settings.destination_repo, token, path),
        policy=ctx.policy,
        upload_delay=ctx.upload_delay,
        run_log=run_log,
    )
    run_log.write()

    filenames = {a.id: a.filename for a in to_upload}
    for mapping in result.mappings:
        ctx.db.add_mapping(mapping, origin="upload", filename=filenames.get(mapping.prev_id))

    result.skipped = len(present)
    result.total = len(assets)
    state = ctx.state_store.load()
    if result.failures == 0:
        state = ctx.state_store.save(mark_uploaded(state))

    payload = result.to_dict()
    payload["newAssets"] = payload.pop("mappings")
    payload["failedItems"] = run_log.failed_items()
    payload["enabled"] = enabled_steps(state)
    return payload


def build_mapping_stage(ctx: MigrationContext) -> MappingResult:
    """Rebuild the asset id mapping from both inventories and store it."""
    result = build_asset_id_mapping_by_filename(
        ctx.settings.source_repo,
        ctx.settings.destination_repo,
        lambda repository, is_destination: fetch_inventory(ctx, repository, is_destination),
    )
    for mapping in result.mappings:
        ctx.db.add_mapping(mapping, origin="filename")

    duplicates = find_duplicate_prev_ids(result.mappings)
    if duplicates:
        logger.warning(f"Source ids mapped more than once: {duplicates[:10]}")
    return result


def effective_mappings(ctx: MigrationContext):
    """Stored mappings, or a filename-based mapping when none are stored."""
    mappings = ctx.db.get_mappings()
    if mappings:
        return mappings

    logger.info("No stored asset mappings - building mapping by filename...")
    result = build_mapping_stage(ctx)
    logger.info(
        f"Built {len(result.mappings)} filename-based mappings "
        f"(source assets: {result.stats.total_source}, destination assets: "
        f"{result.stats.total_destination}, ambiguous: {result.stats.ambiguous})"
    )
    return result.mappings


def check_languages_stage(ctx: MigrationContext, documents: Optional[List[Dict[str, Any]]] = None) -> LanguageReport:
    """Compare document languages with the destination's configured languages."""
    ctx.settings.require("source_repo", "destination_repo")
    source_languages = ctx.api.get_repository_languages(ctx.settings.source_repo, ctx.tokens.read_token)
    destination_languages = ctx.api.get_repository_languages(
        ctx.settings.destination_repo, ctx.tokens.destination_read_token
    )
    if documents is None:
        documents = ctx.api.fetch_all_documents(ctx.settings.source_repo)

    report = reconcile(source_languages, destination_languages, documents)
    logger.info(
        "Language check",
        source=[l.get("id") for l in source_languages],
        destination=[l.get("id") for l in destination_languages],
        documents=report.document_languages,
    )
    if report.missing_languages:
        logger.warning(
            f"Missing languages in destination repository: {', '.join(report.missing_languages)}"
        )
    return report


def migrate_documents_stage(ctx: MigrationContext, copy_schema: bool = True) -> Dict[str, Any]:
    """Step 4: copy slices and custom types, then migrate every document."""
    ctx.settings.require("source_repo", "destination_repo", "migration_api_key")
    token = ctx.tokens.read_token()

    schema = None
    if copy_schema:
        schema = migrate_schema(ctx.settings.source_repo, ctx.settings.destination_repo, token, ctx.api)

    documents = ctx.api.fetch_all_documents(ctx.settings.source_repo)
    report = check_languages_stage(ctx, documents)
    mappings = effective_mappings(ctx)

    logger.info(f"Starting migration of {len(documents)} documents with {len(mappings)} asset mappings")
    run_log = MigrationLogger("migrate_documents", ctx.run_log_file)
    result = migrate_documents(
        documents,
        mappings,
        lambda payload: ctx.api.submit_document(
            ctx.settings.destination_repo, ctx.settings.migration_api_key, token, payload
        ),
        policy=ctx.policy,
        document_delay=ctx.document_delay,
        run_log=run_log,
        destination_languages=report.destination_languages,
        on_result=ctx.db.record_document,
    )
    run_log.write()

    ctx.state_store.save(mark_migrated(ctx.state_store.load()))
    payload = result.to_dict()
    payload["missingLanguages"] = report.missing_languages
    payload["failedItems"] = run_log.failed_items()
    if schema is not None:
        payload["schema"] = schema
    return payload
