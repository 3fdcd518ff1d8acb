"""
Sequential asset download and upload.

Downloads land in the local asset cache; uploads read from it. Both
continue past a failing item and report counts.
"""

from pathlib import Path
from typing import Callable, Dict, Any, List

from config import UPLOAD_DELAY
from logging_config import logger
from .asset_cache import AssetCache
from .asset_mapper import mappings_from_upload_responses
from .migration_logger import MigrationLogger
from .models import Asset, TransferResult
from .retry import BackoffPolicy


def download_assets(
    assets: List[Asset],
    cache: AssetCache,
    download: Callable[[str, Path], Path],
    run_log: MigrationLogger = None,
) -> TransferResult:
    """
    Download every asset not yet in the cache.

    download(url, path) writes the file; assets without a url are skipped.
    """
    result = TransferResult(total=len(assets))
    logger.log_operation_start("download_assets", total=len(assets))

    for index, asset in enumerate(assets, start=1):
        if not asset.url or not asset.id or not asset.filename:
            logger.info(f"Skipping asset without url: {asset.id}")
            result.skipped += 1
            continue

        if cache.exists(asset):
            logger.debug(f"Asset {asset.filename} already exists, skipping download")
            result.skipped += 1
            continue

        try:
            download(asset.url, cache.prepare(asset))
            result.completed += 1
            if run_log:
                run_log.info("Downloaded", item=asset.id, title=asset.filename)
        except Exception as e:
            result.failures += 1
            logger.log_error(e, {"operation": "download_asset", "asset": asset.id})
            if run_log:
                run_log.error(f"Error downloading asset: {e}", item=asset.id, title=asset.filename)

        logger.log_batch_progress("download_assets", index, len(assets))

    logger.log_operation_end(
        "download_assets", result.failures == 0,
        completed=result.completed, skipped=result.skipped, failures=result.failures,
    )
    return result


def upload_assets(
    assets: List[Asset],
    cache: AssetCache,
    upload: Callable[[Path], Dict[str, Any]],
    policy: BackoffPolicy = None,
    upload_delay: float = UPLOAD_DELAY,
    run_log: MigrationLogger = None,
) -> TransferResult:
    """
    Upload cached assets one at a time, recording prevID -> new id.

    upload(path) returns the created destination asset. A missing local file
    or a rejected upload counts as a failure; the batch continues.
    """
    policy = policy or BackoffPolicy()
    result = TransferResult(total=len(assets))
    uploaded: List[Dict[str, Any]] = []
    logger.log_operation_start("upload_assets", total=len(assets))

    for index, asset in enumerate(assets, start=1):
        path = cache.path_for(asset)
        try:
            if not path.is_file():
                raise FileNotFoundError(f"Asset file not found in cache: {path}")
            created = upload(path)
            if not isinstance(created, dict) or not created.get("id"):
                raise ValueError(f"Upload response has no asset id: {created!r}")

            uploaded.append({**created, "prevID": asset.id})
            result.completed += 1
            if run_log:
                run_log.info(f"Uploaded as {created['id']}", item=asset.id, title=asset.filename)
        except Exception as e:
            result.failures += 1
            logger.log_error(e, {"operation": "upload_asset", "asset": asset.id})
            if run_log:
                run_log.error(f"Upload failed: {e}", item=asset.id, title=asset.filename)

        logger.log_batch_progress("upload_assets", index, len(assets))
        if index < len(assets):
            policy.pause(upload_delay)

    result.mappings = mappings_from_upload_responses(uploaded)
    logger.log_operation_end(
        "upload_assets", result.failures == 0,
        completed=result.completed, failures=result.failures,
    )
    return result
