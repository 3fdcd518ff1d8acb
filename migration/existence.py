"""
Idempotence checks run before the download and upload stages.

Both predicates are read-only and bias toward "more work is needed": any
error or missing data answers False.
"""

from typing import Callable, Iterable, List, Optional

from logging_config import logger
from .asset_cache import AssetCache
from .filenames import remote_key
from .models import Asset


def all_exist_locally(assets: Optional[List[Asset]], cache: AssetCache) -> bool:
    """True iff every asset is complete and already present in the local cache."""
    if not assets:
        return False

    for asset in assets:
        if not asset or not asset.url or not asset.id or not asset.filename:
            return False
        if not cache.exists(asset):
            return False
    return True


def missing_at_destination(
    assets: Iterable[Asset], destination_assets: Iterable[Asset], strict: bool = False
) -> List[Asset]:
    """
    Source assets with no counterpart in the destination inventory.

    By default a counterpart is any destination asset sharing the normalized
    base filename, the same key the asset mapper matches on. strict=True
    compares raw filenames instead.
    """
    if strict:
        present = {d.filename for d in destination_assets if d.filename}
        return [a for a in assets if not a.filename or a.filename not in present]

    present = {remote_key(d.filename) for d in destination_assets if d.filename}
    present.discard("")
    return [a for a in assets if not a.filename or remote_key(a.filename) not in present]


def all_exist_at_destination(
    assets: Optional[List[Asset]],
    fetch_destination: Callable[[], List[Asset]],
    strict: bool = False,
) -> bool:
    """
    True iff every source asset already has a counterpart at the destination.

    fetch_destination is called once; auth failures, timeouts and malformed
    responses make the check answer False.
    """
    if not assets:
        return False

    try:
        destination_assets = fetch_destination()
    except Exception as e:
        logger.warning(f"Error checking uploaded assets: {e}")
        return False

    if not destination_assets:
        logger.info("Destination repository has no assets")
        return False

    missing = missing_at_destination(assets, destination_assets, strict=strict)
    for asset in missing[:10]:
        logger.info(f"Missing asset filename: {asset.filename} (ID: {asset.id})")

    logger.info(
        "All assets exist in destination: %s" % (not missing),
        source=len(assets),
        destination=len(destination_assets),
        missing=len(missing),
    )
    return not missing
