"""
Map source asset IDs to destination asset IDs.

Uploading an asset to another repository gives it a new id, so documents
copied from the source still point at source ids. The mapping comes from
the upload responses when they are available; otherwise it is rebuilt by
matching the two asset inventories on normalized base filename:

1. exact extension match
2. jpg/jpeg/png source -> webp destination (format conversion on upload)
3. first destination asset with that base name

Source assets with no matching base name are left unmapped.
"""

from collections import OrderedDict
from typing import Dict, List, Iterable, Any, Callable, Optional

from logging_config import logger
from .filenames import split_extension, normalize_filename
from .models import Asset, IdMapping, MappingResult, MappingStats

CONVERTIBLE_EXTENSIONS = {"jpg", "jpeg", "png"}
CONVERTED_EXTENSION = "webp"
UNMAPPED_SAMPLE_SIZE = 10


def group_by_base_name(assets: Iterable[Asset]) -> "OrderedDict[str, List[Dict[str, str]]]":
    """
    Bucket assets by normalized base filename, keeping inventory order.
    Names with no usable base (".png", "") get no bucket.
    """
    buckets: "OrderedDict[str, List[Dict[str, str]]]" = OrderedDict()
    for asset in assets:
        parts = split_extension(asset.filename)
        key = normalize_filename(parts.base)
        if not key:
            continue
        buckets.setdefault(key, []).append(
            {"id": asset.id, "ext": parts.ext, "filename": asset.filename}
        )
    return buckets


def choose_destination(source_ext: str, candidates: List[Dict[str, str]]) -> Optional[Dict[str, str]]:
    """Pick the destination entry for one source entry of the same bucket."""
    for candidate in candidates:
        if candidate["ext"] == source_ext:
            return candidate

    if source_ext in CONVERTIBLE_EXTENSIONS:
        for candidate in candidates:
            if candidate["ext"] == CONVERTED_EXTENSION:
                return candidate

    return candidates[0] if candidates else None


def build_mapping(source_assets: List[Asset], destination_assets: List[Asset]) -> MappingResult:
    """Match two inventories by filename. Deterministic for fixed input order."""
    stats = MappingStats(
        total_source=len(source_assets), total_destination=len(destination_assets)
    )
    source_buckets = group_by_base_name(source_assets)
    destination_buckets = group_by_base_name(destination_assets)

    mappings: List[IdMapping] = []
    for name, source_infos in source_buckets.items():
        destination_infos = destination_buckets.get(name) or []
        if not destination_infos:
            continue

        for source_info in source_infos:
            chosen = choose_destination(source_info["ext"], destination_infos)
            if chosen is None:
                continue

            mappings.append(IdMapping(prev_id=source_info["id"], id=chosen["id"]))
            stats.matched += 1
            if len(source_infos) > 1 or len(destination_infos) > 1:
                stats.ambiguous += 1
                logger.debug(
                    f"Ambiguous filename match for '{name}': sources={len(source_infos)}, "
                    f"destinations={len(destination_infos)}. "
                    f"Using {source_info['filename']} -> {chosen['filename']}"
                )

    logger.info("Asset ID mapping by filename stats", **stats.to_dict())

    if stats.matched < stats.total_source:
        mapped = {m.prev_id for m in mappings}
        samples = []
        for asset in source_assets:
            if asset.id in mapped:
                continue
            parts = split_extension(asset.filename)
            samples.append({"id": asset.id, "filename": asset.filename, "base": parts.base, "ext": parts.ext})
            if len(samples) >= UNMAPPED_SAMPLE_SIZE:
                break
        if samples:
            logger.info(f"Sample of unmapped source assets (first {len(samples)}): {samples}")

    return MappingResult(mappings=mappings, stats=stats)


def build_asset_id_mapping_by_filename(
    source_repo: Optional[str],
    destination_repo: Optional[str],
    fetch_inventory: Callable[[str, bool], List[Asset]],
) -> MappingResult:
    """
    Fetch both inventories and match them by filename.

    fetch_inventory(repository, is_destination) returns an inventory; it is
    expected to degrade to [] on read errors. A missing repository name
    yields an empty result.
    """
    if not source_repo or not destination_repo:
        logger.warning("Source_Repo or Destination_Repo missing - cannot build mapping")
        return MappingResult()

    source_assets = fetch_inventory(source_repo, False)
    destination_assets = fetch_inventory(destination_repo, True)
    return build_mapping(source_assets, destination_assets)


def mappings_from_upload_responses(responses: Iterable[Dict[str, Any]]) -> List[IdMapping]:
    """Build mappings from upload step output ({..., "id", "prevID"})."""
    return [
        IdMapping(prev_id=r["prevID"], id=r["id"])
        for r in responses
        if isinstance(r, dict) and r.get("prevID") and r.get("id")
    ]


def find_duplicate_prev_ids(mappings: Iterable[IdMapping]) -> List[str]:
    """Source ids mapped more than once; each is reported once, in first-seen order."""
    seen = set()
    duplicates: List[str] = []
    for mapping in mappings:
        if mapping.prev_id in seen and mapping.prev_id not in duplicates:
            duplicates.append(mapping.prev_id)
        seen.add(mapping.prev_id)
    return duplicates
