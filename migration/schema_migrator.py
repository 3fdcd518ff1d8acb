"""
Copy shared slices and custom types from the source to the destination.

Definitions are inserted verbatim; slices go first because custom types
reference them.
"""

from typing import Callable, Dict, Any, List

from logging_config import logger


def copy_definitions(
    kind: str,
    definitions: List[Dict[str, Any]],
    insert: Callable[[Dict[str, Any]], bool],
) -> Dict[str, int]:
    inserted = 0
    rejected = 0
    for definition in definitions:
        if insert(definition):
            inserted += 1
        else:
            rejected += 1
            logger.info(f"Destination rejected {kind} '{definition.get('id')}' (it may already exist)")
    return {"total": len(definitions), "inserted": inserted, "rejected": rejected}


def migrate_schema(source_repo: str, destination_repo: str, token: str, api) -> Dict[str, Dict[str, int]]:
    """
    Copy slices then custom types.

    api is the prismic_rest module (or anything exposing list_slices,
    insert_slice, list_custom_types and insert_custom_type).
    """
    logger.log_operation_start("migrate_schema", source=source_repo, destination=destination_repo)

    slices = api.list_slices(source_repo, token)
    slice_result = copy_definitions(
        "slice", slices, lambda d: api.insert_slice(destination_repo, token, d)
    )

    custom_types = api.list_custom_types(source_repo, token)
    type_result = copy_definitions(
        "custom type", custom_types, lambda d: api.insert_custom_type(destination_repo, token, d)
    )

    logger.log_operation_end("migrate_schema", True, slices=slice_result, custom_types=type_result)
    return {"slices": slice_result, "customTypes": type_result}
